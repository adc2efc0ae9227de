"""MySQL connection pool for the order ledger."""

import os
import logging
from typing import Optional

from mysql.connector import pooling
from pydantic import BaseModel, Field

from apps.ledger_sink.db.tables import TABLE_DEFINITIONS

logger = logging.getLogger(__name__)


class MySQLConfig(BaseModel):
    """Ledger database settings from MYSQL_* environment variables."""

    host: str = Field(default="localhost")
    port: int = Field(default=3306)
    user: str = Field(default="ledger")
    password: str = Field(default="ledger123")
    database: str = Field(default="marketplace_ledger")
    pool_size: int = Field(default=5, ge=1, le=32)

    @classmethod
    def from_env(cls) -> "MySQLConfig":
        return cls(
            host=os.getenv("MYSQL_HOST", "localhost"),
            port=int(os.getenv("MYSQL_PORT", "3306")),
            user=os.getenv("MYSQL_USER", "ledger"),
            password=os.getenv("MYSQL_PASSWORD", "ledger123"),
            database=os.getenv("MYSQL_DATABASE", "marketplace_ledger"),
            pool_size=int(os.getenv("MYSQL_POOL_SIZE", "5")),
        )


class Database:
    """Pooled connections to the ledger schema; call connect() once at startup."""

    def __init__(self, config: Optional[MySQLConfig] = None):
        self._config = config or MySQLConfig.from_env()
        self._pool = None

    def connect(self):
        cfg = self._config
        self._pool = pooling.MySQLConnectionPool(
            pool_name="ledger_pool",
            pool_size=cfg.pool_size,
            host=cfg.host,
            port=cfg.port,
            user=cfg.user,
            password=cfg.password,
            database=cfg.database,
            autocommit=True,
        )
        logger.info(f"MySQL pool ready: {cfg.user}@{cfg.host}:{cfg.port}/{cfg.database} (size {cfg.pool_size})")

    def init_tables(self):
        """Create the ledger tables that do not exist yet."""
        conn = self.get_connection()
        try:
            cursor = conn.cursor()
            for ddl in TABLE_DEFINITIONS:
                cursor.execute(ddl)
            cursor.close()
            logger.info(f"{len(TABLE_DEFINITIONS)} ledger tables initialized")
        finally:
            conn.close()

    def get_connection(self):
        if self._pool is None:
            raise RuntimeError("Database.connect() has not been called")
        return self._pool.get_connection()


_db = None


def get_database() -> Database:
    global _db
    if _db is None:
        _db = Database()
    return _db
