"""Order service configuration."""

import os

from pydantic import BaseModel, Field

from shared.utils.env import env_flag

DEFAULT_ADMIN_FEE = 1500


class ServiceConfig(BaseModel):
    """Order service settings from environment variables."""

    mongodb_url: str = Field(default="mongodb://localhost:27017")
    database_name: str = Field(default="marketplace")
    admin_fee: int = Field(default=DEFAULT_ADMIN_FEE, ge=0, description="Flat platform fee for transfer orders")
    use_transactions: bool = Field(
        default=False,
        description="Apply stock reductions inside a MongoDB transaction (needs a replica set)",
    )

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        return cls(
            mongodb_url=os.getenv("MONGODB_URL", "mongodb://localhost:27017"),
            database_name=os.getenv("DATABASE_NAME", "marketplace"),
            admin_fee=int(os.getenv("ADMIN_FEE", str(DEFAULT_ADMIN_FEE))),
            use_transactions=env_flag("MONGO_USE_TRANSACTIONS", "false"),
        )


_config = None


def get_config() -> ServiceConfig:
    global _config
    if _config is None:
        _config = ServiceConfig.from_env()
    return _config
