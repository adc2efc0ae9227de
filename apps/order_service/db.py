"""MongoDB connection and beanie initialization."""

import logging
from typing import Optional

from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from apps.order_service.config import ServiceConfig, get_config
from shared.models.order import Order
from shared.models.product import Product
from shared.models.user import User

logger = logging.getLogger(__name__)

DOCUMENT_MODELS = [Order, Product, User]


async def init_db(config: Optional[ServiceConfig] = None, client=None):
    """Connect and register document models. Returns the client.

    ``client`` lets callers supply an already-built (or in-memory) client.
    """
    config = config or get_config()
    if client is None:
        client = AsyncIOMotorClient(config.mongodb_url)
    await init_beanie(database=client[config.database_name], document_models=DOCUMENT_MODELS)
    logger.info(f"MongoDB initialized: {config.database_name}")
    return client
