"""Pytest fixtures for the order service tests."""

from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

from apps.order_service.config import ServiceConfig
from apps.order_service.db import init_db
from shared.models.product import Product, ProductVariant
from shared.models.user import BankInfo, User, UserRole


@pytest.fixture
def config():
    return ServiceConfig(database_name="marketplace_test", admin_fee=1500, use_transactions=False)


@pytest.fixture
def producer():
    """Stands in for the Kafka producer; inspect `.emit.call_args_list`."""
    return MagicMock()


@pytest_asyncio.fixture
async def db(config):
    """Fresh in-memory MongoDB with all document models registered."""
    client = AsyncMongoMockClient()
    await init_db(config, client=client)
    yield client[config.database_name]


@pytest_asyncio.fixture
async def buyer(db):
    user = User(name="Rina Pembeli", email="rina@example.com", phone="081298765432")
    await user.insert()
    return user


@pytest_asyncio.fixture
async def seller_a(db):
    user = User(
        name="Ahmad Wijaya",
        email="ahmad@tokoelektronik.com",
        phone="081234567890",
        role=UserRole.SELLER,
        store_name="Toko Elektronik Jaya",
        bank_info=BankInfo(bank_name="BCA", account_number="1234567890", account_name="Ahmad Wijaya"),
    )
    await user.insert()
    return user


@pytest_asyncio.fixture
async def seller_b(db):
    user = User(
        name="Siti Nurhaliza",
        email="siti@fashionstore.com",
        role=UserRole.SELLER,
        store_name="Fashion Store Central",
    )
    await user.insert()
    return user


@pytest_asyncio.fixture
async def speaker(seller_a):
    product = Product(
        seller_id=seller_a.id,
        store_name=seller_a.store_name,
        name="Speaker Bluetooth Mini",
        category="electronics",
        images=["speaker.jpg"],
        price=50000,
        stock=10,
    )
    await product.insert()
    return product


@pytest_asyncio.fixture
async def tshirt(seller_b):
    product = Product(
        seller_id=seller_b.id,
        store_name=seller_b.store_name,
        name="Kaos Katun Polos",
        category="fashion",
        price=30000,
        variants=[
            ProductVariant(name="M", price=30000, stock=5),
            ProductVariant(name="L", price=32000, stock=1),
        ],
    )
    await product.insert()
    return product
