"""Order number, WhatsApp and courier hand-off helpers."""

import re

import pytest

from shared.errors import ValidationError
from apps.order_service.config import ServiceConfig
from apps.order_service.schemas import CartItemRequest, SelectedVariantRequest
from apps.order_service.utils.order_utils import (
    build_courier_message,
    build_order_item,
    format_shipping_address,
    generate_order_number,
    to_wa_number,
    whatsapp_link,
)

from tests.factories import make_address, make_item, make_order


@pytest.mark.parametrize("raw, expected", [
    ("081234567890", "6281234567890"),
    ("+62 812-3456-7890", "6281234567890"),
    ("6281234567890", "6281234567890"),
    ("(021) 555 0101", "62215550101"),
    ("", ""),
    (None, ""),
    ("abc", ""),
])
def test_to_wa_number(raw, expected):
    assert to_wa_number(raw) == expected


def test_order_number_format():
    assert re.fullmatch(r"ORD-\d{8}-[0-9A-F]{6}", generate_order_number())


def test_variant_price_overrides_line_price():
    item = build_order_item(0, CartItemRequest(
        product_id="65a0000000000000000000f1",
        seller_id="65a000000000000000000001",
        selected_variant=SelectedVariantRequest(name="L", price=32000),
        price=30000,
        quantity=2,
    ))

    assert item.item_id == "item_0"
    assert item.price == 32000
    assert item.line_total == 64000


def test_bad_ids_are_a_validation_error():
    with pytest.raises(ValidationError, match="cart line 3"):
        build_order_item(2, CartItemRequest(product_id="p1", seller_id="65a000000000000000000001"))


def test_format_shipping_address():
    assert format_shipping_address(make_address()) == "Jl. Merdeka No. 1, Jakarta 10110"
    assert format_shipping_address(make_address(address="", city="", postal_code="")) == "Alamat tidak tersedia"
    assert format_shipping_address(None) == "Alamat tidak tersedia"


@pytest.mark.asyncio
async def test_courier_message_and_link(db):
    order = make_order(items=[make_item(name="Kaos", quantity=2), make_item(name="")])

    message = build_courier_message(order, "Joko")

    assert message.startswith("Halo Joko, mohon bantu kirim pesanan berikut:")
    assert f"Order: {order.order_number}" in message
    assert "1. Kaos x2\n2. Produk x1" in message
    assert whatsapp_link("6281234567890", "a b").endswith("?text=a%20b")


def test_service_config_from_env(monkeypatch):
    monkeypatch.setenv("ADMIN_FEE", "2000")
    monkeypatch.setenv("MONGO_USE_TRANSACTIONS", "yes")

    config = ServiceConfig.from_env()

    assert config.admin_fee == 2000
    assert config.use_transactions is True
