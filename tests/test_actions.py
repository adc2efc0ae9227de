"""MarketplaceActions always answer with an OperationResult."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.errors import InvalidTransitionError
from apps.order_service.actions import MarketplaceActions
from apps.order_service.services.order import OrderService


@pytest.fixture
def actions(config, producer):
    return MarketplaceActions(orders=OrderService(config, producer))


def order_payload(speaker, payment_method="transfer"):
    return {
        "items": [{
            "product_id": str(speaker.id),
            "seller_id": str(speaker.seller_id),
            "name": speaker.name,
            "quantity": 1,
            "price": speaker.price,
        }],
        "shipping_address": {
            "recipient_name": "Rina",
            "phone": "081298765432",
            "address": "Jl. Merdeka No. 1",
            "city": "Jakarta",
            "postal_code": "10110",
        },
        "payment_method": payment_method,
    }


@pytest.mark.asyncio
async def test_successful_action_returns_data(actions, buyer, speaker):
    result = await actions.create_order(str(buyer.id), order_payload(speaker))

    assert result.success
    assert result.error is None
    assert result.data.total_amount == 51500


@pytest.mark.asyncio
async def test_domain_error_message_is_passed_through(actions, buyer, speaker):
    created = await actions.create_order(str(buyer.id), order_payload(speaker))

    result = await actions.complete_order(str(created.data.id))

    assert not result.success
    assert "Cannot complete the order" in result.error


@pytest.mark.asyncio
async def test_invalid_payload_reports_generic_message(actions, buyer):
    result = await actions.create_order(str(buyer.id), {"items": [{"product_id": "x"}]})

    assert not result.success
    assert result.error == "Gagal membuat pesanan: data tidak valid"


@pytest.mark.asyncio
async def test_unexpected_error_is_logged_and_hidden(caplog):
    orders = MagicMock()
    orders.get_order = AsyncMock(side_effect=RuntimeError("connection reset"))
    actions = MarketplaceActions(orders=orders, seller_orders=MagicMock(), transactions=MagicMock())

    with caplog.at_level(logging.ERROR):
        result = await actions.get_order("65a0000000000000000000ff")

    assert result.error == "Gagal mengambil data pesanan"
    assert "connection reset" in caplog.text


@pytest.mark.asyncio
async def test_invalid_transition_keeps_current_status():
    orders = MagicMock()
    orders.accept_cod_order = AsyncMock(side_effect=InvalidTransitionError("Cannot process", current_status="cod_shipped"))
    actions = MarketplaceActions(orders=orders, seller_orders=MagicMock(), transactions=MagicMock())

    result = await actions.accept_cod_order("65a0000000000000000000ff")

    assert result.success is False
    assert result.error == "Cannot process"


@pytest.mark.asyncio
async def test_ship_returns_courier_link(actions, buyer, speaker):
    created = await actions.create_order(str(buyer.id), order_payload(speaker, "cod"))
    order_id = str(created.data.id)
    await actions.accept_cod_order(order_id)

    result = await actions.ship_order(order_id, {"courier_whatsapp": "0812-3456-7890", "courier_name": "Joko"})

    assert result.success
    assert result.data["whatsapp_url"].startswith("https://wa.me/6281234567890?text=Halo%20Joko")
    assert result.data["order"].courier_whatsapp == "6281234567890"


@pytest.mark.asyncio
async def test_unknown_transaction_filter_is_rejected():
    actions = MarketplaceActions(orders=MagicMock(), seller_orders=MagicMock(), transactions=MagicMock())

    result = await actions.get_transactions("Semua")

    assert not result.success
    assert result.error == "Gagal mengambil data transaksi"
