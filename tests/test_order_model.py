"""Order document invariants and lenient read-model parsing."""

import pytest
from pydantic import ValidationError

from shared.models.order import (
    CodStatus,
    OrderItem,
    OrderRecord,
    PaymentMethod,
    TransferStatus,
    status_for,
)

from tests.factories import SELLER_A, SELLER_B, make_item, make_order, make_record, raw_order


@pytest.mark.asyncio
async def test_transfer_total_is_subtotal_plus_fee(db):
    order = make_order(items=[make_item(price=40000, quantity=2), make_item(seller_id=SELLER_B, price=15000)])

    assert order.subtotal == 95000
    assert order.admin_fee == 1500
    assert order.total_amount == 96500
    assert order.status == TransferStatus.PENDING


@pytest.mark.asyncio
async def test_cod_order_has_no_fee(db):
    order = make_order(items=[make_item(price=30000)], payment_method=PaymentMethod.COD)

    assert order.admin_fee == 0
    assert order.total_amount == order.subtotal == 30000
    assert order.status == CodStatus.COD_CONFIRMED


@pytest.mark.asyncio
async def test_mismatched_total_is_rejected(db):
    order = make_order()
    data = order.model_dump()
    data["total_amount"] = order.total_amount + 1

    with pytest.raises(ValidationError, match="total_amount"):
        type(order).model_validate(data)


@pytest.mark.asyncio
async def test_cod_fee_is_rejected(db):
    order = make_order(payment_method=PaymentMethod.COD)
    data = order.model_dump()
    data.update(admin_fee=1500, total_amount=order.subtotal + 1500)

    with pytest.raises(ValidationError, match="COD orders carry no admin fee"):
        type(order).model_validate(data)


@pytest.mark.asyncio
async def test_status_from_the_other_path_is_rejected(db):
    order = make_order()
    data = order.model_dump()
    data["status"] = "cod_shipped"

    with pytest.raises(ValidationError, match="not a valid transfer order status"):
        type(order).model_validate(data)


@pytest.mark.asyncio
async def test_legacy_spellings_are_normalized_on_read(db):
    order = make_order()
    data = order.model_dump()
    data.update(payment_method="bank_transfer", status="verified")

    loaded = type(order).model_validate(data)

    assert loaded.payment_method == PaymentMethod.TRANSFER
    assert loaded.status == TransferStatus.PAYMENT_CONFIRMED


def test_status_for_shared_cancelled_value():
    assert status_for("cod", "cancelled") is CodStatus.CANCELLED
    assert status_for("transfer", "cancelled") is TransferStatus.CANCELLED
    assert status_for(None, "payment_rejected") is TransferStatus.PENDING_PAYMENT


def test_order_item_accepts_camel_case_keys():
    item = OrderItem.model_validate({
        "productId": "65a0000000000000000000f1",
        "storeId": str(SELLER_A),
        "productName": "Kaos",
        "selectedVariant": {"name": "M"},
        "quantity": 2,
        "price": 30000,
    })

    assert item.seller_id == SELLER_A
    assert item.name == "Kaos"
    assert item.selected_variant.name == "M"
    assert item.line_total == 60000


def test_record_keeps_unknown_status_raw():
    record = make_record(status="on_hold", payment_method=None)

    assert record.status == "on_hold"
    assert record.payment_method == "transfer"
    assert not record.is_cod


def test_record_without_admin_fee_stays_none():
    doc = raw_order()
    del doc["admin_fee"]

    assert OrderRecord.model_validate(doc).admin_fee is None


def test_display_number_falls_back_to_id():
    record = make_record(order_number=None)

    assert record.display_number() == f"ORD-{str(record.id)[:8].upper()}"
