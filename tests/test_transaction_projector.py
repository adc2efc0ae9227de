"""Admin transaction rows, filters and totals."""

from apps.order_service.services.status import FilterType, Stage
from apps.order_service.services.transaction import (
    SellerPayoutInfo,
    project_transaction,
    transaction_stats,
)

from tests.factories import SELLER_A, make_item, make_record


def _cod_record(**fields):
    fields.setdefault("status", "cod_confirmed")
    return make_record(
        payment_method="cod", admin_fee=0, total_amount=50000,
        admin_verification_status="not_required", seller_transfer_status="not_applicable",
        **fields,
    )


def test_cod_orders_are_not_admin_transactions():
    assert project_transaction(_cod_record()) is None


def test_seller_amount_is_total_minus_retained_fee():
    row = project_transaction(make_record(subtotal=100000, admin_fee=1500, total_amount=101500))

    assert row.admin_fee == 1500
    assert row.seller_amount == 100000


def test_missing_fee_defaults_to_platform_fee():
    record = make_record(admin_fee=None, total_amount=51500)

    row = project_transaction(record)

    assert row.admin_fee == 1500
    assert row.seller_amount == 50000


def test_pending_transfer_row_is_flagged():
    row = project_transaction(make_record(status="payment_confirmed", admin_verification_status="approved"))

    assert row.stage == Stage.AWAITING_SELLER_TRANSFER
    assert row.filter_type == FilterType.PENDING_TRANSFER
    assert row.needs_transfer
    assert row.transfer_note == "Menunggu Transfer ke Seller"


def test_shipped_row_is_verified_regardless_of_admin_field():
    row = project_transaction(make_record(status="shipped", admin_verification_status="pending"))

    assert row.status == "Dalam Pengiriman"
    assert row.filter_type == FilterType.VERIFIED


def test_unknown_status_row():
    row = project_transaction(make_record(status="on_hold"))

    assert row.status == "Status Tidak Dikenal"
    assert row.status_color == "#666666"
    assert row.filter_type is None


def test_seller_display_lists_every_seller():
    item = make_item(seller_id=SELLER_A, store_name="Toko A")
    sellers = [SellerPayoutInfo.from_item(item), SellerPayoutInfo(seller_id="x", name="Budi")]

    row = project_transaction(make_record(), buyer_name="Rina", sellers=sellers)

    assert row.is_multi_seller
    assert row.seller_display == "Toko A\nBudi"
    assert sellers[0].bank_name == "Bank tidak diatur"


def test_stats_skip_cod_and_count_by_stage():
    records = [
        make_record(status="pending_verification", admin_verification_status="pending"),
        make_record(status="payment_confirmed", admin_verification_status="approved"),
        make_record(status="payment_confirmed", admin_verification_status="approved"),
        make_record(status="completed", total_amount=51500),
        make_record(status="delivered", admin_fee=2000, subtotal=80000, total_amount=82000),
        make_record(status="cancelled"),
        _cod_record(status="cod_delivered"),
    ]

    stats = transaction_stats(records)

    assert stats.pending_verification == 1
    assert stats.pending_transfer == 2
    assert stats.completed == 2
    assert stats.total_admin_revenue == 3500
    assert stats.total_transaction_value == 51500 + 82000
