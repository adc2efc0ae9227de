"""
Status decision table shared by the seller and admin read models.

Both projectors call resolve_stage() on the raw stored fields and only differ
in how a Stage is labelled for their audience.
"""

import logging
from enum import Enum
from typing import NamedTuple, Optional

from shared.models.order import (
    APPROVED_VERIFICATION_STATUSES,
    AdminVerificationStatus,
    CodStatus,
    PaymentMethod,
    SellerTransferStatus,
    TransferStatus,
    normalize_payment_method,
    normalize_status,
)

logger = logging.getLogger(__name__)

UNKNOWN_STATUS_LABEL = "Status Tidak Dikenal"


class Stage(str, Enum):
    """Where an order stands, independent of who is looking"""
    AWAITING_PAYMENT = "awaiting_payment"
    AWAITING_VERIFICATION = "awaiting_verification"
    AWAITING_SELLER_TRANSFER = "awaiting_seller_transfer"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    UNKNOWN = "unknown"


_COD_STAGES = {
    CodStatus.COD_CONFIRMED.value: Stage.AWAITING_VERIFICATION,
    CodStatus.COD_PROCESSING.value: Stage.PROCESSING,
    CodStatus.COD_SHIPPED.value: Stage.SHIPPED,
    CodStatus.COD_DELIVERED.value: Stage.DELIVERED,
    CodStatus.CANCELLED.value: Stage.CANCELLED,
}

# Raw transfer statuses that win over lagging verification bookkeeping
_TRANSFER_PASS_THROUGH = {
    TransferStatus.SHIPPED.value: Stage.SHIPPED,
    TransferStatus.DELIVERED.value: Stage.DELIVERED,
    TransferStatus.COMPLETED.value: Stage.DELIVERED,
    TransferStatus.PROCESSING.value: Stage.PROCESSING,
    TransferStatus.CANCELLED.value: Stage.CANCELLED,
}

_TRANSFER_VOCABULARY = {status.value for status in TransferStatus}
_APPROVED = {status.value for status in APPROVED_VERIFICATION_STATUSES}


def _raw(value) -> Optional[str]:
    return getattr(value, "value", value)


def resolve_stage(
    payment_method,
    status,
    admin_verification_status=None,
    seller_transfer_status=None,
) -> Stage:
    """Derive the order's stage from stored fields. Never raises."""
    method = normalize_payment_method(payment_method)
    raw_status = normalize_status(status) if status is not None else None

    if method == PaymentMethod.COD.value:
        return _COD_STAGES.get(raw_status, Stage.UNKNOWN)

    if raw_status is not None and raw_status not in _TRANSFER_VOCABULARY:
        return Stage.UNKNOWN
    if raw_status in _TRANSFER_PASS_THROUGH:
        return _TRANSFER_PASS_THROUGH[raw_status]

    admin = _raw(admin_verification_status)
    transfer = _raw(seller_transfer_status)

    if admin == AdminVerificationStatus.PENDING.value or (
        admin is None and raw_status == TransferStatus.PENDING_VERIFICATION.value
    ):
        return Stage.AWAITING_VERIFICATION
    if admin in _APPROVED:
        if transfer == SellerTransferStatus.COMPLETED.value:
            return Stage.PROCESSING
        return Stage.AWAITING_SELLER_TRANSFER
    if admin == AdminVerificationStatus.REJECTED.value:
        return Stage.REJECTED
    return Stage.AWAITING_PAYMENT


def stage_of(record) -> Stage:
    """resolve_stage() for anything carrying the stored order fields."""
    return resolve_stage(
        record.payment_method,
        record.status,
        record.admin_verification_status,
        record.seller_transfer_status,
    )


# ----------------------------------------------------------------
# Buyer-facing display table
# ----------------------------------------------------------------

class StatusDisplay(NamedTuple):
    label: str
    color: str
    icon: str


STATUS_DISPLAY = {
    "pending": StatusDisplay("Menunggu Pembayaran", "#FF9500", "clock-outline"),
    "pending_payment": StatusDisplay("Menunggu Pembayaran", "#FF9500", "clock-outline"),
    "pending_verification": StatusDisplay("Menunggu Verifikasi Admin", "#FF6B35", "account-check-outline"),
    "payment_confirmed": StatusDisplay("Pembayaran Dikonfirmasi", "#007AFF", "check-circle-outline"),
    "cod_confirmed": StatusDisplay("COD - Pesanan Dikonfirmasi", "#007AFF", "cash-check"),
    "cod_processing": StatusDisplay("COD - Sedang Diproses", "#5856D6", "package-variant"),
    "cod_shipped": StatusDisplay("COD - Dalam Pengiriman", "#32D74B", "truck-delivery"),
    "cod_delivered": StatusDisplay("COD - Barang Diterima & Dibayar", "#34C759", "cash-check"),
    "processing": StatusDisplay("Diproses", "#5856D6", "package-variant"),
    "approved": StatusDisplay("Disetujui Admin", "#007AFF", "check-circle-outline"),
    "rejected": StatusDisplay("Ditolak Admin", "#FF3B30", "close-circle-outline"),
    "shipped": StatusDisplay("Dikirim", "#32D74B", "truck-delivery"),
    "delivered": StatusDisplay("Diterima", "#34C759", "check-all"),
    "completed": StatusDisplay("Selesai", "#34C759", "check-circle"),
    "verified": StatusDisplay("Terverifikasi", "#007AFF", "check-circle-outline"),
    "confirmed": StatusDisplay("Dikonfirmasi", "#007AFF", "check-circle-outline"),
    "cancelled": StatusDisplay("Dibatalkan", "#FF3B30", "close-circle-outline"),
}

UNKNOWN_STATUS_DISPLAY = StatusDisplay(UNKNOWN_STATUS_LABEL, "#8E8E93", "help-circle-outline")


def status_display(status) -> StatusDisplay:
    raw = _raw(status)
    display = STATUS_DISPLAY.get(raw)
    if display is None:
        logger.warning(f"Unknown order status: {raw!r}")
        return UNKNOWN_STATUS_DISPLAY
    return display


# ----------------------------------------------------------------
# Seller view
# ----------------------------------------------------------------

SELLER_STATUS = {
    Stage.AWAITING_PAYMENT: "pending",
    Stage.AWAITING_VERIFICATION: "pending_verification",
    Stage.AWAITING_SELLER_TRANSFER: "waiting_transfer",
    Stage.PROCESSING: "processing",
    Stage.SHIPPED: "shipped",
    Stage.DELIVERED: "delivered",
    Stage.CANCELLED: "cancelled",
    Stage.REJECTED: "cancelled",
}


def seller_status(stage: Stage, raw_status=None) -> str:
    """Seller-facing status key; an unknown stage keeps the raw string."""
    if stage == Stage.UNKNOWN:
        return _raw(raw_status) or Stage.UNKNOWN.value
    return SELLER_STATUS[stage]


def seller_status_label(stage: Stage, is_cod: bool) -> str:
    labels = {
        Stage.AWAITING_PAYMENT: "Menunggu Konfirmasi",
        Stage.AWAITING_VERIFICATION: "Menunggu Verifikasi COD" if is_cod else "Menunggu Verifikasi Admin",
        Stage.AWAITING_SELLER_TRANSFER: "Menunggu Transfer dari Admin",
        Stage.PROCESSING: "Siap Dikemas",
        Stage.SHIPPED: "Dalam Pengiriman COD" if is_cod else "Dalam Pengiriman",
        Stage.DELIVERED: "Pesanan Selesai",
        Stage.CANCELLED: "Dibatalkan",
        Stage.REJECTED: "Dibatalkan",
    }
    return labels.get(stage, UNKNOWN_STATUS_LABEL)


# ----------------------------------------------------------------
# Admin (transaction) view
# ----------------------------------------------------------------

class FilterType(str, Enum):
    """Admin transaction list buckets"""
    PENDING_VERIFICATION = "Pending Verifikasi"
    PENDING_TRANSFER = "Pending Transfer Seller"
    VERIFIED = "Terverifikasi"
    COMPLETED = "Selesai"
    REJECTED = "Ditolak"


class AdminStatus(NamedTuple):
    status: str
    color: str
    filter_type: Optional[FilterType]
    payment_text: str
    transfer_note: Optional[str] = None
    needs_transfer: bool = False


ADMIN_STATUS = {
    Stage.AWAITING_PAYMENT: AdminStatus(
        "Menunggu Pembayaran", "#FF9500", None, "Menunggu Pembayaran Pembeli",
    ),
    Stage.AWAITING_VERIFICATION: AdminStatus(
        "Pending Verifikasi", "#FF9500", FilterType.PENDING_VERIFICATION, "Menunggu Verifikasi Admin",
    ),
    Stage.AWAITING_SELLER_TRANSFER: AdminStatus(
        "Pending Transfer Seller", "#FF9500", FilterType.PENDING_TRANSFER, "Terverifikasi Admin",
        transfer_note="Menunggu Transfer ke Seller", needs_transfer=True,
    ),
    Stage.PROCESSING: AdminStatus(
        "Sedang Diproses", "#007AFF", FilterType.VERIFIED, "Terverifikasi Admin",
    ),
    Stage.SHIPPED: AdminStatus(
        "Dalam Pengiriman", "#007AFF", FilterType.VERIFIED, "Terverifikasi Admin",
    ),
    Stage.DELIVERED: AdminStatus(
        "Selesai", "#34C759", FilterType.COMPLETED, "Terverifikasi Admin",
    ),
    Stage.REJECTED: AdminStatus(
        "Ditolak", "#FF3B30", FilterType.REJECTED, "Ditolak Admin",
    ),
    Stage.CANCELLED: AdminStatus(
        "Dibatalkan", "#FF3B30", FilterType.REJECTED, "Dibatalkan",
    ),
}

UNKNOWN_ADMIN_STATUS = AdminStatus(UNKNOWN_STATUS_LABEL, "#666666", None, "Unknown")


def admin_status(stage: Stage) -> AdminStatus:
    return ADMIN_STATUS.get(stage, UNKNOWN_ADMIN_STATUS)
