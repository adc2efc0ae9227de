"""
Transaction Service - admin view of transfer orders.

COD orders never need the admin (no held funds), so they are left out of
both the list and the stats.
"""

import logging
from datetime import datetime
from typing import Optional, List, Dict

from pydantic import BaseModel, Field

from shared.models.order import OrderItem, OrderRecord, SellerTransferData
from shared.models.user import User
from shared.utils.serialization import oid_to_str
from apps.order_service.config import DEFAULT_ADMIN_FEE
from apps.order_service.services.records import cached_get, load_order_records
from apps.order_service.services.status import FilterType, Stage, admin_status, stage_of

logger = logging.getLogger(__name__)

NO_BANK = "Bank tidak diatur"
NO_ACCOUNT = "Rekening tidak diatur"
NO_PHONE = "Telepon tidak diatur"


class SellerPayoutInfo(BaseModel):
    """Where the admin sends one seller's money"""

    seller_id: str
    name: str = "Unknown"
    store_name: str = "Unknown Store"
    bank_name: str = NO_BANK
    account_number: str = NO_ACCOUNT
    account_name: str = "Unknown"
    phone: str = NO_PHONE

    @classmethod
    def from_user(cls, user: User) -> "SellerPayoutInfo":
        bank = user.bank_info
        name = user.name or "Unknown"
        return cls(
            seller_id=str(user.id),
            name=name,
            store_name=user.store_name or "Unknown Store",
            bank_name=bank.bank_name if bank else NO_BANK,
            account_number=bank.account_number if bank else NO_ACCOUNT,
            account_name=bank.account_name if bank else name,
            phone=user.phone or NO_PHONE,
        )

    @classmethod
    def from_item(cls, item: OrderItem) -> "SellerPayoutInfo":
        """Fallback built from the order's own snapshot when the user is gone."""
        name = item.store_name or "Unknown"
        return cls(
            seller_id=str(item.seller_id),
            name=name,
            store_name=item.store_name or "Unknown Store",
            account_name=name,
        )


class TransactionView(BaseModel):
    id: Optional[str] = None
    order_number: str
    buyer: str = "Unknown"
    sellers: List[SellerPayoutInfo] = Field(default_factory=list)

    stage: Stage
    status: str
    status_color: str
    filter_type: Optional[FilterType] = None
    payment_text: str
    transfer_note: Optional[str] = None
    needs_transfer: bool = False

    subtotal: int = 0
    total_amount: int = 0
    admin_fee: int
    seller_amount: int

    payment_method: str
    admin_verification_status: Optional[str] = None
    seller_transfer_status: Optional[str] = None
    seller_transfer_data: Optional[SellerTransferData] = None
    created_at: Optional[datetime] = None

    @property
    def is_multi_seller(self) -> bool:
        return len(self.sellers) > 1

    @property
    def seller_display(self) -> str:
        return "\n".join(seller.name for seller in self.sellers) or "Unknown"


def retained_admin_fee(record: OrderRecord) -> int:
    return DEFAULT_ADMIN_FEE if record.admin_fee is None else record.admin_fee


def project_transaction(
    record: OrderRecord,
    buyer_name: str = "Unknown",
    sellers: Optional[List[SellerPayoutInfo]] = None,
) -> Optional[TransactionView]:
    """Admin's row for one order; None for COD orders."""
    if record.is_cod:
        return None

    stage = stage_of(record)
    if stage == Stage.UNKNOWN:
        logger.warning(f"[UNKNOWN_STATUS] {record.display_number()}: {record.status!r}")
    shown = admin_status(stage)
    admin_fee = retained_admin_fee(record)

    return TransactionView(
        id=oid_to_str(record.id),
        order_number=record.display_number(),
        buyer=buyer_name,
        sellers=sellers or [],
        stage=stage,
        status=shown.status,
        status_color=shown.color,
        filter_type=shown.filter_type,
        payment_text=shown.payment_text,
        transfer_note=shown.transfer_note,
        needs_transfer=shown.needs_transfer,
        subtotal=record.subtotal,
        total_amount=record.total_amount,
        admin_fee=admin_fee,
        seller_amount=record.total_amount - admin_fee,
        payment_method=record.payment_method,
        admin_verification_status=record.admin_verification_status,
        seller_transfer_status=record.seller_transfer_status,
        seller_transfer_data=record.seller_transfer_data,
        created_at=record.created_at,
    )


class TransactionStats(BaseModel):
    total_admin_revenue: int = 0
    pending_verification: int = 0
    completed: int = 0
    pending_transfer: int = 0
    total_transaction_value: int = 0


def transaction_stats(records: List[OrderRecord]) -> TransactionStats:
    """Fee revenue counts completed (delivered) transfer orders only."""
    stats = TransactionStats()
    for record in records:
        if record.is_cod:
            continue
        stage = stage_of(record)
        if stage == Stage.AWAITING_VERIFICATION:
            stats.pending_verification += 1
        elif stage == Stage.AWAITING_SELLER_TRANSFER:
            stats.pending_transfer += 1
        elif stage == Stage.DELIVERED:
            stats.completed += 1
            stats.total_transaction_value += record.total_amount
            stats.total_admin_revenue += retained_admin_fee(record)
    return stats


class TransactionService:
    """Admin transaction list with buyer and seller payout details."""

    async def list_transactions(self, filter_type: Optional[FilterType] = None) -> List[TransactionView]:
        user_cache: Dict = {}
        transactions = []
        for record in await load_order_records():
            if record.is_cod:
                continue
            buyer_name = await self._buyer_name(user_cache, record)
            sellers = await self._sellers(user_cache, record)
            view = project_transaction(record, buyer_name, sellers)
            if filter_type is None or view.filter_type == filter_type:
                transactions.append(view)

        logger.info(f"[TRANSACTIONS] {len(transactions)} transfer order(s)")
        return transactions

    async def get_stats(self) -> TransactionStats:
        return transaction_stats(await load_order_records())

    async def _buyer_name(self, cache: Dict, record: OrderRecord) -> str:
        if record.customer is None:
            return "Unknown"
        user = await cached_get(cache, User, record.customer.user_id)
        if user is not None and user.name:
            return user.name
        return record.customer.name or "Unknown"

    async def _sellers(self, cache: Dict, record: OrderRecord) -> List[SellerPayoutInfo]:
        sellers: Dict[str, SellerPayoutInfo] = {}
        for item in record.items:
            key = str(item.seller_id)
            if key in sellers:
                continue
            user = await cached_get(cache, User, item.seller_id)
            sellers[key] = SellerPayoutInfo.from_user(user) if user else SellerPayoutInfo.from_item(item)
        return list(sellers.values())
