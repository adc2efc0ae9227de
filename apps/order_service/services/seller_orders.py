"""
Seller Orders - seller-scoped read model over all orders.

A multi-seller order is cut down to the requesting seller's lines, and its
subtotal is recomputed over those lines only.
"""

import logging
from datetime import datetime
from typing import Optional, List, Annotated

from pydantic import BaseModel, Field

from shared.errors import NotFoundError
from shared.models.order import OrderItem, OrderRecord, SellerPayout, ShippingAddress
from shared.models.product import Product
from shared.models.user import User
from shared.utils.datetime_utils import utc_now
from shared.utils.serialization import oid_to_str, to_object_id
from apps.order_service.services.records import cached_get, load_order_records
from apps.order_service.services.status import (
    Stage,
    seller_status,
    seller_status_label,
    stage_of,
)

logger = logging.getLogger(__name__)


class BuyerSnapshot(BaseModel):
    name: str = "Customer"
    email: Optional[str] = None
    phone: str = ""
    avatar: Optional[str] = None


class SellerOrderItem(BaseModel):
    item_id: str = ""
    product_id: str
    name: str = ""
    image: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    description: Optional[str] = None
    store_name: str = ""
    variant: Optional[str] = None
    quantity: int
    price: int

    @property
    def line_total(self) -> int:
        return self.price * self.quantity

    @classmethod
    def from_item(cls, item: OrderItem) -> "SellerOrderItem":
        return cls(
            item_id=item.item_id,
            product_id=str(item.product_id),
            name=item.name,
            image=item.image,
            category=item.category,
            store_name=item.store_name,
            variant=item.selected_variant.name if item.selected_variant else None,
            quantity=item.quantity,
            price=item.price,
        )


class SellerOrderView(BaseModel):
    """One order as the given seller sees it"""

    id: Optional[str] = None
    order_number: str
    seller_id: str
    stage: Stage
    status: Annotated[str, Field(description="Seller status key, e.g. waiting_transfer")]
    status_label: str
    raw_status: Optional[str] = None

    buyer: BuyerSnapshot
    items: List[SellerOrderItem]
    subtotal: Annotated[int, Field(description="Sum of this seller's line totals only")]
    admin_fee: int = 0

    payment_method: str
    payment_status: str = "pending"
    admin_verification_status: str = "pending"
    seller_transfer_status: str = "pending"
    payout: Optional[SellerPayout] = None

    shipping_address: Optional[ShippingAddress] = None
    tracking_number: Optional[str] = None
    courier_whatsapp: Optional[str] = None
    courier_name: Optional[str] = None
    notes: str = ""

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def item_count(self) -> int:
        return len(self.items)


def _buyer_from_record(record: OrderRecord) -> BuyerSnapshot:
    customer = record.customer
    address = record.shipping_address
    name = (customer.name if customer else "") or (address.recipient_name if address else "") or "Customer"
    phone = (customer.phone if customer else None) or (address.phone if address else "") or ""
    return BuyerSnapshot(name=name, email=customer.email if customer else None, phone=phone)


def project_for_seller(record: OrderRecord, seller_id) -> Optional[SellerOrderView]:
    """Seller's view of one order, or None when the order has no line from this seller."""
    seller_key = str(seller_id)
    own_items = [item for item in record.items if str(item.seller_id) == seller_key]
    if not own_items:
        return None

    stage = stage_of(record)
    if stage == Stage.UNKNOWN:
        logger.warning(f"[UNKNOWN_STATUS] {record.display_number()}: {record.status!r}")

    payout = None
    if record.seller_transfer_data is not None:
        payout = record.seller_transfer_data.payout_for(seller_key)

    items = [SellerOrderItem.from_item(item) for item in own_items]
    return SellerOrderView(
        id=oid_to_str(record.id),
        order_number=record.display_number(),
        seller_id=seller_key,
        stage=stage,
        status=seller_status(stage, record.status),
        status_label=seller_status_label(stage, record.is_cod),
        raw_status=record.status,
        buyer=_buyer_from_record(record),
        items=items,
        subtotal=sum(item.line_total for item in items),
        admin_fee=record.admin_fee or 0,
        payment_method=record.payment_method,
        payment_status=record.payment_status or "pending",
        admin_verification_status=record.admin_verification_status or "pending",
        seller_transfer_status=record.seller_transfer_status or "pending",
        payout=payout,
        shipping_address=record.shipping_address,
        tracking_number=record.tracking_number,
        courier_whatsapp=record.courier_whatsapp,
        courier_name=record.courier_name,
        notes=record.notes or "",
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class SellerRevenueStats(BaseModel):
    total_revenue: int = 0
    monthly_revenue: int = 0
    completed_orders: int = 0
    average_order_value: float = 0
    total_items_sold: int = 0
    pending_orders: int = 0
    total_orders: int = 0


PENDING_SELLER_STATUSES = ("pending_verification", "waiting_transfer", "processing", "shipped")


def _seller_revenue(view: SellerOrderView) -> int:
    """What the seller actually received: the recorded payout, else their subtotal."""
    if view.payout is not None:
        return view.payout.amount
    return view.subtotal


def seller_revenue_stats(views: List[SellerOrderView], now: datetime) -> SellerRevenueStats:
    delivered = [view for view in views if view.stage == Stage.DELIVERED]
    stats = SellerRevenueStats(
        completed_orders=len(delivered),
        pending_orders=sum(1 for view in views if view.status in PENDING_SELLER_STATUSES),
        total_orders=len(views),
    )
    for view in delivered:
        revenue = _seller_revenue(view)
        stats.total_revenue += revenue
        stats.total_items_sold += sum(item.quantity for item in view.items)
        if view.created_at and (view.created_at.year, view.created_at.month) == (now.year, now.month):
            stats.monthly_revenue += revenue
    if delivered:
        stats.average_order_value = stats.total_revenue / len(delivered)
    return stats


class SellerOrderService:
    """Builds the seller's order list with live product and buyer details."""

    async def list_orders_for_seller(self, seller_id: str) -> List[SellerOrderView]:
        if to_object_id(seller_id) is None:
            raise NotFoundError("Seller not found")

        user_cache: dict = {}
        product_cache: dict = {}
        views = []
        for record in await load_order_records():
            view = project_for_seller(record, seller_id)
            if view is None:
                continue
            if record.customer is not None:
                buyer = await cached_get(user_cache, User, record.customer.user_id)
                self._enrich_buyer(view, buyer)
            for item in view.items:
                product = await cached_get(product_cache, Product, item.product_id)
                self._enrich_item(item, product)
            views.append(view)

        logger.info(f"[SELLER_ORDERS] {seller_id}: {len(views)} order(s)")
        return views

    async def revenue_stats(self, seller_id: str, now: Optional[datetime] = None) -> SellerRevenueStats:
        views = await self.list_orders_for_seller(seller_id)
        return seller_revenue_stats(views, now or utc_now())

    def _enrich_buyer(self, view: SellerOrderView, user: Optional[User]) -> None:
        if user is None:
            return
        view.buyer.name = user.name or view.buyer.name
        view.buyer.email = user.email or view.buyer.email
        view.buyer.phone = user.phone or view.buyer.phone
        view.buyer.avatar = user.avatar

    def _enrich_item(self, item: SellerOrderItem, product: Optional[Product]) -> None:
        if product is None:
            return
        item.name = item.name or product.name
        item.image = item.image or product.cover_image
        item.images = list(product.images)
        item.category = item.category or product.category
        item.description = product.description
        item.store_name = item.store_name or product.store_name
