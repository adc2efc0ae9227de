"""Order Service - Lifecycle operations, persistence and domain events."""

import logging
from typing import Optional

from beanie.exceptions import RevisionIdWasChanged
from pymongo.errors import PyMongoError

from shared.models.order import Order, SellerBankInfo
from shared.models.user import User
from shared.errors import ConflictError, NotFoundError
from shared.kafka.topics import EventType
from shared.utils.datetime_utils import utc_now
from shared.utils.serialization import oid_to_str, to_object_id
from apps.order_service.config import ServiceConfig, get_config
from apps.order_service.kafka.producer import get_kafka_producer
from apps.order_service.services import lifecycle
from apps.order_service.services.inventory import InventoryService
from apps.order_service.utils.order_utils import (
    build_order_customer,
    build_order_item,
    build_shipping_address,
    generate_order_number,
    to_wa_number,
)

logger = logging.getLogger(__name__)


class OrderService:
    """Handles order DB operations."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        producer=None,
        inventory: Optional[InventoryService] = None,
    ):
        self._config = config or get_config()
        self._kafka = producer or get_kafka_producer()
        self._inventory = inventory or InventoryService(self._config, self._kafka)

    # ----------------------------------------------------------------
    # Reads
    # ----------------------------------------------------------------

    async def get_order(self, order_id: str) -> Order:
        oid = to_object_id(order_id)
        order = await Order.get(oid) if oid else None
        if not order:
            raise NotFoundError("Order not found")
        return order

    async def list_orders_for_buyer(self, user_id: str, status_filter: Optional[str] = None) -> list[Order]:
        oid = to_object_id(user_id)
        if oid is None:
            raise NotFoundError("Buyer not found")
        query: dict = {"customer.user_id": oid}
        if status_filter:
            statuses = [s.strip() for s in status_filter.split(",")]
            query["status"] = {"$in": statuses}
        return await Order.find(query).sort("-created_at").to_list()

    # ----------------------------------------------------------------
    # Buyer
    # ----------------------------------------------------------------

    async def create_order(self, user_id: str, body) -> Order:
        """Create a new order. `body` is a CreateOrderRequest."""
        customer = await build_order_customer(user_id)
        items = [build_order_item(i, item_req) for i, item_req in enumerate(body.items)]

        order = lifecycle.build_order(
            order_number=generate_order_number(),
            customer=customer,
            items=items,
            shipping_address=build_shipping_address(body.shipping_address),
            payment_method=body.payment_method,
            admin_fee=self._config.admin_fee,
            notes=body.notes,
        )
        await order.insert()
        logger.info(
            f"[ORDER_CREATED] {order.order_number} ({order.payment_method.value}) "
            f"total={order.total_amount}"
        )

        self._kafka.emit(
            event_type=EventType.ORDER_CREATED,
            entity_id=oid_to_str(order.id),
            data=order.model_dump(mode="json"),
        )
        return order

    async def submit_payment_proof(self, order_id: str, proof: str) -> Order:
        order = await self.get_order(order_id)
        lifecycle.submit_payment_proof(order, proof, utc_now())
        await self._save(order)
        self._emit(EventType.ORDER_PAYMENT_PROOF_SUBMITTED, order, payment_proof=proof)
        return order

    async def confirm_delivery(self, order_id: str) -> Order:
        order = await self.get_order(order_id)
        lifecycle.confirm_delivery(order, utc_now())
        await self._save(order)
        self._emit(EventType.ORDER_DELIVERED, order)
        return order

    async def complete_order(self, order_id: str) -> Order:
        order = await self.get_order(order_id)
        lifecycle.complete_order(order, utc_now())
        await self._save(order)
        self._emit(EventType.ORDER_COMPLETED, order)
        return order

    async def cancel_order(self, order_id: str, reason: Optional[str] = None) -> Order:
        order = await self.get_order(order_id)
        lifecycle.cancel_order(order, utc_now(), reason)
        await self._save(order)
        self._emit(EventType.ORDER_CANCELLED, order, reason=reason)
        return order

    # ----------------------------------------------------------------
    # Admin
    # ----------------------------------------------------------------

    async def verify_payment(
        self,
        order_id: str,
        approve: bool,
        admin_id: Optional[str] = None,
        notes: str = "",
    ) -> Order:
        """
        Approve or reject the buyer's transfer proof.

        Approval reduces stock once. Approving an already approved order only
        retries a stock reduction that failed earlier.
        """
        order = await self.get_order(order_id)
        changed = lifecycle.verify_payment(order, approve, utc_now(), admin_id=admin_id, notes=notes)

        if changed:
            await self._save(order)
            self._emit(
                EventType.ORDER_PAYMENT_VERIFIED if approve else EventType.ORDER_PAYMENT_REJECTED,
                order,
                admin_verification_status=order.admin_verification_status.value,
                admin_notes=order.admin_notes,
            )
        else:
            logger.info(f"[PAYMENT_ALREADY_APPROVED] {order.order_number}")

        if approve and not order.stock_reduced:
            await self._reduce_stock(order)
        return order

    async def transfer_to_seller(self, order_id: str, body) -> Order:
        """Record the payout to each seller. `body` is a TransferToSellerRequest."""
        order = await self.get_order(order_id)
        bank_infos = await self._seller_bank_infos(order)
        data = lifecycle.transfer_to_seller(order, body, bank_infos, utc_now())
        await self._save(order)

        self._emit(
            EventType.ORDER_SELLER_TRANSFERRED,
            order,
            seller_transfer_data=data.model_dump(mode="json"),
        )
        return order

    # ----------------------------------------------------------------
    # Seller
    # ----------------------------------------------------------------

    async def acknowledge_transfer(
        self,
        order_id: str,
        seller_id: str,
        is_verified: bool,
        notes: Optional[str] = None,
    ) -> Order:
        order = await self.get_order(order_id)
        lifecycle.acknowledge_transfer(order, seller_id, is_verified, utc_now(), notes)
        await self._save(order)

        self._emit(
            EventType.ORDER_TRANSFER_ACKNOWLEDGED,
            order,
            seller_id=str(seller_id),
            is_verified=is_verified,
            notes=notes,
        )
        return order

    async def accept_cod_order(self, order_id: str) -> Order:
        """Seller takes a COD order into processing; stock is reduced here."""
        order = await self.get_order(order_id)
        lifecycle.accept_cod_order(order)
        await self._save(order)
        self._emit(EventType.ORDER_PROCESSING, order)

        if not order.stock_reduced:
            await self._reduce_stock(order)
        return order

    async def ship_order(self, order_id: str, body) -> Order:
        """Hand the order to a courier. `body` is a ShipOrderRequest."""
        order = await self.get_order(order_id)
        lifecycle.ship_order(
            order,
            utc_now(),
            tracking_number=body.tracking_number,
            courier_whatsapp=to_wa_number(body.courier_whatsapp),
            courier_name=body.courier_name,
        )
        await self._save(order)

        self._emit(
            EventType.ORDER_SHIPPED,
            order,
            tracking_number=order.tracking_number,
            courier_whatsapp=order.courier_whatsapp,
            courier_name=order.courier_name,
        )
        return order

    # ----------------------------------------------------------------
    # Helpers
    # ----------------------------------------------------------------

    async def _save(self, order: Order) -> None:
        try:
            await order.save()
        except RevisionIdWasChanged:
            logger.warning(f"[ORDER_CONFLICT] {order.order_number} changed since it was read")
            raise ConflictError(f"Order {order.order_number} was modified by someone else, reload and retry")

    async def _reduce_stock(self, order: Order) -> bool:
        """Stock failures are logged, not raised: the status change already stands."""
        try:
            await self._inventory.reduce_stock_for_order(order)
        except (PyMongoError, RevisionIdWasChanged, ConflictError):
            logger.exception(f"[STOCK_REDUCTION_FAILED] {order.order_number}")
            return False
        return True

    async def _seller_bank_infos(self, order: Order) -> dict[str, Optional[SellerBankInfo]]:
        sellers = await User.find({"_id": {"$in": order.seller_ids()}}).to_list()
        infos: dict[str, Optional[SellerBankInfo]] = {}
        for seller in sellers:
            if seller.bank_info is not None:
                infos[str(seller.id)] = SellerBankInfo(**seller.bank_info.model_dump())
        return infos

    def _emit(self, event_type: str, order: Order, **extra) -> None:
        logger.info(f"[{event_type.split('.', 1)[1].upper()}] {order.order_number} -> {order.status.value}")
        self._kafka.emit(
            event_type=event_type,
            entity_id=oid_to_str(order.id),
            data={
                "order_number": order.order_number,
                "status": order.status.value,
                "payment_method": order.payment_method.value,
                "payment_status": order.payment_status.value,
                "seller_transfer_status": order.seller_transfer_status.value,
                "updated_at": order.updated_at.isoformat(),
                **extra,
            },
        )
