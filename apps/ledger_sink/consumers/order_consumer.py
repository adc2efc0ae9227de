"""Order events consumer."""

import logging
from datetime import datetime

from shared.kafka.topics import EventType
from apps.ledger_sink.dal.order_dal import OrderDAL

logger = logging.getLogger(__name__)

# Events that only move the order along; data carries the new status fields
STATUS_EVENTS = (
    EventType.ORDER_PAYMENT_PROOF_SUBMITTED,
    EventType.ORDER_PAYMENT_VERIFIED,
    EventType.ORDER_PAYMENT_REJECTED,
    EventType.ORDER_PROCESSING,
    EventType.ORDER_SHIPPED,
    EventType.ORDER_DELIVERED,
    EventType.ORDER_COMPLETED,
    EventType.ORDER_CANCELLED,
)

# Keys of the status payload that are not worth keeping in details_json
_STATUS_KEYS = {"order_number", "status", "payment_method", "payment_status",
                "seller_transfer_status", "updated_at"}


class OrderConsumer:

    def __init__(self, dal=None):
        self._dal = dal or OrderDAL()

    def _parse_ts(self, ts):
        if not ts:
            return None
        return datetime.fromisoformat(ts.replace("Z", "+00:00"))

    def _record_event(self, event: dict):
        data = event.get("data", {})
        self._dal.insert_status_event(
            event_id=event.get("event_id"),
            order_id=event.get("entity_id"),
            event_type=event.get("event_type"),
            status=data.get("status"),
            payment_status=data.get("payment_status"),
            details={k: v for k, v in data.items() if k not in _STATUS_KEYS},
            event_timestamp=self._parse_ts(event.get("timestamp")),
        )

    def _apply_status(self, event: dict):
        data = event.get("data", {})
        self._dal.update_order_status(
            order_id=event.get("entity_id"),
            status=data.get("status"),
            payment_status=data.get("payment_status"),
            seller_transfer_status=data.get("seller_transfer_status"),
            tracking_number=data.get("tracking_number"),
            courier_whatsapp=data.get("courier_whatsapp"),
            courier_name=data.get("courier_name"),
            updated_at=self._parse_ts(data.get("updated_at")),
            event_id=event.get("event_id"),
            event_timestamp=self._parse_ts(event.get("timestamp")),
        )

    def handle_order_created(self, event: dict):
        data = event.get("data", {})
        customer = data.get("customer", {})
        shipping = data.get("shipping_address", {})

        self._dal.insert_order(
            order_id=event.get("entity_id"),
            order_number=data.get("order_number"),
            customer_user_id=customer.get("user_id"),
            customer_name=customer.get("name"),
            customer_email=customer.get("email"),
            customer_phone=customer.get("phone"),
            payment_method=data.get("payment_method", "transfer"),
            payment_status=data.get("payment_status", "pending"),
            status=data.get("status", "pending"),
            seller_transfer_status=data.get("seller_transfer_status"),
            subtotal=data.get("subtotal", 0),
            admin_fee=data.get("admin_fee", 0),
            total_amount=data.get("total_amount", 0),
            shipping_recipient_name=shipping.get("recipient_name"),
            shipping_phone=shipping.get("phone"),
            shipping_address=shipping.get("address"),
            shipping_city=shipping.get("city"),
            shipping_postal_code=shipping.get("postal_code"),
            created_at=self._parse_ts(data.get("created_at")),
            updated_at=self._parse_ts(data.get("updated_at")),
            event_id=event.get("event_id"),
            event_timestamp=self._parse_ts(event.get("timestamp")),
        )

        items = []
        for item in data.get("items", []):
            variant = item.get("selected_variant") or {}
            items.append({
                "item_id": item.get("item_id"),
                "product_id": item.get("product_id"),
                "seller_id": item.get("seller_id"),
                "store_name": item.get("store_name"),
                "product_name": item.get("name"),
                "variant_name": variant.get("name"),
                "quantity": item.get("quantity"),
                "price": item.get("price"),
            })

        if items:
            self._dal.insert_order_items(event.get("entity_id"), items)

        self._record_event(event)
        logger.info(f"[ORDER_CREATED] {event['entity_id']}")

    def handle_status_change(self, event: dict):
        self._apply_status(event)
        self._record_event(event)
        logger.info(f"[{event['event_type']}] {event['entity_id']} -> {event.get('data', {}).get('status')}")

    def handle_seller_transferred(self, event: dict):
        data = event.get("data", {})
        transfer = data.get("seller_transfer_data") or {}
        self._apply_status(event)
        self._dal.upsert_seller_payouts(
            order_id=event.get("entity_id"),
            payouts=transfer.get("payouts", []),
            transferred_at=self._parse_ts(transfer.get("transferred_at")),
            transferred_by=transfer.get("transferred_by"),
        )
        self._record_event(event)
        logger.info(f"[ORDER_SELLER_TRANSFERRED] {event['entity_id']}: {len(transfer.get('payouts', []))} payout(s)")

    def handle_transfer_acknowledged(self, event: dict):
        data = event.get("data", {})
        self._dal.update_payout_verification(
            order_id=event.get("entity_id"),
            seller_id=data.get("seller_id"),
            verification_status="verified" if data.get("is_verified") else "rejected",
            verified_at=self._parse_ts(event.get("timestamp")),
        )
        self._record_event(event)
        logger.info(f"[ORDER_TRANSFER_ACKNOWLEDGED] {event['entity_id']} seller={data.get('seller_id')}")

    def handle_stock_reduced(self, event: dict):
        self._record_event(event)
        logger.info(f"[ORDER_STOCK_REDUCED] {event['entity_id']}")

    def get_handlers(self) -> dict:
        handlers = {event_type: self.handle_status_change for event_type in STATUS_EVENTS}
        handlers.update({
            EventType.ORDER_CREATED: self.handle_order_created,
            EventType.ORDER_SELLER_TRANSFERRED: self.handle_seller_transferred,
            EventType.ORDER_TRANSFER_ACKNOWLEDGED: self.handle_transfer_acknowledged,
            EventType.ORDER_STOCK_REDUCED: self.handle_stock_reduced,
        })
        return handlers
