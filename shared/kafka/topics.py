"""Kafka topic and event type definitions."""


class Topic:
    """Kafka topics."""
    USER = "user"
    ORDER = "order"
    PRODUCT = "product"

    @classmethod
    def all(cls) -> list[str]:
        """Return all topics."""
        return [
            cls.USER,
            cls.ORDER,
            cls.PRODUCT,
        ]

    @classmethod
    def for_event(cls, event_type: str) -> str:
        """Topic is the prefix of the event type (topic.action)."""
        return event_type.split(".", 1)[0]


class EventType:
    """Event types (topic.action)."""

    # User
    USER_CREATED = "user.created"
    USER_UPDATED = "user.updated"

    # Product
    PRODUCT_CREATED = "product.created"
    PRODUCT_STOCK_ADJUSTED = "product.stock_adjusted"

    # Order
    ORDER_CREATED = "order.created"
    ORDER_PAYMENT_PROOF_SUBMITTED = "order.payment_proof_submitted"
    ORDER_PAYMENT_VERIFIED = "order.payment_verified"
    ORDER_PAYMENT_REJECTED = "order.payment_rejected"
    ORDER_STOCK_REDUCED = "order.stock_reduced"
    ORDER_SELLER_TRANSFERRED = "order.seller_transferred"
    ORDER_TRANSFER_ACKNOWLEDGED = "order.transfer_acknowledged"
    ORDER_PROCESSING = "order.processing"
    ORDER_SHIPPED = "order.shipped"
    ORDER_DELIVERED = "order.delivered"
    ORDER_COMPLETED = "order.completed"
    ORDER_CANCELLED = "order.cancelled"
