"""
Order Model - Checkout orders placed by buyers

Orders capture complete purchase information including:
- Line-item snapshots (one or more sellers per order)
- Payment path (bank transfer via the platform, or cash on delivery)
- Admin verification and seller payout bookkeeping
- Shipping hand-off and stock reduction audit trail

Status is a tagged union: transfer orders only ever hold a TransferStatus and
COD orders only a CodStatus.
"""

from beanie import Document, PydanticObjectId
from pydantic import (
    AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo,
    field_validator, model_validator,
)
from typing import Optional, List, Union, Annotated
from datetime import datetime
from enum import Enum

from shared.utils.datetime_utils import utc_now


# Enums
class PaymentMethod(str, Enum):
    """How the buyer pays"""
    TRANSFER = "transfer"
    COD = "cod"


class PaymentStatus(str, Enum):
    """Payment progress as seen by the buyer"""
    PENDING = "pending"
    PROOF_UPLOADED = "proof_uploaded"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    COD_PENDING = "cod_pending"
    COD_PAID = "cod_paid"


class TransferStatus(str, Enum):
    """Order status vocabulary of the bank transfer path"""
    PENDING = "pending"
    PENDING_VERIFICATION = "pending_verification"
    PENDING_PAYMENT = "pending_payment"
    PAYMENT_CONFIRMED = "payment_confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CodStatus(str, Enum):
    """Order status vocabulary of the cash-on-delivery path"""
    COD_CONFIRMED = "cod_confirmed"
    COD_PROCESSING = "cod_processing"
    COD_SHIPPED = "cod_shipped"
    COD_DELIVERED = "cod_delivered"
    CANCELLED = "cancelled"


OrderStatus = Union[TransferStatus, CodStatus]


class AdminVerificationStatus(str, Enum):
    """Platform check of the buyer's transfer proof"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    NOT_REQUIRED = "not_required"
    VERIFIED = "verified"


class SellerTransferStatus(str, Enum):
    """Whether held funds were forwarded to the seller(s)"""
    PENDING = "pending"
    COMPLETED = "completed"
    NOT_APPLICABLE = "not_applicable"


class TransferVerificationStatus(str, Enum):
    """Seller acknowledgement of a received payout"""
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


APPROVED_VERIFICATION_STATUSES = (AdminVerificationStatus.APPROVED, AdminVerificationStatus.VERIFIED)

# Spellings written by older clients, mapped once when documents are read
LEGACY_STATUS_ALIASES = {
    "verified": TransferStatus.PAYMENT_CONFIRMED.value,
    "payment_rejected": TransferStatus.PENDING_PAYMENT.value,
}
LEGACY_PAYMENT_METHOD_ALIASES = {
    "bank_transfer": PaymentMethod.TRANSFER.value,
}


def normalize_payment_method(value) -> str:
    if value is None or value == "":
        return PaymentMethod.TRANSFER.value
    raw = getattr(value, "value", value)
    return LEGACY_PAYMENT_METHOD_ALIASES.get(raw, raw)


def normalize_status(value) -> str:
    raw = getattr(value, "value", value)
    return LEGACY_STATUS_ALIASES.get(raw, raw)


def status_for(payment_method, raw_status) -> OrderStatus:
    """Parse a raw status string within the vocabulary of the given payment path.

    Raises ValueError when the status belongs to the other path or to neither.
    """
    method = PaymentMethod(normalize_payment_method(payment_method))
    vocabulary = CodStatus if method == PaymentMethod.COD else TransferStatus
    try:
        return vocabulary(normalize_status(raw_status))
    except ValueError:
        raise ValueError(f"'{raw_status}' is not a valid {method.value} order status")


# Embedded Schemas
class OrderCustomer(BaseModel):
    """Buyer information (denormalized from User)"""

    user_id: Annotated[PydanticObjectId, Field(description="Reference to User document")]
    name: Annotated[str, Field(default="", description="Buyer display name at checkout")]
    email: Annotated[Optional[str], Field(None, description="Buyer email")]
    phone: Annotated[Optional[str], Field(None, description="Buyer phone number")]


class SelectedVariant(BaseModel):
    """Variant chosen in the cart"""

    name: Annotated[str, Field(description="Variant name, matches ProductVariant.name")]
    price: Annotated[Optional[int], Field(None, ge=0, description="Variant unit price")]


class OrderItem(BaseModel):
    """Individual line item; accepts legacy key spellings on read"""

    item_id: Annotated[str, Field(default="", description="Unique item identifier within order")]
    product_id: Annotated[PydanticObjectId, Field(
        validation_alias=AliasChoices("product_id", "productId"),
        description="Reference to Product document",
    )]
    seller_id: Annotated[PydanticObjectId, Field(
        validation_alias=AliasChoices("seller_id", "sellerId", "store_id", "storeId"),
        description="Seller (store owner) fulfilling this item",
    )]
    store_name: Annotated[str, Field(
        default="",
        validation_alias=AliasChoices("store_name", "storeName", "seller_name", "sellerName"),
        description="Store name at purchase time",
    )]
    name: Annotated[str, Field(
        default="",
        validation_alias=AliasChoices("name", "product_name", "productName"),
        description="Product name at purchase time",
    )]
    image: Annotated[Optional[str], Field(
        None,
        validation_alias=AliasChoices("image", "product_image", "productImage"),
        description="Product image reference",
    )]
    category: Annotated[Optional[str], Field(None, description="Product category")]
    selected_variant: Annotated[Optional[SelectedVariant], Field(
        None,
        validation_alias=AliasChoices("selected_variant", "selectedVariant"),
        description="Chosen variant, if any",
    )]
    quantity: Annotated[int, Field(ge=1, description="Quantity ordered")]
    price: Annotated[int, Field(ge=0, description="Unit price")]

    @property
    def line_total(self) -> int:
        return self.price * self.quantity


class ShippingAddress(BaseModel):
    """Delivery address; completeness is checked by the lifecycle on create"""

    recipient_name: Annotated[str, Field(
        default="", validation_alias=AliasChoices("recipient_name", "recipientName", "name"),
    )]
    phone: Annotated[str, Field(default="")]
    address: Annotated[str, Field(default="")]
    city: Annotated[str, Field(default="")]
    postal_code: Annotated[str, Field(
        default="", validation_alias=AliasChoices("postal_code", "postalCode"),
    )]
    label: Annotated[Optional[str], Field(None, description="Home, Office, ...")]
    latitude: Annotated[Optional[float], Field(None, ge=-90, le=90)]
    longitude: Annotated[Optional[float], Field(None, ge=-180, le=180)]


class SellerBankInfo(BaseModel):
    """Seller payout account snapshot"""

    bank_name: Annotated[Optional[str], Field(None)]
    account_number: Annotated[Optional[str], Field(None)]
    account_name: Annotated[Optional[str], Field(None)]


class SellerPayout(BaseModel):
    """Funds forwarded to one seller of the order"""

    seller_id: Annotated[PydanticObjectId, Field(description="Receiving seller")]
    store_name: Annotated[str, Field(default="")]
    amount: Annotated[int, Field(ge=0, description="Amount transferred to the seller")]
    admin_fee: Annotated[int, Field(default=0, ge=0, description="Share of the platform fee attributed to this seller")]
    transfer_proof: Annotated[Optional[str], Field(None, description="Transfer receipt image reference")]
    bank_info: Annotated[Optional[SellerBankInfo], Field(None, description="Bank details used for the transfer")]

    # Seller acknowledgement
    is_verified: Annotated[bool, Field(default=False)]
    verification_status: Annotated[TransferVerificationStatus, Field(default=TransferVerificationStatus.PENDING)]
    verified_at: Annotated[Optional[datetime], Field(None)]
    verification_notes: Annotated[Optional[str], Field(None)]


class SellerTransferData(BaseModel):
    """Seller payout bookkeeping recorded by the admin"""

    is_multi_seller: Annotated[bool, Field(default=False)]
    payouts: Annotated[List[SellerPayout], Field(default_factory=list)]
    seller_amount: Annotated[int, Field(default=0, ge=0, description="Sum of all payouts")]
    admin_fee: Annotated[int, Field(default=0, ge=0, description="Fee retained by the platform")]
    transferred_at: Annotated[Optional[datetime], Field(None)]
    transferred_by: Annotated[Optional[str], Field(None, description="Admin user id")]
    notes: Annotated[Optional[str], Field(None)]

    # Aggregated seller acknowledgement
    is_verified: Annotated[bool, Field(default=False)]
    verification_status: Annotated[TransferVerificationStatus, Field(default=TransferVerificationStatus.PENDING)]
    verified_at: Annotated[Optional[datetime], Field(None)]

    def payout_for(self, seller_id) -> Optional[SellerPayout]:
        for payout in self.payouts:
            if str(payout.seller_id) == str(seller_id):
                return payout
        return None


class StockReduction(BaseModel):
    """Audit entry for one stock decrement"""

    product_id: Annotated[PydanticObjectId, Field()]
    product_name: Annotated[str, Field(default="")]
    variant: Annotated[Optional[str], Field(None)]
    old_stock: Annotated[int, Field(ge=0)]
    new_stock: Annotated[int, Field(ge=0)]
    quantity: Annotated[int, Field(ge=1)]


# Main Order Document
class Order(Document):
    """
    Order model - one document per checkout

    Captures:
    - Buyer snapshot and line items (possibly from several sellers)
    - Amounts (subtotal + admin fee = total; no fee for COD)
    - Payment path, verification and payout bookkeeping
    - Shipping hand-off and stock reduction audit trail
    """

    # Order identification
    order_number: Annotated[str, Field(description="Human-readable order number (e.g., ORD-20250203-A1B2C3)")]

    # Buyer
    customer: Annotated[OrderCustomer, Field(description="Buyer information")]

    # Order items
    items: Annotated[List[OrderItem], Field(min_length=1, description="Products purchased")]

    # Amounts
    subtotal: Annotated[int, Field(ge=0, description="Sum of price * quantity")]
    admin_fee: Annotated[int, Field(ge=0, description="Platform fee paid by the buyer")]
    total_amount: Annotated[int, Field(ge=0, description="subtotal + admin_fee")]

    # Payment (payment_method must precede status; status is validated against it)
    payment_method: Annotated[PaymentMethod, Field(description="transfer or cod")]
    payment_status: Annotated[PaymentStatus, Field(default=PaymentStatus.PENDING)]
    payment_proof: Annotated[Optional[str], Field(None, description="Transfer proof image reference")]
    payment_proof_uploaded_at: Annotated[Optional[datetime], Field(None)]
    payment_confirmed_at: Annotated[Optional[datetime], Field(None)]

    # Workflow
    status: Annotated[OrderStatus, Field(description="Status within the payment path's vocabulary")]
    admin_verification_status: Annotated[AdminVerificationStatus, Field(default=AdminVerificationStatus.PENDING)]
    admin_verified_at: Annotated[Optional[datetime], Field(None)]
    admin_verified_by: Annotated[Optional[str], Field(None)]
    admin_notes: Annotated[Optional[str], Field(None)]

    # Seller payout
    seller_transfer_status: Annotated[SellerTransferStatus, Field(default=SellerTransferStatus.PENDING)]
    seller_transfer_data: Annotated[Optional[SellerTransferData], Field(None)]

    # Shipping
    shipping_address: Annotated[ShippingAddress, Field(description="Delivery address")]
    tracking_number: Annotated[Optional[str], Field(None)]
    courier_whatsapp: Annotated[Optional[str], Field(None, description="Courier WhatsApp number (international form)")]
    courier_name: Annotated[Optional[str], Field(None)]
    shipped_at: Annotated[Optional[datetime], Field(None)]
    delivered_at: Annotated[Optional[datetime], Field(None)]
    completed_at: Annotated[Optional[datetime], Field(None)]
    cancelled_at: Annotated[Optional[datetime], Field(None)]
    cancellation_reason: Annotated[Optional[str], Field(None)]
    notes: Annotated[str, Field(default="", description="Buyer notes")]

    # Inventory
    stock_reduced: Annotated[bool, Field(default=False, description="Guards the one-time stock decrement")]
    stock_reduction_at: Annotated[Optional[datetime], Field(None)]
    stock_reductions: Annotated[List[StockReduction], Field(default_factory=list)]

    # Timestamps
    created_at: Annotated[datetime, Field(default_factory=utc_now, description="Order creation timestamp")]
    updated_at: Annotated[datetime, Field(default_factory=utc_now, description="Last update timestamp")]

    class Settings:
        name = "orders"
        use_revision = True

        indexes = [
            # Unique order number
            [("order_number", 1)],

            # Buyer's orders
            [("customer.user_id", 1), ("created_at", -1)],

            # Seller listings
            [("items.seller_id", 1), ("created_at", -1)],

            # Admin queues
            [("payment_method", 1), ("admin_verification_status", 1), ("seller_transfer_status", 1)],

            # Orders by date range
            [("created_at", -1)],
        ]

    @field_validator("payment_method", mode="before")
    @classmethod
    def _normalize_payment_method(cls, value):
        return normalize_payment_method(value)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        return normalize_status(value)

    @field_validator("status")
    @classmethod
    def _status_matches_payment_method(cls, value, info: ValidationInfo):
        method = info.data.get("payment_method")
        if method is None:
            return value
        return status_for(method, value)

    @model_validator(mode="after")
    def _check_amounts(self):
        if self.payment_method == PaymentMethod.COD and self.admin_fee != 0:
            raise ValueError("COD orders carry no admin fee")
        if self.total_amount != self.subtotal + self.admin_fee:
            raise ValueError("total_amount must equal subtotal + admin_fee")
        return self

    @property
    def is_cod(self) -> bool:
        return self.payment_method == PaymentMethod.COD

    def seller_ids(self) -> List[PydanticObjectId]:
        """Distinct sellers in item order."""
        seen = []
        for item in self.items:
            if item.seller_id not in seen:
                seen.append(item.seller_id)
        return seen

    def items_for_seller(self, seller_id) -> List[OrderItem]:
        return [item for item in self.items if str(item.seller_id) == str(seller_id)]

    async def save(self, *args, **kwargs):
        """Override save to update timestamps"""
        self.updated_at = utc_now()
        return await super().save(*args, **kwargs)


class OrderRecord(BaseModel):
    """
    Lenient read model of an order document.

    Used by the listing projectors: statuses stay raw strings so that a
    document with an unknown status is still listed (with a fallback label)
    instead of failing the whole read.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Annotated[Optional[PydanticObjectId], Field(None, alias="_id")]
    order_number: Annotated[Optional[str], Field(None)]
    customer: Annotated[Optional[OrderCustomer], Field(None)]
    items: Annotated[List[OrderItem], Field(default_factory=list)]

    subtotal: Annotated[int, Field(default=0)]
    admin_fee: Annotated[Optional[int], Field(None)]
    total_amount: Annotated[int, Field(default=0)]

    payment_method: Annotated[str, Field(default=PaymentMethod.TRANSFER.value)]
    payment_status: Annotated[Optional[str], Field(None)]
    status: Annotated[Optional[str], Field(None)]
    admin_verification_status: Annotated[Optional[str], Field(None)]
    seller_transfer_status: Annotated[Optional[str], Field(None)]
    seller_transfer_data: Annotated[Optional[SellerTransferData], Field(None)]

    shipping_address: Annotated[Optional[ShippingAddress], Field(None)]
    tracking_number: Annotated[Optional[str], Field(None)]
    courier_whatsapp: Annotated[Optional[str], Field(None)]
    courier_name: Annotated[Optional[str], Field(None)]
    notes: Annotated[Optional[str], Field(None)]

    stock_reduced: Annotated[bool, Field(default=False)]
    created_at: Annotated[Optional[datetime], Field(None)]
    updated_at: Annotated[Optional[datetime], Field(None)]

    @field_validator("payment_method", mode="before")
    @classmethod
    def _normalize_payment_method(cls, value):
        return normalize_payment_method(value)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        if value is None:
            return None
        return normalize_status(value)

    @field_validator("admin_verification_status", "seller_transfer_status", "payment_status", mode="before")
    @classmethod
    def _raw_value(cls, value):
        return getattr(value, "value", value)

    @classmethod
    def from_order(cls, order: Order) -> "OrderRecord":
        return cls.model_validate(order.model_dump(mode="json"))

    @property
    def is_cod(self) -> bool:
        return self.payment_method == PaymentMethod.COD.value

    def display_number(self) -> str:
        if self.order_number:
            return self.order_number
        return f"ORD-{str(self.id)[:8].upper()}" if self.id else "ORD-UNKNOWN"
