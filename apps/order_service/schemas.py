"""Request bodies accepted by the order service."""

from typing import Optional, List, Dict, Annotated

from pydantic import BaseModel, Field

from shared.models.order import PaymentMethod


class SelectedVariantRequest(BaseModel):
    name: Annotated[str, Field(min_length=1)]
    price: Annotated[Optional[int], Field(None, ge=0)]


class CartItemRequest(BaseModel):
    product_id: str
    seller_id: str
    store_name: Optional[str] = None
    name: Optional[str] = None
    image: Optional[str] = None
    category: Optional[str] = None
    selected_variant: Optional[SelectedVariantRequest] = None
    quantity: Annotated[int, Field(ge=1)] = 1
    price: Annotated[int, Field(ge=0)] = 0


class ShippingAddressRequest(BaseModel):
    recipient_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    label: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class CreateOrderRequest(BaseModel):
    items: List[CartItemRequest] = Field(default_factory=list)
    shipping_address: Optional[ShippingAddressRequest] = None
    payment_method: PaymentMethod = PaymentMethod.TRANSFER
    notes: str = ""


class TransferToSellerRequest(BaseModel):
    """Admin's record of forwarding held funds.

    Proofs and explicit amounts are keyed by seller id. ``transfer_proof`` and
    ``seller_amount`` are shorthands for single-seller orders.
    """

    admin_id: Optional[str] = None
    transfer_proofs: Dict[str, str] = Field(default_factory=dict)
    transfer_proof: Optional[str] = None
    amounts: Dict[str, Annotated[int, Field(ge=0)]] = Field(default_factory=dict)
    seller_amount: Annotated[Optional[int], Field(None, ge=0)]
    notes: Optional[str] = None


class ShipOrderRequest(BaseModel):
    tracking_number: Optional[str] = None
    courier_whatsapp: Optional[str] = None
    courier_name: Optional[str] = None
