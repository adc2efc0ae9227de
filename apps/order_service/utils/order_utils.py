"""Helpers for building order documents and shipping hand-off text."""

import re
import secrets
from typing import Optional
from urllib.parse import quote

from shared.errors import NotFoundError, ValidationError
from shared.models.order import Order, OrderCustomer, OrderItem, SelectedVariant, ShippingAddress
from shared.models.user import User
from shared.utils.datetime_utils import utc_now
from shared.utils.serialization import to_object_id


def generate_order_number() -> str:
    """ORD-<date>-<6 hex chars>, e.g. ORD-20250203-9F2A1C."""
    return f"ORD-{utc_now():%Y%m%d}-{secrets.token_hex(3).upper()}"


async def build_order_customer(user_id: str) -> OrderCustomer:
    oid = to_object_id(user_id)
    user = await User.get(oid) if oid else None
    if not user:
        raise NotFoundError("Buyer not found")
    return OrderCustomer(user_id=user.id, name=user.name, email=user.email, phone=user.phone)


def build_order_item(index: int, item_req) -> OrderItem:
    """Snapshot one cart line. `item_req` is a CartItemRequest."""
    variant = None
    price = item_req.price
    if item_req.selected_variant is not None:
        variant = SelectedVariant(
            name=item_req.selected_variant.name,
            price=item_req.selected_variant.price,
        )
        if variant.price is not None:
            price = variant.price

    product_id = to_object_id(item_req.product_id)
    seller_id = to_object_id(item_req.seller_id)
    if product_id is None or seller_id is None:
        raise ValidationError(f"Invalid product or seller id on cart line {index + 1}")

    return OrderItem(
        item_id=f"item_{index}",
        product_id=product_id,
        seller_id=seller_id,
        store_name=item_req.store_name or "",
        name=item_req.name or "",
        image=item_req.image,
        category=item_req.category,
        selected_variant=variant,
        quantity=item_req.quantity,
        price=price,
    )


def build_shipping_address(address_req) -> Optional[ShippingAddress]:
    """`address_req` is a ShippingAddressRequest; blank fields are left for validation."""
    if address_req is None:
        return None
    return ShippingAddress(**address_req.model_dump(exclude_none=True))


def to_wa_number(raw: Optional[str]) -> str:
    """Normalize a phone number to the digits-only international form wa.me expects.

    Local Indonesian numbers (leading 0) get the 62 country code.
    """
    if not raw:
        return ""
    digits = re.sub(r"[^0-9]", "", str(raw))
    if not digits:
        return ""
    if digits.startswith("62"):
        return digits
    if digits.startswith("0"):
        return "62" + digits[1:]
    return digits


def format_shipping_address(address: Optional[ShippingAddress]) -> str:
    if address is None:
        return "Alamat tidak tersedia"
    formatted = address.address or ""
    if address.city:
        formatted = f"{formatted}, {address.city}" if formatted else address.city
    if address.postal_code:
        formatted = f"{formatted} {address.postal_code}"
    return formatted.strip() or "Alamat tidak tersedia"


def build_courier_message(order: Order, courier_name: Optional[str] = None) -> str:
    """Text a seller sends the courier over WhatsApp when handing off an order."""
    address = order.shipping_address
    buyer_name = order.customer.name or address.recipient_name or "Customer"
    buyer_phone = order.customer.phone or address.phone or "-"
    items_text = "\n".join(
        f"{idx}. {item.name or 'Produk'} x{item.quantity}"
        for idx, item in enumerate(order.items, start=1)
    )
    greeting = f"Halo {courier_name}" if courier_name else "Halo"
    return (
        f"{greeting}, mohon bantu kirim pesanan berikut:\n\n"
        f"Order: {order.order_number}\n"
        f"Pembeli: {buyer_name}\n"
        f"Telp: {buyer_phone}\n"
        f"Alamat: {format_shipping_address(address)}\n\n"
        f"Item:\n{items_text}"
    )


def whatsapp_link(number: str, text: str) -> str:
    return f"https://wa.me/{number}?text={quote(text)}"
