"""
Order lifecycle - validated state transitions applied to an Order in memory.

Transfer path:
    pending -> pending_verification -> payment_confirmed -> processing
            -> shipped -> delivered -> completed
    (admin reject: pending_verification -> pending_payment, buyer re-uploads)
COD path:
    cod_confirmed -> cod_processing -> cod_shipped -> cod_delivered
Either path may be cancelled before shipment.

Nothing here performs I/O; OrderService loads, applies and saves.
"""

import logging
from datetime import datetime
from typing import Optional, Dict, List

from shared.errors import InvalidTransitionError, ValidationError
from shared.models.order import (
    APPROVED_VERIFICATION_STATUSES,
    AdminVerificationStatus,
    CodStatus,
    Order,
    OrderCustomer,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    SellerBankInfo,
    SellerPayout,
    SellerTransferData,
    SellerTransferStatus,
    ShippingAddress,
    TransferStatus,
    TransferVerificationStatus,
)

logger = logging.getLogger(__name__)


TRANSFER_TRANSITIONS: Dict[TransferStatus, set] = {
    TransferStatus.PENDING: {TransferStatus.PENDING_VERIFICATION, TransferStatus.CANCELLED},
    TransferStatus.PENDING_PAYMENT: {TransferStatus.PENDING_VERIFICATION, TransferStatus.CANCELLED},
    TransferStatus.PENDING_VERIFICATION: {
        TransferStatus.PAYMENT_CONFIRMED,
        TransferStatus.PENDING_PAYMENT,
        TransferStatus.CANCELLED,
    },
    TransferStatus.PAYMENT_CONFIRMED: {TransferStatus.PROCESSING, TransferStatus.CANCELLED},
    TransferStatus.PROCESSING: {TransferStatus.SHIPPED, TransferStatus.CANCELLED},
    TransferStatus.SHIPPED: {TransferStatus.DELIVERED},
    TransferStatus.DELIVERED: {TransferStatus.COMPLETED},
    TransferStatus.COMPLETED: set(),
    TransferStatus.CANCELLED: set(),
}

COD_TRANSITIONS: Dict[CodStatus, set] = {
    CodStatus.COD_CONFIRMED: {CodStatus.COD_PROCESSING, CodStatus.CANCELLED},
    CodStatus.COD_PROCESSING: {CodStatus.COD_SHIPPED, CodStatus.CANCELLED},
    CodStatus.COD_SHIPPED: {CodStatus.COD_DELIVERED},
    CodStatus.COD_DELIVERED: set(),
    CodStatus.CANCELLED: set(),
}

REQUIRED_ADDRESS_FIELDS = ("recipient_name", "phone", "address", "city", "postal_code")


def allowed_next(order: Order) -> set:
    table = COD_TRANSITIONS if order.is_cod else TRANSFER_TRANSITIONS
    return table.get(order.status, set())


def can_transition(order: Order, target: OrderStatus) -> bool:
    return target in allowed_next(order)


def _advance(order: Order, target: OrderStatus, action: str) -> None:
    if not can_transition(order, target):
        raise InvalidTransitionError(
            f"Cannot {action}: order {order.order_number} is '{order.status.value}'",
            current_status=order.status.value,
        )
    logger.debug(f"{order.order_number}: {order.status.value} -> {target.value}")
    order.status = target


def _require_transfer(order: Order, action: str) -> None:
    if order.is_cod:
        raise InvalidTransitionError(
            f"Cannot {action}: COD orders are paid on delivery",
            current_status=order.status.value,
        )


# ----------------------------------------------------------------
# Creation
# ----------------------------------------------------------------

def validate_shipping_address(address: Optional[ShippingAddress]) -> None:
    if address is None:
        raise ValidationError("Shipping address is required")
    missing = [name for name in REQUIRED_ADDRESS_FIELDS if not (getattr(address, name) or "").strip()]
    if missing:
        raise ValidationError(f"Shipping address is missing: {', '.join(missing)}")


def build_order(
    order_number: str,
    customer: OrderCustomer,
    items: List[OrderItem],
    shipping_address: Optional[ShippingAddress],
    payment_method: PaymentMethod,
    admin_fee: int,
    notes: str = "",
) -> Order:
    """New order seeded for its payment path. Raises ValidationError before anything is written."""
    if not items:
        raise ValidationError("Cart is empty")
    validate_shipping_address(shipping_address)

    subtotal = sum(item.line_total for item in items)
    is_cod = payment_method == PaymentMethod.COD
    fee = 0 if is_cod else admin_fee

    return Order(
        order_number=order_number,
        customer=customer,
        items=items,
        subtotal=subtotal,
        admin_fee=fee,
        total_amount=subtotal + fee,
        payment_method=payment_method,
        payment_status=PaymentStatus.COD_PENDING if is_cod else PaymentStatus.PENDING,
        status=CodStatus.COD_CONFIRMED if is_cod else TransferStatus.PENDING,
        admin_verification_status=(
            AdminVerificationStatus.NOT_REQUIRED if is_cod else AdminVerificationStatus.PENDING
        ),
        seller_transfer_status=(
            SellerTransferStatus.NOT_APPLICABLE if is_cod else SellerTransferStatus.PENDING
        ),
        shipping_address=shipping_address,
        notes=notes or "",
    )


# ----------------------------------------------------------------
# Payment (transfer path)
# ----------------------------------------------------------------

def submit_payment_proof(order: Order, proof: str, now: datetime) -> None:
    _require_transfer(order, "upload a payment proof")
    if not proof:
        raise ValidationError("Payment proof is required")
    _advance(order, TransferStatus.PENDING_VERIFICATION, "upload a payment proof")
    order.payment_proof = proof
    order.payment_proof_uploaded_at = now
    order.payment_status = PaymentStatus.PROOF_UPLOADED
    order.admin_verification_status = AdminVerificationStatus.PENDING


def verify_payment(
    order: Order,
    approve: bool,
    now: datetime,
    admin_id: Optional[str] = None,
    notes: str = "",
) -> bool:
    """Admin decision on the uploaded proof.

    Returns False when an approval repeats an earlier one; the order is left untouched.
    """
    _require_transfer(order, "verify payment")
    if approve and order.admin_verification_status in APPROVED_VERIFICATION_STATUSES:
        return False

    if approve:
        _advance(order, TransferStatus.PAYMENT_CONFIRMED, "approve payment")
        order.admin_verification_status = AdminVerificationStatus.APPROVED
        order.payment_status = PaymentStatus.CONFIRMED
        order.payment_confirmed_at = now
        order.seller_transfer_status = SellerTransferStatus.PENDING
    else:
        _advance(order, TransferStatus.PENDING_PAYMENT, "reject payment")
        order.admin_verification_status = AdminVerificationStatus.REJECTED
        order.payment_status = PaymentStatus.REJECTED

    order.admin_verified_at = now
    order.admin_verified_by = admin_id
    order.admin_notes = notes or ""
    return True


# ----------------------------------------------------------------
# Seller payout (transfer path)
# ----------------------------------------------------------------

def seller_subtotals(order: Order) -> Dict[str, int]:
    """Sum of line totals per seller id, in item order."""
    totals: Dict[str, int] = {}
    for item in order.items:
        key = str(item.seller_id)
        totals[key] = totals.get(key, 0) + item.line_total
    return totals


def allocate_admin_fee(fee: int, subtotals: Dict[str, int]) -> Dict[str, int]:
    """Split the order's fee across sellers in proportion to their subtotals.

    Largest-remainder rounding, so the shares always add up to ``fee``.
    """
    if not subtotals:
        return {}
    base_total = sum(subtotals.values())
    if base_total == 0:
        weights = {key: 1 for key in subtotals}
        base_total = len(subtotals)
    else:
        weights = subtotals

    shares = {key: fee * weight // base_total for key, weight in weights.items()}
    remainder = fee - sum(shares.values())
    by_fraction = sorted(
        weights,
        key=lambda key: (fee * weights[key]) % base_total,
        reverse=True,
    )
    for key in by_fraction[:remainder]:
        shares[key] += 1
    return shares


def transfer_to_seller(
    order: Order,
    request,
    bank_infos: Dict[str, Optional[SellerBankInfo]],
    now: datetime,
) -> SellerTransferData:
    """Record the admin's payout to every seller. `request` is a TransferToSellerRequest."""
    _require_transfer(order, "transfer to seller")
    if order.admin_verification_status not in APPROVED_VERIFICATION_STATUSES:
        raise InvalidTransitionError(
            "Cannot transfer to seller before the payment is approved",
            current_status=order.status.value,
        )
    if order.seller_transfer_status == SellerTransferStatus.COMPLETED:
        raise InvalidTransitionError(
            "Seller transfer already completed",
            current_status=order.status.value,
        )

    subtotals = seller_subtotals(order)
    is_multi_seller = len(subtotals) > 1
    fee_shares = allocate_admin_fee(order.admin_fee, subtotals)

    proofs = dict(request.transfer_proofs)
    amounts = dict(request.amounts)
    if not is_multi_seller:
        only_seller = next(iter(subtotals))
        if request.transfer_proof and only_seller not in proofs:
            proofs[only_seller] = request.transfer_proof
        if request.seller_amount is not None and only_seller not in amounts:
            amounts[only_seller] = request.seller_amount

    store_names = {str(item.seller_id): item.store_name for item in order.items}
    missing = [store_names.get(key) or key for key in subtotals if not proofs.get(key)]
    if missing:
        raise ValidationError(f"Transfer proof missing for: {', '.join(missing)}")

    payouts = [
        SellerPayout(
            seller_id=seller_id,
            store_name=store_names.get(seller_id, ""),
            amount=amounts.get(seller_id, subtotal),
            admin_fee=fee_shares.get(seller_id, 0),
            transfer_proof=proofs[seller_id],
            bank_info=bank_infos.get(seller_id),
        )
        for seller_id, subtotal in subtotals.items()
    ]

    _advance(order, TransferStatus.PROCESSING, "transfer to seller")
    order.seller_transfer_status = SellerTransferStatus.COMPLETED
    order.seller_transfer_data = SellerTransferData(
        is_multi_seller=is_multi_seller,
        payouts=payouts,
        seller_amount=sum(payout.amount for payout in payouts),
        admin_fee=order.admin_fee,
        transferred_at=now,
        transferred_by=request.admin_id,
        notes=request.notes or f"Transfer untuk pesanan #{order.order_number}",
    )
    return order.seller_transfer_data


def acknowledge_transfer(
    order: Order,
    seller_id: str,
    is_verified: bool,
    now: datetime,
    notes: Optional[str] = None,
) -> None:
    """Seller confirms (or disputes) the payout. The order status does not change."""
    data = order.seller_transfer_data
    if order.seller_transfer_status != SellerTransferStatus.COMPLETED or data is None:
        raise InvalidTransitionError(
            "No seller transfer has been recorded for this order",
            current_status=order.status.value,
        )
    payout = data.payout_for(seller_id)
    if payout is None:
        raise InvalidTransitionError(
            f"Seller {seller_id} has no payout on order {order.order_number}",
            current_status=order.status.value,
        )

    payout.is_verified = is_verified
    payout.verification_status = (
        TransferVerificationStatus.VERIFIED if is_verified else TransferVerificationStatus.REJECTED
    )
    payout.verified_at = now
    payout.verification_notes = notes

    statuses = [p.verification_status for p in data.payouts]
    if all(status == TransferVerificationStatus.VERIFIED for status in statuses):
        data.is_verified = True
        data.verification_status = TransferVerificationStatus.VERIFIED
        data.verified_at = now
    elif TransferVerificationStatus.REJECTED in statuses:
        data.is_verified = False
        data.verification_status = TransferVerificationStatus.REJECTED
        data.verified_at = now
    else:
        data.is_verified = False
        data.verification_status = TransferVerificationStatus.PENDING


# ----------------------------------------------------------------
# Fulfilment
# ----------------------------------------------------------------

def accept_cod_order(order: Order) -> None:
    if not order.is_cod:
        raise InvalidTransitionError(
            "Transfer orders move to processing when the seller is paid",
            current_status=order.status.value,
        )
    _advance(order, CodStatus.COD_PROCESSING, "process the COD order")


def ship_order(
    order: Order,
    now: datetime,
    tracking_number: Optional[str] = None,
    courier_whatsapp: Optional[str] = None,
    courier_name: Optional[str] = None,
) -> None:
    """Hand the order to a courier.

    Transfer orders need a tracking number or a courier WhatsApp contact;
    COD orders need the courier WhatsApp contact. ``courier_whatsapp`` is
    expected already normalized (see order_utils.to_wa_number).
    """
    tracking_number = (tracking_number or "").strip() or None
    courier_whatsapp = courier_whatsapp or None

    if order.is_cod:
        if not courier_whatsapp:
            raise ValidationError("Courier WhatsApp number is required for COD orders")
        _advance(order, CodStatus.COD_SHIPPED, "ship")
    else:
        if not tracking_number and not courier_whatsapp:
            raise ValidationError("A tracking number or courier WhatsApp number is required")
        _advance(order, TransferStatus.SHIPPED, "ship")

    if tracking_number:
        order.tracking_number = tracking_number
    if courier_whatsapp:
        order.courier_whatsapp = courier_whatsapp
        order.courier_name = courier_name or None
    order.shipped_at = now


def confirm_delivery(order: Order, now: datetime) -> None:
    """Buyer (or seller) marks the parcel received. For COD this is also the payment."""
    if order.is_cod:
        _advance(order, CodStatus.COD_DELIVERED, "confirm delivery")
        order.payment_status = PaymentStatus.COD_PAID
        order.payment_confirmed_at = now
    else:
        _advance(order, TransferStatus.DELIVERED, "confirm delivery")
    order.delivered_at = now


def complete_order(order: Order, now: datetime) -> None:
    _require_transfer(order, "complete the order")
    _advance(order, TransferStatus.COMPLETED, "complete the order")
    order.completed_at = now


def cancel_order(order: Order, now: datetime, reason: Optional[str] = None) -> None:
    target = CodStatus.CANCELLED if order.is_cod else TransferStatus.CANCELLED
    _advance(order, target, "cancel")
    order.cancelled_at = now
    order.cancellation_reason = reason
