"""OrderService against an in-memory MongoDB: full lifecycles, events and persistence."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from beanie.exceptions import RevisionIdWasChanged
from pymongo.errors import PyMongoError

from shared.errors import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from shared.kafka.topics import EventType
from shared.models.order import (
    CodStatus,
    Order,
    PaymentMethod,
    PaymentStatus,
    SellerTransferStatus,
    TransferStatus,
)
from shared.models.product import Product
from apps.order_service.schemas import (
    CartItemRequest,
    CreateOrderRequest,
    SelectedVariantRequest,
    ShipOrderRequest,
    ShippingAddressRequest,
    TransferToSellerRequest,
)
from apps.order_service.services.order import OrderService


ADDRESS = ShippingAddressRequest(
    recipient_name="Rina",
    phone="081298765432",
    address="Jl. Merdeka No. 1",
    city="Jakarta",
    postal_code="10110",
)


def speaker_line(speaker, quantity=2):
    return CartItemRequest(
        product_id=str(speaker.id),
        seller_id=str(speaker.seller_id),
        store_name=speaker.store_name,
        name=speaker.name,
        quantity=quantity,
        price=speaker.price,
    )


def tshirt_line(tshirt, variant="M", quantity=1):
    price = tshirt.find_variant(variant).price
    return CartItemRequest(
        product_id=str(tshirt.id),
        seller_id=str(tshirt.seller_id),
        store_name=tshirt.store_name,
        name=tshirt.name,
        selected_variant=SelectedVariantRequest(name=variant, price=price),
        quantity=quantity,
        price=price,
    )


def emitted(producer):
    return [c.kwargs["event_type"] for c in producer.emit.call_args_list]


@pytest.fixture
def service(config, producer):
    return OrderService(config, producer)


@pytest.mark.asyncio
async def test_transfer_order_end_to_end(service, producer, buyer, seller_a, speaker):
    order = await service.create_order(str(buyer.id), CreateOrderRequest(
        items=[speaker_line(speaker)], shipping_address=ADDRESS,
    ))
    assert order.subtotal == 100000
    assert order.total_amount == 101500
    order_id = str(order.id)

    await service.submit_payment_proof(order_id, "proof.jpg")
    await service.verify_payment(order_id, approve=True, admin_id="admin-1")
    await service.transfer_to_seller(order_id, TransferToSellerRequest(
        admin_id="admin-1", transfer_proof="tf.jpg", seller_amount=98500,
    ))
    await service.ship_order(order_id, ShipOrderRequest(tracking_number="JNE123"))
    await service.confirm_delivery(order_id)

    final = await Order.get(order.id)
    assert final.status == TransferStatus.DELIVERED
    assert final.seller_transfer_status == SellerTransferStatus.COMPLETED
    assert final.stock_reduced
    assert final.tracking_number == "JNE123"

    payout = final.seller_transfer_data.payout_for(seller_a.id)
    assert payout.amount == 98500
    assert payout.bank_info.account_number == "1234567890"
    assert (await Product.get(speaker.id)).stock == 8

    assert emitted(producer) == [
        EventType.ORDER_CREATED,
        EventType.ORDER_PAYMENT_PROOF_SUBMITTED,
        EventType.ORDER_PAYMENT_VERIFIED,
        EventType.ORDER_STOCK_REDUCED,
        EventType.PRODUCT_STOCK_ADJUSTED,
        EventType.ORDER_SELLER_TRANSFERRED,
        EventType.ORDER_SHIPPED,
        EventType.ORDER_DELIVERED,
    ]


@pytest.mark.asyncio
async def test_cod_order_end_to_end(service, buyer, tshirt):
    order = await service.create_order(str(buyer.id), CreateOrderRequest(
        items=[tshirt_line(tshirt)], shipping_address=ADDRESS, payment_method=PaymentMethod.COD,
    ))
    order_id = str(order.id)
    assert order.subtotal == 30000

    await service.accept_cod_order(order_id)
    shipped = await service.ship_order(order_id, ShipOrderRequest(
        courier_whatsapp="+62 812-3456-7890", courier_name="Pak Joko",
    ))
    assert shipped.courier_whatsapp == "6281234567890"
    await service.confirm_delivery(order_id)

    final = await Order.get(order.id)
    assert final.status == CodStatus.COD_DELIVERED
    assert final.payment_status == PaymentStatus.COD_PAID
    assert final.admin_fee == 0
    assert final.seller_transfer_data is None
    assert final.stock_reduced
    assert (await Product.get(tshirt.id)).find_variant("M").stock == 4


@pytest.mark.asyncio
async def test_multi_seller_transfer_pays_each_seller(service, buyer, seller_a, seller_b, speaker, tshirt):
    order = await service.create_order(str(buyer.id), CreateOrderRequest(
        items=[speaker_line(speaker, 1), tshirt_line(tshirt, "L")], shipping_address=ADDRESS,
    ))
    order_id = str(order.id)
    await service.submit_payment_proof(order_id, "proof.jpg")
    await service.verify_payment(order_id, approve=True)

    with pytest.raises(ValidationError, match="Fashion Store Central"):
        await service.transfer_to_seller(order_id, TransferToSellerRequest(
            transfer_proofs={str(seller_a.id): "a.jpg"},
        ))

    transferred = await service.transfer_to_seller(order_id, TransferToSellerRequest(
        transfer_proofs={str(seller_a.id): "a.jpg", str(seller_b.id): "b.jpg"},
    ))
    data = transferred.seller_transfer_data
    assert data.is_multi_seller
    assert data.seller_amount == 50000 + 32000
    assert data.payout_for(seller_b.id).bank_info is None

    acknowledged = await service.acknowledge_transfer(order_id, str(seller_b.id), True)
    assert acknowledged.seller_transfer_data.payout_for(seller_b.id).is_verified
    assert not acknowledged.seller_transfer_data.is_verified


@pytest.mark.asyncio
async def test_rejected_payment_does_not_touch_stock(service, producer, buyer, speaker):
    order = await service.create_order(str(buyer.id), CreateOrderRequest(
        items=[speaker_line(speaker)], shipping_address=ADDRESS,
    ))
    await service.submit_payment_proof(str(order.id), "blurry.jpg")
    rejected = await service.verify_payment(str(order.id), approve=False, notes="tidak terbaca")

    assert rejected.status == TransferStatus.PENDING_PAYMENT
    assert not rejected.stock_reduced
    assert (await Product.get(speaker.id)).stock == 10
    assert EventType.ORDER_PAYMENT_REJECTED in emitted(producer)


@pytest.mark.asyncio
async def test_stock_failure_keeps_approval_and_is_retried(config, producer, buyer, speaker):
    inventory = MagicMock()
    inventory.reduce_stock_for_order = AsyncMock(side_effect=[PyMongoError("down"), []])
    service = OrderService(config, producer, inventory=inventory)
    order = await service.create_order(str(buyer.id), CreateOrderRequest(
        items=[speaker_line(speaker)], shipping_address=ADDRESS,
    ))
    await service.submit_payment_proof(str(order.id), "proof.jpg")

    approved = await service.verify_payment(str(order.id), approve=True)
    assert approved.status == TransferStatus.PAYMENT_CONFIRMED

    await service.verify_payment(str(order.id), approve=True)
    assert inventory.reduce_stock_for_order.await_count == 2
    assert emitted(producer).count(EventType.ORDER_PAYMENT_VERIFIED) == 1


@pytest.mark.asyncio
async def test_concurrent_modification_becomes_conflict(service, buyer, speaker):
    order = await service.create_order(str(buyer.id), CreateOrderRequest(
        items=[speaker_line(speaker)], shipping_address=ADDRESS,
    ))

    with patch.object(Order, "save", AsyncMock(side_effect=RevisionIdWasChanged)):
        with pytest.raises(ConflictError, match="reload and retry"):
            await service.submit_payment_proof(str(order.id), "proof.jpg")


@pytest.mark.asyncio
async def test_create_order_rejects_bad_input(service, buyer, speaker):
    with pytest.raises(ValidationError, match="Cart is empty"):
        await service.create_order(str(buyer.id), CreateOrderRequest(shipping_address=ADDRESS))

    with pytest.raises(ValidationError, match="Shipping address is required"):
        await service.create_order(str(buyer.id), CreateOrderRequest(items=[speaker_line(speaker)]))

    with pytest.raises(NotFoundError, match="Buyer not found"):
        await service.create_order("not-an-id", CreateOrderRequest(
            items=[speaker_line(speaker)], shipping_address=ADDRESS,
        ))

    assert await Order.find_all().count() == 0


@pytest.mark.asyncio
async def test_invalid_transition_is_not_saved(service, buyer, speaker):
    order = await service.create_order(str(buyer.id), CreateOrderRequest(
        items=[speaker_line(speaker)], shipping_address=ADDRESS,
    ))

    with pytest.raises(InvalidTransitionError):
        await service.complete_order(str(order.id))
    assert (await Order.get(order.id)).status == TransferStatus.PENDING


@pytest.mark.asyncio
async def test_buyer_listing_and_status_filter(service, buyer, speaker):
    first = await service.create_order(str(buyer.id), CreateOrderRequest(
        items=[speaker_line(speaker, 1)], shipping_address=ADDRESS,
    ))
    await service.create_order(str(buyer.id), CreateOrderRequest(
        items=[speaker_line(speaker, 1)], shipping_address=ADDRESS,
    ))
    await service.cancel_order(str(first.id), reason="salah alamat")

    assert len(await service.list_orders_for_buyer(str(buyer.id))) == 2
    cancelled = await service.list_orders_for_buyer(str(buyer.id), "cancelled, shipped")
    assert [o.id for o in cancelled] == [first.id]

    with pytest.raises(NotFoundError):
        await service.get_order("65a0000000000000000000ff")
