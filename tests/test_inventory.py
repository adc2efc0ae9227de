"""At-most-once stock reduction."""

from unittest.mock import AsyncMock, patch

import pytest
from beanie import PydanticObjectId
from pymongo.errors import PyMongoError

from shared.errors import ConflictError
from shared.kafka.topics import EventType
from shared.models.order import Order
from shared.models.product import Product
from apps.order_service.services.inventory import InventoryService, plan_stock_reductions, restore_stock

from tests.factories import make_item, make_order


def _line(product, quantity, variant=None):
    return make_item(
        seller_id=product.seller_id,
        product_id=product.id,
        name=product.name,
        price=product.price,
        quantity=quantity,
        variant=variant,
    )


@pytest.fixture
def inventory(config, producer):
    return InventoryService(config, producer)


@pytest.mark.asyncio
async def test_plan_accumulates_repeated_lines(speaker):
    order = make_order(items=[_line(speaker, 3), _line(speaker, 2)])

    plan = plan_stock_reductions(order, {str(speaker.id): speaker})

    assert speaker.stock == 5
    assert speaker.sold == 5
    assert [(r.old_stock, r.new_stock) for r in plan.reductions] == [(10, 7), (7, 5)]
    assert plan.products == [speaker]


@pytest.mark.asyncio
async def test_stock_never_goes_negative(tshirt):
    order = make_order(items=[_line(tshirt, 3, variant="L")])

    plan = plan_stock_reductions(order, {str(tshirt.id): tshirt})

    assert tshirt.find_variant("L").stock == 0
    assert plan.reductions[0].variant == "L"
    assert plan.reductions[0].old_stock == 1


@pytest.mark.asyncio
async def test_missing_product_and_variant_are_skipped(speaker, tshirt, caplog):
    gone = make_item(product_id=PydanticObjectId(), quantity=1)
    order = make_order(items=[gone, _line(tshirt, 1, variant="XXL"), _line(speaker, 1)])

    plan = plan_stock_reductions(order, {str(speaker.id): speaker, str(tshirt.id): tshirt})

    assert len(plan.reductions) == 1
    assert plan.products == [speaker]
    assert caplog.text.count("[STOCK_SKIP]") == 2


@pytest.mark.asyncio
async def test_reduces_once_per_order(inventory, producer, speaker, tshirt):
    order = make_order(items=[_line(speaker, 2), _line(tshirt, 2, variant="M")])
    await order.insert()

    first = await inventory.reduce_stock_for_order(order)
    second = await inventory.reduce_stock_for_order(order)

    assert len(first) == 2
    assert second == []

    stored = await Order.get(order.id)
    assert stored.stock_reduced
    assert len(stored.stock_reductions) == 2
    assert (await Product.get(speaker.id)).stock == 8
    assert (await Product.get(tshirt.id)).find_variant("M").stock == 3

    event_types = [c.kwargs["event_type"] for c in producer.emit.call_args_list]
    assert event_types.count(EventType.ORDER_STOCK_REDUCED) == 1
    assert event_types.count(EventType.PRODUCT_STOCK_ADJUSTED) == 2


@pytest.mark.asyncio
async def test_reload_does_not_reduce_again(inventory, speaker):
    order = make_order(items=[_line(speaker, 4)])
    await order.insert()
    await inventory.reduce_stock_for_order(order)

    reloaded = await Order.get(order.id)
    assert await inventory.reduce_stock_for_order(reloaded) == []
    assert (await Product.get(speaker.id)).stock == 6


@pytest.mark.asyncio
async def test_failed_write_leaves_order_unreduced(inventory, producer, speaker):
    order = make_order(items=[_line(speaker, 1)])
    await order.insert()

    with patch.object(Product, "save", AsyncMock(side_effect=PyMongoError("write failed"))):
        with pytest.raises(PyMongoError):
            await inventory.reduce_stock_for_order(order)

    assert not order.stock_reduced
    assert order.stock_reductions == []
    assert not (await Order.get(order.id)).stock_reduced
    producer.emit.assert_not_called()


def _failing_audit_write(original):
    """Order.update that fails on the audit write, after the products are saved."""

    async def update(self, *args, **kwargs):
        changes = args[0].get("$set", {}) if args and isinstance(args[0], dict) else {}
        if "stock_reductions" in changes and "stock_reduced" not in changes:
            raise PyMongoError("order write failed")
        return await original(self, *args, **kwargs)

    return update


@pytest.mark.asyncio
async def test_failed_order_write_puts_stock_back(inventory, producer, speaker):
    order = make_order(items=[_line(speaker, 3)])
    await order.insert()

    with patch.object(Order, "update", _failing_audit_write(Order.update)):
        with pytest.raises(PyMongoError):
            await inventory.reduce_stock_for_order(order)

    stored = await Product.get(speaker.id)
    assert (stored.stock, stored.sold) == (10, 0)
    assert not (await Order.get(order.id)).stock_reduced
    assert not order.stock_reduced
    producer.emit.assert_not_called()

    await inventory.reduce_stock_for_order(await Order.get(order.id))

    assert (await Product.get(speaker.id)).stock == 7


@pytest.mark.asyncio
async def test_stale_order_copy_cannot_reduce_again(inventory, speaker):
    order = make_order(items=[_line(speaker, 3)])
    await order.insert()
    first = await Order.get(order.id)
    second = await Order.get(order.id)

    await inventory.reduce_stock_for_order(first)
    with pytest.raises(ConflictError):
        await inventory.reduce_stock_for_order(second)

    assert (await Product.get(speaker.id)).stock == 7


@pytest.mark.asyncio
async def test_concurrent_product_write_is_retried(inventory, speaker, caplog):
    first = make_order(items=[_line(speaker, 3)])
    second = make_order(items=[_line(speaker, 3)])
    second.order_number = "ORD-20250101-ABC124"
    await first.insert()
    await second.insert()

    # Read before the first order lands, as a concurrent approval would
    stale = await Product.get(speaker.id)
    await inventory.reduce_stock_for_order(first)

    original_get = Product.get
    reads = []

    async def racing_get(*args, **kwargs):
        reads.append(args)
        if len(reads) == 1:
            return stale
        return await original_get(*args, **kwargs)

    with patch.object(Product, "get", side_effect=racing_get):
        reductions = await inventory.reduce_stock_for_order(second)

    stored = await Product.get(speaker.id)
    assert (stored.stock, stored.sold) == (4, 6)
    assert [(r.old_stock, r.new_stock) for r in reductions] == [(7, 4)]
    assert "[STOCK_RETRY]" in caplog.text


@pytest.mark.asyncio
async def test_restore_stock_undoes_a_plan(speaker, tshirt):
    order = make_order(items=[_line(speaker, 12), _line(tshirt, 2, variant="M")])
    plan = plan_stock_reductions(order, {str(speaker.id): speaker, str(tshirt.id): tshirt})

    restore_stock(speaker, [r for r in plan.reductions if r.product_id == speaker.id])
    restore_stock(tshirt, [r for r in plan.reductions if r.product_id == tshirt.id])

    assert (speaker.stock, speaker.sold) == (10, 0)
    assert (tshirt.find_variant("M").stock, tshirt.sold) == (5, 0)
