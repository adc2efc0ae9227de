"""Inventory Service - one-time stock reduction for a paid order."""

import logging
from typing import Dict, List, NamedTuple, Optional

from beanie import PydanticObjectId
from beanie.exceptions import RevisionIdWasChanged
from pymongo.errors import PyMongoError

from shared.models.order import Order, OrderItem, StockReduction
from shared.models.product import Product
from shared.errors import ConflictError
from shared.kafka.topics import EventType
from shared.utils.datetime_utils import utc_now
from shared.utils.serialization import oid_to_str
from apps.order_service.config import ServiceConfig, get_config
from apps.order_service.kafka.producer import get_kafka_producer

logger = logging.getLogger(__name__)

# Reload-and-retry rounds for a product another order wrote meanwhile
STOCK_WRITE_ATTEMPTS = 5


class StockPlan(NamedTuple):
    reductions: List[StockReduction]
    products: List[Product]


def plan_stock_reductions(
    order: Order,
    products: Dict[str, Product],
    items: Optional[List[OrderItem]] = None,
) -> StockPlan:
    """
    Apply the order's quantities to in-memory products.

    `products` maps product id (str) to the loaded document and is mutated in
    place, so two lines of the same product reduce cumulatively. Lines whose
    product (or variant) is gone are logged and skipped. Stock never goes
    below zero. `items` narrows the lines considered (default: all of them).
    """
    reductions: List[StockReduction] = []
    touched: Dict[str, Product] = {}

    for item in order.items if items is None else items:
        key = str(item.product_id)
        product = products.get(key)
        if product is None:
            logger.error(f"[STOCK_SKIP] {order.order_number}: product {key} not found")
            continue

        if item.selected_variant and product.variants:
            variant = product.find_variant(item.selected_variant.name)
            if variant is None:
                logger.error(
                    f"[STOCK_SKIP] {order.order_number}: variant '{item.selected_variant.name}' "
                    f"not found on product {key}"
                )
                continue
            old_stock = variant.stock
            variant.stock = max(0, old_stock - item.quantity)
            new_stock, variant_name = variant.stock, variant.name
        else:
            old_stock = product.stock
            product.stock = max(0, old_stock - item.quantity)
            new_stock, variant_name = product.stock, None

        product.sold += item.quantity
        touched[key] = product
        reductions.append(StockReduction(
            product_id=product.id,
            product_name=item.name or product.name,
            variant=variant_name,
            old_stock=old_stock,
            new_stock=new_stock,
            quantity=item.quantity,
        ))

    return StockPlan(reductions=reductions, products=list(touched.values()))


def restore_stock(product: Product, reductions: List[StockReduction]) -> None:
    """Put back what `reductions` took from `product`, in memory."""
    for reduction in reductions:
        target = product.find_variant(reduction.variant) if reduction.variant else product
        if target is None:
            logger.error(f"[STOCK_RESTORE_SKIP] variant '{reduction.variant}' gone from product {product.id}")
            continue
        target.stock += reduction.old_stock - reduction.new_stock
        product.sold = max(0, product.sold - reduction.quantity)


def _lines_by_product(order: Order) -> Dict[str, List[OrderItem]]:
    grouped: Dict[str, List[OrderItem]] = {}
    for item in order.items:
        grouped.setdefault(str(item.product_id), []).append(item)
    return grouped


class InventoryService:
    """Decrements product stock at most once per order."""

    def __init__(self, config: Optional[ServiceConfig] = None, producer=None):
        self._config = config or get_config()
        self._kafka = producer or get_kafka_producer()

    async def _load_products(self, order: Order) -> Dict[str, Product]:
        ids = list({item.product_id for item in order.items})
        products = await Product.find({"_id": {"$in": ids}}).to_list()
        return {str(product.id): product for product in products}

    async def reduce_stock_for_order(self, order: Order) -> List[StockReduction]:
        """
        Reduce stock for every line of `order` and mark it `stock_reduced`.

        Returns the audit entries written, or an empty list when the order was
        already reduced. The order is saved by this call. On failure nothing
        stays adjusted and the flag is clear, so calling again is safe.
        """
        if order.stock_reduced:
            logger.info(f"[STOCK_ALREADY_REDUCED] {order.order_number}")
            return []

        if self._config.use_transactions:
            plan = await self._reduce_in_transaction(order)
        else:
            plan = await self._reduce_claimed(order)

        logger.info(
            f"[ORDER_STOCK_REDUCED] {order.order_number}: "
            f"{len(plan.reductions)} line(s), {len(plan.products)} product(s)"
        )
        self._emit(order, plan)
        return plan.reductions

    # ----------------------------------------------------------------
    # Single transaction (replica set)
    # ----------------------------------------------------------------

    async def _reduce_in_transaction(self, order: Order) -> StockPlan:
        plan = plan_stock_reductions(order, await self._load_products(order))

        order.stock_reduced = True
        order.stock_reduction_at = utc_now()
        order.stock_reductions = plan.reductions

        try:
            client = Order.get_motor_collection().database.client
            async with await client.start_session() as session:
                async with session.start_transaction():
                    for product in plan.products:
                        await product.save(session=session)
                    await order.save(session=session)
        except Exception:
            order.stock_reduced = False
            order.stock_reduction_at = None
            order.stock_reductions = []
            raise
        return plan

    # ----------------------------------------------------------------
    # Claim, adjust, release on failure (standalone server)
    # ----------------------------------------------------------------

    async def _reduce_claimed(self, order: Order) -> StockPlan:
        """
        Claim the order's flag with a revision-checked update, then adjust
        each product. Only one caller can win the claim for a given order
        revision. A failure after the claim puts the adjusted stock back and
        clears the flag.
        """
        claimed_at = utc_now()
        try:
            await order.update({"$set": {
                "stock_reduced": True,
                "stock_reduction_at": claimed_at,
                "updated_at": claimed_at,
            }})
        except RevisionIdWasChanged:
            logger.warning(f"[STOCK_CLAIM_LOST] {order.order_number} changed since it was read")
            raise ConflictError(f"Order {order.order_number} was modified by someone else, reload and retry")

        applied = StockPlan(reductions=[], products=[])
        try:
            for key, items in _lines_by_product(order).items():
                part = await self._reduce_product(order, key, items)
                applied.reductions.extend(part.reductions)
                applied.products.extend(part.products)

            await order.update(
                {"$set": {"stock_reductions": [r.model_dump() for r in applied.reductions]}},
                ignore_revision=True,
            )
        except Exception:
            await self._release(order, applied)
            raise
        return applied

    async def _reduce_product(self, order: Order, key: str, items: List[OrderItem]) -> StockPlan:
        for attempt in range(1, STOCK_WRITE_ATTEMPTS + 1):
            product = await Product.get(items[0].product_id)
            plan = plan_stock_reductions(order, {key: product} if product else {}, items)
            if not plan.products:
                return plan
            try:
                await product.save()
                return plan
            except RevisionIdWasChanged:
                logger.warning(f"[STOCK_RETRY] {order.order_number}: product {key} changed, attempt {attempt}")
        raise ConflictError(f"Product {key} kept changing while reducing stock for {order.order_number}")

    async def _restock(self, order: Order, product_id: PydanticObjectId, reductions: List[StockReduction]) -> None:
        for attempt in range(1, STOCK_WRITE_ATTEMPTS + 1):
            product = await Product.get(product_id)
            if product is None:
                logger.error(f"[STOCK_RESTORE_SKIP] {order.order_number}: product {product_id} not found")
                return
            restore_stock(product, reductions)
            try:
                await product.save()
                return
            except RevisionIdWasChanged:
                logger.warning(f"[STOCK_RESTORE_RETRY] {order.order_number}: product {product_id}, attempt {attempt}")
        raise ConflictError(f"Product {product_id} kept changing while restoring stock for {order.order_number}")

    async def _release(self, order: Order, applied: StockPlan) -> None:
        """Undo `applied` and clear the order's flag. The caller re-raises its own error."""
        by_product: Dict[PydanticObjectId, List[StockReduction]] = {}
        for reduction in applied.reductions:
            by_product.setdefault(reduction.product_id, []).append(reduction)

        try:
            for product_id, reductions in by_product.items():
                await self._restock(order, product_id, reductions)
            await order.update(
                {"$set": {"stock_reduced": False, "stock_reduction_at": None, "stock_reductions": []}},
                ignore_revision=True,
            )
        except (PyMongoError, ConflictError):
            # Flag stays set: stock is never reduced twice, but may need a manual fix
            logger.exception(f"[STOCK_RELEASE_FAILED] {order.order_number}")
            return
        logger.warning(f"[STOCK_RELEASED] {order.order_number}: {len(applied.reductions)} line(s) restored")

    def _emit(self, order: Order, plan: StockPlan) -> None:
        self._kafka.emit(
            event_type=EventType.ORDER_STOCK_REDUCED,
            entity_id=oid_to_str(order.id),
            data={
                "order_number": order.order_number,
                "stock_reductions": [r.model_dump(mode="json") for r in plan.reductions],
            },
        )
        for product in plan.products:
            self._kafka.emit(
                event_type=EventType.PRODUCT_STOCK_ADJUSTED,
                entity_id=oid_to_str(product.id),
                data={
                    "stock": product.stock,
                    "sold": product.sold,
                    "variants": [v.model_dump(mode="json") for v in product.variants],
                },
            )
