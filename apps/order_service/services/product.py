"""Product Service - Seller catalogue."""

from typing import Optional

from shared.models.product import Product, ProductVariant
from shared.models.user import User, UserRole
from shared.errors import NotFoundError, ValidationError
from shared.kafka.topics import EventType
from shared.utils.serialization import oid_to_str, to_object_id
from apps.order_service.kafka.producer import get_kafka_producer


class ProductService:
    """Handles product DB operations."""

    def __init__(self, producer=None):
        self._kafka = producer or get_kafka_producer()

    async def create_product(
        self,
        seller_id: str,
        name: str,
        price: int,
        stock: int = 0,
        category: str = "",
        description: str = "",
        images: Optional[list[str]] = None,
        variants: Optional[list[dict]] = None,
    ) -> Product:
        oid = to_object_id(seller_id)
        seller = await User.get(oid) if oid else None
        if not seller:
            raise NotFoundError("Seller not found")
        if seller.role != UserRole.SELLER:
            raise ValidationError("Only sellers can list products")

        product = Product(
            seller_id=seller.id,
            store_name=seller.store_name or "",
            name=name,
            description=description,
            category=category,
            images=images or [],
            price=price,
            stock=stock,
            variants=[ProductVariant(**v) for v in variants or []],
        )
        await product.insert()

        self._kafka.emit(
            event_type=EventType.PRODUCT_CREATED,
            entity_id=oid_to_str(product.id),
            data=product.model_dump(mode="json"),
        )
        return product

    async def get_product(self, product_id: str) -> Product:
        oid = to_object_id(product_id)
        product = await Product.get(oid) if oid else None
        if not product:
            raise NotFoundError("Product not found")
        return product

    async def list_products_for_seller(self, seller_id: str) -> list[Product]:
        oid = to_object_id(seller_id)
        if oid is None:
            raise NotFoundError("Seller not found")
        return await Product.find({"seller_id": oid}).sort("-created_at").to_list()
