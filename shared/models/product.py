"""
Product Model - Items listed by sellers

Stock lives either on the product itself or, for products sold in variants,
on each variant. Stock is reduced once per order when payment is confirmed.
Writes are revision checked so concurrent reductions cannot overwrite each other.
"""

from beanie import Document, PydanticObjectId
from pydantic import BaseModel, Field
from typing import Optional, List, Annotated
from datetime import datetime

from shared.utils.datetime_utils import utc_now


# Embedded Schemas
class ProductVariant(BaseModel):
    """Sellable variant (size, color, ...)"""

    name: Annotated[str, Field(min_length=1, max_length=100, description="Variant name shown to buyers")]
    price: Annotated[int, Field(ge=0, description="Variant unit price")]
    stock: Annotated[int, Field(default=0, ge=0, description="Units available")]


# Main Product Document
class Product(Document):
    """Product model - listing owned by a seller's store"""

    # Owner
    seller_id: Annotated[PydanticObjectId, Field(description="Reference to the seller User document")]
    store_name: Annotated[str, Field(default="", description="Store name (denormalized)")]

    # Content
    name: Annotated[str, Field(min_length=1, max_length=200, description="Product name")]
    description: Annotated[str, Field(default="", max_length=5000)]
    category: Annotated[str, Field(default="", description="Category id")]
    images: Annotated[List[str], Field(default_factory=list, description="Image references, first is the cover")]

    # Pricing and inventory
    price: Annotated[int, Field(ge=0, description="Unit price")]
    stock: Annotated[int, Field(default=0, ge=0, description="Units available when sold without variants")]
    sold: Annotated[int, Field(default=0, ge=0, description="Units sold")]
    variants: Annotated[List[ProductVariant], Field(default_factory=list)]

    # Timestamps
    created_at: Annotated[datetime, Field(default_factory=utc_now, description="Creation timestamp")]
    updated_at: Annotated[datetime, Field(default_factory=utc_now, description="Last update timestamp")]

    class Settings:
        name = "products"
        use_revision = True

        indexes = [
            # Seller's catalogue
            [("seller_id", 1), ("created_at", -1)],

            # Category browsing
            [("category", 1), ("created_at", -1)],
        ]

    @property
    def cover_image(self) -> Optional[str]:
        return self.images[0] if self.images else None

    def find_variant(self, name: str) -> Optional[ProductVariant]:
        for variant in self.variants:
            if variant.name == name:
                return variant
        return None

    async def save(self, *args, **kwargs):
        """Override save to update timestamps"""
        self.updated_at = utc_now()
        return await super().save(*args, **kwargs)
