"""Bulk reads of orders as lenient OrderRecords for the listing projectors."""

import logging
from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import PyMongoError

from shared.models.order import Order, OrderRecord
from shared.utils.serialization import to_object_id

logger = logging.getLogger(__name__)


async def load_order_records(query: Optional[dict] = None) -> list[OrderRecord]:
    """All matching orders, newest first. Documents that cannot be read are logged and skipped."""
    cursor = Order.get_motor_collection().find(query or {}).sort("created_at", -1)
    records = []
    async for raw in cursor:
        try:
            records.append(OrderRecord.model_validate(raw))
        except PydanticValidationError as e:
            logger.warning(f"[ORDER_UNREADABLE] {raw.get('_id')}: {e.error_count()} invalid field(s)")
    return records


async def cached_get(cache: dict, model, doc_id):
    """Point lookup memoized in `cache` for one listing call; failures degrade to None."""
    key = str(doc_id)
    if key not in cache:
        oid = to_object_id(key)
        try:
            cache[key] = await model.get(oid) if oid else None
        except (PyMongoError, PydanticValidationError) as e:
            logger.warning(f"[LOOKUP_FAILED] {model.__name__} {key}: {e}")
            cache[key] = None
    return cache[key]
