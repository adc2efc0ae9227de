"""Serialization helpers for ObjectIds and event payloads."""

from typing import Optional

from beanie import PydanticObjectId
from bson import ObjectId


def oid_to_str(oid: Optional[PydanticObjectId]) -> Optional[str]:
    if oid is None:
        return None
    return str(oid)


def to_object_id(value) -> Optional[PydanticObjectId]:
    """Parse an id that may arrive as a string; None when it is not a valid ObjectId."""
    if value is None or isinstance(value, PydanticObjectId):
        return value
    if not ObjectId.is_valid(str(value)):
        return None
    return PydanticObjectId(str(value))
