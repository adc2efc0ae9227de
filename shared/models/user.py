"""
User Model - Buyers, sellers and platform admins

Sellers additionally carry a store name and the bank account the platform
transfers their payouts to.
"""

from beanie import Document
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Annotated
from datetime import datetime
from enum import Enum

from shared.utils.datetime_utils import utc_now


class UserRole(str, Enum):
    """Account role"""
    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"


# Embedded Schemas
class BankInfo(BaseModel):
    """Payout account of a seller"""

    bank_name: Annotated[str, Field(min_length=1, max_length=100, description="Bank name")]
    account_number: Annotated[str, Field(min_length=1, max_length=50, description="Account number")]
    account_name: Annotated[str, Field(min_length=1, max_length=200, description="Account holder name")]


# Main User Document
class User(Document):
    """User model - one account per person"""

    name: Annotated[str, Field(min_length=1, max_length=200, description="Full name")]
    email: Annotated[EmailStr, Field(description="Login email")]
    phone: Annotated[Optional[str], Field(None, description="Phone number")]
    avatar: Annotated[Optional[str], Field(None, description="Avatar image reference")]
    role: Annotated[UserRole, Field(default=UserRole.BUYER)]

    # Seller profile
    store_name: Annotated[Optional[str], Field(None, description="Store name for sellers")]
    bank_info: Annotated[Optional[BankInfo], Field(None, description="Payout account for sellers")]

    # Timestamps
    created_at: Annotated[datetime, Field(default_factory=utc_now, description="Creation timestamp")]
    updated_at: Annotated[datetime, Field(default_factory=utc_now, description="Last update timestamp")]

    class Settings:
        name = "users"

        indexes = [
            [("email", 1)],
            [("role", 1)],
        ]

    async def save(self, *args, **kwargs):
        """Override save to update timestamps"""
        self.updated_at = utc_now()
        return await super().save(*args, **kwargs)
