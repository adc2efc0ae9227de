"""User Service - Buyers, sellers and their payout accounts."""

from typing import Optional

from shared.models.user import BankInfo, User, UserRole
from shared.errors import DuplicateError, NotFoundError, ValidationError
from shared.kafka.topics import EventType
from shared.utils.serialization import oid_to_str, to_object_id
from apps.order_service.kafka.producer import get_kafka_producer


class UserService:
    """Handles user DB operations."""

    def __init__(self, producer=None):
        self._kafka = producer or get_kafka_producer()

    async def create_user(
        self,
        name: str,
        email: str,
        role: UserRole = UserRole.BUYER,
        phone: Optional[str] = None,
        store_name: Optional[str] = None,
    ) -> User:
        email = email.lower().strip()
        existing = await User.find_one({"email": email})
        if existing:
            raise DuplicateError("Email already in use")
        if role == UserRole.SELLER and not store_name:
            raise ValidationError("Sellers need a store name")

        user = User(name=name, email=email, role=role, phone=phone, store_name=store_name)
        await user.insert()

        self._kafka.emit(
            event_type=EventType.USER_CREATED,
            entity_id=oid_to_str(user.id),
            data=user.model_dump(mode="json"),
        )
        return user

    async def get_user(self, user_id: str) -> User:
        oid = to_object_id(user_id)
        user = await User.get(oid) if oid else None
        if not user:
            raise NotFoundError("User not found")
        return user

    async def list_sellers(self) -> list[User]:
        return await User.find({"role": UserRole.SELLER.value}).sort("store_name").to_list()

    async def set_bank_info(self, user_id: str, bank_name: str, account_number: str, account_name: str) -> User:
        """Payout account the admin transfers seller funds to."""
        user = await self.get_user(user_id)
        if user.role != UserRole.SELLER:
            raise ValidationError("Only sellers have a payout account")

        user.bank_info = BankInfo(
            bank_name=bank_name.strip(),
            account_number=account_number.strip(),
            account_name=account_name.strip(),
        )
        await user.save()

        self._kafka.emit(
            event_type=EventType.USER_UPDATED,
            entity_id=oid_to_str(user.id),
            data=user.model_dump(mode="json"),
        )
        return user
