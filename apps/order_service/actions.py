"""
Client-facing actions.

Every action returns an OperationResult instead of raising: expected domain
errors carry their own message, anything else is logged and reported with the
action's generic failure text.
"""

import functools
import logging
from typing import Any, Optional

from pydantic import BaseModel, ValidationError as PydanticValidationError

from shared.errors import AppError
from apps.order_service.schemas import CreateOrderRequest, ShipOrderRequest, TransferToSellerRequest
from apps.order_service.services.order import OrderService
from apps.order_service.services.seller_orders import SellerOrderService
from apps.order_service.services.status import FilterType
from apps.order_service.services.transaction import TransactionService
from apps.order_service.utils.order_utils import build_courier_message, whatsapp_link

logger = logging.getLogger(__name__)


class OperationResult(BaseModel):
    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "OperationResult":
        return cls(success=False, error=error)


def action(failure_message: str):
    """Wrap an async action so that it always returns an OperationResult."""

    def decorator(func):
        tag = func.__name__.upper()

        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> OperationResult:
            try:
                return OperationResult.ok(await func(*args, **kwargs))
            except AppError as e:
                logger.warning(f"[{tag}] {type(e).__name__}: {e.message}")
                return OperationResult.fail(e.message)
            except PydanticValidationError as e:
                logger.warning(f"[{tag}] invalid input: {e.error_count()} error(s)")
                return OperationResult.fail(f"{failure_message}: data tidak valid")
            except Exception:
                logger.exception(f"[{tag}] unexpected failure")
                return OperationResult.fail(failure_message)

        return wrapper

    return decorator


class MarketplaceActions:
    """Entry points for buyer, seller and admin screens."""

    def __init__(
        self,
        orders: Optional[OrderService] = None,
        seller_orders: Optional[SellerOrderService] = None,
        transactions: Optional[TransactionService] = None,
    ):
        self._orders = orders or OrderService()
        self._seller_orders = seller_orders or SellerOrderService()
        self._transactions = transactions or TransactionService()

    # Buyer

    @action("Gagal membuat pesanan")
    async def create_order(self, user_id: str, payload: dict):
        return await self._orders.create_order(user_id, CreateOrderRequest.model_validate(payload))

    @action("Gagal mengambil data pesanan")
    async def get_order(self, order_id: str):
        return await self._orders.get_order(order_id)

    @action("Gagal mengambil data pesanan")
    async def get_buyer_orders(self, user_id: str, status_filter: Optional[str] = None):
        return await self._orders.list_orders_for_buyer(user_id, status_filter)

    @action("Gagal mengupload bukti pembayaran")
    async def upload_payment_proof(self, order_id: str, proof: str):
        return await self._orders.submit_payment_proof(order_id, proof)

    @action("Gagal memperbarui status pesanan")
    async def confirm_delivery(self, order_id: str):
        return await self._orders.confirm_delivery(order_id)

    @action("Gagal memperbarui status pesanan")
    async def complete_order(self, order_id: str):
        return await self._orders.complete_order(order_id)

    @action("Gagal memperbarui status pesanan")
    async def cancel_order(self, order_id: str, reason: Optional[str] = None):
        return await self._orders.cancel_order(order_id, reason)

    # Seller

    @action("Gagal mengambil data pesanan")
    async def get_seller_orders(self, seller_id: str):
        return await self._seller_orders.list_orders_for_seller(seller_id)

    @action("Gagal menghitung statistik pendapatan")
    async def get_seller_revenue_stats(self, seller_id: str):
        return await self._seller_orders.revenue_stats(seller_id)

    @action("Gagal memverifikasi transfer")
    async def acknowledge_transfer(self, order_id: str, seller_id: str, is_verified: bool, notes: Optional[str] = None):
        return await self._orders.acknowledge_transfer(order_id, seller_id, is_verified, notes)

    @action("Gagal memperbarui status pesanan")
    async def accept_cod_order(self, order_id: str):
        return await self._orders.accept_cod_order(order_id)

    @action("Gagal menyimpan nomor WA kurir")
    async def ship_order(self, order_id: str, payload: dict):
        """Returns the shipped order plus the wa.me link for the courier hand-off."""
        body = ShipOrderRequest.model_validate(payload)
        order = await self._orders.ship_order(order_id, body)
        link = None
        if order.courier_whatsapp:
            link = whatsapp_link(order.courier_whatsapp, build_courier_message(order, order.courier_name))
        return {"order": order, "whatsapp_url": link}

    # Admin

    @action("Gagal memverifikasi pembayaran")
    async def verify_payment(self, order_id: str, approve: bool, admin_id: Optional[str] = None, notes: str = ""):
        return await self._orders.verify_payment(order_id, approve, admin_id=admin_id, notes=notes)

    @action("Gagal mentransfer ke penjual")
    async def transfer_to_seller(self, order_id: str, payload: dict):
        return await self._orders.transfer_to_seller(order_id, TransferToSellerRequest.model_validate(payload))

    @action("Gagal mengambil data transaksi")
    async def get_transactions(self, filter_type: Optional[str] = None):
        bucket = FilterType(filter_type) if filter_type else None
        return await self._transactions.list_transactions(bucket)

    @action("Gagal mengambil statistik transaksi")
    async def get_transaction_stats(self):
        return await self._transactions.get_stats()
