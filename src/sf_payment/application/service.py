"""PaymentService: start a gateway payment and settle its redirect callback.

Store settings are read per call so gateway toggles and sandbox flags apply
immediately. Confirmed payments go through the order orchestrator.
"""
import logging
from collections.abc import Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sf_common.enums import PaymentStatus
from src.sf_common.errors import (
    AppError,
    ConflictError,
    NotFoundError,
    OrderNotFoundError,
    PaymentMethodUnavailableError,
)
from src.sf_gateway.user.db_models import UserModel
from src.sf_order.application.service import OrderOrchestrator
from src.sf_order.domain.repository import OrderRepositoryProtocol
from src.sf_order.infrastructure.persistence import OrderRepository
from src.sf_payment.application.schemas import PreparePaymentResponse
from src.sf_payment.domain.models import PaymentRequest
from src.sf_payment.infrastructure.registry import GatewayRegistry, build_default_registry
from src.sf_settings.infrastructure.persistence import StoreSettingsRepository

logger = logging.getLogger(__name__)


class PaymentService:
    def __init__(
        self,
        registry: GatewayRegistry | None = None,
        orders: OrderRepositoryProtocol | None = None,
        orchestrator: OrderOrchestrator | None = None,
        store_settings: StoreSettingsRepository | None = None,
        storefront_url: str | None = None,
    ) -> None:
        self._registry = registry or build_default_registry()
        self._orders: OrderRepositoryProtocol = orders or OrderRepository()
        self._orchestrator = orchestrator or OrderOrchestrator(repo=self._orders)
        self._store_settings = store_settings or StoreSettingsRepository()
        self._storefront_url = (storefront_url or settings.STOREFRONT_URL).rstrip("/")

    async def prepare_payment(
        self, order_id: str, method: str, caller: UserModel, db: AsyncSession
    ) -> PreparePaymentResponse:
        order = await self._orders.get_by_id(order_id, db)
        if order is None or order.user_id != str(caller.id):
            raise OrderNotFoundError(order_id)
        if order.payment_status != PaymentStatus.UNPAID.value:
            raise ConflictError(f"Order {order_id} is already {order.payment_status}")
        if order.is_terminal:
            raise ConflictError(f"Order {order_id} is {order.status}")

        store = await self._store_settings.get(db)
        if not store.is_method_enabled(method) or method not in self._registry:
            raise PaymentMethodUnavailableError(method)
        gateway = self._registry.get(method)

        if order.payment_method != method:
            try:
                await self._orders.update_payment_method(order_id, method, db)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
            logger.info("Order %s payment method %s -> %s", order_id, order.payment_method, method)

        request = PaymentRequest(
            order_id=order.id,
            amount=order.total_amount,
            customer_name=order.shipping_address.full_name or caller.name,
            customer_email=order.shipping_address.email or caller.email,
            customer_phone=order.phone,
        )
        instruction = await gateway.prepare(request, store)
        return PreparePaymentResponse.from_instruction(order.id, instruction)

    def _success_url(self, order_id: str) -> str:
        return f"{self._storefront_url}/orders/{order_id}?status=success"

    def _failure_url(self, order_id: str | None) -> str:
        if not order_id:
            return f"{self._storefront_url}/orders?status=failed"
        return f"{self._storefront_url}/payment/{order_id}?status=failed"

    async def handle_callback(self, params: Mapping[str, str], db: AsyncSession) -> str:
        """Verify a gateway redirect and return the storefront URL to send the browser to."""
        tag = (params.get("gateway") or "").upper()
        if tag not in self._registry:
            logger.warning("Payment callback for unknown gateway %r", params.get("gateway"))
            return self._failure_url(None)
        if params.get("status") == "failure":
            return self._failure_url(params.get("order_id"))

        store = await self._store_settings.get(db)
        try:
            result = await self._registry.get(tag).verify(params, store)
        except AppError as e:
            logger.error("Payment callback verification failed (gateway=%s): %s", tag, e.message)
            return self._failure_url(params.get("order_id") or params.get("purchase_order_id"))
        if not result.verified or not result.order_id:
            logger.info("Payment callback not verified (gateway=%s order=%s)", tag, result.order_id)
            return self._failure_url(result.order_id)

        try:
            await self._orchestrator.confirm_payment(result.order_id, db, amount=result.amount)
        except NotFoundError:
            logger.warning("Verified %s payment for unknown order %s", tag, result.order_id)
            return self._failure_url(None)
        except AppError as e:
            logger.warning("Verified %s payment for %s not applied: %s", tag, result.order_id, e.message)
            return self._failure_url(result.order_id)
        return self._success_url(result.order_id)
