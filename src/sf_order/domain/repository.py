"""OrderRepository Protocol: interface contract for the persistence layer."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sf_order.domain.models import DeliveryIntent, Order


class OrderRepositoryProtocol(Protocol):
    async def save(self, order: Order, db: AsyncSession) -> None: ...

    async def get_by_id(
        self, order_id: str, db: AsyncSession, with_items: bool = False
    ) -> Order | None: ...

    async def find_by_tracking_codes(self, codes: list[str], db: AsyncSession) -> list[Order]: ...

    async def list_orders(
        self,
        db: AsyncSession,
        limit: int,
        cursor_id: str | None = None,
        user_id: str | None = None,
        rider_id: str | None = None,
        status: str | None = None,
    ) -> list[Order]: ...

    async def update_status(self, order_id: str, status: str, db: AsyncSession) -> bool: ...

    async def update_payment_status(
        self, order_id: str, payment_status: str, db: AsyncSession
    ) -> bool: ...

    async def update_payment_method(
        self, order_id: str, payment_method: str, db: AsyncSession
    ) -> bool: ...

    async def confirm_payment(self, order_id: str, db: AsyncSession) -> bool: ...

    async def assign_external(
        self, order_id: str, courier: str, tracking_code: str, status: str, db: AsyncSession
    ) -> bool: ...

    async def assign_rider(
        self, order_id: str, rider_id: str, status: str, db: AsyncSession
    ) -> bool: ...

    async def clear_delivery(self, order_id: str, db: AsyncSession) -> None: ...

    async def mark_delivered(self, order_id: str, db: AsyncSession) -> bool: ...

    async def refund(self, order_id: str, db: AsyncSession) -> bool: ...

    async def update_shipping_cost(
        self, order_id: str, shipping_cost: int, db: AsyncSession
    ) -> int | None: ...

    async def save_intent(self, intent: DeliveryIntent, db: AsyncSession) -> None: ...

    async def update_intent(
        self,
        intent_id: str,
        state: str,
        db: AsyncSession,
        remote_id: str | None = None,
        detail: str | None = None,
    ) -> None: ...

    async def list_open_intents(self, order_id: str, db: AsyncSession) -> list[DeliveryIntent]: ...
