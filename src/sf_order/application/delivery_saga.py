"""DeliverySaga: courier calls bracketed by persisted delivery intents.

A remote courier call cannot join the local DB transaction, so each one is
recorded first and settled afterwards:

    PENDING      intent committed, remote call about to be made
    REMOTE_DONE  remote call finished; local update not yet committed
    COMPLETED    local order update committed together with this state
    FAILED       remote call rejected, or outcome never learned

``reconcile`` replays REMOTE_DONE intents whose local half was lost (the
process died or the commit failed) and retires PENDING intents that have
been open too long to still be in flight.
"""
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from src.sf_common.enums import IntentAction, IntentState, OrderStatus
from src.sf_common.errors import CourierError, InvalidStatusTransitionError
from src.sf_common.id_generator import generate_id
from src.sf_delivery.infrastructure.pathao_client import PathaoClient
from src.sf_order.domain.models import PATHAO_COURIER, DeliveryIntent, Order
from src.sf_order.domain.repository import OrderRepositoryProtocol
from src.sf_order.domain.state_machine import can_transition

logger = logging.getLogger(__name__)

INTENT_STALE_AFTER = timedelta(minutes=5)


class DeliverySaga:
    def __init__(
        self,
        repo: OrderRepositoryProtocol,
        courier: Callable[[], Awaitable[PathaoClient]],
        clock: Callable[[], datetime],
    ) -> None:
        self._repo = repo
        self._courier = courier
        self._clock = clock

    async def _open_intent(self, order_id: str, action: str, db: AsyncSession,
                           remote_id: str | None = None) -> DeliveryIntent:
        intent = DeliveryIntent(
            id=generate_id(),
            order_id=order_id,
            action=action,
            provider=PATHAO_COURIER,
            remote_id=remote_id,
        )
        try:
            await self._repo.save_intent(intent, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return intent

    async def _settle(self, intent_id: str, state: str, db: AsyncSession,
                      remote_id: str | None = None, detail: str | None = None) -> None:
        try:
            await self._repo.update_intent(intent_id, state, db, remote_id=remote_id, detail=detail)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    async def assign(self, order: Order, payload: dict, db: AsyncSession) -> str:
        """Create the courier shipment and attach it to ``order``; returns the consignment id."""
        client = await self._courier()
        intent = await self._open_intent(order.id, IntentAction.ASSIGN.value, db)

        result = await client.create_order(payload)
        if not result.success or not result.consignment_id:
            await self._settle(intent.id, IntentState.FAILED.value, db, detail=result.error)
            raise CourierError(result.error or "Failed to create order with Pathao")

        consignment_id = result.consignment_id
        await self._settle(intent.id, IntentState.REMOTE_DONE.value, db, remote_id=consignment_id)
        try:
            assigned = await self._repo.assign_external(
                order.id, PATHAO_COURIER, consignment_id, OrderStatus.READY_TO_SHIP.value, db
            )
            if assigned:
                await self._repo.update_intent(intent.id, IntentState.COMPLETED.value, db)
            else:
                await self._repo.update_intent(
                    intent.id, IntentState.FAILED.value, db, detail="superseded by a local change"
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        if not assigned:
            logger.warning(
                "Order %s closed before consignment %s was attached; cancel it manually",
                order.id, consignment_id,
            )
            raise InvalidStatusTransitionError(order.status, OrderStatus.READY_TO_SHIP.value)
        logger.info("Order %s handed to Pathao as consignment %s", order.id, consignment_id)
        return consignment_id

    async def cancel(self, order_id: str, consignment_id: str, db: AsyncSession) -> bool:
        """Cancel the courier shipment (fail-open) and clear the local assignment.

        Returns whether the courier confirmed the cancellation. The local
        assignment is cleared either way so the order can be reassigned.
        """
        client = await self._courier()
        intent = await self._open_intent(
            order_id, IntentAction.CANCEL.value, db, remote_id=consignment_id
        )

        cancelled = await client.cancel_order(consignment_id)
        if not cancelled:
            logger.warning(
                "Pathao cancellation failed for %s; clearing the local assignment anyway",
                consignment_id,
            )
        await self._settle(
            intent.id,
            IntentState.REMOTE_DONE.value,
            db,
            detail="cancelled" if cancelled else "courier did not confirm cancellation",
        )
        try:
            await self._repo.clear_delivery(order_id, db)
            await self._repo.update_intent(intent.id, IntentState.COMPLETED.value, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return cancelled

    async def reconcile(self, order_id: str, db: AsyncSession) -> int:
        """Settle open intents for one order; returns how many were settled."""
        intents = await self._repo.list_open_intents(order_id, db)
        if not intents:
            return 0
        settled = 0
        now = self._clock()
        try:
            for intent in intents:
                order = await self._repo.get_by_id(order_id, db)
                if order is None:
                    break
                if intent.state == IntentState.REMOTE_DONE.value:
                    await self._replay(intent, order, db)
                    settled += 1
                elif intent.created_at is None or now - intent.created_at > INTENT_STALE_AFTER:
                    logger.warning(
                        "Delivery intent %s (%s) for order %s never reported back; marking FAILED",
                        intent.id, intent.action, order_id,
                    )
                    await self._repo.update_intent(
                        intent.id,
                        IntentState.FAILED.value,
                        db,
                        detail="outcome unknown; check the courier dashboard",
                    )
                    settled += 1
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return settled

    async def _replay(self, intent: DeliveryIntent, order: Order, db: AsyncSession) -> None:
        if intent.action == IntentAction.ASSIGN.value:
            target = OrderStatus.READY_TO_SHIP.value
            if (
                intent.remote_id
                and not order.is_dispatched
                and can_transition(order.status, target)
            ) and await self._repo.assign_external(
                order.id, PATHAO_COURIER, intent.remote_id, target, db
            ):
                await self._repo.update_intent(intent.id, IntentState.COMPLETED.value, db)
                logger.info("Replayed Pathao assignment %s onto order %s", intent.remote_id, order.id)
                return
            logger.warning(
                "Pathao consignment %s for order %s was superseded locally; cancel it manually",
                intent.remote_id, order.id,
            )
            await self._repo.update_intent(
                intent.id, IntentState.FAILED.value, db, detail="superseded by a local change"
            )
            return

        # CANCEL: finish the local clear if the order still points at that consignment.
        if order.tracking_code is not None and order.tracking_code == intent.remote_id:
            await self._repo.clear_delivery(order.id, db)
            logger.info("Replayed delivery cancellation for order %s", order.id)
        await self._repo.update_intent(intent.id, IntentState.COMPLETED.value, db)
