"""OrderOrchestrator: every entry point that moves an order.

Checkout, admin and rider actions, the payment callback and the courier
webhook all funnel through here so the state machine is enforced in one
place. Preconditions are checked before any write; each mutating operation
commits its own transaction (or rolls it back) and is wrapped in
``guarded`` so unexpected failures surface as a generic "Failed to ..."
error. Customer emails are sent after commit and never undo a change.
"""
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.sf_catalog.infrastructure.persistence import ProductRepository
from src.sf_common.actions import guarded
from src.sf_common.datetime_utils import utc_now
from src.sf_common.enums import DeliveryMethod, OrderStatus, PaymentMethod, PaymentStatus
from src.sf_common.errors import (
    ConflictError,
    CouponExhaustedError,
    CourierError,
    InvalidStatusTransitionError,
    NotAssignedRiderError,
    OrderAlreadyDispatchedError,
    OrderNotFoundError,
    PaymentMethodUnavailableError,
    PaymentStatusLockedError,
    ProductNotFoundError,
    RefundNotAllowedError,
    RiderNotFoundError,
    ValidationError,
)
from src.sf_common.id_generator import generate_id
from src.sf_common.money import paisa_to_rupees
from src.sf_coupon.application.service import CouponService
from src.sf_coupon.domain.models import AppliedCoupon
from src.sf_coupon.infrastructure.persistence import CouponRepository
from src.sf_delivery.application.shipping import ShippingCalculator
from src.sf_delivery.domain.models import ParcelLine
from src.sf_delivery.infrastructure.pathao_client import (
    DELIVERY_TYPE_NORMAL,
    ITEM_TYPE_PARCEL,
    PathaoClient,
)
from src.sf_delivery.infrastructure.provider import get_pathao_client
from src.sf_gateway.user.db_models import UserModel
from src.sf_gateway.user.service import UserService
from src.sf_notify.notifier import OrderNotifier
from src.sf_order.application.delivery_saga import DeliverySaga
from src.sf_order.application.schemas import (
    AddressIn,
    AssignDeliveryRequest,
    CancelDeliveryResponse,
    CourierWebhookPayload,
    OrderListResponse,
    OrderResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
    RiderResponse,
    TrackingStatusResponse,
    WebhookResult,
)
from src.sf_order.domain.events import status_for_event
from src.sf_order.domain.models import PATHAO_COURIER, Order, OrderItem, ShippingAddress
from src.sf_order.domain.repository import OrderRepositoryProtocol
from src.sf_order.domain.state_machine import can_transition, ensure_transition
from src.sf_order.infrastructure.persistence import OrderRepository
from src.sf_settings.domain.models import StoreSettings
from src.sf_settings.infrastructure.persistence import StoreSettingsRepository

logger = logging.getLogger(__name__)

DELIVERY_PARTNERS = ("Pathao", "Upaya", "Manual")


class OrderOrchestrator:
    def __init__(
        self,
        repo: OrderRepositoryProtocol | None = None,
        products: ProductRepository | None = None,
        coupons: CouponService | None = None,
        coupon_repo: CouponRepository | None = None,
        users: UserService | None = None,
        store_settings: StoreSettingsRepository | None = None,
        notifier: OrderNotifier | None = None,
        courier: Callable[[], Awaitable[PathaoClient]] = get_pathao_client,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()
        self._products = products or ProductRepository()
        self._coupon_repo = coupon_repo or CouponRepository()
        self._coupons = coupons or CouponService(self._coupon_repo)
        self._users = users or UserService()
        self._store_settings = store_settings or StoreSettingsRepository()
        self._notifier = notifier or OrderNotifier()
        self._courier = courier
        self._saga = DeliverySaga(self._repo, courier, clock)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load(self, order_id: str, db: AsyncSession, with_items: bool = False) -> Order:
        order = await self._repo.get_by_id(order_id, db, with_items=with_items)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def _reload(self, order_id: str, db: AsyncSession) -> OrderResponse:
        return OrderResponse.from_domain(await self._load(order_id, db, with_items=True))

    async def _shipping_calculator(self) -> ShippingCalculator:
        return ShippingCalculator(await self._courier(), self._products, self._store_settings)

    async def _notify_status(self, order_id: str, status: str, db: AsyncSession) -> None:
        """Best-effort status email; failures are logged, never raised."""
        try:
            order = await self._load(order_id, db)
            user = await self._users.get_by_id(order.user_id, db)
            store = await self._store_settings.get(db)
            to = order.shipping_address.email or (user.email if user else None)
            await self._notifier.status_changed(to, order, status, store.store_name)
        except Exception:
            logger.exception("Status email for order %s (%s) failed", order_id, status)

    async def _notify_placed(self, order: Order, to: str | None, store: StoreSettings) -> None:
        try:
            await self._notifier.order_confirmation(to, order, store.store_name)
        except Exception:
            logger.exception("Confirmation email for order %s failed", order.id)

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    async def _price_items(
        self, order_id: str, req: PlaceOrderRequest, db: AsyncSession
    ) -> list[OrderItem]:
        products = await self._products.get_many([i.product_id for i in req.items], db)
        items: list[OrderItem] = []
        for line in req.items:
            product = products.get(line.product_id)
            if product is None:
                raise ProductNotFoundError(line.product_id)
            items.append(
                OrderItem(
                    id=generate_id(),
                    order_id=order_id,
                    product_id=product.id,
                    variant_id=line.variant_id,
                    name=product.name,
                    quantity=line.quantity,
                    price=product.unit_price(line.variant_id),
                )
            )
        return items

    async def _shipping_for(
        self, req: PlaceOrderRequest, sub_total: int, store: StoreSettings, db: AsyncSession
    ) -> tuple[int, bool]:
        address = req.address
        if address.city_id is None or address.zone_id is None:
            return store.flat_shipping_for(sub_total), True
        calculator = await self._shipping_calculator()
        quote = await calculator.quote(
            address.city_id,
            address.zone_id,
            [ParcelLine(i.product_id, i.quantity) for i in req.items],
            db,
        )
        return quote.final_cost, quote.success

    @staticmethod
    def _snapshot(address: AddressIn, email: str | None) -> ShippingAddress:
        return ShippingAddress(
            full_name=address.full_name,
            phone=address.phone,
            province=address.province,
            city=address.city,
            street=address.street,
            email=email,
            city_id=address.city_id,
            zone_id=address.zone_id,
            area_id=address.area_id,
        )

    @guarded("Failed to place order")
    async def place_order(
        self, req: PlaceOrderRequest, current_user: UserModel | None, db: AsyncSession
    ) -> PlaceOrderResponse:
        store = await self._store_settings.get(db)
        if not store.is_method_enabled(req.payment_method):
            raise PaymentMethodUnavailableError(req.payment_method)
        if current_user is None and not req.email:
            raise ValidationError("Email is required for guest checkout")

        order_id = generate_id()
        items = await self._price_items(order_id, req, db)
        sub_total = sum(item.line_total for item in items)

        applied: AppliedCoupon | None = None
        if req.coupon_code:
            applied = await self._coupons.apply(req.coupon_code, sub_total, db)
        discount = applied.discount_amount if applied else 0

        shipping_cost, quoted = await self._shipping_for(req, sub_total, store, db)

        try:
            user = current_user
            if user is None:
                user = await self._users.get_or_provision_customer(
                    str(req.email), req.address.full_name, req.address.phone, db
                )
            email = str(req.email) if req.email else user.email
            order = Order(
                id=order_id,
                user_id=str(user.id),
                status=OrderStatus.PENDING.value,
                payment_status=PaymentStatus.UNPAID.value,
                payment_method=req.payment_method,
                coupon_code=applied.code if applied else None,
                sub_total=sub_total,
                shipping_cost=shipping_cost,
                discount=discount,
                total_amount=Order.compute_total(sub_total, shipping_cost, discount),
                shipping_address=self._snapshot(req.address, email),
                phone=req.address.phone,
                items=items,
            )
            order.check_invariants()
            await self._repo.save(order, db)
            if applied and not await self._coupon_repo.increment_usage(applied.code, db):
                raise CouponExhaustedError()
            await self._users.save_default_address_if_missing(
                user.id,
                req.address.full_name,
                req.address.phone,
                req.address.province,
                req.address.city,
                req.address.street,
                db,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Order %s placed by %s: total=%d (%s)", order.id, order.user_id,
            order.total_amount, order.payment_method,
        )
        await self._notify_placed(order, email, store)
        return PlaceOrderResponse(order=OrderResponse.from_domain(order), shipping_quoted=quoted)

    # ------------------------------------------------------------------
    # Status / payment axis
    # ------------------------------------------------------------------

    @guarded("Failed to update order status")
    async def update_status(self, order_id: str, status: str, db: AsyncSession) -> OrderResponse:
        order = await self._load(order_id, db)
        ensure_transition(order.status, status)
        if order.status == status:
            return await self._reload(order_id, db)
        try:
            if not await self._repo.update_status(order_id, status, db):
                raise InvalidStatusTransitionError(order.status, status)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Order %s status %s -> %s", order_id, order.status, status)
        await self._notify_status(order_id, status, db)
        return await self._reload(order_id, db)

    @guarded("Failed to update payment status")
    async def update_payment_status(
        self, order_id: str, payment_status: str, db: AsyncSession
    ) -> OrderResponse:
        if payment_status not in (PaymentStatus.UNPAID.value, PaymentStatus.PAID.value):
            raise ValidationError("Payment status can only be set to UNPAID or PAID")
        order = await self._load(order_id, db)
        if order.status == OrderStatus.CANCELLED.value:
            raise PaymentStatusLockedError(order_id, "order is cancelled")
        if order.payment_status == PaymentStatus.REFUNDED.value:
            raise PaymentStatusLockedError(order_id, "order is refunded")
        if order.payment_status == payment_status:
            return await self._reload(order_id, db)
        try:
            if not await self._repo.update_payment_status(order_id, payment_status, db):
                raise PaymentStatusLockedError(order_id, "order changed concurrently")
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Order %s payment %s -> %s", order_id, order.payment_status, payment_status)
        return await self._reload(order_id, db)

    @guarded("Failed to switch payment method")
    async def switch_payment_to_cod(self, order_id: str, db: AsyncSession) -> OrderResponse:
        order = await self._load(order_id, db)
        if order.payment_status == PaymentStatus.REFUNDED.value:
            raise PaymentStatusLockedError(order_id, "order is refunded")
        if order.payment_method != PaymentMethod.COD.value:
            try:
                if not await self._repo.update_payment_method(order_id, PaymentMethod.COD.value, db):
                    raise PaymentStatusLockedError(order_id, "order is refunded")
                await db.commit()
            except Exception:
                await db.rollback()
                raise
            logger.info("Order %s switched from %s to COD", order_id, order.payment_method)
        return await self._reload(order_id, db)

    @guarded("Failed to confirm payment")
    async def confirm_payment(
        self, order_id: str, db: AsyncSession, amount: int | None = None
    ) -> OrderResponse:
        """Gateway-verified payment: PAID, and PENDING orders move to PROCESSING."""
        order = await self._load(order_id, db)
        if order.status == OrderStatus.CANCELLED.value:
            raise PaymentStatusLockedError(order_id, "order is cancelled")
        if amount is not None and amount < order.total_amount:
            logger.warning(
                "Order %s: gateway reported %d paisa, order total is %d",
                order_id, amount, order.total_amount,
            )
            raise ConflictError("Paid amount does not cover the order total")
        if order.is_paid:
            return OrderResponse.from_domain(order)
        try:
            if not await self._repo.confirm_payment(order_id, db):
                raise PaymentStatusLockedError(order_id, "order changed concurrently")
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Order %s paid via %s", order_id, order.payment_method)
        if order.status == OrderStatus.PENDING.value:
            await self._notify_status(order_id, OrderStatus.PROCESSING.value, db)
        return await self._reload(order_id, db)

    @guarded("Failed to refund order")
    async def refund(self, order_id: str, db: AsyncSession) -> OrderResponse:
        order = await self._load(order_id, db)
        if order.payment_status != PaymentStatus.PAID.value:
            raise RefundNotAllowedError()
        try:
            if not await self._repo.refund(order_id, db):
                raise RefundNotAllowedError()
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Order %s refunded and cancelled", order_id)
        await self._notify_status(order_id, OrderStatus.CANCELLED.value, db)
        return await self._reload(order_id, db)

    @guarded("Failed to update shipping cost")
    async def update_shipping_cost(
        self, order_id: str, shipping_cost: int, db: AsyncSession
    ) -> OrderResponse:
        if shipping_cost < 0:
            raise ValidationError("Shipping cost cannot be negative")
        try:
            total = await self._repo.update_shipping_cost(order_id, shipping_cost, db)
            if total is None:
                raise OrderNotFoundError(order_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Order %s shipping cost set to %d (total %d)", order_id, shipping_cost, total)
        return await self._reload(order_id, db)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def _pathao_payload(
        self, order: Order, req: AssignDeliveryRequest, db: AsyncSession
    ) -> dict:
        address = order.shipping_address
        city_id = req.recipient_city or address.city_id
        zone_id = req.recipient_zone or address.zone_id
        if city_id is None or zone_id is None:
            raise ValidationError("Pathao city and zone are required")
        if req.item_weight is not None:
            weight = Decimal(str(req.item_weight))
        else:
            calculator = await self._shipping_calculator()
            weight = await calculator.parcel_weight(
                [ParcelLine(i.product_id, i.quantity) for i in order.items], db
            )
        payload = {
            "merchant_order_id": order.id,
            "recipient_name": req.recipient_name or address.full_name,
            "recipient_phone": req.recipient_phone or order.phone,
            "recipient_address": req.recipient_address or address.one_line,
            "recipient_city": city_id,
            "recipient_zone": zone_id,
            "delivery_type": DELIVERY_TYPE_NORMAL,
            "item_type": ITEM_TYPE_PARCEL,
            "item_quantity": 1,
            "item_weight": float(weight),
            "amount_to_collect": paisa_to_rupees(order.amount_to_collect),
            "item_description": req.item_description or f"Order #{order.id[-6:]}",
        }
        area_id = req.recipient_area or address.area_id
        if area_id is not None:
            payload["recipient_area"] = area_id
        return payload

    @guarded("Failed to assign delivery")
    async def assign_delivery(
        self, order_id: str, req: AssignDeliveryRequest, db: AsyncSession
    ) -> OrderResponse:
        target = OrderStatus.READY_TO_SHIP.value
        order = await self._load(order_id, db, with_items=True)
        if order.is_dispatched:
            raise OrderAlreadyDispatchedError(order_id)
        ensure_transition(order.status, target)

        if req.method == DeliveryMethod.PATHAO.value:
            payload = await self._pathao_payload(order, req, db)
            await self._saga.assign(order, payload, db)
        else:
            try:
                if req.method == DeliveryMethod.RIDER.value:
                    rider = await self._users.get_rider(str(req.rider_id), db)
                    if rider is None:
                        raise RiderNotFoundError(str(req.rider_id))
                    assigned = await self._repo.assign_rider(order_id, str(rider.id), target, db)
                else:
                    assigned = await self._repo.assign_external(
                        order_id, str(req.courier_name), str(req.tracking_id), target, db
                    )
                if not assigned:
                    raise InvalidStatusTransitionError(order.status, target)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.info("Order %s dispatched via %s", order_id, req.method)
        if order.status != target:
            await self._notify_status(order_id, target, db)
        return await self._reload(order_id, db)

    @guarded("Failed to cancel delivery assignment")
    async def cancel_delivery(self, order_id: str, db: AsyncSession) -> CancelDeliveryResponse:
        order = await self._load(order_id, db)
        courier_cancelled: bool | None = None
        if order.courier == PATHAO_COURIER and order.tracking_code:
            courier_cancelled = await self._saga.cancel(order_id, order.tracking_code, db)
        else:
            try:
                await self._repo.clear_delivery(order_id, db)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info("Order %s delivery assignment cleared", order_id)
        return CancelDeliveryResponse(
            order=await self._reload(order_id, db), courier_cancelled=courier_cancelled
        )

    @guarded("Failed to mark order delivered")
    async def mark_delivered(
        self, order_id: str, rider: UserModel, db: AsyncSession
    ) -> OrderResponse:
        order = await self._load(order_id, db)
        if order.rider_id != str(rider.id):
            raise NotAssignedRiderError()
        ensure_transition(order.status, OrderStatus.DELIVERED.value)
        if order.status == OrderStatus.DELIVERED.value:
            return await self._reload(order_id, db)
        try:
            if not await self._repo.mark_delivered(order_id, db):
                raise InvalidStatusTransitionError(order.status, OrderStatus.DELIVERED.value)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Order %s delivered by rider %s", order_id, rider.id)
        await self._notify_status(order_id, OrderStatus.DELIVERED.value, db)
        return await self._reload(order_id, db)

    @guarded("Failed to process courier webhook")
    async def ingest_courier_webhook(
        self, payload: CourierWebhookPayload, db: AsyncSession
    ) -> WebhookResult:
        result = WebhookResult(event=payload.event)
        target = status_for_event(payload.event)
        if target is None:
            logger.info("Ignoring courier event %r (status=%r)", payload.event, payload.status)
            return result

        codes = payload.tracking_codes
        orders = {o.tracking_code: o for o in await self._repo.find_by_tracking_codes(codes, db)}
        changed: list[str] = []
        try:
            for code in codes:
                order = orders.get(code)
                if order is None:
                    logger.warning("Webhook received for unknown tracking ID: %s", code)
                    result.unknown.append(code)
                    continue
                if order.status == target or not can_transition(order.status, target):
                    result.skipped.append(order.id)
                    continue
                if target == OrderStatus.DELIVERED.value:
                    written = await self._repo.mark_delivered(order.id, db)
                else:
                    written = await self._repo.update_status(order.id, target, db)
                if not written:
                    # Reached a terminal status after it was read.
                    result.skipped.append(order.id)
                    continue
                order.status = target
                changed.append(order.id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        result.updated = changed
        for changed_id in changed:
            await self._notify_status(changed_id, target, db)
        return result

    @guarded("Failed to reconcile delivery")
    async def reconcile_order(self, order_id: str, db: AsyncSession) -> int:
        return await self._saga.reconcile(order_id, db)

    async def refresh_tracking(self, order_id: str, db: AsyncSession) -> TrackingStatusResponse:
        order = await self._load(order_id, db)
        if order.courier != PATHAO_COURIER or not order.tracking_code:
            raise ConflictError("Order has no Pathao consignment to track")
        client = await self._courier()
        info = await client.get_order_info(order.tracking_code)
        if not info or not info.get("order_status"):
            raise CourierError("Could not fetch info")
        return TrackingStatusResponse(
            order_id=order.id,
            courier=order.courier,
            tracking_code=order.tracking_code,
            status=str(info["order_status"]),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _page(
        self,
        db: AsyncSession,
        limit: int,
        cursor: str | None,
        user_id: str | None = None,
        rider_id: str | None = None,
        status: str | None = None,
    ) -> OrderListResponse:
        # Fetch limit+1 to detect has_more without COUNT(*)
        orders = await self._repo.list_orders(
            db, limit + 1, cursor_id=cursor, user_id=user_id, rider_id=rider_id, status=status
        )
        has_more = len(orders) > limit
        page = orders[:limit]
        return OrderListResponse(
            items=[OrderResponse.from_domain(o) for o in page],
            next_cursor=page[-1].id if has_more and page else None,
            has_more=has_more,
        )

    async def list_customer_orders(
        self, user: UserModel, limit: int, cursor: str | None, db: AsyncSession
    ) -> OrderListResponse:
        return await self._page(db, limit, cursor, user_id=str(user.id))

    async def list_rider_orders(
        self, rider: UserModel, limit: int, cursor: str | None, db: AsyncSession
    ) -> OrderListResponse:
        return await self._page(db, limit, cursor, rider_id=str(rider.id))

    async def list_all_orders(
        self, status: str | None, limit: int, cursor: str | None, db: AsyncSession
    ) -> OrderListResponse:
        return await self._page(db, limit, cursor, status=status)

    async def get_customer_order(
        self, order_id: str, user: UserModel, db: AsyncSession
    ) -> OrderResponse:
        order = await self._load(order_id, db, with_items=True)
        if order.user_id != str(user.id):
            raise OrderNotFoundError(order_id)
        return OrderResponse.from_domain(order)

    async def get_admin_order(self, order_id: str, db: AsyncSession) -> OrderResponse:
        await self._load(order_id, db)
        settled = await self.reconcile_order(order_id, db)
        if settled:
            logger.info("Reconciled %d delivery intent(s) for order %s", settled, order_id)
        return await self._reload(order_id, db)

    async def list_riders(self, db: AsyncSession) -> list[RiderResponse]:
        riders = await self._users.list_riders(db)
        return [RiderResponse(id=str(r.id), name=r.name) for r in riders]

    @staticmethod
    def delivery_partners() -> list[str]:
        return list(DELIVERY_PARTNERS)
