"""OrderRepository: raw SQL persistence for orders, items and delivery intents.

Every status/payment/delivery mutation is a single UPDATE so a write never
depends on a stale read of the same row. Totals are always recomputed in SQL
from their parts. Status writes carry a terminal-status guard and report
whether a row changed.
"""
import json
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sf_order.domain.models import DeliveryIntent, Order, OrderItem, ShippingAddress

# ---------------------------------------------------------------------------
# SQL statements: orders
# ---------------------------------------------------------------------------

_SELECT_COLUMNS = """
    id, user_id::text AS user_id, status, payment_status, payment_method,
    delivery_type, courier, tracking_code, rider_id::text AS rider_id, coupon_code,
    sub_total, shipping_cost, discount, total_amount, shipping_address, phone,
    created_at, updated_at
"""

# Status writes are no-ops once an order reaches one of these.
_TERMINAL = "('DELIVERED', 'CANCELLED', 'RETURNED')"

_INSERT_ORDER_SQL = text("""
    INSERT INTO orders (id, user_id, status, payment_status, payment_method,
        delivery_type, coupon_code, sub_total, shipping_cost, discount,
        total_amount, shipping_address, phone)
    VALUES (:id, CAST(:user_id AS UUID), :status, :payment_status, :payment_method,
        :delivery_type, :coupon_code, :sub_total, :shipping_cost, :discount,
        :sub_total + :shipping_cost - :discount, CAST(:shipping_address AS JSONB), :phone)
""")

_INSERT_ITEM_SQL = text("""
    INSERT INTO order_items (id, order_id, product_id, variant_id, name, quantity, price)
    VALUES (:id, :order_id, :product_id, :variant_id, :name, :quantity, :price)
""")

_GET_ORDER_BY_ID_SQL = text(f"SELECT {_SELECT_COLUMNS} FROM orders WHERE id = :id")

_GET_ITEMS_SQL = text("""
    SELECT id, order_id, product_id, variant_id, name, quantity, price
    FROM order_items WHERE order_id = :order_id ORDER BY id
""")

_FIND_BY_TRACKING_SQL = text(f"""
    SELECT {_SELECT_COLUMNS} FROM orders WHERE tracking_code IN :codes
""").bindparams(bindparam("codes", expanding=True))

_LIST_ORDERS_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders
    WHERE (CAST(:user_id AS TEXT) IS NULL OR user_id::text = :user_id)
      AND (CAST(:rider_id AS TEXT) IS NULL OR rider_id::text = :rider_id)
      AND (CAST(:status AS TEXT) IS NULL OR status = :status)
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")

_UPDATE_STATUS_SQL = text(f"""
    UPDATE orders SET status = :status, updated_at = NOW()
    WHERE id = :id AND status NOT IN {_TERMINAL}
""")

_UPDATE_PAYMENT_STATUS_SQL = text("""
    UPDATE orders SET payment_status = :payment_status, updated_at = NOW()
    WHERE id = :id AND status <> 'CANCELLED' AND payment_status <> 'REFUNDED'
""")

_UPDATE_PAYMENT_METHOD_SQL = text("""
    UPDATE orders SET payment_method = :payment_method, updated_at = NOW()
    WHERE id = :id AND payment_status <> 'REFUNDED'
""")

_CONFIRM_PAYMENT_SQL = text("""
    UPDATE orders
    SET payment_status = 'PAID',
        status = CASE WHEN status = 'PENDING' THEN 'PROCESSING' ELSE status END,
        updated_at = NOW()
    WHERE id = :id AND status <> 'CANCELLED' AND payment_status <> 'REFUNDED'
""")

_ASSIGN_EXTERNAL_SQL = text(f"""
    UPDATE orders
    SET delivery_type = 'EXTERNAL', courier = :courier, tracking_code = :tracking_code,
        rider_id = NULL, status = :status, updated_at = NOW()
    WHERE id = :id AND status NOT IN {_TERMINAL}
""")

_ASSIGN_RIDER_SQL = text(f"""
    UPDATE orders
    SET delivery_type = 'INTERNAL', rider_id = CAST(:rider_id AS UUID),
        courier = NULL, tracking_code = NULL, status = :status, updated_at = NOW()
    WHERE id = :id AND status NOT IN {_TERMINAL}
""")

_CLEAR_DELIVERY_SQL = text("""
    UPDATE orders
    SET delivery_type = 'INTERNAL', rider_id = NULL, courier = NULL,
        tracking_code = NULL, updated_at = NOW()
    WHERE id = :id
""")

# Delivered COD orders are paid on the doorstep.
_MARK_DELIVERED_SQL = text(f"""
    UPDATE orders
    SET status = 'DELIVERED',
        payment_status = CASE
            WHEN payment_method = 'COD' AND payment_status = 'UNPAID' THEN 'PAID'
            ELSE payment_status
        END,
        updated_at = NOW()
    WHERE id = :id AND status NOT IN {_TERMINAL}
""")

_REFUND_SQL = text("""
    UPDATE orders
    SET payment_status = 'REFUNDED', status = 'CANCELLED', updated_at = NOW()
    WHERE id = :id AND payment_status = 'PAID'
""")

_UPDATE_SHIPPING_COST_SQL = text("""
    UPDATE orders
    SET shipping_cost = :shipping_cost,
        total_amount = sub_total + :shipping_cost - discount,
        updated_at = NOW()
    WHERE id = :id
    RETURNING total_amount
""")

# ---------------------------------------------------------------------------
# SQL statements: delivery intents
# ---------------------------------------------------------------------------

_INTENT_COLUMNS = """
    id, order_id, action, provider, state, remote_id, detail, created_at, updated_at
"""

_INSERT_INTENT_SQL = text("""
    INSERT INTO delivery_intents (id, order_id, action, provider, state, remote_id, detail)
    VALUES (:id, :order_id, :action, :provider, :state, :remote_id, :detail)
""")

_UPDATE_INTENT_SQL = text("""
    UPDATE delivery_intents
    SET state = :state, remote_id = COALESCE(:remote_id, remote_id),
        detail = COALESCE(:detail, detail), updated_at = NOW()
    WHERE id = :id
""")

_LIST_OPEN_INTENTS_SQL = text(f"""
    SELECT {_INTENT_COLUMNS}
    FROM delivery_intents
    WHERE order_id = :order_id AND state IN ('PENDING', 'REMOTE_DONE')
    ORDER BY created_at
""")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_order(row: Any) -> Order:
    address = row.shipping_address
    if isinstance(address, str):
        address = json.loads(address)
    return Order(
        id=row.id,
        user_id=row.user_id,
        status=row.status,
        payment_status=row.payment_status,
        payment_method=row.payment_method,
        delivery_type=row.delivery_type,
        courier=row.courier,
        tracking_code=row.tracking_code,
        rider_id=row.rider_id,
        coupon_code=row.coupon_code,
        sub_total=row.sub_total,
        shipping_cost=row.shipping_cost,
        discount=row.discount,
        total_amount=row.total_amount,
        shipping_address=ShippingAddress.from_dict(address or {}),
        phone=row.phone,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_item(row: Any) -> OrderItem:
    return OrderItem(
        id=row.id,
        order_id=row.order_id,
        product_id=row.product_id,
        variant_id=row.variant_id,
        name=row.name,
        quantity=row.quantity,
        price=row.price,
    )


def _row_to_intent(row: Any) -> DeliveryIntent:
    return DeliveryIntent(
        id=row.id,
        order_id=row.order_id,
        action=row.action,
        provider=row.provider,
        state=row.state,
        remote_id=row.remote_id,
        detail=row.detail,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrderRepository:
    """Concrete implementation of OrderRepositoryProtocol using raw SQL."""

    async def save(self, order: Order, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_ORDER_SQL,
            {
                "id": order.id,
                "user_id": order.user_id,
                "status": order.status,
                "payment_status": order.payment_status,
                "payment_method": order.payment_method,
                "delivery_type": order.delivery_type,
                "coupon_code": order.coupon_code,
                "sub_total": order.sub_total,
                "shipping_cost": order.shipping_cost,
                "discount": order.discount,
                "shipping_address": json.dumps(order.shipping_address.to_dict()),
                "phone": order.phone,
            },
        )
        for item in order.items:
            await db.execute(
                _INSERT_ITEM_SQL,
                {
                    "id": item.id,
                    "order_id": item.order_id,
                    "product_id": item.product_id,
                    "variant_id": item.variant_id,
                    "name": item.name,
                    "quantity": item.quantity,
                    "price": item.price,
                },
            )

    async def get_by_id(
        self, order_id: str, db: AsyncSession, with_items: bool = False
    ) -> Order | None:
        row = (await db.execute(_GET_ORDER_BY_ID_SQL, {"id": order_id})).fetchone()
        if row is None:
            return None
        order = _row_to_order(row)
        if with_items:
            result = await db.execute(_GET_ITEMS_SQL, {"order_id": order_id})
            order.items = [_row_to_item(r) for r in result.fetchall()]
        return order

    async def find_by_tracking_codes(self, codes: list[str], db: AsyncSession) -> list[Order]:
        if not codes:
            return []
        result = await db.execute(_FIND_BY_TRACKING_SQL, {"codes": codes})
        return [_row_to_order(row) for row in result.fetchall()]

    async def list_orders(
        self,
        db: AsyncSession,
        limit: int,
        cursor_id: str | None = None,
        user_id: str | None = None,
        rider_id: str | None = None,
        status: str | None = None,
    ) -> list[Order]:
        result = await db.execute(
            _LIST_ORDERS_SQL,
            {
                "user_id": user_id,
                "rider_id": rider_id,
                "status": status,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_order(row) for row in result.fetchall()]

    async def update_status(self, order_id: str, status: str, db: AsyncSession) -> bool:
        result = await db.execute(_UPDATE_STATUS_SQL, {"id": order_id, "status": status})
        return bool(result.rowcount)

    async def update_payment_status(
        self, order_id: str, payment_status: str, db: AsyncSession
    ) -> bool:
        result = await db.execute(
            _UPDATE_PAYMENT_STATUS_SQL, {"id": order_id, "payment_status": payment_status}
        )
        return bool(result.rowcount)

    async def update_payment_method(
        self, order_id: str, payment_method: str, db: AsyncSession
    ) -> bool:
        result = await db.execute(
            _UPDATE_PAYMENT_METHOD_SQL, {"id": order_id, "payment_method": payment_method}
        )
        return bool(result.rowcount)

    async def confirm_payment(self, order_id: str, db: AsyncSession) -> bool:
        result = await db.execute(_CONFIRM_PAYMENT_SQL, {"id": order_id})
        return bool(result.rowcount)

    async def assign_external(
        self, order_id: str, courier: str, tracking_code: str, status: str, db: AsyncSession
    ) -> bool:
        result = await db.execute(
            _ASSIGN_EXTERNAL_SQL,
            {"id": order_id, "courier": courier, "tracking_code": tracking_code, "status": status},
        )
        return bool(result.rowcount)

    async def assign_rider(
        self, order_id: str, rider_id: str, status: str, db: AsyncSession
    ) -> bool:
        result = await db.execute(
            _ASSIGN_RIDER_SQL, {"id": order_id, "rider_id": rider_id, "status": status}
        )
        return bool(result.rowcount)

    async def clear_delivery(self, order_id: str, db: AsyncSession) -> None:
        await db.execute(_CLEAR_DELIVERY_SQL, {"id": order_id})

    async def mark_delivered(self, order_id: str, db: AsyncSession) -> bool:
        result = await db.execute(_MARK_DELIVERED_SQL, {"id": order_id})
        return bool(result.rowcount)

    async def refund(self, order_id: str, db: AsyncSession) -> bool:
        result = await db.execute(_REFUND_SQL, {"id": order_id})
        return bool(result.rowcount)

    async def update_shipping_cost(
        self, order_id: str, shipping_cost: int, db: AsyncSession
    ) -> int | None:
        """Returns the recomputed total, or None when the order does not exist."""
        result = await db.execute(
            _UPDATE_SHIPPING_COST_SQL, {"id": order_id, "shipping_cost": shipping_cost}
        )
        row = result.fetchone()
        return row.total_amount if row else None

    # --- delivery intents ---

    async def save_intent(self, intent: DeliveryIntent, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_INTENT_SQL,
            {
                "id": intent.id,
                "order_id": intent.order_id,
                "action": intent.action,
                "provider": intent.provider,
                "state": intent.state,
                "remote_id": intent.remote_id,
                "detail": intent.detail,
            },
        )

    async def update_intent(
        self,
        intent_id: str,
        state: str,
        db: AsyncSession,
        remote_id: str | None = None,
        detail: str | None = None,
    ) -> None:
        await db.execute(
            _UPDATE_INTENT_SQL,
            {"id": intent_id, "state": state, "remote_id": remote_id, "detail": detail},
        )

    async def list_open_intents(self, order_id: str, db: AsyncSession) -> list[DeliveryIntent]:
        result = await db.execute(_LIST_OPEN_INTENTS_SQL, {"order_id": order_id})
        return [_row_to_intent(row) for row in result.fetchall()]
