"""In-memory stand-ins for the order repository, users, catalog and store settings."""

import uuid
from dataclasses import replace
from datetime import datetime, timezone

from src.sf_catalog.domain.models import Product
from src.sf_common.enums import Role
from src.sf_gateway.user.db_models import UserModel
from src.sf_order.domain.models import DeliveryIntent, Order, OrderItem, ShippingAddress
from src.sf_settings.domain.models import StoreSettings

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
TERMINAL = frozenset({"DELIVERED", "CANCELLED", "RETURNED"})


def make_user(role: str = Role.USER.value, name: str = "Sita Sharma") -> UserModel:
    user = UserModel()
    user.id = uuid.uuid4()
    user.email = f"{name.split()[0].lower()}@example.com"
    user.name = name
    user.phone = "9800000000"
    user.password_hash = "$2b$12$fakehash"
    user.role = role
    user.is_active = True
    return user


def make_order(order_id: str = "ord-000001", user_id: str = "u-1", **overrides: object) -> Order:
    fields: dict = {
        "id": order_id,
        "user_id": user_id,
        "sub_total": 100000,
        "shipping_cost": 15000,
        "discount": 0,
        "total_amount": 115000,
        "shipping_address": ShippingAddress(
            full_name="Sita Sharma",
            phone="9800000000",
            province="Bagmati",
            city="Kathmandu",
            street="Baneshwor 10",
            email="sita@example.com",
            city_id=52,
            zone_id=1,
        ),
        "phone": "9800000000",
        "items": [
            OrderItem(
                id="it-1", order_id=order_id, product_id="mug", name="Mug", quantity=2, price=50000
            )
        ],
    }
    fields.update(overrides)
    return Order(**fields)


class FakeOrderRepository:
    """In-memory OrderRepositoryProtocol with the same conditional-update rules as the SQL one."""

    def __init__(self, clock=lambda: NOW) -> None:  # type: ignore[no-untyped-def]
        self.orders: dict[str, Order] = {}
        self.intents: dict[str, DeliveryIntent] = {}
        self._clock = clock

    def add(self, order: Order) -> Order:
        self.orders[order.id] = order
        return order

    async def save(self, order: Order, db: object) -> None:
        self.orders[order.id] = replace(order, items=list(order.items))

    async def get_by_id(self, order_id: str, db: object, with_items: bool = False) -> Order | None:
        order = self.orders.get(order_id)
        if order is None:
            return None
        return replace(order, items=list(order.items) if with_items else [])

    async def find_by_tracking_codes(self, codes: list[str], db: object) -> list[Order]:
        return [replace(o) for o in self.orders.values() if o.tracking_code in codes]

    async def list_orders(
        self,
        db: object,
        limit: int,
        cursor_id: str | None = None,
        user_id: str | None = None,
        rider_id: str | None = None,
        status: str | None = None,
    ) -> list[Order]:
        rows = sorted(self.orders.values(), key=lambda o: o.id, reverse=True)
        rows = [
            o for o in rows
            if (user_id is None or o.user_id == user_id)
            and (rider_id is None or o.rider_id == rider_id)
            and (status is None or o.status == status)
            and (cursor_id is None or o.id < cursor_id)
        ]
        return [replace(o) for o in rows[:limit]]

    async def update_status(self, order_id: str, status: str, db: object) -> bool:
        order = self.orders[order_id]
        if order.status in TERMINAL:
            return False
        order.status = status
        return True

    async def update_payment_status(self, order_id: str, payment_status: str, db: object) -> bool:
        order = self.orders[order_id]
        if order.status == "CANCELLED" or order.payment_status == "REFUNDED":
            return False
        order.payment_status = payment_status
        return True

    async def update_payment_method(self, order_id: str, payment_method: str, db: object) -> bool:
        order = self.orders[order_id]
        if order.payment_status == "REFUNDED":
            return False
        order.payment_method = payment_method
        return True

    async def confirm_payment(self, order_id: str, db: object) -> bool:
        order = self.orders[order_id]
        if order.status == "CANCELLED" or order.payment_status == "REFUNDED":
            return False
        order.payment_status = "PAID"
        if order.status == "PENDING":
            order.status = "PROCESSING"
        return True

    async def assign_external(
        self, order_id: str, courier: str, tracking_code: str, status: str, db: object
    ) -> bool:
        order = self.orders[order_id]
        if order.status in TERMINAL:
            return False
        order.delivery_type = "EXTERNAL"
        order.courier = courier
        order.tracking_code = tracking_code
        order.rider_id = None
        order.status = status
        return True

    async def assign_rider(self, order_id: str, rider_id: str, status: str, db: object) -> bool:
        order = self.orders[order_id]
        if order.status in TERMINAL:
            return False
        order.delivery_type = "INTERNAL"
        order.rider_id = rider_id
        order.courier = None
        order.tracking_code = None
        order.status = status
        return True

    async def clear_delivery(self, order_id: str, db: object) -> None:
        order = self.orders[order_id]
        order.delivery_type = "INTERNAL"
        order.rider_id = None
        order.courier = None
        order.tracking_code = None

    async def mark_delivered(self, order_id: str, db: object) -> bool:
        order = self.orders[order_id]
        if order.status in TERMINAL:
            return False
        order.status = "DELIVERED"
        if order.payment_method == "COD" and order.payment_status == "UNPAID":
            order.payment_status = "PAID"
        return True

    async def refund(self, order_id: str, db: object) -> bool:
        order = self.orders[order_id]
        if order.payment_status != "PAID":
            return False
        order.payment_status = "REFUNDED"
        order.status = "CANCELLED"
        return True

    async def update_shipping_cost(self, order_id: str, shipping_cost: int, db: object) -> int | None:
        order = self.orders.get(order_id)
        if order is None:
            return None
        order.shipping_cost = shipping_cost
        order.total_amount = order.sub_total + shipping_cost - order.discount
        return order.total_amount

    async def save_intent(self, intent: DeliveryIntent, db: object) -> None:
        self.intents[intent.id] = replace(intent, created_at=intent.created_at or self._clock())

    async def update_intent(
        self,
        intent_id: str,
        state: str,
        db: object,
        remote_id: str | None = None,
        detail: str | None = None,
    ) -> None:
        intent = self.intents[intent_id]
        intent.state = state
        intent.remote_id = remote_id or intent.remote_id
        intent.detail = detail or intent.detail

    async def list_open_intents(self, order_id: str, db: object) -> list[DeliveryIntent]:
        return sorted(
            (replace(i) for i in self.intents.values() if i.order_id == order_id and i.is_open),
            key=lambda i: i.created_at or NOW,
        )


class FakeUsers:
    def __init__(self, *users: UserModel) -> None:
        self.by_id = {str(u.id): u for u in users}
        self.provisioned: list[UserModel] = []
        self.saved_addresses: list[tuple] = []

    async def get_by_id(self, user_id: str, db: object) -> UserModel | None:
        return self.by_id.get(user_id)

    async def get_rider(self, rider_id: str, db: object) -> UserModel | None:
        user = self.by_id.get(rider_id)
        return user if user is not None and user.role == Role.RIDER.value else None

    async def list_riders(self, db: object) -> list[UserModel]:
        return [u for u in self.by_id.values() if u.role == Role.RIDER.value]

    async def get_or_provision_customer(
        self, email: str, name: str, phone: str | None, db: object
    ) -> UserModel:
        for user in self.by_id.values():
            if user.email == email.lower():
                return user
        user = make_user(name=name)
        user.email = email.lower()
        self.by_id[str(user.id)] = user
        self.provisioned.append(user)
        return user

    async def save_default_address_if_missing(self, user_id: object, *args: object) -> bool:
        self.saved_addresses.append((user_id, *args[:-1]))
        return True


class FakeProducts:
    def __init__(self, *products: Product) -> None:
        self.products = {p.id: p for p in products}

    async def get_many(self, ids: list[str], db: object) -> dict[str, Product]:
        return {i: self.products[i] for i in ids if i in self.products}


class FakeStoreSettings:
    def __init__(self, store: StoreSettings | None = None) -> None:
        self.store = store or StoreSettings()

    async def get(self, db: object) -> StoreSettings:
        return self.store


