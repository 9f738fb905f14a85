"""Order aggregate: pure dataclasses, no SQLAlchemy dependency."""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from src.sf_common.enums import DeliveryType, IntentState, OrderStatus, PaymentMethod, PaymentStatus
from src.sf_order.domain.state_machine import is_terminal

PATHAO_COURIER = "Pathao"


@dataclass(frozen=True)
class ShippingAddress:
    """Snapshot taken at placement; never edited afterwards."""
    full_name: str
    phone: str
    province: str
    city: str
    street: str
    email: str | None = None
    city_id: int | None = None  # courier location ids, when the customer picked them
    zone_id: int | None = None
    area_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShippingAddress":
        known = {k: data.get(k) for k in cls.__dataclass_fields__}
        for key in ("full_name", "phone", "province", "city", "street"):
            known[key] = known[key] or ""
        return cls(**known)

    @property
    def one_line(self) -> str:
        return ", ".join(p for p in (self.street, self.city, self.province) if p)


@dataclass(frozen=True)
class OrderItem:
    id: str
    order_id: str
    product_id: str
    name: str
    quantity: int
    price: int  # unit price in paisa, frozen at purchase
    variant_id: str | None = None

    @property
    def line_total(self) -> int:
        return self.price * self.quantity


@dataclass
class Order:
    id: str
    user_id: str
    sub_total: int
    shipping_cost: int
    discount: int
    total_amount: int
    shipping_address: ShippingAddress
    phone: str
    status: str = OrderStatus.PENDING.value
    payment_status: str = PaymentStatus.UNPAID.value
    payment_method: str = PaymentMethod.COD.value
    delivery_type: str = DeliveryType.INTERNAL.value
    courier: str | None = None
    tracking_code: str | None = None
    rider_id: str | None = None
    coupon_code: str | None = None
    items: list[OrderItem] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @staticmethod
    def compute_total(sub_total: int, shipping_cost: int, discount: int) -> int:
        return sub_total + shipping_cost - discount

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)

    @property
    def is_dispatched(self) -> bool:
        return bool(self.courier or self.tracking_code or self.rider_id)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    @property
    def amount_to_collect(self) -> int:
        """Cash the courier collects on delivery (paisa)."""
        return 0 if self.is_paid else self.total_amount

    def check_invariants(self) -> None:
        """Raise ValueError when the aggregate is internally inconsistent."""
        if self.total_amount != self.compute_total(self.sub_total, self.shipping_cost, self.discount):
            raise ValueError(f"order {self.id}: total does not match its parts")
        if (self.courier is None) != (self.tracking_code is None):
            raise ValueError(f"order {self.id}: courier and tracking_code must be set together")
        if self.rider_id is not None and self.delivery_type != DeliveryType.INTERNAL.value:
            raise ValueError(f"order {self.id}: rider assignment requires INTERNAL delivery")


@dataclass
class DeliveryIntent:
    """One remote courier call, recorded before it is made."""
    id: str
    order_id: str
    action: str  # ASSIGN / CANCEL
    provider: str
    state: str = IntentState.PENDING.value
    remote_id: str | None = None
    detail: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.state in (IntentState.PENDING.value, IntentState.REMOTE_DONE.value)
