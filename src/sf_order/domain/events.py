"""Courier webhook event names mapped onto order statuses."""
from src.sf_common.enums import OrderStatus

COURIER_EVENT_STATUS: dict[str, str] = {
    "delivery_completed": OrderStatus.DELIVERED.value,
    "pickup_completed": OrderStatus.SHIPPED.value,
    "sent_for_delivery": OrderStatus.SHIPPED.value,
    "order_dispatched": OrderStatus.SHIPPED.value,
    "order_arrived": OrderStatus.SHIPPED.value,
}


def status_for_event(event: str | None) -> str | None:
    if not event:
        return None
    return COURIER_EVENT_STATUS.get(event)
