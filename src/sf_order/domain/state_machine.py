"""Order status state machine.

    PENDING -> PROCESSING -> READY_TO_SHIP -> SHIPPED -> DELIVERED
       |           |              |              |
       +-----------+--------------+--------------+---> CANCELLED / RETURNED

Moves go forward along the chain (skipping is allowed) or take a side exit
from any non-terminal status. Writing the current status again is a no-op.
DELIVERED, CANCELLED and RETURNED are terminal.
"""
from src.sf_common.enums import OrderStatus
from src.sf_common.errors import InvalidStatusTransitionError

STATUS_CHAIN: tuple[str, ...] = (
    OrderStatus.PENDING.value,
    OrderStatus.PROCESSING.value,
    OrderStatus.READY_TO_SHIP.value,
    OrderStatus.SHIPPED.value,
    OrderStatus.DELIVERED.value,
)
SIDE_EXITS = frozenset({OrderStatus.CANCELLED.value, OrderStatus.RETURNED.value})
TERMINAL_STATUSES = frozenset({
    OrderStatus.DELIVERED.value,
    OrderStatus.CANCELLED.value,
    OrderStatus.RETURNED.value,
})


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: str, target: str) -> bool:
    if current == target:
        return True
    if is_terminal(current):
        return False
    if target in SIDE_EXITS:
        return True
    if current in STATUS_CHAIN and target in STATUS_CHAIN:
        return STATUS_CHAIN.index(target) > STATUS_CHAIN.index(current)
    return False


def ensure_transition(current: str, target: str) -> None:
    if not can_transition(current, target):
        raise InvalidStatusTransitionError(current, target)
