"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class Role(str, Enum):
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    RIDER = "RIDER"
    USER = "USER"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    READY_TO_SHIP = "READY_TO_SHIP"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"


class PaymentStatus(str, Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, Enum):
    COD = "COD"
    ESEWA = "ESEWA"
    KHALTI = "KHALTI"


class DeliveryType(str, Enum):
    INTERNAL = "INTERNAL"
    EXTERNAL = "EXTERNAL"


class DeliveryMethod(str, Enum):
    """How an admin dispatches an order."""
    PATHAO = "PATHAO"
    RIDER = "RIDER"
    OTHER = "OTHER"


class CouponType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class MarkupType(str, Enum):
    FLAT = "FLAT"
    PERCENT = "PERCENT"


class IntentAction(str, Enum):
    ASSIGN = "ASSIGN"
    CANCEL = "CANCEL"


class IntentState(str, Enum):
    PENDING = "PENDING"
    REMOTE_DONE = "REMOTE_DONE"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
