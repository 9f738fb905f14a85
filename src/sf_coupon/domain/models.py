"""Coupon domain model: pure dataclass, no SQLAlchemy dependency."""
from dataclasses import dataclass
from datetime import datetime


@dataclass
class Coupon:
    id: str
    code: str  # stored upper-case
    type: str  # PERCENTAGE / FIXED
    value: int  # whole percent for PERCENTAGE, paisa for FIXED
    max_discount: int | None = None  # paisa, PERCENTAGE only
    min_order: int | None = None  # paisa
    start_date: datetime | None = None
    expires_at: datetime | None = None
    usage_limit: int | None = None
    used_count: int = 0
    is_active: bool = True

    @property
    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.used_count >= self.usage_limit


@dataclass(frozen=True)
class AppliedCoupon:
    code: str
    discount_amount: int  # paisa
