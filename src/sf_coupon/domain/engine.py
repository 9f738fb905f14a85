"""Coupon/discount engine: stateless checks and discount math.

Checks run in a fixed order and the first failure wins:
  exists → active → started → not expired → usage left → minimum order.
"""
from datetime import datetime

from src.sf_common.enums import CouponType
from src.sf_common.errors import CouponRejectedError
from src.sf_common.money import paisa_to_display
from src.sf_coupon.domain.models import AppliedCoupon, Coupon


def normalize_code(code: str) -> str:
    return code.strip().upper()


def compute_discount(coupon: Coupon, cart_total: int) -> int:
    """Discount in paisa; never above cart_total, never above max_discount (percentage)."""
    if coupon.type == CouponType.PERCENTAGE.value:
        discount = cart_total * coupon.value // 100
        if coupon.max_discount is not None and discount > coupon.max_discount:
            discount = coupon.max_discount
    else:
        discount = coupon.value
    return max(0, min(discount, cart_total))


def evaluate_coupon(coupon: Coupon | None, cart_total: int, now: datetime) -> AppliedCoupon:
    """Validate ``coupon`` for a cart and return the discount, or raise CouponRejectedError."""
    if coupon is None:
        raise CouponRejectedError("Invalid promo code")
    if not coupon.is_active:
        raise CouponRejectedError("This promo code is no longer active")
    if coupon.start_date is not None and coupon.start_date > now:
        raise CouponRejectedError("This promo code is not active yet")
    if coupon.expires_at is not None and coupon.expires_at < now:
        raise CouponRejectedError("This promo code has expired")
    if coupon.is_exhausted:
        raise CouponRejectedError("This promo code has reached its maximum usage limit")
    if coupon.min_order is not None and cart_total < coupon.min_order:
        shortfall = paisa_to_display(coupon.min_order - cart_total)
        raise CouponRejectedError(f"Add {shortfall} more to use this code")

    return AppliedCoupon(code=coupon.code, discount_amount=compute_discount(coupon, cart_total))
