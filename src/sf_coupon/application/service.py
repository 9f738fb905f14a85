"""CouponService: public verification plus back-office coupon admin.

verify() is read-only. upsert()/delete() commit their own transaction.
"""
import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from src.sf_common.actions import guarded
from src.sf_common.datetime_utils import utc_now
from src.sf_common.errors import CouponCodeExistsError, CouponNotFoundError
from src.sf_common.id_generator import generate_id
from src.sf_coupon.application.schemas import (
    CouponResponse,
    CouponUpsertRequest,
    VerifyCouponResponse,
)
from src.sf_coupon.domain.engine import evaluate_coupon, normalize_code
from src.sf_coupon.domain.models import AppliedCoupon, Coupon
from src.sf_coupon.infrastructure.persistence import CouponRepository

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY = timedelta(days=365 * 100)


def _to_response(coupon: Coupon) -> CouponResponse:
    return CouponResponse(
        id=coupon.id,
        code=coupon.code,
        type=coupon.type,
        value=coupon.value,
        max_discount=coupon.max_discount,
        min_order=coupon.min_order,
        start_date=coupon.start_date,
        expires_at=coupon.expires_at,
        usage_limit=coupon.usage_limit,
        used_count=coupon.used_count,
        is_active=coupon.is_active,
    )


class CouponService:
    def __init__(self, repo: CouponRepository | None = None) -> None:
        self._repo = repo or CouponRepository()

    async def apply(self, code: str, cart_total: int, db: AsyncSession) -> AppliedCoupon:
        """Evaluate ``code`` against a cart; raises CouponRejectedError."""
        coupon = await self._repo.get_by_code(normalize_code(code), db)
        return evaluate_coupon(coupon, cart_total, utc_now())

    async def verify(self, code: str, cart_total: int, db: AsyncSession) -> VerifyCouponResponse:
        applied = await self.apply(code, cart_total, db)
        return VerifyCouponResponse(code=applied.code, discount_amount=applied.discount_amount)

    @guarded("Failed to save coupon")
    async def upsert(
        self, req: CouponUpsertRequest, db: AsyncSession, coupon_id: str | None = None
    ) -> CouponResponse:
        try:
            clash = await self._repo.get_by_code(req.code, db)
            if clash is not None and clash.id != coupon_id:
                raise CouponCodeExistsError()

            used_count = 0
            if coupon_id is not None:
                existing = await self._repo.get_by_id(coupon_id, db)
                if existing is None:
                    raise CouponNotFoundError(coupon_id)
                used_count = existing.used_count

            coupon = Coupon(
                id=coupon_id or generate_id(),
                code=req.code,
                type=req.type,
                value=req.value,
                max_discount=req.max_discount if req.type == "PERCENTAGE" else None,
                min_order=req.min_order,
                start_date=req.start_date,
                expires_at=req.expires_at or utc_now() + DEFAULT_EXPIRY,
                usage_limit=req.usage_limit,
                used_count=used_count,
                is_active=req.is_active,
            )
            if coupon_id is None:
                await self._repo.create(coupon, db)
            else:
                await self._repo.update(coupon, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Coupon %s saved (id=%s)", coupon.code, coupon.id)
        return _to_response(coupon)

    @guarded("Failed to delete coupon")
    async def delete(self, coupon_id: str, db: AsyncSession) -> None:
        try:
            deleted = await self._repo.delete(coupon_id, db)
            if not deleted:
                raise CouponNotFoundError(coupon_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Coupon %s deleted", coupon_id)
