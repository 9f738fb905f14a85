"""CouponRepository: raw SQL persistence for coupons."""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sf_coupon.domain.models import Coupon

_SELECT_COLUMNS = """
    id, code, type, value, max_discount, min_order, start_date, expires_at,
    usage_limit, used_count, is_active
"""

_GET_BY_CODE_SQL = text(f"SELECT {_SELECT_COLUMNS} FROM coupons WHERE code = :code")
_GET_BY_ID_SQL = text(f"SELECT {_SELECT_COLUMNS} FROM coupons WHERE id = :id")

_INSERT_SQL = text("""
    INSERT INTO coupons (id, code, type, value, max_discount, min_order,
        start_date, expires_at, usage_limit, used_count, is_active)
    VALUES (:id, :code, :type, :value, :max_discount, :min_order,
        :start_date, :expires_at, :usage_limit, 0, :is_active)
""")

_UPDATE_SQL = text("""
    UPDATE coupons
    SET code = :code, type = :type, value = :value, max_discount = :max_discount,
        min_order = :min_order, start_date = :start_date, expires_at = :expires_at,
        usage_limit = :usage_limit, is_active = :is_active, updated_at = NOW()
    WHERE id = :id
""")

_DELETE_SQL = text("DELETE FROM coupons WHERE id = :id")

# Conditional increment: loses the race cleanly instead of overshooting the cap.
_INCREMENT_USAGE_SQL = text("""
    UPDATE coupons
    SET used_count = used_count + 1, updated_at = NOW()
    WHERE code = :code
      AND (usage_limit IS NULL OR used_count < usage_limit)
""")


def _row_to_coupon(row: Any) -> Coupon:
    return Coupon(
        id=row.id,
        code=row.code,
        type=row.type,
        value=row.value,
        max_discount=row.max_discount,
        min_order=row.min_order,
        start_date=row.start_date,
        expires_at=row.expires_at,
        usage_limit=row.usage_limit,
        used_count=row.used_count,
        is_active=row.is_active,
    )


def _params(coupon: Coupon) -> dict[str, Any]:
    return {
        "id": coupon.id,
        "code": coupon.code,
        "type": coupon.type,
        "value": coupon.value,
        "max_discount": coupon.max_discount,
        "min_order": coupon.min_order,
        "start_date": coupon.start_date,
        "expires_at": coupon.expires_at,
        "usage_limit": coupon.usage_limit,
        "is_active": coupon.is_active,
    }


class CouponRepository:
    async def get_by_code(self, code: str, db: AsyncSession) -> Coupon | None:
        row = (await db.execute(_GET_BY_CODE_SQL, {"code": code.upper()})).fetchone()
        return _row_to_coupon(row) if row else None

    async def get_by_id(self, coupon_id: str, db: AsyncSession) -> Coupon | None:
        row = (await db.execute(_GET_BY_ID_SQL, {"id": coupon_id})).fetchone()
        return _row_to_coupon(row) if row else None

    async def create(self, coupon: Coupon, db: AsyncSession) -> None:
        await db.execute(_INSERT_SQL, _params(coupon))

    async def update(self, coupon: Coupon, db: AsyncSession) -> None:
        await db.execute(_UPDATE_SQL, _params(coupon))

    async def delete(self, coupon_id: str, db: AsyncSession) -> bool:
        result = await db.execute(_DELETE_SQL, {"id": coupon_id})
        return bool(result.rowcount)

    async def increment_usage(self, code: str, db: AsyncSession) -> bool:
        """True when a use was recorded; False when the cap was already reached."""
        result = await db.execute(_INCREMENT_USAGE_SQL, {"code": code.upper()})
        return bool(result.rowcount)
