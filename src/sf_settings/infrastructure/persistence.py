"""StoreSettingsRepository: raw SQL read of the ``default`` settings row."""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sf_settings.domain.models import StoreSettings

_GET_SETTINGS_SQL = text("""
    SELECT store_name, shipping_charge, shipping_markup, shipping_markup_type,
           free_shipping_threshold, enable_cod,
           enable_esewa, esewa_sandbox, esewa_merchant_code, esewa_secret,
           enable_khalti, khalti_sandbox, khalti_secret
    FROM store_settings WHERE id = 'default'
""")


def _row_to_settings(row: Any) -> StoreSettings:
    return StoreSettings(
        store_name=row.store_name,
        shipping_charge=row.shipping_charge,
        shipping_markup=row.shipping_markup,
        shipping_markup_type=row.shipping_markup_type,
        free_shipping_threshold=row.free_shipping_threshold,
        enable_cod=row.enable_cod,
        enable_esewa=row.enable_esewa,
        esewa_sandbox=row.esewa_sandbox,
        esewa_merchant_code=row.esewa_merchant_code,
        esewa_secret=row.esewa_secret,
        enable_khalti=row.enable_khalti,
        khalti_sandbox=row.khalti_sandbox,
        khalti_secret=row.khalti_secret,
    )


class StoreSettingsRepository:
    async def get(self, db: AsyncSession) -> StoreSettings:
        """Current settings; built-in defaults when the row was never saved."""
        row = (await db.execute(_GET_SETTINGS_SQL)).fetchone()
        return _row_to_settings(row) if row else StoreSettings()
