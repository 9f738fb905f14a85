"""ShippingCalculator: parcel weight from the catalog, quote from the courier.

weight = Σ item weight × quantity, floored at 0.5 kg (items with no known
weight contribute nothing). final_cost = courier price + store markup.
When the courier cannot quote, the flat store rate is returned with
success=False.
"""
import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.sf_catalog.infrastructure.persistence import ProductRepository
from src.sf_common.enums import MarkupType
from src.sf_common.errors import UpstreamError
from src.sf_common.money import rupees_to_paisa
from src.sf_delivery.domain.models import ParcelLine, ShippingQuote
from src.sf_delivery.infrastructure.pathao_client import PathaoClient
from src.sf_settings.domain.models import StoreSettings
from src.sf_settings.infrastructure.persistence import StoreSettingsRepository

logger = logging.getLogger(__name__)

MIN_PARCEL_WEIGHT_KG = Decimal("0.5")


def apply_markup(api_cost: int, store: StoreSettings) -> int:
    if store.shipping_markup_type == MarkupType.PERCENT.value:
        return api_cost * store.shipping_markup // 100
    return store.shipping_markup


class ShippingCalculator:
    def __init__(
        self,
        client: PathaoClient,
        products: ProductRepository | None = None,
        store_settings: StoreSettingsRepository | None = None,
    ) -> None:
        self._client = client
        self._products = products or ProductRepository()
        self._store_settings = store_settings or StoreSettingsRepository()

    async def parcel_weight(self, lines: list[ParcelLine], db: AsyncSession) -> Decimal:
        products = await self._products.get_many([line.product_id for line in lines], db)
        total = Decimal("0")
        for line in lines:
            product = products.get(line.product_id)
            weight = product.resolved_weight() if product else None
            if weight is not None:
                total += weight.kilograms * line.quantity
        return max(total, MIN_PARCEL_WEIGHT_KG)

    async def quote(
        self, city_id: int, zone_id: int, lines: list[ParcelLine], db: AsyncSession
    ) -> ShippingQuote:
        store = await self._store_settings.get(db)
        weight = await self.parcel_weight(lines, db)
        try:
            plan = await self._client.get_price_plan(city_id, zone_id, weight)
            raw_price = plan.get("final_price", plan.get("price"))
            if raw_price is None:
                raise UpstreamError("Courier quote did not include a price")
            try:
                api_cost = rupees_to_paisa(raw_price)
            except (ArithmeticError, TypeError, ValueError):
                raise UpstreamError(f"Courier quoted an unreadable price: {raw_price!r}") from None
        except UpstreamError as e:
            logger.warning(
                "Shipping quote fell back to flat rate (city=%s zone=%s): %s",
                city_id, zone_id, e.message,
            )
            return ShippingQuote(
                api_cost=0,
                markup=0,
                weight=weight,
                final_cost=store.shipping_charge,
                success=False,
                message=e.message,
            )

        markup = apply_markup(api_cost, store)
        return ShippingQuote(
            api_cost=api_cost,
            markup=markup,
            weight=weight,
            final_cost=api_cost + markup,
        )
