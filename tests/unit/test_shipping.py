"""Unit tests for ShippingCalculator and city matching."""

from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
import pytest

from src.sf_catalog.domain.models import Product
from src.sf_catalog.domain.weight import Weight, WeightUnit
from src.sf_common.errors import CourierError
from src.sf_delivery.application.locations import match_city
from src.sf_delivery.application.shipping import (
    MIN_PARCEL_WEIGHT_KG,
    ShippingCalculator,
    apply_markup,
)
from src.sf_delivery.domain.models import ParcelLine
from src.sf_delivery.infrastructure.pathao_client import PathaoClient
from src.sf_settings.domain.models import StoreSettings


def _calculator(
    client: AsyncMock, products: dict[str, Product], store: StoreSettings
) -> ShippingCalculator:
    product_repo = AsyncMock()
    product_repo.get_many = AsyncMock(return_value=products)
    settings_repo = AsyncMock()
    settings_repo.get = AsyncMock(return_value=store)
    return ShippingCalculator(client, products=product_repo, store_settings=settings_repo)


@pytest.fixture
def products() -> dict[str, Product]:
    return {
        "mug": Product(id="mug", name="Mug", price=50000, weight=Weight(Decimal("400"), WeightUnit.G)),
        "lamp": Product(id="lamp", name="Lamp", price=250000, specifications=[("Weight", "1.5 kg")]),
        "card": Product(id="card", name="Gift card", price=10000),
    }


class TestApplyMarkup:
    def test_flat(self) -> None:
        store = StoreSettings(shipping_markup=2000, shipping_markup_type="FLAT")
        assert apply_markup(14500, store) == 2000

    def test_percent(self) -> None:
        store = StoreSettings(shipping_markup=10, shipping_markup_type="PERCENT")
        assert apply_markup(14500, store) == 1450


class TestParcelWeight:
    async def test_sums_weight_times_quantity(self, products: dict[str, Product]) -> None:
        calc = _calculator(AsyncMock(), products, StoreSettings())
        lines = [ParcelLine("mug", 2), ParcelLine("lamp", 1)]
        assert await calc.parcel_weight(lines, AsyncMock()) == Decimal("2.3")

    async def test_floored_at_minimum(self, products: dict[str, Product]) -> None:
        calc = _calculator(AsyncMock(), products, StoreSettings())
        assert await calc.parcel_weight([ParcelLine("card", 3)], AsyncMock()) == MIN_PARCEL_WEIGHT_KG

    async def test_unknown_products_contribute_nothing(self, products: dict[str, Product]) -> None:
        calc = _calculator(AsyncMock(), products, StoreSettings())
        lines = [ParcelLine("ghost", 5), ParcelLine("lamp", 1)]
        assert await calc.parcel_weight(lines, AsyncMock()) == Decimal("1.5")


class TestQuote:
    async def test_courier_price_plus_markup(self, products: dict[str, Product]) -> None:
        client = AsyncMock()
        client.get_price_plan = AsyncMock(return_value={"price": 150, "final_price": 145})
        store = StoreSettings(shipping_markup=2000, shipping_markup_type="FLAT")
        calc = _calculator(client, products, store)

        quote = await calc.quote(52, 1, [ParcelLine("lamp", 2)], AsyncMock())

        assert quote.success
        assert quote.api_cost == 14500
        assert quote.markup == 2000
        assert quote.final_cost == 16500
        assert quote.weight == Decimal("3.0")
        client.get_price_plan.assert_awaited_once_with(52, 1, Decimal("3.0"))

    async def test_falls_back_to_price_when_no_final_price(
        self, products: dict[str, Product]
    ) -> None:
        client = AsyncMock()
        client.get_price_plan = AsyncMock(return_value={"price": 120.5})
        calc = _calculator(client, products, StoreSettings())

        quote = await calc.quote(52, 1, [ParcelLine("mug", 1)], AsyncMock())
        assert quote.api_cost == 12050
        assert quote.final_cost == 12050

    async def test_courier_failure_returns_flat_rate(self, products: dict[str, Product]) -> None:
        client = AsyncMock()
        client.get_price_plan = AsyncMock(side_effect=CourierError("Zone not serviceable"))
        calc = _calculator(client, products, StoreSettings(shipping_charge=15000))

        quote = await calc.quote(52, 1, [ParcelLine("mug", 1)], AsyncMock())

        assert not quote.success
        assert quote.final_cost == 15000
        assert quote.api_cost == 0
        assert quote.message == "Zone not serviceable"

    async def test_quote_without_price_falls_back(self, products: dict[str, Product]) -> None:
        client = AsyncMock()
        client.get_price_plan = AsyncMock(return_value={"discount": 0})
        calc = _calculator(client, products, StoreSettings(shipping_charge=15000))

        quote = await calc.quote(52, 1, [ParcelLine("mug", 1)], AsyncMock())
        assert not quote.success
        assert quote.final_cost == 15000


    async def test_unreadable_price_falls_back(self, products: dict[str, Product]) -> None:
        client = AsyncMock()
        client.get_price_plan = AsyncMock(return_value={"price": "N/A"})
        calc = _calculator(client, products, StoreSettings(shipping_charge=15000))

        quote = await calc.quote(52, 1, [ParcelLine("mug", 1)], AsyncMock())

        assert not quote.success
        assert quote.final_cost == 15000
        assert quote.api_cost == 0

    async def test_malformed_store_list_falls_back(self, products: dict[str, Product]) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/issue-token"):
                return httpx.Response(200, json={"access_token": "tok", "expires_in": 3600})
            return httpx.Response(200, json={"data": {"data": [{"name": "x"}]}})

        client = PathaoClient(
            "https://courier.test", "c", "s", "u", "p", transport=httpx.MockTransport(handler)
        )
        calc = _calculator(client, products, StoreSettings(shipping_charge=15000))  # type: ignore[arg-type]

        quote = await calc.quote(52, 1, [ParcelLine("mug", 1)], AsyncMock())

        assert not quote.success
        assert quote.final_cost == 15000
        assert quote.message == "Unexpected Pathao store list"

CITIES = [
    {"city_id": 1, "city_name": "Kathmandu Valley"},
    {"city_id": 2, "city_name": "Pokhara"},
    {"city_id": 3, "city_name": "Biratnagar"},
    {"city_id": 4, "city_name": "Bharatpur Chitwan"},
]


class TestMatchCity:
    @pytest.mark.parametrize("district", ["Kathmandu", "lalitpur", " BHAKTAPUR "])
    def test_valley_districts_map_to_valley(self, district: str) -> None:
        assert match_city(CITIES, district, "")["city_id"] == 1  # type: ignore[index]

    def test_valley_city_name(self) -> None:
        assert match_city(CITIES, "Bagmati", "Lalitpur")["city_id"] == 1  # type: ignore[index]

    def test_exact_match(self) -> None:
        assert match_city(CITIES, "Kaski", "pokhara")["city_id"] == 2  # type: ignore[index]

    def test_substring_match(self) -> None:
        assert match_city(CITIES, "Chitwan", "")["city_id"] == 4  # type: ignore[index]

    def test_no_match(self) -> None:
        assert match_city(CITIES, "Mustang", "Jomsom") is None
