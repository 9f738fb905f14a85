"""Tests for product weight parsing and resolution."""

from decimal import Decimal

from src.sf_catalog.domain.models import Product
from src.sf_catalog.domain.weight import Weight, WeightUnit, parse_legacy_weight


class TestWeight:
    def test_grams_to_kilograms(self) -> None:
        assert Weight(Decimal("500"), WeightUnit.G).kilograms == Decimal("0.5")

    def test_kilograms_unchanged(self) -> None:
        assert Weight(Decimal("1.2")).kilograms == Decimal("1.2")


class TestParseLegacyWeight:
    def test_grams(self) -> None:
        assert parse_legacy_weight("500g") == Weight(Decimal("500"), WeightUnit.G)

    def test_gm_suffix(self) -> None:
        assert parse_legacy_weight("250 gm") == Weight(Decimal("250"), WeightUnit.G)

    def test_kilograms_with_space(self) -> None:
        assert parse_legacy_weight("1.2 kg") == Weight(Decimal("1.2"), WeightUnit.KG)

    def test_unitless_is_kilograms(self) -> None:
        assert parse_legacy_weight("2") == Weight(Decimal("2"), WeightUnit.KG)

    def test_case_insensitive(self) -> None:
        assert parse_legacy_weight("3KG") == Weight(Decimal("3"), WeightUnit.KG)

    def test_garbage_returns_none(self) -> None:
        assert parse_legacy_weight("heavy") is None


class TestProduct:
    def test_typed_weight_wins_over_specification_row(self) -> None:
        p = Product(
            id="p1",
            name="Mug",
            price=50000,
            weight=Weight(Decimal("0.4")),
            specifications=[("Weight", "900g")],
        )
        assert p.resolved_weight() == Weight(Decimal("0.4"))

    def test_falls_back_to_weight_specification_row(self) -> None:
        p = Product(id="p1", name="Mug", price=50000, specifications=[("Colour", "red"), (" weight ", "900g")])
        assert p.resolved_weight() == Weight(Decimal("900"), WeightUnit.G)

    def test_no_weight_anywhere(self) -> None:
        assert Product(id="p1", name="Mug", price=50000).resolved_weight() is None

    def test_unit_price_uses_variant(self) -> None:
        p = Product(id="p1", name="Shirt", price=100000, variant_prices={"v-xl": 120000})
        assert p.unit_price("v-xl") == 120000
        assert p.unit_price("v-unknown") == 100000
        assert p.unit_price(None) == 100000

    def test_lower_discount_price_wins(self) -> None:
        p = Product(id="p1", name="Shirt", price=100000, discount_price=80000)
        assert p.unit_price(None) == 80000

    def test_higher_discount_price_ignored(self) -> None:
        p = Product(id="p1", name="Shirt", price=100000, discount_price=80000,
                    variant_prices={"v-s": 70000})
        assert p.unit_price("v-s") == 70000
