"""Catalog read models used by checkout pricing and parcel weighing."""
from dataclasses import dataclass, field

from src.sf_catalog.domain.weight import Weight, parse_legacy_weight


@dataclass
class Product:
    id: str
    name: str
    price: int  # paisa
    discount_price: int | None = None
    weight: Weight | None = None
    variant_prices: dict[str, int] = field(default_factory=dict)
    specifications: list[tuple[str, str]] = field(default_factory=list)

    def unit_price(self, variant_id: str | None) -> int:
        """Price at purchase time: variant price if known, undercut by a lower discount price."""
        price = self.price
        if variant_id and variant_id in self.variant_prices:
            price = self.variant_prices[variant_id]
        if self.discount_price is not None and self.discount_price < price:
            price = self.discount_price
        return price

    def resolved_weight(self) -> Weight | None:
        if self.weight is not None:
            return self.weight
        for name, value in self.specifications:
            if name.strip().lower() == "weight":
                return parse_legacy_weight(value)
        return None
