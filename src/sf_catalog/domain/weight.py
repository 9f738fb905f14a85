"""Product weight: typed ``{value, unit}`` with a shim for legacy free text.

Newer products store ``weight_value``/``weight_unit`` columns. Older ones
only carry a free-text specification row named "weight" ("500g", "1.2 kg",
"2"); ``parse_legacy_weight`` reads those. Unitless text is kilograms.
"""
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum

_LEGACY_WEIGHT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(kg|gm|g)?", re.IGNORECASE)


class WeightUnit(str, Enum):
    KG = "kg"
    G = "g"


@dataclass(frozen=True)
class Weight:
    value: Decimal
    unit: WeightUnit = WeightUnit.KG

    @property
    def kilograms(self) -> Decimal:
        if self.unit is WeightUnit.G:
            return self.value / 1000
        return self.value


def parse_legacy_weight(raw: str) -> Weight | None:
    match = _LEGACY_WEIGHT_RE.search(raw.strip())
    if match is None:
        return None
    try:
        value = Decimal(match.group(1))
    except InvalidOperation:
        return None
    suffix = (match.group(2) or "kg").lower()
    unit = WeightUnit.KG if suffix == "kg" else WeightUnit.G
    return Weight(value=value, unit=unit)
