"""Integer arithmetic utilities for paisa-based amounts.

All prices, totals, discounts and shipping costs are int paisa (Rs 1 = 100).
No float for money. Rupee values only appear at provider boundaries.
"""

from decimal import ROUND_HALF_UP, Decimal


def rupees_to_paisa(value: int | float | str | Decimal) -> int:
    """Convert a provider rupee value (100, 145.5, "100.0") to paisa."""
    amount = Decimal(str(value)) * 100
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def paisa_to_rupee_str(paisa: int) -> str:
    """Plain rupee string for gateway payloads: 115000 -> '1150', 11550 -> '115.5'."""
    rupees = Decimal(paisa) / 100
    text = format(rupees.normalize(), "f")
    return text


def paisa_to_display(paisa: int) -> str:
    """Display string for messages: 123456 -> 'Rs. 1,234.56', 100000 -> 'Rs. 1,000'."""
    sign = "-" if paisa < 0 else ""
    abs_paisa = abs(paisa)
    rupees, rest = divmod(abs_paisa, 100)
    if rest:
        return f"{sign}Rs. {rupees:,}.{rest:02d}"
    return f"{sign}Rs. {rupees:,}"


def paisa_to_rupees(paisa: int) -> int | float:
    """Rupee number for JSON provider payloads (whole rupees stay int)."""
    if paisa % 100 == 0:
        return paisa // 100
    return float(Decimal(paisa) / 100)
