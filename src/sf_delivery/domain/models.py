"""Delivery domain values: provider token, shipment result, shipping quote."""
from dataclasses import dataclass
from decimal import Decimal

# Safety margin subtracted from the server-declared token TTL.
TOKEN_EXPIRY_MARGIN_SECONDS = 60


@dataclass(frozen=True)
class DeliveryToken:
    access_token: str
    expires_at: float  # epoch seconds

    @classmethod
    def issued(cls, access_token: str, expires_in: float, now: float) -> "DeliveryToken":
        return cls(
            access_token=access_token,
            expires_at=now + expires_in - TOKEN_EXPIRY_MARGIN_SECONDS,
        )

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class ShipmentResult:
    """Outcome of a create-shipment call. ``error`` is the provider's own text."""
    success: bool
    consignment_id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ParcelLine:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class ShippingQuote:
    """Never persisted; recomputed per request. Amounts in paisa.

    ``success`` is False when the courier could not quote and ``final_cost``
    is the flat store rate; callers must check it.
    """
    api_cost: int
    markup: int
    weight: Decimal
    final_cost: int
    success: bool = True
    message: str | None = None
