from decimal import Decimal

from pydantic import BaseModel, Field

from src.sf_delivery.domain.models import ShippingQuote


class ParcelItem(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)


class QuoteRequest(BaseModel):
    city_id: int
    zone_id: int
    items: list[ParcelItem] = Field(..., min_length=1)


class QuoteResponse(BaseModel):
    success: bool
    api_cost: int
    markup: int
    weight: Decimal
    final_cost: int
    message: str | None = None

    @classmethod
    def from_domain(cls, quote: ShippingQuote) -> "QuoteResponse":
        return cls(
            success=quote.success,
            api_cost=quote.api_cost,
            markup=quote.markup,
            weight=quote.weight,
            final_cost=quote.final_cost,
            message=quote.message,
        )


class CityMatchResponse(BaseModel):
    matched: bool
    city_id: int | None = None
    city_name: str | None = None
