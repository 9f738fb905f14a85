"""Public delivery lookups used by checkout: locations, quote, city matching."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sf_common.database import get_db_session
from src.sf_common.response import ApiResponse, success_response
from src.sf_delivery.application.locations import match_city
from src.sf_delivery.application.schemas import CityMatchResponse, QuoteRequest, QuoteResponse
from src.sf_delivery.application.shipping import ShippingCalculator
from src.sf_delivery.domain.models import ParcelLine
from src.sf_delivery.infrastructure.pathao_client import PathaoClient
from src.sf_delivery.infrastructure.provider import get_pathao_client
from src.sf_gateway.api.router import get_request_id

router = APIRouter(prefix="/delivery", tags=["delivery"])

Courier = Annotated[PathaoClient, Depends(get_pathao_client)]


def _respond(request: Request, data: object) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = get_request_id(request)
    return resp


@router.get("/cities", response_model=ApiResponse)
async def list_cities(request: Request, client: Courier) -> ApiResponse:
    return _respond(request, await client.get_cities())


@router.get("/cities/{city_id}/zones", response_model=ApiResponse)
async def list_zones(city_id: int, request: Request, client: Courier) -> ApiResponse:
    return _respond(request, await client.get_zones(city_id))


@router.get("/zones/{zone_id}/areas", response_model=ApiResponse)
async def list_areas(zone_id: int, request: Request, client: Courier) -> ApiResponse:
    return _respond(request, await client.get_areas(zone_id))


@router.post("/quote", response_model=ApiResponse)
async def quote_shipping(
    request: Request,
    body: QuoteRequest,
    client: Courier,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    calculator = ShippingCalculator(client)
    lines = [ParcelLine(product_id=i.product_id, quantity=i.quantity) for i in body.items]
    quote = await calculator.quote(body.city_id, body.zone_id, lines, db)
    return _respond(request, QuoteResponse.from_domain(quote).model_dump(mode="json"))


@router.get("/match-city", response_model=ApiResponse)
async def match_city_endpoint(
    request: Request,
    client: Courier,
    district: str = Query("", description="Customer district"),
    city: str = Query("", description="Customer city"),
) -> ApiResponse:
    match = match_city(await client.get_cities(), district, city)
    if match is None:
        return _respond(request, CityMatchResponse(matched=False).model_dump())
    data = CityMatchResponse(
        matched=True, city_id=match.get("city_id"), city_name=match.get("city_name")
    )
    return _respond(request, data.model_dump())
