"""Customer order endpoints.

POST /orders          checkout (guests allowed; email required without a token)
GET  /orders          own orders, cursor pagination
GET  /orders/{id}     own order with items
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.sf_common.database import get_db_session
from src.sf_common.response import ApiResponse, success_response
from src.sf_gateway.api.router import get_request_id
from src.sf_gateway.auth.dependencies import get_current_user, get_optional_user
from src.sf_gateway.user.db_models import UserModel
from src.sf_order.application.schemas import PlaceOrderRequest
from src.sf_order.application.service import OrderOrchestrator

router = APIRouter(prefix="/orders", tags=["orders"])

_orchestrator = OrderOrchestrator()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse)
async def place_order(
    request: Request,
    body: PlaceOrderRequest,
    current_user: Annotated[UserModel | None, Depends(get_optional_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _orchestrator.place_order(body, current_user, db)
    resp = success_response(result.model_dump(mode="json"), message="Order placed successfully!")
    resp.request_id = get_request_id(request)
    return resp


@router.get("", response_model=ApiResponse)
async def list_orders(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None, description="Pagination cursor (order ID)"),
) -> ApiResponse:
    result = await _orchestrator.list_customer_orders(current_user, limit, cursor, db)
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = get_request_id(request)
    return resp


@router.get("/{order_id}", response_model=ApiResponse)
async def get_order(
    order_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _orchestrator.get_customer_order(order_id, current_user, db)
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = get_request_id(request)
    return resp
