"""Rider endpoints: the orders assigned to the caller, and doorstep delivery."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sf_common.database import get_db_session
from src.sf_common.enums import Role
from src.sf_common.response import ApiResponse, success_response
from src.sf_gateway.api.router import get_request_id
from src.sf_gateway.auth.dependencies import require_roles
from src.sf_gateway.user.db_models import UserModel
from src.sf_order.application.service import OrderOrchestrator

router = APIRouter(prefix="/rider", tags=["rider"])

_orchestrator = OrderOrchestrator()

RiderUser = Annotated[UserModel, Depends(require_roles(Role.RIDER))]


@router.get("/orders", response_model=ApiResponse)
async def list_assigned_orders(
    request: Request,
    current_user: RiderUser,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _orchestrator.list_rider_orders(current_user, limit, cursor, db)
    resp = success_response(result.model_dump(mode="json"))
    resp.request_id = get_request_id(request)
    return resp


@router.post("/orders/{order_id}/delivered", response_model=ApiResponse)
async def mark_delivered(
    order_id: str,
    request: Request,
    current_user: RiderUser,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _orchestrator.mark_delivered(order_id, current_user, db)
    resp = success_response(result.model_dump(mode="json"), message="Order marked as delivered")
    resp.request_id = get_request_id(request)
    return resp
