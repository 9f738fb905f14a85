"""Coupon endpoints.

POST   /coupons/verify            public; validates a code against a cart total
POST   /admin/coupons             ADMIN; create
PUT    /admin/coupons/{id}        ADMIN; update
DELETE /admin/coupons/{id}        ADMIN; delete
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.sf_common.database import get_db_session
from src.sf_common.enums import Role
from src.sf_common.response import ApiResponse, success_response
from src.sf_coupon.application.schemas import CouponUpsertRequest, VerifyCouponRequest
from src.sf_coupon.application.service import CouponService
from src.sf_gateway.api.router import get_request_id
from src.sf_gateway.auth.dependencies import require_roles
from src.sf_gateway.user.db_models import UserModel

router = APIRouter(prefix="/coupons", tags=["coupons"])
admin_router = APIRouter(prefix="/admin/coupons", tags=["admin"])

_service = CouponService()

AdminUser = Annotated[UserModel, Depends(require_roles(Role.ADMIN))]


@router.post("/verify", response_model=ApiResponse)
async def verify_coupon(
    request: Request,
    body: VerifyCouponRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.verify(body.code, body.cart_total, db)
    resp = success_response(result.model_dump(), message="Coupon applied")
    resp.request_id = get_request_id(request)
    return resp


@admin_router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse)
async def create_coupon(
    request: Request,
    body: CouponUpsertRequest,
    current_user: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.upsert(body, db)
    resp = success_response(result.model_dump(mode="json"), message="Coupon created")
    resp.request_id = get_request_id(request)
    return resp


@admin_router.put("/{coupon_id}", response_model=ApiResponse)
async def update_coupon(
    coupon_id: str,
    request: Request,
    body: CouponUpsertRequest,
    current_user: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.upsert(body, db, coupon_id=coupon_id)
    resp = success_response(result.model_dump(mode="json"), message="Coupon updated")
    resp.request_id = get_request_id(request)
    return resp


@admin_router.delete("/{coupon_id}", response_model=ApiResponse)
async def delete_coupon(
    coupon_id: str,
    request: Request,
    current_user: AdminUser,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    await _service.delete(coupon_id, db)
    resp = success_response(message="Coupon deleted")
    resp.request_id = get_request_id(request)
    return resp
