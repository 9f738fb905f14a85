"""Back-office order endpoints (role-gated via require_roles).

GET    /admin/orders                          ADMIN, STAFF
GET    /admin/orders/{id}                     ADMIN, STAFF  (settles open delivery intents)
PATCH  /admin/orders/{id}/status              ADMIN, STAFF
PATCH  /admin/orders/{id}/payment-status      ADMIN
POST   /admin/orders/{id}/switch-to-cod       ADMIN
POST   /admin/orders/{id}/delivery            ADMIN, STAFF
DELETE /admin/orders/{id}/delivery            ADMIN
POST   /admin/orders/{id}/refund              ADMIN
PATCH  /admin/orders/{id}/shipping-cost       ADMIN
POST   /admin/orders/{id}/tracking/refresh    ADMIN, STAFF
GET    /admin/riders                          ADMIN, STAFF
GET    /admin/delivery-partners               ADMIN, STAFF
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sf_common.database import get_db_session
from src.sf_common.enums import Role
from src.sf_common.response import ApiResponse, success_response
from src.sf_gateway.api.router import get_request_id
from src.sf_gateway.auth.dependencies import require_roles
from src.sf_gateway.user.db_models import UserModel
from src.sf_order.application.schemas import (
    AssignDeliveryRequest,
    UpdatePaymentStatusRequest,
    UpdateShippingCostRequest,
    UpdateStatusRequest,
)
from src.sf_order.application.service import OrderOrchestrator

router = APIRouter(prefix="/admin", tags=["admin"])

_orchestrator = OrderOrchestrator()

AdminUser = Annotated[UserModel, Depends(require_roles(Role.ADMIN))]
StaffUser = Annotated[UserModel, Depends(require_roles(Role.ADMIN, Role.STAFF))]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def _respond(request: Request, data: object = None, message: str = "success") -> ApiResponse:
    resp = success_response(data, message=message)
    resp.request_id = get_request_id(request)
    return resp


@router.get("/orders", response_model=ApiResponse)
async def list_orders(
    request: Request,
    current_user: StaffUser,
    db: DbSession,
    status: str | None = Query(None, description="Filter by order status"),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None),
) -> ApiResponse:
    result = await _orchestrator.list_all_orders(status, limit, cursor, db)
    return _respond(request, result.model_dump(mode="json"))


@router.get("/orders/{order_id}", response_model=ApiResponse)
async def get_order(
    order_id: str, request: Request, current_user: StaffUser, db: DbSession
) -> ApiResponse:
    result = await _orchestrator.get_admin_order(order_id, db)
    return _respond(request, result.model_dump(mode="json"))


@router.patch("/orders/{order_id}/status", response_model=ApiResponse)
async def update_status(
    order_id: str,
    request: Request,
    body: UpdateStatusRequest,
    current_user: StaffUser,
    db: DbSession,
) -> ApiResponse:
    result = await _orchestrator.update_status(order_id, body.status, db)
    return _respond(request, result.model_dump(mode="json"), f"Order marked as {body.status}")


@router.patch("/orders/{order_id}/payment-status", response_model=ApiResponse)
async def update_payment_status(
    order_id: str,
    request: Request,
    body: UpdatePaymentStatusRequest,
    current_user: AdminUser,
    db: DbSession,
) -> ApiResponse:
    result = await _orchestrator.update_payment_status(order_id, body.payment_status, db)
    return _respond(
        request, result.model_dump(mode="json"), f"Payment marked as {body.payment_status}"
    )


@router.post("/orders/{order_id}/switch-to-cod", response_model=ApiResponse)
async def switch_to_cod(
    order_id: str, request: Request, current_user: AdminUser, db: DbSession
) -> ApiResponse:
    result = await _orchestrator.switch_payment_to_cod(order_id, db)
    return _respond(request, result.model_dump(mode="json"), "Payment method switched to COD")


@router.post("/orders/{order_id}/delivery", response_model=ApiResponse)
async def assign_delivery(
    order_id: str,
    request: Request,
    body: AssignDeliveryRequest,
    current_user: StaffUser,
    db: DbSession,
) -> ApiResponse:
    result = await _orchestrator.assign_delivery(order_id, body, db)
    return _respond(request, result.model_dump(mode="json"), "Delivery assigned successfully")


@router.delete("/orders/{order_id}/delivery", response_model=ApiResponse)
async def cancel_delivery(
    order_id: str, request: Request, current_user: AdminUser, db: DbSession
) -> ApiResponse:
    result = await _orchestrator.cancel_delivery(order_id, db)
    message = "Delivery assignment has been successfully cancelled."
    if result.courier_cancelled is False:
        message = (
            "Delivery assignment cleared, but the courier did not confirm the cancellation."
        )
    return _respond(request, result.model_dump(mode="json"), message)


@router.post("/orders/{order_id}/refund", response_model=ApiResponse)
async def refund(
    order_id: str, request: Request, current_user: AdminUser, db: DbSession
) -> ApiResponse:
    result = await _orchestrator.refund(order_id, db)
    return _respond(request, result.model_dump(mode="json"), "Order refunded and cancelled")


@router.patch("/orders/{order_id}/shipping-cost", response_model=ApiResponse)
async def update_shipping_cost(
    order_id: str,
    request: Request,
    body: UpdateShippingCostRequest,
    current_user: AdminUser,
    db: DbSession,
) -> ApiResponse:
    result = await _orchestrator.update_shipping_cost(order_id, body.shipping_cost, db)
    return _respond(request, result.model_dump(mode="json"), "Shipping cost updated")


@router.post("/orders/{order_id}/tracking/refresh", response_model=ApiResponse)
async def refresh_tracking(
    order_id: str, request: Request, current_user: StaffUser, db: DbSession
) -> ApiResponse:
    result = await _orchestrator.refresh_tracking(order_id, db)
    return _respond(request, result.model_dump())


@router.get("/riders", response_model=ApiResponse)
async def list_riders(request: Request, current_user: StaffUser, db: DbSession) -> ApiResponse:
    riders = await _orchestrator.list_riders(db)
    return _respond(request, [r.model_dump() for r in riders])


@router.get("/delivery-partners", response_model=ApiResponse)
async def delivery_partners(request: Request, current_user: StaffUser) -> ApiResponse:
    return _respond(request, _orchestrator.delivery_partners())
