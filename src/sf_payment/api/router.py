"""Payment endpoints.

POST /payments/{order_id}/prepare   owner only; eSewa form config or Khalti redirect
GET  /payments/callback             gateway return URL; always answers with a 302
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.sf_common.database import get_db_session
from src.sf_common.response import ApiResponse, success_response
from src.sf_gateway.api.router import get_request_id
from src.sf_gateway.auth.dependencies import get_current_user
from src.sf_gateway.user.db_models import UserModel
from src.sf_payment.application.schemas import PreparePaymentRequest
from src.sf_payment.application.service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])

_service = PaymentService()


@router.post("/{order_id}/prepare", response_model=ApiResponse)
async def prepare_payment(
    order_id: str,
    request: Request,
    body: PreparePaymentRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.prepare_payment(order_id, body.method, current_user, db)
    resp = success_response(result.model_dump())
    resp.request_id = get_request_id(request)
    return resp


@router.get("/callback")
async def payment_callback(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> RedirectResponse:
    url = await _service.handle_callback(dict(request.query_params), db)
    return RedirectResponse(url, status_code=302)
