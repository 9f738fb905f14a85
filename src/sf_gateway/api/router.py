"""Auth API router: register, login, refresh.

All endpoints return ApiResponse. request_id is read from request.state
(injected by RequestLogMiddleware).
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sf_common.database import get_db_session
from src.sf_common.response import ApiResponse, success_response
from src.sf_gateway.user.schemas import (
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    UserInfo,
)
from src.sf_gateway.user.service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])
_service = UserService()


def get_request_id(request: Request) -> str:
    """Read request_id injected by RequestLogMiddleware, fallback if absent."""
    return getattr(request.state, "request_id", "req_unknown")


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=ApiResponse)
async def register(
    request: Request,
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    async with db.begin():
        user = await _service.register(body.email, body.name, body.phone, body.password, db)

    data = UserInfo(user_id=str(user.id), email=user.email, name=user.name, role=user.role)
    resp = success_response(data.model_dump(), message="User registered successfully")
    resp.request_id = get_request_id(request)
    return resp


@router.post("/login", response_model=ApiResponse)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    user, access_token, refresh_token = await _service.login(body.email, body.password, db)

    data = LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
        user=UserInfo(user_id=str(user.id), email=user.email, name=user.name, role=user.role),
    )
    resp = success_response(data.model_dump(), message="Login successful")
    resp.request_id = get_request_id(request)
    return resp


@router.post("/refresh", response_model=ApiResponse)
async def refresh_token(
    request: Request,
    body: RefreshRequest,
    db: AsyncSession = Depends(get_db_session),
) -> ApiResponse:
    new_access_token = await _service.refresh(body.refresh_token, db)

    data = RefreshResponse(
        access_token=new_access_token,
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
    )
    resp = success_response(data.model_dump(), message="Token refreshed")
    resp.request_id = get_request_id(request)
    return resp
