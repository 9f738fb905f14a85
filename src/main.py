"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.sf_common.database import engine
from src.sf_common.errors import AppError, InternalError
from src.sf_common.redis_client import close_redis, get_redis
from src.sf_common.response import error_response
from src.sf_coupon.api.router import admin_router as coupon_admin_router
from src.sf_coupon.api.router import router as coupon_router
from src.sf_delivery.api.router import router as delivery_router
from src.sf_gateway.api.router import router as auth_router
from src.sf_gateway.middleware.request_log import RequestLogMiddleware
from src.sf_order.api.admin_router import router as order_admin_router
from src.sf_order.api.rider_router import router as rider_router
from src.sf_order.api.router import router as order_router
from src.sf_order.api.webhook_router import router as webhook_router
from src.sf_payment.api.router import router as payment_router

logger = logging.getLogger(__name__)

_uses_redis = settings.DELIVERY_TOKEN_STORE == "redis"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB (+ Redis when it backs the courier token). Shutdown: dispose."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    if _uses_redis:
        await get_redis()
    yield
    # Shutdown
    await engine.dispose()
    if _uses_redis:
        await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    err = InternalError()
    resp = error_response(err.code, err.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(status_code=err.http_status, content=resp.model_dump())


app.include_router(auth_router, prefix="/api/v1")
app.include_router(order_router, prefix="/api/v1")
app.include_router(order_admin_router, prefix="/api/v1")
app.include_router(rider_router, prefix="/api/v1")
app.include_router(webhook_router, prefix="/api/v1")
app.include_router(payment_router, prefix="/api/v1")
app.include_router(delivery_router, prefix="/api/v1")
app.include_router(coupon_router, prefix="/api/v1")
app.include_router(coupon_admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
