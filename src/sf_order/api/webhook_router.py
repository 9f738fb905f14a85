"""Courier webhook: POST /webhooks/courier.

Unauthenticated. When COURIER_WEBHOOK_SECRET is set, the X-Webhook-Signature
header must carry the hex HMAC-SHA256 of the raw body.

    {"test": true}                                  -> acknowledged, no-op
    {"event": ..., "order_id": "<tracking>"}        -> mapped status update
    {"event": ..., "order_ids": ["<tracking>", ..]} -> bulk
"""

import hashlib
import hmac
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sf_common.database import get_db_session
from src.sf_common.errors import AuthorizationError, ValidationError
from src.sf_order.application.schemas import CourierWebhookPayload
from src.sf_order.application.service import OrderOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

_orchestrator = OrderOrchestrator()


def verify_signature(body: bytes, signature: str | None, secret: str) -> bool:
    if not secret:
        return True
    if not signature:
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature.strip().lower())


@router.post("/courier")
async def courier_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    x_webhook_signature: Annotated[str | None, Header()] = None,
) -> JSONResponse:
    body = await request.body()
    if not verify_signature(body, x_webhook_signature, settings.COURIER_WEBHOOK_SECRET):
        logger.warning("Rejected courier webhook with a bad signature")
        raise AuthorizationError("Invalid webhook signature")

    try:
        payload = CourierWebhookPayload.model_validate_json(body or b"{}")
    except SchemaValidationError:
        raise ValidationError("Malformed webhook payload") from None

    if payload.test:
        logger.info("Courier test webhook received")
        return JSONResponse({"status": "success", "message": "Test webhook received"})

    if not payload.tracking_codes:
        return JSONResponse({"error": "No order IDs provided in payload"}, status_code=400)

    result = await _orchestrator.ingest_courier_webhook(payload, db)
    return JSONResponse({"status": "received", **result.model_dump()})
