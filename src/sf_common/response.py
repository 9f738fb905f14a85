"""Envelope returned by every JSON endpoint.

    {"code": 0, "message": "Order marked as SHIPPED", "data": {...},
     "timestamp": "2026-03-01T12:00:00+00:00", "request_id": "req_3f9a0c1d2e4b"}

``code`` is 0 on success and the AppError code otherwise (``data`` is null).
The courier webhook and the payment callback are the only routes that answer
without it.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def success_response(data: Any = None, message: str = "success") -> ApiResponse:
    return ApiResponse(code=0, message=message, data=data)


def error_response(code: int, message: str) -> ApiResponse:
    return ApiResponse(code=code, message=message, data=None)
