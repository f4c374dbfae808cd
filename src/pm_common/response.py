"""Unified API response wrapper.

All API endpoints return this format:
{
    "code": 0,           // 0=success, non-0=error code
    "message": "success",
    "data": { ... },     // null on error
    "timestamp": "...",
    "request_id": "..."
}

Decimal amounts are serialised as strings so no precision is lost on the wire.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field
from starlette.requests import Request


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


def success_response(data: Any = None, message: str = "success") -> ApiResponse:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    return ApiResponse(code=0, message=message, data=data)


def error_response(code: int, message: str) -> ApiResponse:
    return ApiResponse(code=code, message=message, data=None)


def tag_request(resp: ApiResponse, request: Request) -> ApiResponse:
    """Reuse the request id minted by RequestLogMiddleware, if any."""
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
