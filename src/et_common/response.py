"""Unified API response envelope.

Success:
{
    "success": true,
    "message": "success",
    "data": { ... },
    "pagination": {"page": 1, "limit": 20, "total": 42, "pages": 3},   // list endpoints only
    "cached": true,                                                   // cache hits only
    "requestId": "req_...",
    "timestamp": "..."
}

Error:
{
    "success": false,
    "code": 2002,
    "message": "Category 'Food' already exists",
    "errors": ["..."],                                                // validation only
    "requestId": "req_...",
    "timestamp": "..."
}
"""

import math
import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from starlette.requests import Request


class CamelModel(BaseModel):
    """Base for every wire schema: snake_case in Python, camelCase in JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


class _Envelope(CamelModel):
    message: str = "success"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")


class SuccessResponse(_Envelope):
    success: Literal[True] = True
    data: Any = None
    pagination: Pagination | None = None
    cached: bool | None = None


class ErrorResponse(_Envelope):
    success: Literal[False] = False
    code: int
    errors: list[str] | None = None


ApiResponse = SuccessResponse | ErrorResponse


def success_response(data: Any = None, message: str = "success") -> SuccessResponse:
    return SuccessResponse(message=message, data=data)


def paginated_response(
    items: list[Any], page: int, limit: int, total: int, message: str = "success"
) -> SuccessResponse:
    return SuccessResponse(
        message=message,
        data=items,
        pagination=Pagination.build(page, limit, total),
    )


def error_response(code: int, message: str, errors: list[str] | None = None) -> ErrorResponse:
    return ErrorResponse(code=code, message=message, errors=errors)


def envelope_json(resp: SuccessResponse | ErrorResponse) -> dict[str, Any]:
    """Serialize for JSONResponse: camelCase, optional fields omitted when unset."""
    return resp.model_dump(mode="json", by_alias=True, exclude_none=True)


def stamp(resp: SuccessResponse, request: Request) -> SuccessResponse:
    """Copy the request_id injected by RequestLogMiddleware into the envelope."""
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
