"""
Rejects oversized request bodies before they reach a route.

Summons payloads are small JSON documents (user fields, feedback), so
anything above MAX_REQUEST_BODY_SIZE is refused from its declared
Content-Length without reading the body.
"""

from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


def _declared_length(request: Request) -> Optional[int]:
    value = request.headers.get("content-length", "")
    return int(value) if value.isdigit() else None


class BodySizeMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        if request.method not in _BODY_METHODS:
            return await call_next(request)

        length = _declared_length(request)
        limit = settings.MAX_REQUEST_BODY_SIZE
        if length is None or length <= limit:
            return await call_next(request)

        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning(
            f"Refused {request.method} {request.url.path}: body of {length} bytes exceeds {limit}",
            extra={"content_length": length, "limit": limit},
        )
        return JSONResponse(
            status_code=413,
            content={
                "error": "payload_too_large",
                "message": f"Request body exceeds maximum size of {limit} bytes",
                "request_id": request_id,
            },
        )
