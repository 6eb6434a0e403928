"""
Access logging for the summons API.

One record per request, with method, path, status and duration as
structured fields so the JSON formatter emits them as keys.
"""

import logging
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request once it completes and sets X-Process-Time.

    Section generation can hold a request open for minutes; the
    duration header lets clients see where the time went.
    """

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        fields = {"method": request.method, "path": request.url.path}

        try:
            response = await call_next(request)
        except Exception:
            fields["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
            logger.exception(f"{request.method} {request.url.path} failed", extra=fields)
            raise

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        fields.update(status_code=response.status_code, duration_ms=duration_ms)
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms:.2f}ms)",
            extra=fields,
        )

        response.headers["X-Process-Time"] = f"{duration_ms:.2f}ms"
        return response
