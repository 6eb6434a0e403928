"""
Global exception handlers for the summons API.

Maps the engine's error taxonomy onto consistent JSON error responses.
"""

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
import math

from app.domain.exceptions import (
    ConcurrentModificationError,
    NotFoundError,
    SummonsEngineError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _status_for(exc: SummonsEngineError) -> int:
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, ConcurrentModificationError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, ValidationError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, UpstreamError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def add_exception_handlers(app: FastAPI):
    """Add global exception handlers to FastAPI app."""

    @app.exception_handler(SummonsEngineError)
    async def engine_exception_handler(request: Request, exc: SummonsEngineError):
        """Handle summons engine errors."""
        status_code = _status_for(exc)
        if status_code >= 500:
            logger.error(f"{exc.error_kind}: {exc.message}")
        else:
            logger.info(f"{exc.error_kind}: {exc.message}")
        content = exc.to_dict()
        content["request_id"] = getattr(request.state, "request_id", None)
        headers = None
        if isinstance(exc, UpstreamError) and exc.retry_after_seconds is not None:
            headers = {"Retry-After": str(max(1, math.ceil(exc.retry_after_seconds)))}
        return JSONResponse(status_code=status_code, content=content, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Handle request body/path validation errors."""
        logger.info(f"Request validation error: {exc}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": "validation_error",
                "message": "Request validation failed",
                "details": jsonable_encoder(exc.errors()),
            }
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "internal_error",
                "message": "An unexpected error occurred",
                "request_id": getattr(request.state, "request_id", None)
            }
        )
