"""
Global exception handlers for FastAPI.

TextarrError subclasses map to HTTP statuses through ERROR_STATUS. The
first matching entry wins, so subclasses are listed before their bases.
"""

from typing import Tuple, Type

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

import structlog

from textarr.core.exceptions import (
    CatalogError,
    ConfigurationError,
    DuplicateUserError,
    IntentExtractionError,
    LibraryItemExistsError,
    LibraryServiceError,
    LLMError,
    LLMRateLimitError,
    LLMTimeoutError,
    SessionError,
    TextarrError,
    UserError,
    UserNotFoundError,
    ValidationError,
    WebhookAuthError,
)

log = structlog.get_logger(__name__)

ERROR_STATUS: Tuple[Tuple[Type[TextarrError], int], ...] = (
    (WebhookAuthError, status.HTTP_401_UNAUTHORIZED),
    (UserNotFoundError, status.HTTP_404_NOT_FOUND),
    (DuplicateUserError, status.HTTP_409_CONFLICT),
    (LibraryItemExistsError, status.HTTP_409_CONFLICT),
    (SessionError, status.HTTP_409_CONFLICT),
    (UserError, status.HTTP_400_BAD_REQUEST),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (IntentExtractionError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (CatalogError, status.HTTP_502_BAD_GATEWAY),
    (LibraryServiceError, status.HTTP_502_BAD_GATEWAY),
    (LLMTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (LLMRateLimitError, status.HTTP_429_TOO_MANY_REQUESTS),
    (LLMError, status.HTTP_502_BAD_GATEWAY),
)


def status_for(exc: TextarrError) -> int:
    for exc_class, status_code in ERROR_STATUS:
        if isinstance(exc, exc_class):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def setup_exception_handlers(app: FastAPI):
    """Register the TextarrError, ConfigurationError and fallback handlers."""

    @app.exception_handler(TextarrError)
    async def textarr_error_handler(
        request: Request,
        exc: TextarrError,
    ) -> JSONResponse:
        status_code = status_for(exc)
        log_ctx = log.bind(
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
        )
        if isinstance(exc, LibraryServiceError):
            log_ctx = log_ctx.bind(service=exc.service, upstream_status=exc.status_code)

        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            log_ctx.error("upstream_error", message=exc.message, status_code=status_code)
        else:
            log_ctx.warning("request_error", message=exc.message, status_code=status_code)

        return JSONResponse(
            status_code=status_code,
            content={
                "error": {
                    "type": type(exc).__name__,
                    "message": exc.message,
                }
            },
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request,
        exc: ConfigurationError,
    ) -> JSONResponse:
        """Missing credentials are a 503 without leaking which one."""
        log.error(
            "configuration_error",
            path=request.url.path,
            message=exc.message,
        )

        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "error": {
                    "type": "ConfigurationError",
                    "message": "Server configuration error",
                }
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        log.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            message=str(exc),
            exc_info=exc,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "type": "InternalServerError",
                    "message": "An unexpected error occurred",
                }
            },
        )
