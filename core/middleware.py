"""
Application Middleware and Error Translation for the VidShare API.

This module holds the cross-cutting request pipeline: request correlation,
error translation into the uniform error envelope, request logging and early
request validation.

Key Components:
- `CorrelationMiddleware`: assigns a correlation ID to every request (or reuses
  `X-Correlation-ID` / `X-Request-ID`), stores it in the logging context and
  echoes it in the response headers.
- `ErrorHandlingMiddleware`: last-resort catch-all. Anything no exception
  handler claimed becomes a 500 envelope with a generic message; the stack
  trace goes to the log, never to the client.
- `PerformanceMiddleware`: logs request start/completion, adds an
  `X-Process-Time` header and warns on slow requests.
- `RequestValidationMiddleware`: rejects oversized bodies (413) and bodies
  with an unsupported content type (415) before routing.
- `register_exception_handlers`: maps `VideoShareError`, HTTP exceptions,
  request validation errors (400) and SQLAlchemy errors (500) onto the
  envelope `{statusCode, message, success: false, errors}`.
"""

import time
import uuid
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .config import get_settings
from .exceptions import DatabaseError, VideoShareError, error_envelope
from .logging_config import get_logger, set_correlation_id

logger = get_logger("core.middleware")

SLOW_REQUEST_SECONDS = 1.0

# Multipart framing on top of the largest allowed file
MULTIPART_OVERHEAD_BYTES = 1024 * 1024


def _request_context(request: Request) -> Dict[str, Any]:
    return {
        "path": request.url.path,
        "method": request.method,
        "correlation_id": getattr(request.state, "correlation_id", None),
    }


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Middleware to add correlation IDs to requests"""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = (
            request.headers.get("X-Correlation-ID")
            or request.headers.get("X-Request-ID")
            or str(uuid.uuid4())
        )

        set_correlation_id(correlation_id)
        request.state.correlation_id = correlation_id

        response = await call_next(request)

        response.headers["X-Correlation-ID"] = correlation_id
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catch-all for exceptions that no exception handler translated"""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(
                f"Unexpected error: {str(e)}",
                extra={"error_type": type(e).__name__, **_request_context(request)},
                exc_info=True,
            )
            return JSONResponse(
                status_code=500,
                content=error_envelope(500, "Internal server error"),
            )


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Middleware for request timing and logging"""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "query_params": dict(request.query_params),
                "user_agent": request.headers.get("user-agent"),
                "client_ip": request.client.host if request.client else None,
            },
        )

        response = await call_next(request)

        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(round(process_time * 1000, 2))

        logger.info(
            f"Request completed: {request.method} {request.url.path} - {response.status_code}",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time_ms": round(process_time * 1000, 2),
            },
        )

        if process_time > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path}",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "process_time_ms": round(process_time * 1000, 2),
                    "threshold_exceeded": True,
                },
            )

        return response


class RequestValidationMiddleware(BaseHTTPMiddleware):
    """Middleware for request size and content-type checks"""

    ALLOWED_CONTENT_TYPES = (
        "application/json",
        "application/x-www-form-urlencoded",
        "multipart/form-data",
    )

    def __init__(self, app: ASGIApp, max_request_size: Optional[int] = None):
        super().__init__(app)
        self.max_request_size = max_request_size or (
            get_settings().max_upload_bytes * 2 + MULTIPART_OVERHEAD_BYTES
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        try:
            body_size = int(content_length) if content_length else 0
        except ValueError:
            return JSONResponse(
                status_code=400,
                content=error_envelope(400, "Invalid Content-Length header"),
            )

        if body_size > self.max_request_size:
            logger.warning(
                f"Request too large: {body_size} bytes",
                extra={
                    "content_length": body_size,
                    "max_size": self.max_request_size,
                    "path": request.url.path,
                },
            )
            return JSONResponse(
                status_code=413,
                content=error_envelope(
                    413,
                    f"Request size exceeds maximum allowed size of {self.max_request_size} bytes",
                ),
            )

        # Bodiless toggles (likes, subscriptions) carry no content type
        if request.method in ("POST", "PUT", "PATCH") and body_size > 0:
            content_type = request.headers.get("content-type", "")
            if not any(allowed in content_type for allowed in self.ALLOWED_CONTENT_TYPES):
                logger.warning(
                    f"Invalid content type: {content_type}",
                    extra={
                        "content_type": content_type,
                        "path": request.url.path,
                        "method": request.method,
                    },
                )
                return JSONResponse(
                    status_code=415,
                    content=error_envelope(
                        415, f"Content type '{content_type}' is not supported"
                    ),
                )

        return await call_next(request)


def _validation_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ())]
        errors.append(
            {
                "field": ".".join(location[1:]) or ".".join(location),
                "reason": error.get("msg", "invalid"),
            }
        )
    return errors


async def handle_video_share_error(request: Request, exc: VideoShareError) -> JSONResponse:
    context = {"error_code": exc.error_code, **_request_context(request), **exc.details}
    if exc.status_code >= 500:
        logger.error(f"Application error: {exc.message}", extra=context)
    else:
        logger.info(f"Request rejected: {exc.status_code} {exc.message}", extra=context)
    return JSONResponse(status_code=exc.status_code, content=exc.to_envelope())


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.warning(
        f"HTTP exception: {exc.status_code} - {exc.detail}",
        extra={"status_code": exc.status_code, **_request_context(request)},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = _validation_errors(exc)
    logger.info(
        "Request validation failed",
        extra={"errors": errors, **_request_context(request)},
    )
    return JSONResponse(status_code=400, content=error_envelope(400, "Invalid request", errors))


async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    error = DatabaseError(type(exc).__name__, str(exc))
    logger.error(
        f"Database error: {exc}",
        extra={"error_type": type(exc).__name__, **_request_context(request)},
        exc_info=True,
    )
    return JSONResponse(status_code=error.status_code, content=error.to_envelope())


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(VideoShareError, handle_video_share_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(SQLAlchemyError, handle_database_error)
