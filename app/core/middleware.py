# app/core/middleware.py
"""
HTTP middleware stack.

Every response carries ``X-Request-ID`` and ``X-Process-Time``; anything a
route raises is rendered as the standard ``{"error": ..., "request_id": ...}``
body.
"""
from __future__ import annotations

import time
import uuid
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.core.exceptions import BaseAppException, ErrorCode, StoreUnavailableError
from app.core.logging import get_logger, request_id as request_id_var
from app.utils.datetime_utils import isoformat_utc, utcnow

logger = get_logger(__name__)


def get_request_id(request: Request) -> Optional[str]:
    """Id assigned by RequestIDMiddleware, None outside of it."""
    return getattr(request.state, "request_id", None)


def error_response(
    request: Request,
    code: str,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """Render the standard error body."""
    content = {
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
            "timestamp": isoformat_utc(utcnow()),
        },
        "request_id": get_request_id(request),
    }
    return JSONResponse(status_code=status_code, content=content)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with an id, kept on ``request.state``, in the
    logging context and echoed back in the response header.
    """

    def __init__(self, app: ASGIApp, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # An id set by an upstream proxy wins
        rid = request.headers.get(self.header_name) or uuid.uuid4().hex
        request.state.request_id = rid
        token = request_id_var.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[self.header_name] = rid
        return response


class TimingMiddleware(BaseHTTPMiddleware):
    """Access log line plus ``X-Process-Time`` (seconds) on every response"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} ({elapsed * 1000:.1f}ms)",
            extra={
                "http_method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(elapsed * 1000, 1),
                "client": request.client.host if request.client else None,
            },
        )

        return response


class GlobalExceptionMiddleware(BaseHTTPMiddleware):
    """Turns exceptions escaping the routes into the standard error body"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except BaseAppException as e:
            return self._handle_application_exception(e, request)
        except OperationalError as e:
            return self._handle_application_exception(
                StoreUnavailableError(original_error=str(e.orig)), request
            )
        except IntegrityError as e:
            logger.warning(
                f"Integrity error on {request.method} {request.url.path}: {e.orig}",
            )
            return error_response(
                request,
                ErrorCode.DUPLICATE_ENTRY.value,
                "Database integrity constraint violation",
                status.HTTP_409_CONFLICT,
            )
        except Exception as e:
            logger.critical(
                f"Unexpected exception: {type(e).__name__} - {e}",
                extra={"path": request.url.path, "method": request.method},
                exc_info=True,
            )
            return error_response(
                request,
                ErrorCode.INTERNAL_ERROR.value,
                "An unexpected error occurred",
                status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

    @staticmethod
    def _handle_application_exception(exception: BaseAppException, request: Request) -> JSONResponse:
        log = logger.error if exception.status_code >= 500 else logger.warning
        log(
            f"Application exception: {exception.error_code.value} - {exception.message}",
            extra={
                "error_code": exception.error_code.value,
                "path": request.url.path,
                "method": request.method,
            },
        )
        return error_response(
            request,
            exception.error_code.value,
            exception.message,
            exception.status_code,
            exception.details,
        )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies and parameters as invalid input."""
    field_errors: Dict[str, list] = {}
    for error in exc.errors():
        field_path = '.'.join(str(x) for x in error['loc'])
        field_errors.setdefault(field_path, []).append(error['msg'])

    logger.warning(
        f"Validation error: {len(field_errors)} field(s) failed validation",
        extra={"path": request.url.path, "method": request.method},
    )
    return error_response(
        request,
        ErrorCode.INVALID_INPUT.value,
        "Request validation failed",
        status.HTTP_400_BAD_REQUEST,
        {"field_errors": field_errors},
    )


def register_middlewares(app: FastAPI) -> None:
    """
    Install the middleware stack and the validation error handler.

    Starlette runs the last-added middleware first, so a request passes
    RequestIDMiddleware, then TimingMiddleware, then
    GlobalExceptionMiddleware before reaching the route.
    """
    app.add_middleware(GlobalExceptionMiddleware)
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    logger.debug(
        "Core middlewares registered",
        extra={"middlewares": ["RequestIDMiddleware", "TimingMiddleware", "GlobalExceptionMiddleware"]},
    )


__all__ = [
    "GlobalExceptionMiddleware",
    "RequestIDMiddleware",
    "TimingMiddleware",
    "error_response",
    "register_middlewares",
    "request_validation_handler",
]
