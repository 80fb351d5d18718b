"""
Consolidated middleware for the HomeChef API
"""

import time
import logging
from datetime import datetime
from uuid import uuid4
from decimal import Decimal

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.exceptions import ServiceError

logger = logging.getLogger("homechef.middleware")


def make_serializable(obj):
    """Convert objects to JSON-serializable format"""
    if isinstance(obj, Decimal):
        return float(obj)
    elif isinstance(obj, dict):
        return {k: make_serializable(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [make_serializable(item) for item in obj]
    elif isinstance(obj, Exception):
        return str(obj)
    return obj


def error_body(code: str, message, details=None) -> dict:
    error = {"code": code, "message": message}
    if details:
        error["details"] = make_serializable(details)
    return {
        "success": False,
        "error": error,
        "timestamp": datetime.utcnow().isoformat(),
    }


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request and tag the response with its id and timing"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.request_id = request_id

        logger.info(
            f"request_started id={request_id} method={request.method} "
            f"path={request.url.path} client={request.client.host if request.client else None}"
        )

        start_time = time.time()
        try:
            response: Response = await call_next(request)
        except Exception as exc:
            process_time = time.time() - start_time
            logger.error(
                f"request_failed id={request_id} method={request.method} "
                f"path={request.url.path} error={exc} time={process_time:.4f}s",
                exc_info=True,
            )
            raise

        process_time = time.time() - start_time
        logger.info(
            f"request_completed id={request_id} method={request.method} "
            f"path={request.url.path} status={response.status_code} time={process_time:.4f}s"
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        return response


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors"""
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content=error_body("VALIDATION_ERROR", "Request validation failed", exc.errors()),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions"""
    logger.warning(f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(f"HTTP_{exc.status_code}", exc.detail),
    )


async def service_exception_handler(request: Request, exc: ServiceError):
    """Render any service-layer error with its own status and code"""
    if exc.http_status >= 500:
        logger.error(f"Service error on {request.url.path}: {exc}")
    else:
        logger.warning(f"{exc.code} on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=exc.http_status,
        content=error_body(exc.code, exc.message, exc.details),
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors"""
    logger.exception(f"Unexpected error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("INTERNAL_SERVER_ERROR", "An unexpected error occurred"),
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(ServiceError, service_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
