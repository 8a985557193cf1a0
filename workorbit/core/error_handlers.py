"""
Global Error Handlers for the WorkOrbit Hierarchy Service

Every failure leaves the API in the same envelope the routes use for
success, with ``success`` set to false, so clients branch on one key.
"""

import logging
import traceback
from typing import Dict, Any
from datetime import datetime

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError, HTTPException
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import (
    SQLAlchemyError,
    IntegrityError,
    OperationalError,
)
from psycopg2.errors import UniqueViolation, ForeignKeyViolation

from workorbit.core.exceptions import BaseAPIException
from workorbit.core.config import settings

logger = logging.getLogger(__name__)


def create_error_response(
    status_code: int,
    detail: str,
    error_code: str = None,
    error_data: Dict[str, Any] = None,
    request_id: str = None,
    timestamp: str = None
) -> JSONResponse:
    """Create standardized error response."""

    content = {
        "success": False,
        "error": True,
        "status_code": status_code,
        "message": detail,
        "detail": detail,
        "timestamp": timestamp or datetime.utcnow().isoformat(),
    }

    if error_code:
        content["error_code"] = error_code

    if error_data:
        content["error_data"] = error_data

    if request_id:
        content["request_id"] = request_id

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(content)
    )


def _request_context(request: Request) -> Dict[str, Any]:
    return {
        "request_id": getattr(request.state, "request_id", None),
        "path": request.url.path,
        "method": request.method
    }


async def base_api_exception_handler(request: Request, exc: BaseAPIException) -> JSONResponse:
    """Handle custom API exceptions."""

    context = _request_context(request)

    logger.warning(
        f"API Exception: {exc.error_code or 'UNKNOWN'} - {exc.detail}",
        extra={
            "status_code": exc.status_code,
            "error_code": exc.error_code,
            "error_data": exc.error_data,
            **context
        }
    )

    response = create_error_response(
        status_code=exc.status_code,
        detail=exc.detail,
        error_code=exc.error_code,
        error_data=exc.error_data,
        request_id=context["request_id"]
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle FastAPI and Starlette HTTP exceptions."""

    context = _request_context(request)

    logger.warning(
        f"HTTP Exception: {exc.status_code} - {exc.detail}",
        extra={"status_code": exc.status_code, **context}
    )

    response = create_error_response(
        status_code=exc.status_code,
        detail=str(exc.detail),
        error_code="HTTP_EXCEPTION",
        request_id=context["request_id"]
    )
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request body/path validation errors."""

    context = _request_context(request)

    validation_errors = []
    for error in exc.errors():
        validation_errors.append({
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })

    logger.warning(
        f"Validation Error: {len(validation_errors)} validation error(s)",
        extra={"validation_errors": validation_errors, **context}
    )

    return create_error_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail="Request validation failed",
        error_code="VALIDATION_ERROR",
        error_data={"validation_errors": validation_errors},
        request_id=context["request_id"]
    )


def _classify_integrity_error(exc: IntegrityError):
    if isinstance(exc.orig, UniqueViolation) or "unique" in str(exc.orig).lower():
        return status.HTTP_409_CONFLICT, "DUPLICATE_RESOURCE", "Resource already exists with the provided data"
    if isinstance(exc.orig, ForeignKeyViolation):
        return status.HTTP_400_BAD_REQUEST, "INVALID_REFERENCE", "Referenced resource does not exist"
    return status.HTTP_400_BAD_REQUEST, "INTEGRITY_ERROR", "Data integrity constraint violated"


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle SQLAlchemy errors that escaped a service transaction."""

    context = _request_context(request)

    if isinstance(exc, IntegrityError):
        status_code, error_code, detail = _classify_integrity_error(exc)
    elif isinstance(exc, OperationalError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        error_code = "DATABASE_UNAVAILABLE"
        detail = "Database operation failed"
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        error_code = "DATABASE_ERROR"
        detail = "Database error occurred"

    logger.error(
        f"Database Error: {error_code} - {detail}",
        extra={
            "exception_type": type(exc).__name__,
            "error_details": str(exc),
            **context
        }
    )

    error_data = None
    if settings.debug:
        error_data = {
            "exception_type": type(exc).__name__,
            "original_error": str(exc)
        }

    return create_error_response(
        status_code=status_code,
        detail=detail,
        error_code=error_code,
        error_data=error_data,
        request_id=context["request_id"]
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other unhandled exceptions."""

    context = _request_context(request)

    logger.error(
        f"Unhandled Exception: {type(exc).__name__} - {str(exc)}",
        extra={
            "exception_type": type(exc).__name__,
            "traceback": traceback.format_exc(),
            **context
        }
    )

    if settings.debug:
        detail = f"Internal server error: {str(exc)}"
        error_data = {"exception_type": type(exc).__name__}
    else:
        detail = "An unexpected error occurred. Please try again later."
        error_data = None

    return create_error_response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=detail,
        error_code="INTERNAL_SERVER_ERROR",
        error_data=error_data,
        request_id=context["request_id"]
    )


# Error handler mapping
ERROR_HANDLERS = {
    BaseAPIException: base_api_exception_handler,
    HTTPException: http_exception_handler,
    StarletteHTTPException: http_exception_handler,
    RequestValidationError: validation_exception_handler,
    SQLAlchemyError: sqlalchemy_exception_handler,
    Exception: generic_exception_handler,
}


def register_error_handlers(app):
    """Register all error handlers with the FastAPI app."""

    for exception_class, handler in ERROR_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)

    logger.info("Error handlers registered successfully")
