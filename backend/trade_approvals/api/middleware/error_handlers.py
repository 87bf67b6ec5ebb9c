"""
Error Handlers

Centralized exception handlers for the FastAPI application. Errors that reach
these handlers are rendered as {"error": {"code", "message", "details"}}.
Domain errors converted to HTTPException inside a route keep FastAPI's
{"detail": {"error": {...}}} body.
"""

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pymongo.errors import PyMongoError

from ...domain.errors import DomainError
from ...utils.logger import get_logger, get_correlation_id

logger = get_logger(__name__)


def _error_response(status_code: int, code: str, message: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({
            "error": {
                "code": code,
                "message": message,
                "details": details or {}
            }
        }),
        headers={"X-Correlation-Id": get_correlation_id() or ""}
    )


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """
    Handle domain errors raised outside a route's own error mapping.
    """
    logger.warning(
        f"Domain error: {exc.error_code} - {exc.message}",
        extra={"error_code": exc.error_code}
    )
    return _error_response(exc.http_status, exc.error_code, exc.message, exc.details)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request validation errors.

    These occur when request data doesn't match expected schema.
    """
    logger.warning(
        f"Validation error: {exc.errors()}, "
        f"path={request.url.path}, "
        f"method={request.method}",
        extra={"error_code": "VALIDATION_ERROR"}
    )
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_ERROR",
        "Request validation failed",
        {"errors": exc.errors()}
    )


async def storage_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    """
    Handle database failures.

    The action may or may not have been recorded; retrying is safe because
    approvals are keyed per request and role.
    """
    logger.error(
        f"Storage error: {exc}",
        exc_info=True,
        extra={"error_code": "STORAGE_ERROR"}
    )
    return _error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "STORAGE_ERROR",
        "The approval store is unavailable, please retry",
        {"retryable": True}
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected errors.

    Logs full stack trace for debugging.
    """
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "An unexpected error occurred",
        {"hint": "Check server logs for details"}
    )


def register_error_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(PyMongoError, storage_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
