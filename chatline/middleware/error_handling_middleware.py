"""
Exception handlers for the FastAPI application.

Every failure leaves the API in the same envelope:

    {"success": false, "message": "...", "error": {"type", "message", "severity", "timestamp", "details"?}}

Details are only included outside production. ChatlineError and
LoggedHTTPException log themselves when raised, so the handlers here only
log what nobody logged yet.
"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..error_types import ErrorMessages, ErrorSeverity, ErrorType, create_standard_error_response
from ..exceptions import (
    AuthenticationError,
    ChatlineError,
    ConfigurationError,
    DatabaseError,
    LoggedHTTPException,
    ResourceConflictError,
    ResourceNotFoundError,
    ValidationError,
)
from ..structured_logging.enhanced_logging_config import get_logger, log_exception_once

logger = get_logger(__name__)

# Most specific first
_ERROR_MAPPING: list[tuple[type[ChatlineError], int, ErrorType, ErrorSeverity]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST, ErrorType.VALIDATION_ERROR, ErrorSeverity.LOW),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED, ErrorType.AUTHENTICATION_FAILED, ErrorSeverity.MEDIUM),
    (ResourceNotFoundError, status.HTTP_404_NOT_FOUND, ErrorType.RESOURCE_NOT_FOUND, ErrorSeverity.LOW),
    (ResourceConflictError, status.HTTP_409_CONFLICT, ErrorType.RESOURCE_CONFLICT, ErrorSeverity.LOW),
    (DatabaseError, status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorType.DATABASE_ERROR, ErrorSeverity.HIGH),
    (ConfigurationError, status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorType.CONFIGURATION_ERROR, ErrorSeverity.CRITICAL),
]

_HTTP_STATUS_TYPES: dict[int, ErrorType] = {
    status.HTTP_400_BAD_REQUEST: ErrorType.INVALID_INPUT,
    status.HTTP_401_UNAUTHORIZED: ErrorType.AUTHENTICATION_FAILED,
    status.HTTP_403_FORBIDDEN: ErrorType.AUTHENTICATION_FAILED,
    status.HTTP_404_NOT_FOUND: ErrorType.RESOURCE_NOT_FOUND,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorType.INVALID_INPUT,
    status.HTTP_409_CONFLICT: ErrorType.RESOURCE_CONFLICT,
    status.HTTP_429_TOO_MANY_REQUESTS: ErrorType.RATE_LIMIT_EXCEEDED,
}


def classify_error(exc: ChatlineError) -> tuple[int, ErrorType, ErrorSeverity]:
    """HTTP status, error type and severity for a chatline error."""
    for error_class, status_code, error_type, severity in _ERROR_MAPPING:
        if isinstance(exc, error_class):
            return status_code, error_type, severity
    return status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorType.INTERNAL_ERROR, ErrorSeverity.HIGH


def _validation_message(errors: list[dict[str, Any]]) -> str:
    if not errors:
        return ErrorMessages.INVALID_INPUT
    message = str(errors[0].get("msg", ErrorMessages.INVALID_INPUT))
    # Messages raised from field validators arrive as "Value error, <text>"
    return message.removeprefix("Value error, ")


def _validation_details(errors: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "errors": [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg"), "type": err.get("type")}
            for err in errors
        ]
    }


def register_error_handlers(app: FastAPI, include_details: bool = False) -> None:
    """
    Register exception handlers for FastAPI application.

    Args:
        app: FastAPI application instance
        include_details: Whether to include detailed error information in responses
    """

    @app.exception_handler(ChatlineError)
    async def chatline_error_handler(request: Request, exc: ChatlineError) -> JSONResponse:
        status_code, error_type, severity = classify_error(exc)
        body = create_standard_error_response(
            error_type,
            exc.user_friendly,
            details=exc.details if include_details else None,
            severity=severity,
        )
        return JSONResponse(status_code=status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = list(exc.errors())
        logger.info("Request validation failed", path=request.url.path, error_count=len(errors))
        body = create_standard_error_response(
            ErrorType.VALIDATION_ERROR,
            _validation_message(errors),
            details=_validation_details(errors) if include_details else None,
            severity=ErrorSeverity.LOW,
        )
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if not isinstance(exc, LoggedHTTPException) and exc.status_code >= 500:
            logger.error("HTTP error", status_code=exc.status_code, detail=exc.detail, path=request.url.path)
        error_type = _HTTP_STATUS_TYPES.get(exc.status_code, ErrorType.INTERNAL_ERROR)
        message = exc.detail if isinstance(exc.detail, str) else ErrorMessages.INVALID_INPUT
        body = create_standard_error_response(error_type, message)
        return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        log_exception_once(logger, "error", "Unhandled exception", exc=exc, path=request.url.path, exc_info=True)
        body = create_standard_error_response(
            ErrorType.INTERNAL_ERROR,
            ErrorMessages.INTERNAL_ERROR,
            details={"error_type": type(exc).__name__} if include_details else None,
            severity=ErrorSeverity.HIGH,
        )
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)

    logger.info("Error handlers registered for FastAPI application", include_details=include_details)


def setup_error_handling(app: FastAPI, include_details: bool = False) -> None:
    """
    Setup complete error handling for FastAPI application.

    Args:
        app: FastAPI application instance
        include_details: Whether to include detailed error information in responses
                        (typically False in production, True in development)
    """
    register_error_handlers(app, include_details=include_details)
