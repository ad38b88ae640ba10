"""Centralized error handling system with proper categorization.

This module provides:
1. Error categories and codes shared by every handler
2. Consistent error response formatting
3. Mapping of domain, auth, database and rate-limit failures to HTTP answers
"""

import logging
from typing import Any
from uuid import UUID

from asyncpg.exceptions import (
    CheckViolationError,
    ForeignKeyViolationError,
    NotNullViolationError,
    UniqueViolationError,
)
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import (
    IntegrityError,
    OperationalError,
)

from src.auth.exceptions import AuthenticationError
from src.exceptions import (
    AlreadyExistsError,
    CollaboratorUnavailableError,
    ConflictError,
    ResourceNotFoundError,
)


logger = logging.getLogger(__name__)


# === Error Categories ===


class ErrorCategory:
    """Error category constants."""

    AUTHENTICATION = "AUTHENTICATION_ERROR"
    VALIDATION = "VALIDATION_ERROR"
    DATABASE = "DATABASE_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    CONFLICT = "CONFLICT_ERROR"
    EXTERNAL_SERVICE = "EXTERNAL_SERVICE_ERROR"
    RATE_LIMIT = "RATE_LIMIT_ERROR"
    INTERNAL = "INTERNAL_ERROR"


class ErrorCode:
    """Specific error codes for better client handling."""

    # Authentication errors
    AUTH_REQUIRED = "AUTH_REQUIRED"

    # Validation errors
    INVALID_INPUT = "INVALID_INPUT"

    # Database errors
    DB_CONNECTION_FAILED = "DB_CONNECTION_FAILED"
    DB_CONSTRAINT_VIOLATION = "DB_CONSTRAINT_VIOLATION"
    DB_UNIQUE_VIOLATION = "DB_UNIQUE_VIOLATION"
    DB_FOREIGN_KEY_VIOLATION = "DB_FOREIGN_KEY_VIOLATION"

    # Resource errors
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    VERSION_CONFLICT = "VERSION_CONFLICT"

    # External service errors
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"

    # Rate limiting
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Internal errors
    INTERNAL = "INTERNAL_ERROR"


# === Error Response Formatting ===


def format_error_response(
    category: str,
    code: str,
    detail: str,
    status_code: int,
    suggestions: list[str] | None = None,
    metadata: dict[str, Any] | None = None,
) -> JSONResponse:
    """Format a consistent error response."""
    content = {
        "error": {
            "category": category,
            "code": code,
            "detail": detail,
        }
    }

    if suggestions:
        content["error"]["suggestions"] = suggestions

    if metadata:
        content["error"]["metadata"] = metadata

    return JSONResponse(status_code=status_code, content=content)


# === Exception Handlers ===


async def handle_authentication_errors(request: Request, exc: AuthenticationError) -> JSONResponse:
    """Handle a missing or malformed caller identity."""
    logger.warning(
        f"Authentication error on {request.method} {request.url.path}: {exc.detail}",
        extra={
            "client_host": request.client.host if request.client else "unknown",
            "error_type": type(exc).__name__,
        },
    )

    return format_error_response(
        category=ErrorCategory.AUTHENTICATION,
        code=ErrorCode.AUTH_REQUIRED,
        detail=exc.detail,
        status_code=status.HTTP_401_UNAUTHORIZED,
        suggestions=["Send the request through the authenticating gateway"],
    )


async def handle_validation_errors(request: Request, exc: Exception) -> JSONResponse:
    """Handle validation errors from Pydantic and custom validators."""
    logger.info(f"Validation error on {request.method} {request.url.path}", extra={"error": str(exc)})

    if isinstance(exc, RequestValidationError | PydanticValidationError):
        # Extract field errors from Pydantic
        errors = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            errors.append({"field": field, "message": error["msg"], "type": error["type"]})

        return format_error_response(
            category=ErrorCategory.VALIDATION,
            code=ErrorCode.INVALID_INPUT,
            detail="Invalid input data",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            metadata={"errors": errors},
        )
    # Custom validation error
    return format_error_response(
        category=ErrorCategory.VALIDATION,
        code=ErrorCode.INVALID_INPUT,
        detail=str(exc),
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def handle_not_found_errors(request: Request, exc: ResourceNotFoundError) -> JSONResponse:
    logger.info(f"Not found on {request.method} {request.url.path}: {exc}")

    return format_error_response(
        category=ErrorCategory.RESOURCE_NOT_FOUND,
        code=ErrorCode.NOT_FOUND,
        detail=str(exc),
        status_code=status.HTTP_404_NOT_FOUND,
        metadata={"resource_type": exc.resource_type, "resource_id": str(exc.resource_id)},
    )


async def handle_conflict_errors(request: Request, exc: Exception) -> JSONResponse:
    """Handle concurrent modifications and duplicate resources."""
    logger.info(f"Conflict on {request.method} {request.url.path}: {exc}")

    if isinstance(exc, AlreadyExistsError):
        return format_error_response(
            category=ErrorCategory.CONFLICT,
            code=ErrorCode.ALREADY_EXISTS,
            detail=str(exc),
            status_code=status.HTTP_409_CONFLICT,
            metadata={"existing_id": str(exc.existing_id)} if exc.existing_id is not None else None,
        )

    metadata = None
    if isinstance(exc, ConflictError):
        metadata = {"resource_type": exc.resource_type, "resource_id": str(exc.resource_id)}
    return format_error_response(
        category=ErrorCategory.CONFLICT,
        code=ErrorCode.VERSION_CONFLICT,
        detail=str(exc),
        status_code=status.HTTP_409_CONFLICT,
        suggestions=["Reload the resource and apply your change again"],
        metadata=metadata,
    )


async def handle_external_service_errors(request: Request, exc: CollaboratorUnavailableError) -> JSONResponse:
    """Handle external service failures."""
    logger.error(f"External service error on {request.method} {request.url.path}: {exc}")

    return format_error_response(
        category=ErrorCategory.EXTERNAL_SERVICE,
        code=ErrorCode.TIMEOUT if exc.reason == "timeout" else ErrorCode.SERVICE_UNAVAILABLE,
        detail=str(exc),
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        suggestions=["The service is temporarily unavailable", "Please try again later"],
        metadata={"service": exc.service, "reason": exc.reason},
    )


async def handle_database_errors(request: Request, exc: Exception) -> JSONResponse:
    """Handle database-related errors."""
    logger.exception(
        f"Database error on {request.method} {request.url.path}: {exc}",
        extra={"error_type": type(exc).__name__},
        exc_info=(type(exc), exc, exc.__traceback__),
    )

    # Map specific database errors to user-friendly messages
    if isinstance(exc, UniqueViolationError | IntegrityError) and "unique" in str(exc).lower():
        return format_error_response(
            category=ErrorCategory.DATABASE,
            code=ErrorCode.DB_UNIQUE_VIOLATION,
            detail="This resource already exists",
            status_code=status.HTTP_409_CONFLICT,
            suggestions=["Try using a different identifier"],
        )

    if isinstance(exc, ForeignKeyViolationError):
        return format_error_response(
            category=ErrorCategory.DATABASE,
            code=ErrorCode.DB_FOREIGN_KEY_VIOLATION,
            detail="Referenced resource does not exist",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, NotNullViolationError | CheckViolationError):
        return format_error_response(
            category=ErrorCategory.DATABASE,
            code=ErrorCode.DB_CONSTRAINT_VIOLATION,
            detail="Required data is missing or invalid",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, OperationalError):
        return format_error_response(
            category=ErrorCategory.DATABASE,
            code=ErrorCode.DB_CONNECTION_FAILED,
            detail="Database connection error",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            suggestions=["Please try again later"],
        )

    # Generic database error
    return format_error_response(
        category=ErrorCategory.DATABASE,
        code=ErrorCode.INTERNAL,
        detail="A database error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def handle_rate_limit_errors(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limiting."""
    logger.warning(
        f"Rate limit exceeded on {request.method} {request.url.path}",
        extra={
            "client_host": request.client.host if request.client else "unknown",
            "user_id": getattr(request.state, "user_id", None),
        },
    )

    return format_error_response(
        category=ErrorCategory.RATE_LIMIT,
        code=ErrorCode.RATE_LIMIT_EXCEEDED,
        detail=f"Rate limit exceeded: {exc.detail}",
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        suggestions=["Please wait before making more requests"],
    )


# === Utility Functions ===


def log_error_context(request: Request, exc: Exception, error_id: UUID | None = None) -> None:
    """Log comprehensive error context for debugging."""
    context = {
        "error_id": str(error_id) if error_id else None,
        "method": request.method,
        "path": request.url.path,
        "query_params": dict(request.query_params),
        "client_host": request.client.host if request.client else "unknown",
        "user_id": str(getattr(request.state, "user_id", None)),
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    # Add request headers (excluding sensitive ones)
    safe_headers = {
        k: v for k, v in request.headers.items() if k.lower() not in ["authorization", "cookie", "x-api-key"]
    }
    context["headers"] = safe_headers

    logger.error("Request failed", extra=context, exc_info=exc)
