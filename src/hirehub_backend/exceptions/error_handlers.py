"""
FastAPI exception handlers for structured error responses.

Every error leaves the API as {"error_code", "message"} (plus "details"
for validation errors and "debug" in development mode).
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import traceback
from typing import Optional
import logging

from hirehub_backend.exceptions.exceptions import (
    HireHubException,
    BadRequestException,
    UnauthorizedException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    RateLimitException,
    DatabaseConnectionException,
    DatabaseQueryException,
    InternalServerException,
    ServiceUnavailableException,
)
from hirehub_backend.settings import settings


logger = logging.getLogger(__name__)


def _render(exc: HireHubException, include_debug: bool, extra: Optional[dict] = None) -> JSONResponse:
    error_response = exc.to_error_response(include_debug=include_debug)

    # Only error_code and message reach the client; severity and category stay in the logs
    response_data = {
        "error_code": error_response.error_code,
        "message": error_response.message,
    }
    if extra:
        response_data.update(extra)

    if include_debug and error_response.debug:
        response_data["debug"] = error_response.debug.model_dump(exclude_none=True)

    return JSONResponse(
        status_code=exc.status_code,
        content=response_data,
        headers=exc.headers or {},
    )


async def hirehub_exception_handler(request: Request, exc: HireHubException) -> JSONResponse:
    """
    Handle HireHubException instances.

    Debug information (file paths, function names, line numbers) is only
    included when DEBUG_MODE is 'dev', 'development' or 'local' and
    DISABLE_API_DEBUG_INFO is not set.
    """
    log_error(request, exc)
    return _render(exc, settings.include_debug_info)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Convert Pydantic validation errors into a 400 with per-field details."""
    errors = []
    for error in exc.errors():
        field = " -> ".join(str(x) for x in error["loc"][1:])  # Skip 'body' prefix
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })

    exception = BadRequestException(
        error_code="VAL_001",
        detail="Request validation failed",
        context={"validation_errors": errors},
    )

    logger.warning(
        f"Validation error on {request.method} {request.url.path}",
        extra={"validation_errors": errors},
    )

    extra = {"details": {"validation_errors": errors}} if errors else None
    return _render(exception, settings.include_debug_info, extra)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """
    Handle plain HTTPException raised by Starlette/FastAPI (404 routes, 405, ...).

    Converts to the matching HireHubException type based on status code.
    """
    exception_map = {
        status.HTTP_400_BAD_REQUEST: BadRequestException,
        status.HTTP_401_UNAUTHORIZED: UnauthorizedException,
        status.HTTP_403_FORBIDDEN: ForbiddenException,
        status.HTTP_404_NOT_FOUND: NotFoundException,
        status.HTTP_409_CONFLICT: ConflictException,
        status.HTTP_429_TOO_MANY_REQUESTS: RateLimitException,
        status.HTTP_503_SERVICE_UNAVAILABLE: ServiceUnavailableException,
    }

    exception_class = exception_map.get(exc.status_code)
    if exception_class is None:
        # Keep the original status (e.g. 405) but still render the standard body
        hirehub_exc = InternalServerException(
            detail=exc.detail,
            headers=getattr(exc, "headers", None),
        )
        hirehub_exc.status_code = exc.status_code
    else:
        hirehub_exc = exception_class(
            detail=exc.detail,
            headers=getattr(exc, "headers", None),
        )

    return await hirehub_exception_handler(request, hirehub_exc)


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render slowapi rejections with the standard error body."""
    exception = RateLimitException(
        detail=f"Rate limit exceeded: {exc.detail}",
        headers={"Retry-After": "60"},
    )
    return await hirehub_exception_handler(request, exception)


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """SQLAlchemy errors that escaped the repositories."""
    logger.error(
        f"Database error on {request.method} {request.url.path}",
        exc_info=exc,
    )

    if isinstance(exc, OperationalError):
        exception = DatabaseConnectionException(headers={"Retry-After": "5"})
    else:
        exception = DatabaseQueryException(
            context={"exception_type": type(exc).__name__},
        )

    return _render(exception, settings.include_debug_info)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Logs the full traceback and returns a generic internal server error.
    Exception details and tracebacks are only included in development mode.
    """
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}",
        exc_info=exc,
    )

    exception = InternalServerException(
        error_code="INT_001",
        detail="An unexpected error occurred",
        context={
            "exception_type": type(exc).__name__,
            "exception_message": str(exc),
        },
    )

    include_debug = settings.include_debug_info
    if include_debug:
        exception.context["traceback"] = traceback.format_exc()

    return _render(exception, include_debug)


def log_error(request: Request, exception: HireHubException) -> None:
    """
    Log error with structured information.

    Args:
        request: FastAPI request object
        exception: The exception that was raised
    """
    log_data = {
        "error_code": exception.error_code,
        "status_code": exception.status_code,
        "method": request.method,
        "path": request.url.path,
        "user_id": exception.user_id or getattr(request.state, "user_id", None),
        "function": exception.function_name,
        "context": exception.context,
    }

    if exception.status_code >= 500:
        logger.error(f"Server error: {exception.error_code}", extra=log_data)
    elif exception.status_code >= 400:
        logger.warning(f"Client error: {exception.error_code}", extra=log_data)
    else:
        logger.info(f"Error: {exception.error_code}", extra=log_data)


def register_exception_handlers(app) -> None:
    """
    Register all exception handlers with the FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(HireHubException, hirehub_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)

    # Catch-all
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Registered custom exception handlers")
