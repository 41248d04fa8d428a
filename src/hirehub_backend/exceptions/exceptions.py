"""
Exception classes with error codes and rich metadata.

Every exception maps to an entry in error_registry.yaml so clients get a
stable error_code alongside a human-readable message.
"""

from typing import Any, Dict, Optional
from fastapi import HTTPException, status
import inspect
from datetime import datetime, timezone

from hirehub_types.errors import ErrorDebugInfo, ErrorResponse


class HireHubException(HTTPException):
    """
    Base exception class for all HireHub HTTP errors.

    Provides:
    - Unique error codes from registry
    - Structured error responses
    - Debug information in development mode
    - Context metadata for logging
    """

    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        error_code: str,
        detail: Any = None,
        headers: Optional[Dict[str, str]] = None,
        context: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ):
        """
        Initialize exception with error code and metadata.

        Args:
            error_code: Error code from error registry (e.g., "SESSION_001")
            detail: Message overriding the registry default
            headers: HTTP response headers
            context: Additional context for debugging
            user_id: User ID if available
        """
        self.error_code = error_code
        self.custom_message = detail if isinstance(detail, str) and detail else None
        self.context = context or {}
        self.user_id = user_id

        # Caller information for debugging: skip the __init__ chain of this exception
        self.function_name = None
        self.file_name = None
        self.line_number = None
        caller_frame = inspect.currentframe()
        while caller_frame is not None and caller_frame.f_locals.get("self") is self:
            caller_frame = caller_frame.f_back
        if caller_frame is not None:
            self.function_name = caller_frame.f_code.co_name
            self.file_name = caller_frame.f_code.co_filename
            self.line_number = caller_frame.f_lineno

        super().__init__(status_code=self.status_code_default, detail=detail, headers=headers)

    @property
    def message(self) -> str:
        """Human-readable message: explicit detail, else the registry default."""
        if self.custom_message:
            return self.custom_message

        from hirehub_backend.exceptions.error_registry import get_error_definition
        return get_error_definition(self.error_code).message

    def to_error_response(self, include_debug: bool = False) -> ErrorResponse:
        """
        Convert exception to structured ErrorResponse.

        Args:
            include_debug: Whether to include debug information (dev mode only)

        Returns:
            ErrorResponse with error code, message, and optional debug info
        """
        from hirehub_backend.exceptions.error_registry import get_error_definition

        error_def = get_error_definition(self.error_code)

        debug_info = None
        if include_debug:
            debug_info = ErrorDebugInfo(
                timestamp=datetime.now(timezone.utc).isoformat(),
                function=self.function_name,
                file=self.file_name,
                line=self.line_number,
                user_id=self.user_id,
                additional_context=self.context,
            )

        details = self.context if self.context else None
        if isinstance(self.detail, dict):
            details = self.detail

        return ErrorResponse(
            error_code=self.error_code,
            message=self.message,
            details=details,
            severity=error_def.severity,
            category=error_def.category,
            retry_after=error_def.retry_after,
            debug=debug_info,
        )


# ============================================================================
# AUTHENTICATION EXCEPTIONS (401)
# ============================================================================


class UnauthorizedException(HireHubException):
    """Authentication required - 401"""
    status_code_default = status.HTTP_401_UNAUTHORIZED

    def __init__(self, detail: Any = None, error_code: str = "AUTH_001", **kwargs):
        super().__init__(error_code=error_code, detail=detail, **kwargs)


# ============================================================================
# AUTHORIZATION EXCEPTIONS (403)
# ============================================================================


class ForbiddenException(HireHubException):
    """Insufficient permissions - 403"""
    status_code_default = status.HTTP_403_FORBIDDEN

    def __init__(self, detail: Any = None, error_code: str = "AUTHZ_001", **kwargs):
        super().__init__(error_code=error_code, detail=detail, **kwargs)


class AdminRequiredException(ForbiddenException):
    """Admin access required - 403"""

    def __init__(self, detail: Any = None, error_code: str = "AUTHZ_002", **kwargs):
        super().__init__(detail=detail, error_code=error_code, **kwargs)


class NotSessionHostException(ForbiddenException):
    """Only the host may perform this operation - 403"""

    def __init__(self, detail: Any = None, error_code: str = "AUTHZ_003", **kwargs):
        super().__init__(detail=detail, error_code=error_code, **kwargs)


class NotSessionParticipantException(ForbiddenException):
    """Only the participant may perform this operation - 403"""

    def __init__(self, detail: Any = None, error_code: str = "AUTHZ_004", **kwargs):
        super().__init__(detail=detail, error_code=error_code, **kwargs)


# ============================================================================
# VALIDATION / STATE EXCEPTIONS (400)
# ============================================================================


class BadRequestException(HireHubException):
    """Invalid request data - 400"""
    status_code_default = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: Any = None, error_code: str = "VAL_001", **kwargs):
        super().__init__(error_code=error_code, detail=detail, **kwargs)


class SessionCompletedException(BadRequestException):
    """Operation not allowed on a completed session - 400"""

    def __init__(self, detail: Any = None, error_code: str = "SESSION_001", **kwargs):
        super().__init__(detail=detail, error_code=error_code, **kwargs)


class SelfJoinException(BadRequestException):
    """Host tried to join their own session - 400"""

    def __init__(self, detail: Any = None, error_code: str = "SESSION_002", **kwargs):
        super().__init__(detail=detail, error_code=error_code, **kwargs)


class NoParticipantException(BadRequestException):
    """Leave requested while the session has no participant - 400"""

    def __init__(self, detail: Any = None, error_code: str = "SESSION_003", **kwargs):
        super().__init__(detail=detail, error_code=error_code, **kwargs)


class SessionAlreadyCompletedException(BadRequestException):
    """End requested on a session that is already completed - 400"""

    def __init__(self, detail: Any = None, error_code: str = "SESSION_004", **kwargs):
        super().__init__(detail=detail, error_code=error_code, **kwargs)


# ============================================================================
# NOT FOUND EXCEPTIONS (404)
# ============================================================================


class NotFoundException(HireHubException):
    """Resource not found - 404"""
    status_code_default = status.HTTP_404_NOT_FOUND

    def __init__(self, detail: Any = None, error_code: str = "NF_001", **kwargs):
        super().__init__(error_code=error_code, detail=detail, **kwargs)


class SessionNotFoundException(NotFoundException):
    """Interview session not found - 404"""

    def __init__(self, detail: Any = None, error_code: str = "NF_002", **kwargs):
        super().__init__(detail=detail, error_code=error_code, **kwargs)


# ============================================================================
# CONFLICT EXCEPTIONS (409)
# ============================================================================


class ConflictException(HireHubException):
    """Resource conflict - 409"""
    status_code_default = status.HTTP_409_CONFLICT

    def __init__(self, detail: Any = None, error_code: str = "CONFLICT_001", **kwargs):
        super().__init__(error_code=error_code, detail=detail, **kwargs)


class SessionFullException(ConflictException):
    """Participant slot already taken - 409"""

    def __init__(self, detail: Any = None, error_code: str = "CONFLICT_002", **kwargs):
        super().__init__(detail=detail, error_code=error_code, **kwargs)


# ============================================================================
# RATE LIMITING EXCEPTIONS (429)
# ============================================================================


class RateLimitException(HireHubException):
    """Too many requests - 429"""
    status_code_default = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, detail: Any = None, error_code: str = "RATE_001", **kwargs):
        super().__init__(error_code=error_code, detail=detail, **kwargs)


# ============================================================================
# DATABASE / UPSTREAM EXCEPTIONS (500, 503)
# ============================================================================


class DatabaseConnectionException(HireHubException):
    """Database connection failed - 503"""
    status_code_default = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, detail: Any = None, error_code: str = "DB_001", **kwargs):
        super().__init__(error_code=error_code, detail=detail, **kwargs)


class DatabaseQueryException(HireHubException):
    """Database query failed - 500"""
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: Any = None, error_code: str = "DB_002", **kwargs):
        super().__init__(error_code=error_code, detail=detail, **kwargs)


class ServiceUnavailableException(HireHubException):
    """Transient capacity problem - 503"""
    status_code_default = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, detail: Any = None, error_code: str = "INT_002", **kwargs):
        super().__init__(error_code=error_code, detail=detail, **kwargs)


# ============================================================================
# INTERNAL SERVER EXCEPTIONS (500)
# ============================================================================


class InternalServerException(HireHubException):
    """Internal server error - 500"""
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: Any = None, error_code: str = "INT_001", **kwargs):
        super().__init__(error_code=error_code, detail=detail, **kwargs)
