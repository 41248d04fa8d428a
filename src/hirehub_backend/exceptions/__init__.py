"""
Error handling package for the HireHub backend.

This package provides:
- Custom exception classes with error codes
- Error registry management
- FastAPI exception handlers

Usage:
    from hirehub_backend.exceptions import (
        SessionNotFoundException,
        register_exception_handlers,
    )
"""

from hirehub_backend.exceptions.exceptions import (
    # Base exception
    HireHubException,

    # Authentication exceptions (401)
    UnauthorizedException,

    # Authorization exceptions (403)
    ForbiddenException,
    AdminRequiredException,
    NotSessionHostException,
    NotSessionParticipantException,

    # Validation / session state exceptions (400)
    BadRequestException,
    SessionCompletedException,
    SelfJoinException,
    NoParticipantException,
    SessionAlreadyCompletedException,

    # Not found exceptions (404)
    NotFoundException,
    SessionNotFoundException,

    # Conflict exceptions (409)
    ConflictException,
    SessionFullException,

    # Rate limiting exceptions (429)
    RateLimitException,

    # Database / capacity exceptions (500/503)
    DatabaseConnectionException,
    DatabaseQueryException,
    ServiceUnavailableException,

    # Internal server exceptions (500)
    InternalServerException,
)

from hirehub_backend.exceptions.error_registry import (
    load_error_registry,
    get_error_definition,
    get_all_error_codes,
    validate_error_registry,
)

from hirehub_backend.exceptions.error_handlers import (
    register_exception_handlers,
)

__all__ = [
    "HireHubException",
    "UnauthorizedException",
    "ForbiddenException",
    "AdminRequiredException",
    "NotSessionHostException",
    "NotSessionParticipantException",
    "BadRequestException",
    "SessionCompletedException",
    "SelfJoinException",
    "NoParticipantException",
    "SessionAlreadyCompletedException",
    "NotFoundException",
    "SessionNotFoundException",
    "ConflictException",
    "SessionFullException",
    "RateLimitException",
    "DatabaseConnectionException",
    "DatabaseQueryException",
    "ServiceUnavailableException",
    "InternalServerException",
    "load_error_registry",
    "get_error_definition",
    "get_all_error_codes",
    "validate_error_registry",
    "register_exception_handlers",
]
