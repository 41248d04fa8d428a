"""
Error handling models and definitions for the HireHub platform.

This module provides structured error handling with:
- Unique error codes for every exception
- Registry-backed error definitions
- A minimal client-facing error response
"""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field


class ErrorSeverity(str, Enum):
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Error categories for classification."""
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMIT = "rate_limit"
    DATABASE = "database"
    INTERNAL = "internal"


class ErrorDefinition(BaseModel):
    """Complete error definition from registry."""
    code: str = Field(..., description="Unique error code (e.g., SESSION_001)")
    http_status: int = Field(..., description="HTTP status code")
    category: ErrorCategory = Field(..., description="Error category")
    severity: ErrorSeverity = Field(..., description="Error severity")
    title: str = Field(..., description="Short error title")
    message: str = Field(..., description="Default plain text message")
    retry_after: Optional[int] = Field(None, description="Seconds to wait before retry")

    # Developer information
    internal_description: str = Field(..., description="Internal description for developers")
    common_causes: list[str] = Field(default_factory=list, description="Common causes of this error")

    model_config = ConfigDict(use_enum_values=True)


class ErrorDebugInfo(BaseModel):
    """Debug information included in development mode."""
    timestamp: str = Field(..., description="ISO 8601 timestamp")
    function: Optional[str] = Field(None, description="Function where error occurred")
    file: Optional[str] = Field(None, description="File where error occurred")
    line: Optional[int] = Field(None, description="Line number where error occurred")
    user_id: Optional[str] = Field(None, description="User ID if authenticated")
    additional_context: Optional[dict[str, Any]] = Field(None, description="Additional context")


class ErrorResponse(BaseModel):
    """Standard error response structure sent to clients."""
    error_code: str = Field(..., description="Unique error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Any] = Field(None, description="Additional error details")
    severity: ErrorSeverity = Field(..., description="Error severity")
    category: ErrorCategory = Field(..., description="Error category")
    retry_after: Optional[int] = Field(None, description="Seconds to wait before retry")

    # Debug information (only in development mode)
    debug: Optional[ErrorDebugInfo] = Field(None, description="Debug information (dev mode only)")

    model_config = ConfigDict(use_enum_values=True)
