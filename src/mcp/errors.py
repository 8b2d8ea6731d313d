"""
MCP error codes for websift tools.

Every tool failure is returned to the client as a JSON body carrying one
of these codes, never as a protocol-level exception:
- INVALID_PARAMS: input validation failed (fix the arguments and re-call)
- RATE_LIMITED: request quota exhausted (wait details.wait_seconds)
- EXTRACTION_FAILED: the page could not be turned into text
- INTERNAL_ERROR: anything unexpected (see error_id in the logs)
"""

import uuid
from enum import Enum
from typing import Any

from src.search.errors import ExtractionFailed, RateLimitExceeded


class MCPErrorCode(str, Enum):
    """Error codes returned by websift MCP tools."""

    INVALID_PARAMS = "INVALID_PARAMS"
    """Input parameters are invalid or malformed.
    Action: Check parameters and re-call with corrected values."""

    RATE_LIMITED = "RATE_LIMITED"
    """The search request quota for the current window is used up.
    Action: Wait details.wait_seconds before searching again."""

    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    """Content could not be extracted from the requested page.
    Action: Check details.kind; try another URL or retry later."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    """Unexpected internal error.
    Action: Check error_id in logs, report to operator if persistent."""


class MCPError(Exception):
    """
    Base exception for MCP tool errors.

    Provides structured error responses for MCP protocol.
    """

    def __init__(
        self,
        code: MCPErrorCode,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        error_id: str | None = None,
    ):
        """
        Initialize MCP error.

        Args:
            code: Error code from MCPErrorCode enum.
            message: Human-readable error message.
            details: Optional additional error details.
            error_id: Optional unique error ID for log correlation.
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.error_id = error_id

    def to_dict(self) -> dict[str, Any]:
        """Convert error to MCP response format."""
        result: dict[str, Any] = {
            "ok": False,
            "error_code": self.code.value,
            "error": self.message,
        }
        if self.error_id:
            result["error_id"] = self.error_id
        if self.details:
            result["details"] = self.details
        return result


class InvalidParamsError(MCPError):
    """Raised when input parameters are invalid."""

    def __init__(
        self,
        message: str,
        *,
        param_name: str | None = None,
        expected: str | None = None,
        received: Any = None,
    ):
        details = {}
        if param_name:
            details["param_name"] = param_name
        if expected:
            details["expected"] = expected
        if received is not None:
            details["received"] = str(received)

        super().__init__(
            MCPErrorCode.INVALID_PARAMS,
            message,
            details=details if details else None,
        )


class RateLimitedError(MCPError):
    """Raised when the search rate limiter rejects a request."""

    def __init__(self, error: RateLimitExceeded):
        super().__init__(
            MCPErrorCode.RATE_LIMITED,
            error.message,
            details=dict(error.details),
        )


class ExtractionFailedError(MCPError):
    """Raised when a single-page extraction fails."""

    def __init__(self, error: ExtractionFailed):
        super().__init__(
            MCPErrorCode.EXTRACTION_FAILED,
            error.message,
            details={k: v for k, v in error.details.items() if v is not None},
        )


def generate_error_id() -> str:
    """Unique error ID for log correlation."""
    return f"err_{uuid.uuid4().hex[:12]}"


def create_error_response(
    code: MCPErrorCode,
    message: str,
    *,
    details: dict[str, Any] | None = None,
    error_id: str | None = None,
) -> dict[str, Any]:
    """Standardized MCP error body, for handlers that return instead of raise."""
    return MCPError(code, message, details=details, error_id=error_id).to_dict()
