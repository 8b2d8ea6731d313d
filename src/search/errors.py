"""
Error taxonomy for search and extraction.

Failures inside one engine attempt or one URL are contained at that
granularity (EngineAttemptFailed, ExtractionFailed); only errors in the
orchestration itself reach the caller. "All engines failed" is not an
exception: it is SearchOutcome.ALL_ENGINES_FAILED on an empty response.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

# Messages Playwright raises once a browser process or its session is gone
CLOSED_SESSION_MARKERS = (
    "Target page, context or browser has been closed",
    "Browser has been closed",
    "Session has been closed",
)


class ExtractionFailureKind(str, Enum):
    """Why a page could not be turned into text."""

    TIMEOUT = "timeout"
    ACCESS_DENIED = "access_denied"
    UNSUPPORTED_CONTENT = "unsupported_content"
    NETWORK = "network"


class WebSiftError(Exception):
    """Base exception for websift operations.

    Carries error details for MCP error response generation.
    """

    def __init__(
        self,
        message: str,
        *,
        error_type: str = "websift_error",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"error_type": self.error_type, "message": self.message}
        if self.details:
            result["details"] = self.details
        return result


class RateLimitExceeded(WebSiftError):
    """The current quota window is exhausted. Callers retry later."""

    def __init__(self, wait_seconds: float):
        wait = max(0, math.ceil(wait_seconds))
        super().__init__(
            f"Rate limit exceeded. Please wait {wait} seconds.",
            error_type="rate_limit_exceeded",
            details={"wait_seconds": wait},
        )
        self.wait_seconds = wait_seconds


class BrowserUnavailable(WebSiftError):
    """A browser could not be launched or failed its health check."""

    def __init__(self, family: str, reason: str):
        super().__init__(
            f"{family} browser unavailable: {reason}",
            error_type="browser_unavailable",
            details={"family": family},
        )
        self.family = family


class EngineAttemptFailed(WebSiftError):
    """One engine's attempt failed; the fallback chain moves on."""

    def __init__(self, engine: str, reason: str, *, cause: BaseException | None = None):
        super().__init__(
            f"{engine} search failed: {reason}",
            error_type="engine_attempt_failed",
            details={"engine": engine},
        )
        self.engine = engine
        self.cause = cause

    @property
    def is_closed_session(self) -> bool:
        """Whether the underlying error means a dead browser session."""
        if isinstance(self.cause, BrowserUnavailable):
            return True
        return is_closed_session_error(self.cause or self)


class ExtractionFailed(WebSiftError):
    """Content could not be extracted from one URL."""

    def __init__(
        self,
        url: str,
        kind: ExtractionFailureKind,
        message: str | None = None,
        *,
        status: int | None = None,
    ):
        super().__init__(
            message or describe_failure(kind, status=status),
            error_type="extraction_failed",
            details={"url": url, "kind": kind.value, "status": status},
        )
        self.url = url
        self.kind = kind
        self.status = status


class ContentSkipped(ExtractionFailed):
    """The URL points at content that is never fetched (PDF documents)."""

    def __init__(
        self,
        url: str,
        reason: str = "PDF files are not supported for content extraction",
    ):
        super().__init__(url, ExtractionFailureKind.UNSUPPORTED_CONTENT, reason)


def is_closed_session_error(error: BaseException) -> bool:
    message = str(error)
    return any(marker in message for marker in CLOSED_SESSION_MARKERS)


def classify_extraction_error(
    error: BaseException | None = None,
    *,
    status: int | None = None,
    content_type: str | None = None,
    challenge: bool = False,
) -> ExtractionFailureKind:
    """Map an exception and/or HTTP response facts to a failure kind.

    Args:
        error: Exception raised while fetching or rendering, if any.
        status: HTTP status code, if a response arrived.
        content_type: Response Content-Type header.
        challenge: Whether a bot challenge page was detected.

    Returns:
        The failure kind.
    """
    if isinstance(error, ExtractionFailed):
        return error.kind
    if challenge or status in (401, 403, 429, 503):
        return ExtractionFailureKind.ACCESS_DENIED
    if content_type and not is_markup_type(content_type):
        return ExtractionFailureKind.UNSUPPORTED_CONTENT

    if error is not None:
        if isinstance(error, TimeoutError):
            return ExtractionFailureKind.TIMEOUT
        message = str(error).lower()
        if "timeout" in message or "timed out" in message:
            return ExtractionFailureKind.TIMEOUT
        if any(word in message for word in ("403", "forbidden", "captcha", "access denied")):
            return ExtractionFailureKind.ACCESS_DENIED

    return ExtractionFailureKind.NETWORK


def describe_failure(kind: ExtractionFailureKind, *, status: int | None = None) -> str:
    """Human-readable message recorded on a failed result."""
    if kind is ExtractionFailureKind.TIMEOUT:
        return "Request timeout - the website took too long to respond"
    if kind is ExtractionFailureKind.ACCESS_DENIED:
        if status == 429:
            return "Rate limited (429) - the website is throttling requests"
        if status:
            return f"Access denied ({status}) - the website blocked automated access"
        return "Access denied - bot protection or challenge page detected"
    if kind is ExtractionFailureKind.UNSUPPORTED_CONTENT:
        return "Unsupported content type - the resource is not an HTML page"
    if status:
        return f"HTTP {status} - the page could not be retrieved"
    return "Network error - could not connect to the website"


def is_markup_type(content_type: str) -> bool:
    content_type = content_type.lower()
    return any(kind in content_type for kind in ("html", "xml", "text/plain"))
