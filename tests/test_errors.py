"""
Tests for the error taxonomy (src/search/errors.py).

## Test Perspectives Table

| Case ID | Input / Precondition | Perspective | Expected Result |
|---------|---------------------|-------------|-----------------|
| TC-ER-N-01 | TimeoutError | Equivalence – normal | TIMEOUT |
| TC-ER-N-02 | status 403/429/401 | Equivalence – normal | ACCESS_DENIED |
| TC-ER-N-03 | application/pdf | Equivalence – normal | UNSUPPORTED_CONTENT |
| TC-ER-N-04 | ConnectionError | Equivalence – normal | NETWORK |
| TC-ER-N-05 | challenge=True | Equivalence – normal | ACCESS_DENIED |
| TC-ER-N-06 | Playwright closed message | Equivalence – normal | is_closed_session |
| TC-ER-B-01 | RateLimitExceeded(12.2) | Boundary | wait_seconds rounded up |
"""

import pytest

from src.search.errors import (
    BrowserUnavailable,
    ContentSkipped,
    EngineAttemptFailed,
    ExtractionFailed,
    ExtractionFailureKind,
    RateLimitExceeded,
    WebSiftError,
    classify_extraction_error,
    describe_failure,
    is_closed_session_error,
    is_markup_type,
)

# =============================================================================
# Classification
# =============================================================================


class TestClassifyExtractionError:
    def test_timeout_error(self) -> None:
        """TC-ER-N-01: Given a TimeoutError, When classified, Then kind is TIMEOUT."""
        assert classify_extraction_error(TimeoutError()) is ExtractionFailureKind.TIMEOUT

    def test_timeout_message(self) -> None:
        """Given a Playwright-style timeout message, When classified, Then kind is TIMEOUT."""
        error = RuntimeError("Timeout 6000ms exceeded while navigating")
        assert classify_extraction_error(error) is ExtractionFailureKind.TIMEOUT

    @pytest.mark.parametrize("status", [401, 403, 429])
    def test_access_denied_statuses(self, status: int) -> None:
        """TC-ER-N-02: Given a blocking status, When classified, Then ACCESS_DENIED."""
        kind = classify_extraction_error(status=status)
        assert kind is ExtractionFailureKind.ACCESS_DENIED

    def test_non_markup_content_type(self) -> None:
        """TC-ER-N-03: Given a PDF content type, When classified, Then UNSUPPORTED_CONTENT."""
        kind = classify_extraction_error(status=200, content_type="application/pdf")
        assert kind is ExtractionFailureKind.UNSUPPORTED_CONTENT

    def test_network_default(self) -> None:
        """TC-ER-N-04: Given a connection error, When classified, Then NETWORK."""
        kind = classify_extraction_error(ConnectionError("connection reset by peer"))
        assert kind is ExtractionFailureKind.NETWORK

    def test_challenge_flag(self) -> None:
        """TC-ER-N-05: Given a detected challenge, When classified, Then ACCESS_DENIED."""
        kind = classify_extraction_error(status=200, challenge=True)
        assert kind is ExtractionFailureKind.ACCESS_DENIED

    def test_extraction_failed_keeps_kind(self) -> None:
        """Given an ExtractionFailed, When classified, Then its own kind is kept."""
        error = ExtractionFailed("https://a.example", ExtractionFailureKind.TIMEOUT)
        assert classify_extraction_error(error) is ExtractionFailureKind.TIMEOUT

    def test_is_markup_type(self) -> None:
        """Given content types, When checked, Then HTML/XML/plain text are markup."""
        assert is_markup_type("text/html; charset=utf-8")
        assert is_markup_type("application/xhtml+xml")
        assert not is_markup_type("application/pdf")
        assert not is_markup_type("image/png")


class TestDescribeFailure:
    def test_messages_name_the_cause(self) -> None:
        """Given each kind, When described, Then the message names the cause."""
        assert "timeout" in describe_failure(ExtractionFailureKind.TIMEOUT).lower()
        assert "429" in describe_failure(ExtractionFailureKind.ACCESS_DENIED, status=429)
        assert "403" in describe_failure(ExtractionFailureKind.ACCESS_DENIED, status=403)
        assert "content type" in describe_failure(ExtractionFailureKind.UNSUPPORTED_CONTENT)
        assert "network" in describe_failure(ExtractionFailureKind.NETWORK).lower()


# =============================================================================
# Exceptions
# =============================================================================


class TestExceptions:
    def test_rate_limit_exceeded_rounds_up(self) -> None:
        """TC-ER-B-01: Given 12.2 s to wait, When raised, Then the message says 13."""
        error = RateLimitExceeded(12.2)
        assert "13 seconds" in error.message
        assert error.to_dict()["details"] == {"wait_seconds": 13}
        assert isinstance(error, WebSiftError)

    def test_content_skipped_is_unsupported(self) -> None:
        """Given a PDF skip, When raised, Then it is an unsupported-content ExtractionFailed."""
        error = ContentSkipped("https://example.com/a.pdf")
        assert isinstance(error, ExtractionFailed)
        assert error.kind is ExtractionFailureKind.UNSUPPORTED_CONTENT
        assert "PDF" in error.message

    def test_closed_session_detection(self) -> None:
        """TC-ER-N-06: Given a Playwright closed-target error, When wrapped, Then flagged."""
        cause = RuntimeError("Target page, context or browser has been closed")
        failure = EngineAttemptFailed("Browser Bing", str(cause), cause=cause)

        assert is_closed_session_error(cause)
        assert failure.is_closed_session

    def test_browser_unavailable_counts_as_closed_session(self) -> None:
        """Given a launch failure cause, When wrapped, Then the pool must be reset."""
        cause = BrowserUnavailable("firefox", "executable missing")
        failure = EngineAttemptFailed("Browser Brave", cause.message, cause=cause)
        assert failure.is_closed_session

    def test_ordinary_failure_is_not_closed_session(self) -> None:
        """Given an unrelated error, When wrapped, Then no pool reset is requested."""
        failure = EngineAttemptFailed("HTTP DuckDuckGo", "HTTP 500")
        assert not failure.is_closed_session
