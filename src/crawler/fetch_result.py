"""Fetch result data class shared by the HTTP and browser fetchers."""

from typing import Any

from src.search.errors import ExtractionFailureKind


class FetchResult:
    """Result of a fetch operation.

    A failed fetch carries a reason and, where it can be told, the failure
    kind used to classify extraction errors.
    """

    def __init__(
        self,
        ok: bool,
        url: str,
        *,
        status: int | None = None,
        headers: dict[str, str] | None = None,
        html: str = "",
        reason: str | None = None,
        method: str = "http_client",
        failure_kind: ExtractionFailureKind | None = None,
        challenge_type: str | None = None,
        elapsed_ms: float = 0.0,
        # Redirect tracking
        final_url: str | None = None,  # URL after following redirects
    ):
        self.ok = ok
        self.url = url
        self.final_url = final_url or url
        self.status = status
        self.headers = headers or {}
        self.html = html
        self.reason = reason
        self.method = method
        self.failure_kind = failure_kind
        self.challenge_type = challenge_type
        self.elapsed_ms = elapsed_ms

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    @property
    def challenge(self) -> bool:
        return self.challenge_type is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (markup omitted)."""
        result: dict[str, Any] = {
            "ok": self.ok,
            "url": self.url,
            "final_url": self.final_url,
            "status": self.status,
            "reason": self.reason,
            "method": self.method,
            "content_length": len(self.html),
            "elapsed_ms": round(self.elapsed_ms, 1),
        }
        if self.failure_kind:
            result["failure_kind"] = self.failure_kind.value
        if self.challenge_type:
            result["challenge_type"] = self.challenge_type
        return result
