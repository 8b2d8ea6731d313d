"""
Data model for websift search and extraction.

SearchResult records are created by the engine parsers and filled in at
most once by the ContentExtractor. SearchResponse is what the
orchestrator hands back to the MCP façade.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationInfo, field_validator

from src.utils.text import (
    clean_text,
    generate_timestamp,
    get_content_preview,
    get_word_count,
    sanitize_query,
)

NO_DESCRIPTION = "No description available"
MAX_QUERY_LENGTH = 1000


class FetchStatus(str, Enum):
    """Outcome of fetching a result (the SERP fetch, then page extraction)."""

    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"


class SearchOutcome(str, Enum):
    """How the fallback chain ended."""

    EXCELLENT = "excellent"  # excellent threshold met, returned early
    ACCEPTED = "accepted"  # acceptance threshold met by a fallback engine
    BEST_AVAILABLE = "best_available"  # chain finished, best set meets the threshold
    DEGRADED = "degraded"  # chain finished, best set is below the threshold
    ALL_ENGINES_FAILED = "all_engines_failed"


class SearchResult(BaseModel):
    """
    One search hit, optionally enriched with page content.

    `url` is always the decoded destination (never an engine redirect
    wrapper). The content fields are written exactly once through
    record_content() or record_failure().
    """

    model_config = ConfigDict(frozen=False, extra="forbid")

    title: str = Field(..., min_length=1, description="Result title")
    url: str = Field(..., min_length=1, description="Decoded absolute destination URL")
    description: str = Field(default=NO_DESCRIPTION, description="Engine snippet")
    full_content: str = Field(default="", description="Extracted page text")
    content_preview: str = Field(default="", description="First 500 chars of page text")
    word_count: int = Field(default=0, ge=0)
    timestamp: str = Field(default_factory=generate_timestamp)
    fetch_status: FetchStatus = Field(default=FetchStatus.SUCCESS)
    error: str | None = Field(default=None)

    _extraction_recorded: bool = PrivateAttr(default=False)

    @property
    def extraction_recorded(self) -> bool:
        return self._extraction_recorded

    def record_content(self, text: str) -> None:
        """Store extracted page text.

        Raises:
            ValueError: If extraction was already recorded for this result.
        """
        self._claim_extraction()
        self.full_content = text
        self.content_preview = get_content_preview(text)
        self.word_count = get_word_count(text)
        self.fetch_status = FetchStatus.SUCCESS
        self.error = None

    def record_failure(self, message: str, *, timed_out: bool = False) -> None:
        """Store an extraction failure.

        Raises:
            ValueError: If extraction was already recorded for this result.
        """
        self._claim_extraction()
        self.full_content = ""
        self.content_preview = ""
        self.word_count = 0
        self.fetch_status = FetchStatus.TIMEOUT if timed_out else FetchStatus.ERROR
        self.error = message

    def _claim_extraction(self) -> None:
        if self._extraction_recorded:
            raise ValueError(f"Extraction already recorded for {self.url}")
        self._extraction_recorded = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (MCP wire shape)."""
        result = {
            "title": self.title,
            "url": self.url,
            "description": self.description,
            "full_content": self.full_content,
            "content_preview": self.content_preview,
            "word_count": self.word_count,
            "timestamp": self.timestamp,
            "fetch_status": self.fetch_status.value,
        }
        if self.error:
            result["error"] = self.error
        return result

    def to_summary(self) -> dict[str, Any]:
        """Title, URL, snippet and timestamp only."""
        return {
            "title": self.title,
            "url": self.url,
            "description": self.description,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_parsed(
        cls,
        title: str,
        url: str,
        description: str | None,
        timestamp: str,
    ) -> "SearchResult":
        """Build a fresh result from parser output."""
        return cls(
            title=clean_text(title, 500),
            url=url,
            description=clean_text(description, 2000) if description else NO_DESCRIPTION,
            timestamp=timestamp,
        )


class SearchOptions(BaseModel):
    """
    Options for one search call.

    The query is sanitized (trimmed, capped at 1000 characters) on
    construction; an empty query is rejected. Validate with
    context={"max_query_length": n} to apply a configured cap instead.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    query: str = Field(..., description="Search query")
    num_results: int = Field(default=5, ge=1, le=100, description="Requested result count")
    timeout_ms: int = Field(default=10000, ge=1, description="Budget for the whole search")

    @field_validator("query")
    @classmethod
    def _sanitize(cls, value: str, info: ValidationInfo) -> str:
        max_length = (info.context or {}).get("max_query_length", MAX_QUERY_LENGTH)
        value = sanitize_query(value, max_length)
        if not value:
            raise ValueError("query must not be empty")
        return value

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0


class AttemptSummary(BaseModel):
    """What happened during one engine attempt."""

    model_config = ConfigDict(frozen=True)

    engine: str
    result_count: int = 0
    quality_score: float | None = None
    error: str | None = None
    elapsed_ms: float = 0.0


class SearchResponse(BaseModel):
    """
    Result of one orchestrated search.

    An empty result set with outcome ALL_ENGINES_FAILED means "no results",
    which is distinct from a raised error.
    """

    model_config = ConfigDict(frozen=False)

    query: str
    results: list[SearchResult] = Field(default_factory=list)
    engine_used: str = Field(default="None", description="Display name of the winning engine")
    outcome: SearchOutcome = SearchOutcome.ALL_ENGINES_FAILED
    quality_score: float = Field(default=0.0, ge=0.0, le=1.0)
    elapsed_ms: float = Field(default=0.0, ge=0.0)
    attempts: list[AttemptSummary] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Whether any results were found."""
        return bool(self.results)

    @property
    def degraded(self) -> bool:
        return self.outcome is SearchOutcome.DEGRADED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "query": self.query,
            "results": [r.to_dict() for r in self.results],
            "engine_used": self.engine_used,
            "outcome": self.outcome.value,
            "quality_score": round(self.quality_score, 3),
            "elapsed_ms": round(self.elapsed_ms, 1),
            "ok": self.ok,
            "attempts": [a.model_dump() for a in self.attempts],
        }
