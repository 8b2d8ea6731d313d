"""
websift search module.

Multi-engine web search with relevance-based arbitration.

Main entry point (import from src.search.orchestrator):
    SearchOrchestrator.search() - Run the engine fallback chain

Building blocks:
    RateLimiter - Quota window plus concurrency cap
    BrowserPool - Per-family headless browser cache
    QualityScorer - Lexical relevance heuristic
    parsers - Per-engine result page strategies and URL normalizers
"""

from src.search.browser_pool import BrowserHandle, BrowserPool
from src.search.errors import (
    BrowserUnavailable,
    ContentSkipped,
    EngineAttemptFailed,
    ExtractionFailed,
    ExtractionFailureKind,
    RateLimitExceeded,
    WebSiftError,
)
from src.search.models import (
    AttemptSummary,
    FetchStatus,
    SearchOptions,
    SearchOutcome,
    SearchResponse,
    SearchResult,
)
from src.search.quality import QualityScorer
from src.search.rate_limiter import RateLimiter

__all__ = [
    # Models
    "AttemptSummary",
    "FetchStatus",
    "SearchOptions",
    "SearchOutcome",
    "SearchResponse",
    "SearchResult",
    # Errors
    "BrowserUnavailable",
    "ContentSkipped",
    "EngineAttemptFailed",
    "ExtractionFailed",
    "ExtractionFailureKind",
    "RateLimitExceeded",
    "WebSiftError",
    # Components
    "BrowserHandle",
    "BrowserPool",
    "QualityScorer",
    "RateLimiter",
]
