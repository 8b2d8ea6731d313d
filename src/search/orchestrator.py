"""
Multi-engine search orchestration.

Runs the configured engines in priority order, scores each non-empty
result set and decides whether to return it or keep falling back:

    idle -> attempting -> scoring -> returned
                 ^            |
                 +------------+  (next engine)
    ... -> exhausted  (engines or time budget used up)

Every attempt is bounded by min(timeout / 3, per_attempt_timeout_cap), and
never by more than the remaining overall budget, so one slow engine cannot
starve the rest of the chain and a search returns within its timeout.
Engine failures are contained: they are logged, classified and the chain
moves on. A dead browser session tears the whole browser pool down once
before the next engine runs.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.crawler.http_fetcher import HTTPFetcher
from src.search.browser_pool import BrowserPool
from src.search.engines import SearchEngine, build_engines
from src.search.errors import EngineAttemptFailed
from src.search.models import (
    AttemptSummary,
    SearchOptions,
    SearchOutcome,
    SearchResponse,
    SearchResult,
)
from src.search.quality import QualityScorer
from src.search.rate_limiter import RateLimiter
from src.utils.config import Settings
from src.utils.logging import get_logger

logger = get_logger(__name__)


class SearchState(str, Enum):
    """Fallback chain state (logged on each transition)."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    SCORING = "scoring"
    RETURNED = "returned"
    EXHAUSTED = "exhausted"


@dataclass
class EngineAttempt:
    """One engine's turn in the chain."""

    engine: str
    method: Callable[[str, int, float], Awaitable[list[SearchResult]]]
    timeout_s: float
    result_count: int = 0
    score: float | None = None
    error: str | None = None
    elapsed_ms: float = 0.0

    def summary(self) -> AttemptSummary:
        return AttemptSummary(
            engine=self.engine,
            result_count=self.result_count,
            quality_score=self.score,
            error=self.error,
            elapsed_ms=round(self.elapsed_ms, 1),
        )


class SearchOrchestrator:
    """Sequences engine attempts and arbitrates between their results.

    Example:
        orchestrator = SearchOrchestrator(get_settings())
        response = await orchestrator.search(SearchOptions(query="python asyncio"))
        await orchestrator.close_all()
    """

    def __init__(
        self,
        settings: Settings,
        *,
        rate_limiter: RateLimiter | None = None,
        browser_pool: BrowserPool | None = None,
        http_fetcher: HTTPFetcher | None = None,
        scorer: QualityScorer | None = None,
        engines: list[SearchEngine] | None = None,
    ) -> None:
        self._settings = settings
        self._config = settings.search
        self._rate_limiter = rate_limiter or RateLimiter.from_config(settings.rate_limit)
        self._pool = browser_pool or BrowserPool(settings.browser)
        self._http = http_fetcher or HTTPFetcher()
        self._scorer = scorer or QualityScorer()
        self._engines = (
            engines if engines is not None else build_engines(settings, self._pool, self._http)
        )
        # Last finished search; concurrent searches overwrite it
        self._last_attempts: list[AttemptSummary] = []
        self._pool_resets = 0

        logger.info(
            "SearchOrchestrator initialized",
            engines=[engine.display_name for engine in self._engines],
            excellent_threshold=self._config.excellent_threshold,
            acceptance_threshold=self._config.acceptance_threshold,
            quality_check=self._config.enable_quality_check,
            force_multi_engine=self._config.force_multi_engine,
        )

    @property
    def browser_pool(self) -> BrowserPool:
        return self._pool

    def _transition(self, query: str, state: SearchState, **details: Any) -> None:
        logger.debug("Search state", query=query[:100], state=state.value, **details)

    async def search(self, options: SearchOptions) -> SearchResponse:
        """Run the fallback chain for one query.

        Args:
            options: Query, result count and overall timeout.

        Returns:
            SearchResponse. An empty response with outcome
            ALL_ENGINES_FAILED means no engine produced results.

        Raises:
            RateLimitExceeded: If the request quota is exhausted.
        """
        return await self._rate_limiter.execute(lambda: self._run_chain(options))

    async def _run_chain(self, options: SearchOptions) -> SearchResponse:
        query = options.query
        num_results = min(options.num_results, self._config.max_num_results)
        start = time.monotonic()
        deadline = start + options.timeout_s
        attempt_timeout = min(options.timeout_s / 3, self._config.per_attempt_timeout_cap)

        attempts: list[EngineAttempt] = []
        best: tuple[list[SearchResult], str, float] | None = None

        logger.info(
            "Search started",
            query=query[:100],
            num_results=num_results,
            timeout_s=options.timeout_s,
            attempt_timeout_s=round(attempt_timeout, 2),
        )

        for index, engine in enumerate(self._engines):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning("Search time budget spent", query=query[:100], tried=index)
                break

            attempt = EngineAttempt(
                engine=engine.display_name,
                method=engine.search,
                timeout_s=attempt_timeout,
            )
            attempts.append(attempt)
            self._transition(
                query, SearchState.ATTEMPTING, engine=attempt.engine, position=index + 1
            )

            results = await self._run_attempt(attempt, query, num_results, remaining)
            if not results:
                continue

            self._transition(query, SearchState.SCORING, engine=attempt.engine)
            score = (
                self._scorer.score(results, query) if self._config.enable_quality_check else 1.0
            )
            attempt.score = score
            logger.info(
                "Engine results scored",
                engine=attempt.engine,
                result_count=len(results),
                quality_score=round(score, 3),
            )

            if not self._config.force_multi_engine:
                if score >= self._config.excellent_threshold:
                    outcome = SearchOutcome.EXCELLENT
                    return self._respond(
                        options, results, attempt.engine, score, outcome, attempts, start
                    )
                # The first-priority engine must be excellent to short-circuit
                if index > 0 and score >= self._config.acceptance_threshold:
                    outcome = SearchOutcome.ACCEPTED
                    return self._respond(
                        options, results, attempt.engine, score, outcome, attempts, start
                    )

            if best is None or score > best[2]:
                best = (results, attempt.engine, score)

        self._transition(query, SearchState.EXHAUSTED, attempts=len(attempts))

        if best is not None:
            results, engine_name, score = best
            meets_threshold = (
                score >= self._config.acceptance_threshold
                or not self._config.enable_quality_check
            )
            outcome = SearchOutcome.BEST_AVAILABLE if meets_threshold else SearchOutcome.DEGRADED
            if outcome is SearchOutcome.DEGRADED:
                logger.warning(
                    "Low quality results from all engines, using best available",
                    engine=engine_name,
                    quality_score=round(score, 3),
                )
            return self._respond(options, results, engine_name, score, outcome, attempts, start)

        logger.warning("All engines failed", query=query[:100], attempts=len(attempts))
        return self._respond(
            options, [], "None", 0.0, SearchOutcome.ALL_ENGINES_FAILED, attempts, start
        )

    async def _run_attempt(
        self,
        attempt: EngineAttempt,
        query: str,
        num_results: int,
        remaining: float,
    ) -> list[SearchResult]:
        """Run one engine within its attempt timeout; failures return []."""
        started = time.monotonic()
        try:
            results = await asyncio.wait_for(
                attempt.method(query, num_results, attempt.timeout_s),
                timeout=min(attempt.timeout_s, remaining),
            )
        except Exception as e:
            attempt.elapsed_ms = (time.monotonic() - started) * 1000
            await self._handle_failure(attempt, e)
            return []

        attempt.elapsed_ms = (time.monotonic() - started) * 1000
        attempt.result_count = len(results)
        if not results:
            logger.info("Engine returned no results", engine=attempt.engine)
        return results

    async def _handle_failure(self, attempt: EngineAttempt, error: Exception) -> None:
        if isinstance(error, EngineAttemptFailed):
            failure = error
        elif isinstance(error, TimeoutError):
            failure = EngineAttemptFailed(attempt.engine, "timed out", cause=error)
        else:
            reason = str(error) or type(error).__name__
            failure = EngineAttemptFailed(attempt.engine, reason, cause=error)

        attempt.error = failure.message
        logger.warning(
            "Engine attempt failed",
            engine=attempt.engine,
            error=failure.message,
            error_class=type(failure.cause or failure).__name__,
            closed_session=failure.is_closed_session,
            elapsed_ms=round(attempt.elapsed_ms, 1),
        )

        if failure.is_closed_session:
            self._pool_resets += 1
            logger.info("Browser session lost, releasing browser pool", engine=attempt.engine)
            await self._pool.release_all()

    def _respond(
        self,
        options: SearchOptions,
        results: list[SearchResult],
        engine_name: str,
        score: float,
        outcome: SearchOutcome,
        attempts: list[EngineAttempt],
        start: float,
    ) -> SearchResponse:
        summaries = [attempt.summary() for attempt in attempts]
        self._last_attempts = summaries
        elapsed_ms = (time.monotonic() - start) * 1000
        self._transition(
            options.query, SearchState.RETURNED, engine=engine_name, outcome=outcome.value
        )
        logger.info(
            "Search finished",
            query=options.query[:100],
            engine=engine_name,
            outcome=outcome.value,
            result_count=len(results),
            quality_score=round(score, 3),
            elapsed_ms=round(elapsed_ms, 1),
        )
        return SearchResponse(
            query=options.query,
            results=results,
            engine_used=engine_name,
            outcome=outcome,
            quality_score=min(max(score, 0.0), 1.0),
            elapsed_ms=elapsed_ms,
            attempts=list(summaries),
        )

    def get_stats(self) -> dict[str, Any]:
        """Rate limiter, browser pool and last-search figures for monitoring."""
        return {
            "rate_limiter": self._rate_limiter.get_status(),
            "browser_pool": self._pool.get_stats(),
            "pool_resets": self._pool_resets,
            "last_attempts": [a.model_dump() for a in self._last_attempts],
        }

    async def close_all(self) -> None:
        """Close the browser pool and the HTTP session."""
        await self._pool.close_all()
        await self._http.close()
        logger.info("SearchOrchestrator closed")

