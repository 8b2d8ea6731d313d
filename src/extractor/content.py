"""
Page content extraction for search results.

One URL is fetched over HTTP first and rendered in a pooled browser only
when the HTTP copy is not good enough: too little text, a markup shell
that needs JavaScript, or a challenge/403/429 response. Hosts known to
need JavaScript skip the HTTP step. PDF targets are never fetched.

Batch extraction fills SearchResult records in place, in waves of
bounded concurrency, until enough of them hold content.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from urllib.parse import urlparse

from src.crawler.browser_fetcher import BrowserFetcher
from src.crawler.challenge_detector import requires_javascript
from src.crawler.fetch_result import FetchResult
from src.crawler.http_fetcher import HTTPFetcher
from src.extractor.html_normalizer import extract_title, html_to_text, text_ratio
from src.search.browser_pool import BrowserPool
from src.search.errors import (
    ContentSkipped,
    ExtractionFailed,
    ExtractionFailureKind,
    classify_extraction_error,
    describe_failure,
)
from src.search.models import FetchStatus, SearchResult
from src.utils.config import Settings
from src.utils.logging import get_logger
from src.utils.text import is_pdf_url, validate_url

logger = get_logger(__name__)

# HTTP statuses a real browser often gets past
_BROWSER_RECOVERABLE_STATUSES = (403, 429)


@dataclass(frozen=True)
class PageContent:
    """Extracted text of one page."""

    url: str
    title: str
    text: str
    method: str  # "http_client" or "browser"


class ContentExtractor:
    """HTTP-first content extractor with browser escalation.

    Example:
        extractor = ContentExtractor(get_settings())
        text = await extractor.extract_content("https://example.com/article")
        await extractor.extract_content_for_results(response.results, target_count=3)
        await extractor.close_all()
    """

    def __init__(
        self,
        settings: Settings,
        *,
        http_fetcher: HTTPFetcher | None = None,
        browser_fetcher: BrowserFetcher | None = None,
        browser_pool: BrowserPool | None = None,
    ) -> None:
        """Initialize the extractor.

        Args:
            settings: Application settings (extraction and browser sections).
            http_fetcher: HTTP client; a new one is created when omitted.
            browser_fetcher: Browser renderer; built over browser_pool when omitted.
            browser_pool: Pool to render with (shared with the search engines).
        """
        self._config = settings.extraction
        self._http = http_fetcher or HTTPFetcher()
        if browser_fetcher is None:
            pool = browser_pool or BrowserPool(settings.browser)
            browser_fetcher = BrowserFetcher(pool, simulate_reading=self._config.simulate_reading)
        self._browser = browser_fetcher
        self._js_domains = tuple(domain.lower() for domain in self._config.js_required_domains)

        self._stats = {"http": 0, "browser": 0, "escalations": 0, "failures": 0}

    async def extract_content(
        self,
        url: str,
        timeout_ms: int | None = None,
        max_length: int | None = None,
    ) -> str:
        """Extract the readable text of one page.

        Args:
            url: Page URL.
            timeout_ms: Per-fetch timeout (defaults to extraction.default_timeout_ms).
            max_length: Maximum text length (defaults to extraction.max_content_length).

        Returns:
            Cleaned page text.

        Raises:
            ContentSkipped: For PDF URLs (nothing is fetched).
            ExtractionFailed: If no text could be extracted.
        """
        page = await self.extract_page(url, timeout_ms, max_length)
        return page.text

    async def extract_page(
        self,
        url: str,
        timeout_ms: int | None = None,
        max_length: int | None = None,
    ) -> PageContent:
        """Like extract_content, also reporting the page title and fetch method."""
        if is_pdf_url(url):
            logger.info("Skipping PDF URL", url=url[:100])
            raise ContentSkipped(url)
        if not validate_url(url):
            raise ExtractionFailed(
                url,
                ExtractionFailureKind.UNSUPPORTED_CONTENT,
                f"Invalid URL: {url[:100]}",
            )

        timeout = (timeout_ms or self._config.default_timeout_ms) / 1000
        max_length = max_length or self._config.max_content_length

        if self._needs_javascript(url):
            logger.debug("Host requires JavaScript, rendering directly", url=url[:100])
            result = await self._render(url, timeout)
            if not result.ok:
                raise self._failure(result)
            text = self._require_text(url, html_to_text(result.html, max_length))
            return self._page(result, text)

        result = await self._http.fetch(url, timeout=timeout)
        self._stats["http"] += 1

        http_text = html_to_text(result.html, max_length) if result.ok else ""
        reason = self._escalation_reason(result, http_text)
        if reason is None:
            if not result.ok:
                raise self._failure(result)
            return self._page(result, self._require_text(url, http_text))

        self._stats["escalations"] += 1
        logger.info("Escalating to browser", url=url[:100], reason=reason)
        rendered = await self._render(url, timeout)
        browser_text = html_to_text(rendered.html, max_length) if rendered.ok else ""

        if len(browser_text) > len(http_text):
            return self._page(rendered, browser_text)
        if http_text:
            return self._page(result, http_text)
        if not result.ok:
            raise self._failure(result)
        if not rendered.ok:
            raise self._failure(rendered)
        return self._page(rendered, self._require_text(url, browser_text))

    def _page(self, result: FetchResult, text: str) -> PageContent:
        title = extract_title(result.html) or urlparse(result.final_url).hostname or result.url
        return PageContent(url=result.url, title=title, text=text, method=result.method)

    def _needs_javascript(self, url: str) -> bool:
        host = (urlparse(url).hostname or "").lower()
        return any(host == domain or host.endswith("." + domain) for domain in self._js_domains)

    def _escalation_reason(self, result: FetchResult, text: str) -> str | None:
        """Why the HTTP copy should be re-fetched in a browser, or None."""
        if not self._config.browser_fallback:
            return None

        if not result.ok:
            if result.challenge:
                return f"challenge:{result.challenge_type}"
            if result.status in _BROWSER_RECOVERABLE_STATUSES:
                return f"status:{result.status}"
            return None

        if len(text) < self._config.min_content_length:
            return "short_content"
        if text_ratio(result.html, text) < self._config.min_text_ratio:
            return "low_text_ratio"
        if requires_javascript(result.html):
            return "javascript_required"
        return None

    async def _render(self, url: str, timeout: float) -> FetchResult:
        self._stats["browser"] += 1
        return await self._browser.fetch(url, timeout=timeout)

    def _failure(self, result: FetchResult) -> ExtractionFailed:
        self._stats["failures"] += 1
        kind = result.failure_kind or classify_extraction_error(
            status=result.status,
            content_type=result.content_type,
            challenge=result.challenge,
        )
        return ExtractionFailed(result.url, kind, status=result.status)

    def _require_text(self, url: str, text: str) -> str:
        if not text:
            self._stats["failures"] += 1
            raise ExtractionFailed(
                url,
                ExtractionFailureKind.UNSUPPORTED_CONTENT,
                "No readable content found on the page",
            )
        return text

    async def extract_content_for_results(
        self,
        results: Sequence[SearchResult],
        target_count: int | None = None,
        max_length: int | None = None,
    ) -> list[SearchResult]:
        """Fill results with page content, in place.

        Args:
            results: Search results in display order.
            target_count: Stop once this many results hold content
                (defaults to all of them).
            max_length: Maximum text length per page.

        Returns:
            The same results in the same order. Results that were never
            attempted are unchanged.
        """
        ordered = list(results)
        target = len(ordered) if target_count is None else max(0, target_count)
        wave_size = max(1, self._config.max_concurrency)
        semaphore = asyncio.Semaphore(wave_size)

        pending = [r for r in ordered if not r.extraction_recorded]
        successes = sum(
            1
            for r in ordered
            if r.extraction_recorded and r.fetch_status is FetchStatus.SUCCESS
        )

        waves = 0
        for offset in range(0, len(pending), wave_size):
            if successes >= target:
                break
            wave = pending[offset : offset + wave_size]
            waves += 1
            outcomes = await asyncio.gather(
                *(self._extract_into(result, semaphore, max_length) for result in wave)
            )
            successes += sum(1 for ok in outcomes if ok)

        logger.info(
            "Batch extraction finished",
            total=len(ordered),
            target=target,
            successes=successes,
            waves=waves,
        )
        return ordered

    async def _extract_into(
        self, result: SearchResult, semaphore: asyncio.Semaphore, max_length: int | None
    ) -> bool:
        async with semaphore:
            try:
                text = await self.extract_content(result.url, max_length=max_length)
            except ExtractionFailed as e:
                logger.info(
                    "Content extraction failed",
                    url=result.url[:100],
                    kind=e.kind.value,
                    error=e.message,
                )
                result.record_failure(e.message, timed_out=e.kind is ExtractionFailureKind.TIMEOUT)
                return False
            except Exception as e:
                kind = classify_extraction_error(e)
                logger.warning(
                    "Unexpected extraction error",
                    url=result.url[:100],
                    kind=kind.value,
                    error=str(e),
                )
                result.record_failure(
                    describe_failure(kind),
                    timed_out=kind is ExtractionFailureKind.TIMEOUT,
                )
                return False

        result.record_content(text)
        return True

    def get_stats(self) -> dict[str, int]:
        return dict(self._stats)

    async def close_all(self) -> None:
        """Release the browser pool and the HTTP session."""
        await self._browser.pool.close_all()
        await self._http.close()
        logger.info("ContentExtractor closed")
