"""
Search engine transports.

Each engine turns (query, num_results, timeout) into parsed results:
- BingBrowserEngine: Chromium, homepage form flow with a direct-URL fallback
- BraveBrowserEngine: Firefox, direct result URL
- DuckDuckGoHttpEngine: plain HTTP against the HTML endpoint

Browser engines retry with a freshly launched browser: a failed try
discards that family from the pool before the next one.
"""

from __future__ import annotations

import asyncio
import secrets
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from src.search.errors import EngineAttemptFailed
from src.search.models import SearchResult
from src.search.parsers import get_parser
from src.utils.logging import get_logger

if TYPE_CHECKING:
    from playwright.async_api import Page

    from src.crawler.http_fetcher import HTTPFetcher
    from src.search.browser_pool import BrowserPool
    from src.search.parsers import ResultParser
    from src.utils.config import Settings

logger = get_logger(__name__)

BING_HOME_URL = "https://www.bing.com"
BING_SEARCH_URL = "https://www.bing.com/search"
BRAVE_SEARCH_URL = "https://search.brave.com/search"
DUCKDUCKGO_HTML_URL = "https://html.duckduckgo.com/html/"

BING_EXTRA_HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
}

DUCKDUCKGO_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
}


def generate_conversation_id() -> str:
    """32 upper-case hex characters, the shape of Bing's cvid parameter."""
    return secrets.token_hex(16).upper()


def build_bing_search_url(query: str, num_results: int) -> str:
    return (
        f"{BING_SEARCH_URL}?q={quote(query, safe='')}&count={min(num_results, 10)}"
        f"&form=QBLH&sp=-1&qs=n&cvid={generate_conversation_id()}"
    )


def build_brave_search_url(query: str) -> str:
    return f"{BRAVE_SEARCH_URL}?q={quote(query, safe='')}&source=web"


class SearchEngine(ABC):
    """One engine in the fallback chain."""

    name: str = ""
    display_name: str = ""

    def __init__(self, parser: ResultParser | None = None) -> None:
        parser = parser or get_parser(self.name)
        if parser is None:
            raise ValueError(f"No result parser registered for engine: {self.name}")
        self.parser = parser

    @abstractmethod
    async def search(self, query: str, num_results: int, timeout: float) -> list[SearchResult]:
        """Run one attempt.

        Args:
            query: Sanitized query.
            num_results: Maximum results to return.
            timeout: Per-attempt navigation/request timeout in seconds.

        Returns:
            Parsed results (possibly empty).
        """

    def parse(self, markup: str, num_results: int) -> list[SearchResult]:
        """Parse a result page; an empty page that looks blocked is an error."""
        results = self.parser.parse_result_set(markup, num_results)
        if not results:
            reason = self.parser.detect_block(markup)
            if reason:
                raise EngineAttemptFailed(self.display_name, reason)
        return results


class BrowserSearchEngine(SearchEngine):
    """Engine that loads its result page in a pooled browser."""

    result_selector: str = ""

    def __init__(
        self,
        settings: Settings,
        pool: BrowserPool,
        parser: ResultParser | None = None,
    ) -> None:
        super().__init__(parser)
        self._pool = pool
        self._retry_attempts = settings.search.browser_retry_attempts
        self._retry_backoff = settings.search.browser_retry_backoff
        self._results_wait = settings.search.results_wait_timeout
        self.family = settings.browser.engine_families.get(self.name, "chromium")

    def context_overrides(self) -> dict[str, Any]:
        return {}

    async def search(self, query: str, num_results: int, timeout: float) -> list[SearchResult]:
        last_error: Exception | None = None
        for attempt in range(1, self._retry_attempts + 1):
            try:
                results = await self._search_once(query, num_results, timeout)
                logger.info(
                    "Browser search attempt succeeded",
                    engine=self.name,
                    attempt=attempt,
                    result_count=len(results),
                )
                return results
            except Exception as e:
                last_error = e
                logger.warning(
                    "Browser search attempt failed",
                    engine=self.name,
                    attempt=attempt,
                    max_attempts=self._retry_attempts,
                    error=str(e),
                )
                # Next try gets a freshly launched browser
                await self._pool.discard(self.family)
                if attempt < self._retry_attempts:
                    await asyncio.sleep(self._retry_backoff)

        assert last_error is not None
        raise last_error

    async def _search_once(
        self, query: str, num_results: int, timeout: float
    ) -> list[SearchResult]:
        async with self._pool.browsing_context(self.family, **self.context_overrides()) as context:
            page = await context.new_page()
            await self.load_results(page, query, num_results, timeout)
            await self._wait_for_results(page)
            markup = await page.content()

        logger.debug("Result page loaded", engine=self.name, markup_length=len(markup))
        return self.parse(markup, num_results)

    @abstractmethod
    async def load_results(self, page: Page, query: str, num_results: int, timeout: float) -> None:
        """Navigate the page to the engine's result list."""

    async def _wait_for_results(self, page: Page) -> None:
        try:
            await page.wait_for_selector(self.result_selector, timeout=self._results_wait * 1000)
        except Exception as e:
            # Parse whatever rendered; the parser decides if it is usable
            logger.debug("Result selector not found", engine=self.name, error=str(e))


class BingBrowserEngine(BrowserSearchEngine):
    """Bing through Chromium: homepage form submission, direct URL as fallback."""

    name = "bing"
    display_name = "Browser Bing"
    result_selector = ".b_algo, .b_result"

    def context_overrides(self) -> dict[str, Any]:
        return {"color_scheme": "light", "extra_http_headers": dict(BING_EXTRA_HEADERS)}

    async def load_results(self, page: Page, query: str, num_results: int, timeout: float) -> None:
        try:
            await self._submit_homepage_form(page, query, timeout)
        except Exception as e:
            logger.info("Bing form flow failed, using direct URL", error=str(e))
            await page.goto(
                build_bing_search_url(query, num_results),
                wait_until="domcontentloaded",
                timeout=timeout * 1000,
            )

    async def _submit_homepage_form(self, page: Page, query: str, timeout: float) -> None:
        await page.goto(BING_HOME_URL, wait_until="domcontentloaded", timeout=timeout * 500)
        await page.wait_for_timeout(500)
        await page.wait_for_selector("#sb_form_q", timeout=2000)
        await page.fill("#sb_form_q", query)
        async with page.expect_navigation(wait_until="domcontentloaded", timeout=timeout * 1000):
            await page.click("#search_icon")


class BraveBrowserEngine(BrowserSearchEngine):
    """Brave Search through Firefox."""

    name = "brave"
    display_name = "Browser Brave"
    result_selector = '[data-type="web"]'

    async def load_results(self, page: Page, query: str, num_results: int, timeout: float) -> None:
        await page.goto(
            build_brave_search_url(query),
            wait_until="domcontentloaded",
            timeout=timeout * 1000,
        )


class DuckDuckGoHttpEngine(SearchEngine):
    """DuckDuckGo's HTML endpoint over curl_cffi."""

    name = "duckduckgo"
    display_name = "HTTP DuckDuckGo"

    def __init__(self, http_fetcher: HTTPFetcher, parser: ResultParser | None = None) -> None:
        super().__init__(parser)
        self._http = http_fetcher

    async def search(self, query: str, num_results: int, timeout: float) -> list[SearchResult]:
        result = await self._http.fetch(
            DUCKDUCKGO_HTML_URL,
            params={"q": query},
            headers=dict(DUCKDUCKGO_HEADERS),
            timeout=timeout,
        )
        if not result.ok:
            raise EngineAttemptFailed(self.display_name, result.reason or "request failed")

        results = self.parse(result.html, num_results)
        logger.info("DuckDuckGo search finished", result_count=len(results), status=result.status)
        return results


def build_engines(
    settings: Settings,
    pool: BrowserPool,
    http_fetcher: HTTPFetcher,
) -> list[SearchEngine]:
    """Instantiate the configured fallback chain in priority order.

    Raises:
        ValueError: If a configured engine has no transport.
    """
    engines: list[SearchEngine] = []
    for name in settings.search.engines:
        key = name.lower()
        if key == BingBrowserEngine.name:
            engines.append(BingBrowserEngine(settings, pool))
        elif key == BraveBrowserEngine.name:
            engines.append(BraveBrowserEngine(settings, pool))
        elif key == DuckDuckGoHttpEngine.name:
            engines.append(DuckDuckGoHttpEngine(http_fetcher))
        else:
            raise ValueError(f"Unknown search engine: {name}")
    return engines
