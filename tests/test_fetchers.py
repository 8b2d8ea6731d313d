"""
Tests for the page fetchers (src/crawler/http_fetcher.py, src/crawler/browser_fetcher.py).

## Test Perspectives Table

| Case ID | Input / Precondition | Perspective | Expected Result |
|---------|---------------------|-------------|-----------------|
| TC-HF-N-01 | 200 text/html | Equivalence – normal | ok, lower-cased headers, final URL |
| TC-HF-N-02 | Caller headers | Equivalence – normal | Merged over generated headers |
| TC-HF-A-01 | application/pdf | Abnormal | UNSUPPORTED_CONTENT |
| TC-HF-A-02 | Challenge page | Abnormal | ACCESS_DENIED with challenge type |
| TC-HF-A-03 | 429 / 404 | Abnormal | Failure with status reason |
| TC-HF-A-04 | Request times out | Abnormal | TIMEOUT, not raised |
| TC-BF-N-01 | Rendered page | Equivalence – normal | ok, method browser, context closed |
| TC-BF-A-01 | Launch failure | Abnormal | NETWORK failure, not raised |
| TC-BF-A-02 | Navigation timeout | Abnormal | TIMEOUT |
| TC-BF-A-03 | 404 / challenge | Abnormal | Failure result |
| TC-RS-B-01 | Page shorter than viewport | Boundary | No scrolling |
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.crawler.browser_fetcher import BLOCKED_RESOURCE_PATTERNS, BrowserFetcher, ReadingScroll
from src.crawler.http_fetcher import HTTPFetcher, build_request_headers
from src.search.browser_pool import BrowserPool
from src.search.errors import ExtractionFailureKind
from tests.conftest import FakePage, FakePlaywright

CHALLENGE_HTML = (
    '<html><body><div id="cf-browser-verification">'
    "Checking your browser before accessing</div></body></html>"
)


def _response(
    text: str = "<html><body>ok</body></html>",
    status: int = 200,
    content_type: str = "text/html; charset=utf-8",
    url: str = "https://example.com/final",
) -> MagicMock:
    response = MagicMock()
    response.text = text
    response.status_code = status
    response.headers = {"Content-Type": content_type, "Server": "nginx"}
    response.url = url
    return response


@pytest.fixture
def fetcher() -> HTTPFetcher:
    fetcher = HTTPFetcher()
    fetcher._session = MagicMock()
    fetcher._session.get = AsyncMock(return_value=_response())
    fetcher._session.close = AsyncMock()
    return fetcher


# =============================================================================
# HTTPFetcher
# =============================================================================


class TestHTTPFetcher:
    async def test_success(self, fetcher: HTTPFetcher) -> None:
        """TC-HF-N-01: Given a 200 HTML response, When fetched, Then ok with final URL."""
        result = await fetcher.fetch("https://example.com/start", timeout=5.0)

        assert result.ok
        assert result.status == 200
        assert result.final_url == "https://example.com/final"
        assert result.content_type == "text/html; charset=utf-8"
        assert result.headers["server"] == "nginx"
        assert result.method == "http_client"
        call = fetcher._session.get.await_args
        assert call.kwargs["timeout"] == 5.0
        assert call.kwargs["allow_redirects"] is True

    async def test_caller_headers_override(self, fetcher: HTTPFetcher) -> None:
        """TC-HF-N-02: Given caller headers, When fetched, Then they win over generated ones."""
        await fetcher.fetch(
            "https://example.com/",
            timeout=5.0,
            params={"q": "x"},
            headers={"Accept-Language": "de-DE"},
        )

        call = fetcher._session.get.await_args
        assert call.kwargs["headers"]["Accept-Language"] == "de-DE"
        assert "User-Agent" in call.kwargs["headers"]
        assert call.kwargs["params"] == {"q": "x"}

    async def test_non_markup_rejected(self, fetcher: HTTPFetcher) -> None:
        """TC-HF-A-01: Given a PDF response, When fetched, Then UNSUPPORTED_CONTENT."""
        fetcher._session.get.return_value = _response(content_type="application/pdf")

        result = await fetcher.fetch("https://example.com/report", timeout=5.0)

        assert not result.ok
        assert result.failure_kind is ExtractionFailureKind.UNSUPPORTED_CONTENT
        assert result.html == ""

    async def test_challenge_detected(self, fetcher: HTTPFetcher) -> None:
        """TC-HF-A-02: Given a Cloudflare check page, When fetched, Then ACCESS_DENIED."""
        fetcher._session.get.return_value = _response(text=CHALLENGE_HTML, status=403)

        result = await fetcher.fetch("https://example.com/", timeout=5.0)

        assert not result.ok
        assert result.challenge
        assert result.challenge_type == "cloudflare"
        assert result.failure_kind is ExtractionFailureKind.ACCESS_DENIED

    @pytest.mark.parametrize(
        "status,kind",
        [
            (429, ExtractionFailureKind.ACCESS_DENIED),
            (404, ExtractionFailureKind.NETWORK),
        ],
    )
    async def test_error_status(self, fetcher: HTTPFetcher, status: int, kind) -> None:
        """TC-HF-A-03: Given an error status, When fetched, Then a classified failure."""
        fetcher._session.get.return_value = _response(status=status)

        result = await fetcher.fetch("https://example.com/", timeout=5.0)

        assert not result.ok
        assert result.reason == f"HTTP {status}"
        assert result.failure_kind is kind

    async def test_exception_returned_as_failure(self, fetcher: HTTPFetcher) -> None:
        """TC-HF-A-04: Given the request times out, When fetched, Then TIMEOUT is returned."""
        fetcher._session.get.side_effect = TimeoutError("Operation timed out after 5000 ms")

        result = await fetcher.fetch("https://slow.example/", timeout=5.0)

        assert not result.ok
        assert result.failure_kind is ExtractionFailureKind.TIMEOUT
        assert "timed out" in result.reason

    async def test_close(self, fetcher: HTTPFetcher) -> None:
        """Given an open session, When closed, Then it is closed once and dropped."""
        session = fetcher._session
        await fetcher.close()
        await fetcher.close()

        session.close.assert_awaited_once()
        assert fetcher._session is None

    def test_request_headers(self) -> None:
        """Given a user agent, When headers are built, Then it is used."""
        headers = build_request_headers("TestAgent/1.0")
        assert headers["User-Agent"] == "TestAgent/1.0"
        assert headers["Sec-Fetch-Mode"] == "navigate"


# =============================================================================
# BrowserFetcher
# =============================================================================


def _browser_fetcher(settings, page: FakePage, simulate_reading: bool = False):
    playwright = FakePlaywright(page)
    pool = BrowserPool(settings.browser, playwright_factory=lambda: playwright)
    return BrowserFetcher(pool, simulate_reading=simulate_reading), playwright


class TestBrowserFetcher:
    async def test_render_success(self, settings, article_html: str) -> None:
        """
        TC-BF-N-01: Given a page that renders,
        When fetched,
        Then the DOM is returned and the context is closed.
        """
        fetcher, playwright = _browser_fetcher(settings, FakePage(article_html))

        result = await fetcher.fetch("https://blog.example/post", timeout=5.0)

        assert result.ok
        assert result.method == "browser"
        assert result.html == article_html
        assert result.final_url == "https://blog.example/post"
        context = playwright.launched[0].contexts[0]
        assert context.closed
        assert context.route.await_count == len(BLOCKED_RESOURCE_PATTERNS)

    async def test_family_rotation(self, settings, article_html: str) -> None:
        """Given no family, When fetched twice, Then chromium then firefox render."""
        fetcher, playwright = _browser_fetcher(settings, FakePage(article_html))

        await fetcher.fetch("https://a.example/", timeout=5.0)
        await fetcher.fetch("https://b.example/", timeout=5.0)

        assert [b.family for b in playwright.launched] == ["chromium", "firefox"]

    async def test_launch_failure(self, settings) -> None:
        """TC-BF-A-01: Given no browser can launch, When fetched, Then a NETWORK failure."""
        fetcher, playwright = _browser_fetcher(settings, FakePage())
        playwright.launch_error = RuntimeError("Executable doesn't exist")

        result = await fetcher.fetch("https://a.example/", timeout=5.0)

        assert not result.ok
        assert result.failure_kind is ExtractionFailureKind.NETWORK

    async def test_navigation_timeout(self, settings) -> None:
        """TC-BF-A-02: Given goto times out, When fetched, Then TIMEOUT is returned."""
        page = FakePage()
        page.goto = AsyncMock(side_effect=RuntimeError("Timeout 5000ms exceeded."))
        fetcher, _ = _browser_fetcher(settings, page)

        result = await fetcher.fetch("https://slow.example/", timeout=5.0)

        assert not result.ok
        assert result.failure_kind is ExtractionFailureKind.TIMEOUT

    async def test_error_status(self, settings, article_html: str) -> None:
        """TC-BF-A-03: Given a 404 response, When fetched, Then a failure with the markup."""
        fetcher, _ = _browser_fetcher(settings, FakePage(article_html, status=404))

        result = await fetcher.fetch("https://a.example/missing", timeout=5.0)

        assert not result.ok
        assert result.status == 404
        assert result.html == article_html

    async def test_challenge(self, settings) -> None:
        """TC-BF-A-03: Given a challenge page renders, When fetched, Then ACCESS_DENIED."""
        fetcher, _ = _browser_fetcher(settings, FakePage(CHALLENGE_HTML))

        result = await fetcher.fetch("https://a.example/", timeout=5.0)

        assert result.failure_kind is ExtractionFailureKind.ACCESS_DENIED
        assert result.challenge_type == "cloudflare"

    async def test_reading_simulation_scrolls(self, settings, article_html: str) -> None:
        """Given reading simulation on, When fetched, Then the page is scrolled."""
        page = FakePage(article_html)
        page.evaluate = AsyncMock(return_value=[3000, 768])
        fetcher, _ = _browser_fetcher(settings, page, simulate_reading=True)
        fetcher._scroll = ReadingScroll(animation_ms=0)

        await fetcher.fetch("https://a.example/", timeout=5.0)

        scroll_calls = [c for c in page.evaluate.await_args_list if "scrollTo" in c.args[0]]
        assert scroll_calls


# =============================================================================
# ReadingScroll
# =============================================================================


class TestReadingScroll:
    def test_short_page_not_scrolled(self) -> None:
        """TC-RS-B-01: Given a page shorter than the viewport, When planned, Then no steps."""
        assert ReadingScroll().plan(600, 768) == []

    def test_plan_is_monotonic_and_bounded(self) -> None:
        """Given a long page, When planned, Then positions rise and stay within the page."""
        plan = ReadingScroll().plan(5000, 768)
        positions = [position for position, _ in plan]

        assert positions == sorted(positions)
        assert max(positions) <= 5000 - 768
        assert len(plan) <= 3 * 5

    def test_single_gesture_reaches_bottom(self) -> None:
        """Given a gesture larger than the page, When planned, Then it ends at the bottom."""
        plan = ReadingScroll(base_amount=10_000, variance=0.0).plan(2000, 500)

        assert len(plan) == 5
        assert plan[-1][0] == 1500
