"""
Pytest fixtures and configuration for websift tests.

=============================================================================
Test Classification
=============================================================================

- @pytest.mark.unit: Single class/function, no external dependencies
  - Fast (<1s per test)
  - Playwright, curl_cffi and the network are fully mocked
  - DEFAULT: Tests without marker are auto-classified as unit

- @pytest.mark.integration: Multiple components wired together, external
  dependencies mocked (e.g. orchestrator + real parsers + fake browser)

- @pytest.mark.e2e: Live search engines and real browsers
  - DEFAULT EXCLUDED (addopts = -m 'not e2e'); run with `pytest -m e2e`
  - Risk of rate limiting / captcha pages

- @pytest.mark.slow: Tests taking more than 5 seconds

=============================================================================
Mock Strategy
=============================================================================

- Browsers: FakePlaywright / FakeBrowser below (no Playwright process)
- HTTP: AsyncMock fetchers returning FetchResult objects
- Time: injectable clocks (RateLimiter) and small timeouts
- Network: Prohibited in unit tests
"""

import os
from collections.abc import Generator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment before importing anything else
os.environ["WEBSIFT_CONFIG_DIR"] = str(Path(__file__).parent.parent / "config")
os.environ.setdefault("WEBSIFT_GENERAL__LOG_LEVEL", "DEBUG")

from src.crawler.fetch_result import FetchResult  # noqa: E402
from src.search.models import SearchResult  # noqa: E402
from src.utils.config import Settings, get_settings  # noqa: E402

# =============================================================================
# Pytest Hooks for Test Classification
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """
    Auto-apply markers.

    Tests without explicit markers are assumed to be unit tests.
    """
    for item in items:
        has_classification = any(
            marker.name in ("unit", "integration", "e2e") for marker in item.iter_markers()
        )
        if not has_classification:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Every test sees settings loaded from the repository config."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_settings():
    """Factory for Settings with per-section overrides.

    Example:
        settings = make_settings(search={"force_multi_engine": True})
    """

    def _make(**sections: dict[str, Any]) -> Settings:
        base = Settings()
        data = base.model_dump()
        for section, overrides in sections.items():
            data[section] = {**data[section], **overrides}
        return Settings(**data)

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    """Defaults with browser retry backoff and reading simulation disabled."""
    return make_settings(
        search={"browser_retry_backoff": 0.0},
        extraction={"simulate_reading": False},
    )


# =============================================================================
# Fake Playwright
# =============================================================================


class FakePage:
    """Minimal async Page double."""

    def __init__(self, html: str = "<html><body></body></html>", status: int = 200):
        self.html = html
        self.url = "about:blank"
        self.goto = AsyncMock(side_effect=self._goto)
        self.content = AsyncMock(side_effect=lambda: self.html)
        self.wait_for_selector = AsyncMock()
        self.wait_for_timeout = AsyncMock()
        self.fill = AsyncMock()
        self.click = AsyncMock()
        self.evaluate = AsyncMock(return_value=[0, 768])
        self._status = status

    async def _goto(self, url: str, **kwargs: Any) -> Any:
        self.url = url
        response = MagicMock()
        response.status = self._status
        return response


class FakeContext:
    """Minimal async BrowserContext double."""

    def __init__(self, page: FakePage | None = None, fail_health: bool = False):
        self.page = page or FakePage()
        self.closed = False
        self.fail_health = fail_health
        self.options: dict[str, Any] = {}
        self.route = AsyncMock()

    async def new_page(self) -> FakePage:
        return self.page

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    """Browser double recording contexts; health checks can be made to fail."""

    def __init__(self, family: str, page: FakePage | None = None):
        self.family = family
        self.page = page
        self.connected = True
        self.healthy = True
        self.closed = False
        self.contexts: list[FakeContext] = []

    def is_connected(self) -> bool:
        return self.connected

    async def new_context(self, **options: Any) -> FakeContext:
        if not self.healthy:
            raise RuntimeError("Target page, context or browser has been closed")
        context = FakeContext(self.page)
        context.options = options
        self.contexts.append(context)
        return context

    async def close(self) -> None:
        self.closed = True
        self.connected = False


class FakeBrowserType:
    def __init__(self, family: str, owner: "FakePlaywright"):
        self.family = family
        self.owner = owner
        self.launch_calls: list[dict[str, Any]] = []

    async def launch(self, **options: Any) -> FakeBrowser:
        self.launch_calls.append(options)
        if self.owner.launch_error is not None:
            raise self.owner.launch_error
        browser = FakeBrowser(self.family, self.owner.page)
        self.owner.launched.append(browser)
        return browser


class FakePlaywright:
    """Stands in for both async_playwright() and the started Playwright."""

    def __init__(self, page: FakePage | None = None):
        self.page = page
        self.launched: list[FakeBrowser] = []
        self.launch_error: Exception | None = None
        self.started = 0
        self.stopped = False
        self.chromium = FakeBrowserType("chromium", self)
        self.firefox = FakeBrowserType("firefox", self)
        self.webkit = FakeBrowserType("webkit", self)

    async def start(self) -> "FakePlaywright":
        self.started += 1
        return self

    async def stop(self) -> None:
        self.stopped = True


@pytest.fixture
def fake_playwright() -> FakePlaywright:
    return FakePlaywright()


@pytest.fixture
def browser_pool(settings: Settings, fake_playwright: FakePlaywright):
    from src.search.browser_pool import BrowserPool

    return BrowserPool(settings.browser, playwright_factory=lambda: fake_playwright)


# =============================================================================
# Results and fetch doubles
# =============================================================================


@pytest.fixture
def make_result():
    """Factory for SearchResult records."""

    def _make(
        url: str = "https://example.com/page",
        title: str = "Example page",
        description: str = "An example description of the page",
    ) -> SearchResult:
        return SearchResult(title=title, url=url, description=description)

    return _make


@pytest.fixture
def make_fetch_result():
    """Factory for FetchResult objects."""

    def _make(url: str = "https://example.com/page", **kwargs: Any) -> FetchResult:
        kwargs.setdefault("ok", True)
        if kwargs["ok"]:
            kwargs.setdefault("status", 200)
            kwargs.setdefault("headers", {"content-type": "text/html; charset=utf-8"})
        return FetchResult(url=url, **kwargs)

    return _make


@pytest.fixture
def article_html() -> str:
    """A readable article page well above the minimum content length."""
    paragraphs = "\n".join(
        f"<p>Paragraph {i}: asynchronous programming lets a single thread interleave "
        f"many input and output bound operations without blocking on each one.</p>"
        for i in range(8)
    )
    return f"""
    <!DOCTYPE html>
    <html>
    <head><title>Understanding asyncio</title></head>
    <body>
        <nav><a href="/">Home</a><a href="/blog">Blog</a></nav>
        <main>
            <article>
                <h1>Understanding asyncio</h1>
                {paragraphs}
            </article>
        </main>
        <footer>Copyright footer text</footer>
    </body>
    </html>
    """
