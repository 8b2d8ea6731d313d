"""
Headless browser pool shared by the browser search engines and the
content extractor.

Design:
- At most one cached browser per family (chromium, firefox, webkit),
  launched lazily on first acquire.
- Acquisition and health-check-and-replace run as one step under a
  per-family asyncio.Lock, so two callers never race to launch the same
  family.
- Health check: open a throwaway context and close it. A browser that
  fails is dropped, closed best-effort and relaunched.
- FIFO eviction once more than max_browsers families are cached.
- Browsing contexts are scoped: browsing_context() always closes the
  context it opened, on every exit path.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from src.search.errors import BrowserUnavailable
from src.utils.logging import get_logger

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Playwright

    from src.utils.config import BrowserConfig

logger = get_logger(__name__)


def _default_playwright_factory() -> Any:
    from playwright.async_api import async_playwright

    return async_playwright()


@dataclass
class BrowserHandle:
    """A launched browser owned by the pool."""

    family: str
    browser: Browser
    launched_at: float = field(default_factory=time.monotonic)

    @property
    def is_connected(self) -> bool:
        try:
            return bool(self.browser.is_connected())
        except Exception:
            return False


class BrowserPool:
    """Per-family cache of headless browsers.

    Example:
        pool = BrowserPool(settings.browser)
        async with pool.browsing_context("chromium") as context:
            page = await context.new_page()
            await page.goto(url)
        await pool.close_all()
    """

    def __init__(
        self,
        config: BrowserConfig,
        playwright_factory: Callable[[], Any] = _default_playwright_factory,
    ) -> None:
        """Initialize browser pool.

        Args:
            config: Browser section of the settings.
            playwright_factory: Returns an object whose start() coroutine
                yields a Playwright instance (async_playwright by default).
        """
        self._config = config
        self._playwright_factory = playwright_factory
        self._playwright: Playwright | None = None
        self._start_lock = asyncio.Lock()

        # Insertion order is the eviction order
        self._browsers: dict[str, BrowserHandle] = {}
        self._locks: dict[str, asyncio.Lock] = {}

        self._family_cursor = 0
        self._launch_count = 0
        self._reuse_count = 0

        logger.debug(
            "BrowserPool initialized",
            families=list(config.families),
            max_browsers=config.max_browsers,
            headless=config.headless,
        )

    def _lock_for(self, family: str) -> asyncio.Lock:
        lock = self._locks.get(family)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[family] = lock
        return lock

    async def _ensure_playwright(self) -> Playwright:
        async with self._start_lock:
            if self._playwright is None:
                self._playwright = await self._playwright_factory().start()
                logger.info("Playwright started")
            return self._playwright

    async def acquire(self, family: str) -> BrowserHandle:
        """Return a healthy browser of the given family.

        Args:
            family: Browser family (chromium, firefox or webkit).

        Returns:
            A connected browser handle. The pool keeps ownership.

        Raises:
            BrowserUnavailable: If a fresh browser could not be launched.
        """
        async with self._lock_for(family):
            handle = self._browsers.get(family)
            if handle is not None:
                if handle.is_connected and await self._is_healthy(handle):
                    self._reuse_count += 1
                    return handle

                logger.warning("Cached browser unhealthy, relaunching", family=family)
                self._browsers.pop(family, None)
                await self._close_handle(handle)

            handle = await self._launch(family)
            self._browsers[family] = handle

        await self._evict_over_capacity(keep=family)
        return handle

    async def _is_healthy(self, handle: BrowserHandle) -> bool:
        try:
            context = await handle.browser.new_context(user_agent=self._config.user_agent)
            await context.close()
        except Exception as e:
            logger.debug("Browser health check failed", family=handle.family, error=str(e))
            return False
        return True

    async def _launch(self, family: str) -> BrowserHandle:
        try:
            playwright = await self._ensure_playwright()
            browser_type = getattr(playwright, family)
            launch_options: dict[str, Any] = {
                "headless": self._config.headless,
                "timeout": self._config.launch_timeout * 1000,
            }
            if family == "chromium":
                launch_options["args"] = list(self._config.launch_args)
            browser = await browser_type.launch(**launch_options)
        except Exception as e:
            logger.error("Browser launch failed", family=family, error=str(e))
            raise BrowserUnavailable(family, str(e)) from e

        self._launch_count += 1
        logger.info("Browser launched", family=family, launch_count=self._launch_count)
        return BrowserHandle(family=family, browser=browser)

    async def _evict_over_capacity(self, keep: str) -> None:
        while len(self._browsers) > self._config.max_browsers:
            oldest = next(iter(self._browsers))
            if oldest == keep:
                break
            handle = self._browsers.pop(oldest)
            logger.info("Evicting browser", family=oldest, cached=len(self._browsers))
            await self._close_handle(handle)

    async def _close_handle(self, handle: BrowserHandle) -> None:
        try:
            await handle.browser.close()
        except Exception as e:
            logger.debug("Error closing browser", family=handle.family, error=str(e))

    async def discard(self, family: str) -> None:
        """Drop and close one family so the next acquire launches fresh."""
        async with self._lock_for(family):
            handle = self._browsers.pop(family, None)
        if handle is not None:
            logger.debug("Discarding browser", family=family)
            await self._close_handle(handle)

    def context_options(self, **overrides: Any) -> dict[str, Any]:
        """Fingerprint profile for new contexts, with per-call overrides."""
        options: dict[str, Any] = {
            "user_agent": self._config.user_agent,
            "viewport": {
                "width": self._config.viewport_width,
                "height": self._config.viewport_height,
            },
            "locale": self._config.locale,
            "timezone_id": self._config.timezone_id,
        }
        options.update(overrides)
        return options

    @asynccontextmanager
    async def browsing_context(
        self, family: str, **overrides: Any
    ) -> AsyncIterator[BrowserContext]:
        """Open a context on a pooled browser; the context is always closed.

        Args:
            family: Browser family.
            **overrides: Extra new_context() options (e.g. extra_http_headers).

        Raises:
            BrowserUnavailable: If no browser of that family can be launched.
        """
        handle = await self.acquire(family)
        context = await handle.browser.new_context(**self.context_options(**overrides))
        try:
            yield context
        finally:
            try:
                await context.close()
            except Exception as e:
                logger.debug("Error closing context", family=family, error=str(e))

    def next_family(self) -> str:
        """Configured families in round-robin order."""
        families = self._config.families
        family = families[self._family_cursor % len(families)]
        self._family_cursor += 1
        return family

    async def release_all(self) -> None:
        """Close every cached browser and clear the pool."""
        handles = list(self._browsers.values())
        self._browsers.clear()
        for handle in handles:
            await self._close_handle(handle)
        if handles:
            logger.info("Browser pool released", closed=len(handles))

    async def close_all(self) -> None:
        """Release every browser and stop Playwright (graceful shutdown)."""
        await self.release_all()
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.debug("Error stopping Playwright", error=str(e))
            self._playwright = None
            logger.info("Playwright stopped")

    def get_stats(self) -> dict[str, Any]:
        """Get pool statistics for monitoring."""
        now = time.monotonic()
        return {
            "cached": {
                family: {
                    "connected": handle.is_connected,
                    "age_seconds": round(now - handle.launched_at, 1),
                }
                for family, handle in self._browsers.items()
            },
            "max_browsers": self._config.max_browsers,
            "launch_count": self._launch_count,
            "reuse_count": self._reuse_count,
            "playwright_started": self._playwright is not None,
        }
