"""Browser fetcher: renders pages in a pooled headless browser."""

from __future__ import annotations

import asyncio
import random
import time
from typing import TYPE_CHECKING

from src.crawler.challenge_detector import detect_challenge_type, is_challenge_page
from src.crawler.fetch_result import FetchResult
from src.search.errors import (
    BrowserUnavailable,
    ExtractionFailureKind,
    classify_extraction_error,
)
from src.utils.logging import get_logger

if TYPE_CHECKING:
    from playwright.async_api import BrowserContext, Page, Route

    from src.search.browser_pool import BrowserPool

logger = get_logger(__name__)

# Heavy resources that never contribute text
BLOCKED_RESOURCE_PATTERNS = (
    "**/*.{png,jpg,jpeg,gif,svg,webp,ico}",
    "**/*.{mp4,webm,mp3,avi,mov}",
    "**/*.{woff,woff2,ttf,otf}",
)


class ReadingScroll:
    """Short ease-out scroll sequence imitating a reader skimming a page."""

    def __init__(
        self,
        base_amount: float = 400.0,
        variance: float = 0.4,
        animation_ms: float = 200.0,
        ease_out_power: float = 3.0,
        max_gestures: int = 3,
    ) -> None:
        self._base_amount = base_amount
        self._variance = variance
        self._animation_ms = animation_ms
        self._ease_out_power = ease_out_power
        self._max_gestures = max_gestures

    def plan(
        self, page_height: int, viewport_height: int, steps: int = 5
    ) -> list[tuple[int, float]]:
        """(scroll position, delay ms) pairs; ease-out within each gesture."""
        positions: list[tuple[int, float]] = []
        max_scroll = max(0, page_height - viewport_height)
        position = 0
        step_delay = self._animation_ms / steps

        for _ in range(self._max_gestures):
            if position >= max_scroll:
                break
            amount = self._base_amount * (1 + random.uniform(-self._variance, self._variance))
            target = min(position + int(amount), max_scroll)
            for i in range(1, steps + 1):
                eased = 1 - (1 - i / steps) ** self._ease_out_power
                positions.append((position + int((target - position) * eased), step_delay))
            position = target

        return positions

    async def run(self, page: Page) -> None:
        dimensions = await page.evaluate(
            "() => [document.body ? document.body.scrollHeight : 0, window.innerHeight]"
        )
        page_height, viewport_height = int(dimensions[0]), int(dimensions[1])
        for position, delay_ms in self.plan(page_height, viewport_height):
            await page.evaluate(f"window.scrollTo(0, {position})")
            await asyncio.sleep(delay_ms / 1000)


class BrowserFetcher:
    """Renders a URL in a browser from the shared pool.

    Each render gets its own browsing context (closed afterwards); browser
    families are rotated through BrowserPool.next_family().
    """

    def __init__(self, pool: BrowserPool, *, simulate_reading: bool = True) -> None:
        self._pool = pool
        self._simulate_reading = simulate_reading
        self._scroll = ReadingScroll()

    @property
    def pool(self) -> BrowserPool:
        return self._pool

    async def fetch(self, url: str, *, timeout: float, family: str | None = None) -> FetchResult:
        """Render URL and return the resulting DOM.

        Args:
            url: URL to render.
            timeout: Navigation timeout in seconds.
            family: Browser family; rotated when omitted.

        Returns:
            FetchResult with method "browser". Failures are returned, not raised.
        """
        family = family or self._pool.next_family()
        start = time.monotonic()
        try:
            async with self._pool.browsing_context(family) as context:
                await self._block_heavy_resources(context)
                page = await context.new_page()
                response = await page.goto(
                    url,
                    timeout=timeout * 1000,
                    wait_until="domcontentloaded",
                )
                if self._simulate_reading:
                    await self._scroll.run(page)
                html = await page.content()
                final_url = page.url
        except BrowserUnavailable as e:
            logger.warning("No browser available for render", url=url[:100], family=family)
            return FetchResult(
                ok=False,
                url=url,
                reason=e.message,
                method="browser",
                failure_kind=ExtractionFailureKind.NETWORK,
                elapsed_ms=(time.monotonic() - start) * 1000,
            )
        except Exception as e:
            kind = classify_extraction_error(e)
            logger.warning("Browser render error", url=url[:100], family=family, error=str(e))
            return FetchResult(
                ok=False,
                url=url,
                reason=str(e),
                method="browser",
                failure_kind=kind,
                elapsed_ms=(time.monotonic() - start) * 1000,
            )

        elapsed_ms = (time.monotonic() - start) * 1000
        status = response.status if response is not None else None

        if is_challenge_page(html):
            challenge_type = detect_challenge_type(html)
            logger.info("Browser challenge detected", url=url[:100], challenge_type=challenge_type)
            return FetchResult(
                ok=False,
                url=url,
                status=status,
                html=html,
                reason="challenge_detected",
                method="browser",
                failure_kind=ExtractionFailureKind.ACCESS_DENIED,
                challenge_type=challenge_type,
                elapsed_ms=elapsed_ms,
            )

        if status is not None and status >= 400:
            return FetchResult(
                ok=False,
                url=url,
                status=status,
                html=html,
                reason=f"HTTP {status}",
                method="browser",
                failure_kind=classify_extraction_error(status=status),
                elapsed_ms=elapsed_ms,
            )

        logger.debug(
            "Browser render success",
            url=url[:100],
            family=family,
            status=status,
            content_length=len(html),
            elapsed_ms=round(elapsed_ms, 1),
        )
        return FetchResult(
            ok=True,
            url=url,
            final_url=final_url,
            status=status,
            html=html,
            method="browser",
            elapsed_ms=elapsed_ms,
        )

    async def _block_heavy_resources(self, context: BrowserContext) -> None:
        async def block_route(route: Route) -> None:
            await route.abort()

        for pattern in BLOCKED_RESOURCE_PATTERNS:
            await context.route(pattern, block_route)
