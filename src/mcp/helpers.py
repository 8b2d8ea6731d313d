"""Helper functions for MCP server operations.

Owns the process-wide services shared by all tool handlers (one browser
pool and one HTTP session behind both the orchestrator and the extractor)
and the argument validation the handlers have in common.
"""

import asyncio
from dataclasses import dataclass
from typing import Any

from src.crawler.browser_fetcher import BrowserFetcher
from src.crawler.http_fetcher import HTTPFetcher
from src.extractor.content import ContentExtractor
from src.mcp.errors import InvalidParamsError
from src.search.browser_pool import BrowserPool
from src.search.orchestrator import SearchOrchestrator
from src.utils.config import Settings, get_settings
from src.utils.logging import get_logger

logger = get_logger(__name__)

# ============================================================
# Shared Services
# ============================================================


@dataclass
class Services:
    """Long-lived components behind the MCP tools."""

    settings: Settings
    orchestrator: SearchOrchestrator
    extractor: ContentExtractor
    browser_pool: BrowserPool
    http_fetcher: HTTPFetcher

    async def close(self) -> None:
        await self.orchestrator.close_all()
        await self.extractor.close_all()


def build_services(settings: Settings) -> Services:
    """Wire the orchestrator and extractor over one pool and one HTTP session."""
    pool = BrowserPool(settings.browser)
    http = HTTPFetcher()
    browser_fetcher = BrowserFetcher(pool, simulate_reading=settings.extraction.simulate_reading)
    return Services(
        settings=settings,
        orchestrator=SearchOrchestrator(settings, browser_pool=pool, http_fetcher=http),
        extractor=ContentExtractor(settings, http_fetcher=http, browser_fetcher=browser_fetcher),
        browser_pool=pool,
        http_fetcher=http,
    )


_services: Services | None = None
_services_lock = asyncio.Lock()


async def get_services() -> Services:
    """Get or create the shared services."""
    global _services
    async with _services_lock:
        if _services is None:
            _services = build_services(get_settings())
            logger.info("MCP services initialized")
        return _services


def set_services(services: Services | None) -> None:
    """Replace the shared services (tests inject fakes here)."""
    global _services
    _services = services


async def close_services() -> None:
    """Close pools and sessions; safe to call when nothing was created."""
    global _services
    services, _services = _services, None
    if services is not None:
        await services.close()
        logger.info("MCP services closed")


# ============================================================
# Argument Validation
# ============================================================


def require_string(args: dict[str, Any], name: str) -> str:
    """Non-empty string argument, stripped."""
    value = args.get(name)
    if not isinstance(value, str) or not value.strip():
        raise InvalidParamsError(
            f"{name} is required",
            param_name=name,
            expected="non-empty string",
            received=value,
        )
    return value.strip()


def optional_int(
    args: dict[str, Any],
    name: str,
    default: int | None,
    *,
    minimum: int = 1,
    maximum: int | None = None,
) -> int | None:
    """Integer argument within [minimum, maximum], or default when absent."""
    value = args.get(name)
    if value is None:
        return default
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParamsError(
            f"{name} must be an integer",
            param_name=name,
            expected="integer",
            received=value,
        )
    if value < minimum or (maximum is not None and value > maximum):
        expected = f"{minimum}..{maximum}" if maximum is not None else f">= {minimum}"
        raise InvalidParamsError(
            f"{name} out of range",
            param_name=name,
            expected=expected,
            received=value,
        )
    return value


def optional_bool(args: dict[str, Any], name: str, default: bool) -> bool:
    value = args.get(name)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise InvalidParamsError(
            f"{name} must be a boolean",
            param_name=name,
            expected="boolean",
            received=value,
        )
    return value
