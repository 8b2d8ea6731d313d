"""Search handlers for MCP tools.

Handles full-web-search and get-web-search-summaries.
"""

import time
from typing import Any

from pydantic import ValidationError

from src.mcp.errors import InvalidParamsError, RateLimitedError
from src.mcp.helpers import Services, get_services, optional_bool, optional_int, require_string
from src.search.errors import RateLimitExceeded
from src.search.models import FetchStatus, SearchOptions, SearchResponse
from src.utils.logging import LogContext, get_logger

logger = get_logger(__name__)


async def run_search(services: Services, query: str, limit: int) -> SearchResponse:
    """Run one orchestrated search, mapping failures to MCP errors."""
    config = services.settings.search
    try:
        options = SearchOptions.model_validate(
            {
                "query": query,
                "num_results": limit,
                "timeout_ms": config.default_timeout_ms,
            },
            context={"max_query_length": config.max_query_length},
        )
    except ValidationError as e:
        raise InvalidParamsError(
            "Invalid search parameters",
            param_name="query",
            expected="non-empty string",
            received=e.errors()[0].get("msg") if e.errors() else None,
        ) from e

    try:
        return await services.orchestrator.search(options)
    except RateLimitExceeded as e:
        logger.warning("Search rate limited", wait_seconds=e.wait_seconds)
        raise RateLimitedError(e) from e


def _limit(args: dict[str, Any], services: Services) -> int:
    config = services.settings.search
    limit = optional_int(
        args,
        "limit",
        config.default_num_results,
        minimum=1,
        maximum=config.max_num_results,
    )
    assert limit is not None
    return limit


async def handle_full_web_search(args: dict[str, Any]) -> dict[str, Any]:
    """
    Handle full-web-search tool call.

    Searches the web, then extracts page content for the results.

    Args:
        query: Search query
        limit: Number of results (1-10, default 5)
        include_content: Whether to fetch page content (default true)
        max_content_length: Maximum characters of content per page

    Returns:
        {results, total_results, search_time_ms, query, engine_used, status?}
    """
    query = require_string(args, "query")
    services = await get_services()
    limit = _limit(args, services)
    include_content = optional_bool(args, "include_content", True)
    max_content_length = optional_int(args, "max_content_length", None, minimum=1)

    start = time.monotonic()
    with LogContext(tool="full-web-search"):
        response = await run_search(services, query, limit)
        results = response.results

        status: str | None = None
        if not results:
            status = "No results found"
        elif include_content:
            await services.extractor.extract_content_for_results(
                results,
                target_count=limit,
                max_length=max_content_length,
            )
            attempted = [r for r in results if r.extraction_recorded]
            failed = [r for r in attempted if r.fetch_status is not FetchStatus.SUCCESS]
            if failed:
                status = (
                    f"Content extraction failed for {len(failed)} of {len(attempted)} results"
                )
            logger.info(
                "Content extraction summary",
                attempted=len(attempted),
                failed=len(failed),
            )

    output: dict[str, Any] = {
        "results": [r.to_dict() for r in results],
        "total_results": len(results),
        "search_time_ms": round((time.monotonic() - start) * 1000),
        "query": response.query,
        "engine_used": response.engine_used,
    }
    if status:
        output["status"] = status
    return output


async def handle_get_web_search_summaries(args: dict[str, Any]) -> dict[str, Any]:
    """
    Handle get-web-search-summaries tool call.

    Searches the web without fetching pages.

    Args:
        query: Search query
        limit: Number of results (1-10, default 5)

    Returns:
        {results: [{title, url, description, timestamp}], total_results,
         search_time_ms, query, engine_used}
    """
    query = require_string(args, "query")
    services = await get_services()
    limit = _limit(args, services)

    start = time.monotonic()
    with LogContext(tool="get-web-search-summaries"):
        response = await run_search(services, query, limit)

    return {
        "results": [r.to_summary() for r in response.results],
        "total_results": len(response.results),
        "search_time_ms": round((time.monotonic() - start) * 1000),
        "query": response.query,
        "engine_used": response.engine_used,
    }
