"""
Tests for the MCP tool surface (src/mcp/server.py, src/mcp/tools/, src/mcp/helpers.py).

## Test Perspectives Table

| Case ID | Input / Precondition | Perspective | Expected Result |
|---------|---------------------|-------------|-----------------|
| TC-MCP-N-01 | list_tools | Equivalence – normal | Three read-only tools |
| TC-MCP-N-02 | get-web-search-summaries | Equivalence – normal | Summary records only |
| TC-MCP-N-03 | full-web-search, one page fails | Equivalence – normal | Content + partial-failure status |
| TC-MCP-N-04 | full-web-search, include_content false | Equivalence – normal | No extraction |
| TC-MCP-N-05 | get-single-web-page-content | Equivalence – normal | Text, preview, word count |
| TC-MCP-B-01 | No results | Boundary | "No results found" status |
| TC-MCP-A-01 | limit 0 / 11 / true | Abnormal | INVALID_PARAMS |
| TC-MCP-A-02 | Missing query | Abnormal | INVALID_PARAMS |
| TC-MCP-A-03 | Quota exhausted | Abnormal | RATE_LIMITED with wait_seconds |
| TC-MCP-A-04 | PDF URL | Abnormal | EXTRACTION_FAILED |
| TC-MCP-A-05 | Unexpected exception | Abnormal | INTERNAL_ERROR with error_id |
| TC-MCP-A-06 | Unknown tool | Abnormal | INVALID_PARAMS with tool list |
"""

import json
from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.extractor.content import PageContent
from src.mcp.errors import InvalidParamsError
from src.mcp.helpers import (
    Services,
    close_services,
    get_services,
    optional_bool,
    optional_int,
    require_string,
    set_services,
)
from src.mcp.server import TOOLS, call_tool, execute_tool, list_tools
from src.search.errors import ContentSkipped, RateLimitExceeded
from src.search.models import FetchStatus, SearchOptions, SearchOutcome, SearchResponse


@pytest.fixture
def services(settings) -> Generator[Services, None, None]:
    """Fake shared services installed for the tool handlers."""
    orchestrator = MagicMock()
    orchestrator.search = AsyncMock()
    orchestrator.close_all = AsyncMock()
    extractor = MagicMock()
    extractor.extract_content_for_results = AsyncMock()
    extractor.extract_page = AsyncMock()
    extractor.close_all = AsyncMock()

    fake = Services(
        settings=settings,
        orchestrator=orchestrator,
        extractor=extractor,
        browser_pool=MagicMock(),
        http_fetcher=MagicMock(),
    )
    set_services(fake)
    yield fake
    set_services(None)


@pytest.fixture
def two_results(make_result):
    return [
        make_result(url="https://docs.python.org/3/library/asyncio.html", title="asyncio"),
        make_result(url="https://realpython.com/async-io-python/", title="Async IO in Python"),
    ]


def _response(results, engine: str = "Browser Bing") -> SearchResponse:
    return SearchResponse(
        query="python asyncio",
        results=results,
        engine_used=engine,
        outcome=SearchOutcome.EXCELLENT if results else SearchOutcome.ALL_ENGINES_FAILED,
        quality_score=1.0 if results else 0.0,
    )


# =============================================================================
# Tool listing
# =============================================================================


class TestListTools:
    async def test_three_tools(self) -> None:
        """TC-MCP-N-01: Given the server, When tools are listed, Then all three are present."""
        tools = await list_tools()

        assert [tool.name for tool in tools] == [
            "full-web-search",
            "get-web-search-summaries",
            "get-single-web-page-content",
        ]

    def test_limit_schema(self) -> None:
        """Given the search tools, When inspected, Then limit is 1..10 with default 5."""
        for tool in TOOLS[:2]:
            limit = tool.inputSchema["properties"]["limit"]
            assert (limit["minimum"], limit["maximum"], limit["default"]) == (1, 10, 5)
            assert tool.inputSchema["required"] == ["query"]


# =============================================================================
# Search tools
# =============================================================================


class TestSearchTools:
    async def test_summaries(self, services, two_results) -> None:
        """TC-MCP-N-02: Given two results, When summaries are requested, Then no content."""
        services.orchestrator.search.return_value = _response(two_results)

        result = await execute_tool(
            "get-web-search-summaries", {"query": "  python asyncio ", "limit": 3}
        )

        options: SearchOptions = services.orchestrator.search.await_args.args[0]
        assert options.query == "python asyncio"
        assert options.num_results == 3
        assert options.timeout_ms == 10000
        assert result["total_results"] == 2
        assert result["engine_used"] == "Browser Bing"
        assert set(result["results"][0]) == {"title", "url", "description", "timestamp"}
        services.extractor.extract_content_for_results.assert_not_awaited()

    async def test_query_capped_by_settings(self, services, make_settings, two_results) -> None:
        """Given max_query_length 10, When searched, Then the query reaches the engines cut."""
        services.settings = make_settings(search={"max_query_length": 10})
        services.orchestrator.search.return_value = _response(two_results)

        await execute_tool("get-web-search-summaries", {"query": "python asyncio tutorial"})

        options: SearchOptions = services.orchestrator.search.await_args.args[0]
        assert options.query == "python asy"

    async def test_full_search_with_partial_failure(self, services, two_results) -> None:
        """
        TC-MCP-N-03: Given one page extracts and one fails,
        When full-web-search runs,
        Then content is returned with a partial-failure status.
        """
        services.orchestrator.search.return_value = _response(two_results)

        async def extract(results, target_count=None, max_length=None):
            results[0].record_content("asyncio is a library to write concurrent code")
            results[1].record_failure("Access denied (403) - the website blocked automated access")
            return results

        services.extractor.extract_content_for_results.side_effect = extract

        result = await execute_tool(
            "full-web-search", {"query": "python asyncio", "max_content_length": 2000}
        )

        call = services.extractor.extract_content_for_results.await_args
        assert call.kwargs == {"target_count": 5, "max_length": 2000}
        assert result["status"] == "Content extraction failed for 1 of 2 results"
        first, second = result["results"]
        assert first["full_content"].startswith("asyncio is a library")
        assert first["word_count"] == 8
        assert first["fetch_status"] == FetchStatus.SUCCESS.value
        assert second["fetch_status"] == "error"
        assert second["error"].startswith("Access denied (403)")

    async def test_full_search_without_content(self, services, two_results) -> None:
        """TC-MCP-N-04: Given include_content false, When run, Then nothing is extracted."""
        services.orchestrator.search.return_value = _response(two_results)

        result = await execute_tool(
            "full-web-search", {"query": "python asyncio", "include_content": False}
        )

        services.extractor.extract_content_for_results.assert_not_awaited()
        assert "status" not in result
        assert result["results"][0]["full_content"] == ""

    async def test_no_results(self, services) -> None:
        """TC-MCP-B-01: Given every engine failed, When run, Then status says so."""
        services.orchestrator.search.return_value = _response([], engine="None")

        result = await execute_tool("full-web-search", {"query": "zzzz qqqq"})

        assert result["status"] == "No results found"
        assert result["total_results"] == 0
        assert result["engine_used"] == "None"
        services.extractor.extract_content_for_results.assert_not_awaited()

    @pytest.mark.parametrize("limit", [0, 11, True, "5"])
    async def test_invalid_limit(self, services, limit) -> None:
        """TC-MCP-A-01: Given a bad limit, When run, Then INVALID_PARAMS and no search."""
        result = await execute_tool("get-web-search-summaries", {"query": "q", "limit": limit})

        assert result["ok"] is False
        assert result["error_code"] == "INVALID_PARAMS"
        assert result["details"]["param_name"] == "limit"
        services.orchestrator.search.assert_not_awaited()

    @pytest.mark.parametrize("arguments", [{}, {"query": "   "}, {"query": 42}])
    async def test_missing_query(self, services, arguments) -> None:
        """TC-MCP-A-02: Given no usable query, When run, Then INVALID_PARAMS."""
        result = await execute_tool("full-web-search", arguments)

        assert result["error_code"] == "INVALID_PARAMS"
        assert result["details"]["param_name"] == "query"

    async def test_rate_limited(self, services) -> None:
        """TC-MCP-A-03: Given the quota is used up, When run, Then RATE_LIMITED."""
        services.orchestrator.search.side_effect = RateLimitExceeded(12.2)

        result = await execute_tool("get-web-search-summaries", {"query": "python"})

        assert result["error_code"] == "RATE_LIMITED"
        assert result["details"]["wait_seconds"] == 13
        assert "13 seconds" in result["error"]

    async def test_internal_error(self, services) -> None:
        """TC-MCP-A-05: Given an unexpected exception, When run, Then INTERNAL_ERROR."""
        services.orchestrator.search.side_effect = RuntimeError("boom")

        result = await execute_tool("full-web-search", {"query": "python"})

        assert result["error_code"] == "INTERNAL_ERROR"
        assert result["error_id"].startswith("err_")
        assert result["details"] == {"error_type": "RuntimeError"}


# =============================================================================
# Single page tool
# =============================================================================


class TestSinglePageTool:
    async def test_success(self, services) -> None:
        """TC-MCP-N-05: Given a readable page, When extracted, Then text and stats."""
        services.extractor.extract_page.return_value = PageContent(
            url="https://blog.example/post",
            title="Understanding asyncio",
            text="Event loops run coroutines",
            method="http_client",
        )

        result = await execute_tool(
            "get-single-web-page-content",
            {"url": "https://blog.example/post", "max_content_length": 500},
        )

        services.extractor.extract_page.assert_awaited_once_with(
            "https://blog.example/post", max_length=500
        )
        assert result["title"] == "Understanding asyncio"
        assert result["content"] == "Event loops run coroutines"
        assert result["content_preview"] == "Event loops run coroutines"
        assert result["word_count"] == 4
        assert result["fetch_status"] == "success"
        assert result["timestamp"].endswith("Z")

    async def test_pdf_rejected(self, services) -> None:
        """TC-MCP-A-04: Given a PDF URL, When extracted, Then EXTRACTION_FAILED."""
        url = "https://example.com/paper.pdf"
        services.extractor.extract_page.side_effect = ContentSkipped(url)

        result = await execute_tool("get-single-web-page-content", {"url": url})

        assert result["error_code"] == "EXTRACTION_FAILED"
        assert "PDF" in result["error"]
        assert result["details"]["url"] == url
        assert "status" not in result["details"]

    async def test_missing_url(self, services) -> None:
        """Given no url, When run, Then INVALID_PARAMS."""
        result = await execute_tool("get-single-web-page-content", {})
        assert result["error_code"] == "INVALID_PARAMS"


# =============================================================================
# Dispatch and lifecycle
# =============================================================================


class TestDispatch:
    async def test_unknown_tool(self) -> None:
        """TC-MCP-A-06: Given an unknown tool, When called, Then INVALID_PARAMS with choices."""
        result = await execute_tool("search-images", {})

        assert result["error_code"] == "INVALID_PARAMS"
        assert "get-web-search-summaries" in result["details"]["available_tools"]

    async def test_call_tool_returns_json_text(self, services, two_results) -> None:
        """Given a tool call, When handled, Then one JSON text item is returned."""
        services.orchestrator.search.return_value = _response(two_results)

        contents = await call_tool("get-web-search-summaries", {"query": "python asyncio"})

        assert len(contents) == 1
        assert contents[0].type == "text"
        assert json.loads(contents[0].text)["total_results"] == 2

    async def test_close_services(self, services) -> None:
        """Given installed services, When closed, Then both components are closed."""
        await close_services()

        services.orchestrator.close_all.assert_awaited_once()
        services.extractor.close_all.assert_awaited_once()

    async def test_get_services_returns_installed(self, services) -> None:
        assert await get_services() is services

    async def test_close_without_services(self) -> None:
        """Given nothing was created, When closed, Then nothing happens."""
        set_services(None)
        await close_services()


class TestArgumentHelpers:
    def test_require_string_strips(self) -> None:
        assert require_string({"q": "  x "}, "q") == "x"

    def test_optional_int_default_and_bounds(self) -> None:
        """Given absent and bounded values, When validated, Then default or value."""
        assert optional_int({}, "n", 5) == 5
        assert optional_int({"n": 10}, "n", 5, maximum=10) == 10
        with pytest.raises(InvalidParamsError):
            optional_int({"n": 11}, "n", 5, maximum=10)

    def test_optional_bool(self) -> None:
        assert optional_bool({}, "b", True) is True
        with pytest.raises(InvalidParamsError):
            optional_bool({"b": "yes"}, "b", True)
