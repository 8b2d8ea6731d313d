"""
MCP Server implementation for websift.
Exposes web search and page content extraction as tools over stdio.

Tools:
- full-web-search: search, then extract page content for the results
- get-web-search-summaries: search only (title, URL, snippet)
- get-single-web-page-content: extract one page
"""

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from src.mcp.errors import MCPError, MCPErrorCode, create_error_response, generate_error_id
from src.mcp.helpers import close_services
from src.mcp.tools.content import handle_get_single_web_page_content
from src.mcp.tools.search import handle_full_web_search, handle_get_web_search_summaries
from src.utils.logging import ensure_logging_configured, get_logger

ensure_logging_configured()
logger = get_logger(__name__)

# Create MCP server instance
app = Server("websift")


# ============================================================
# Tool Definitions
# ============================================================

TOOLS = [
    Tool(
        name="full-web-search",
        title="Full Web Search",
        description="""Search the web and fetch the full page content of the top results.

Runs the configured search engines in priority order (browser Bing, browser Brave,
then DuckDuckGo over HTTP), keeps the first result set that looks relevant to the query,
and extracts readable text from each result page. PDF results are skipped.""",
        inputSchema={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Search query.",
                },
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": 10,
                    "default": 5,
                    "description": "Number of results to return (1-10).",
                },
                "include_content": {
                    "type": "boolean",
                    "default": True,
                    "description": "Fetch and extract page content for each result.",
                },
                "max_content_length": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "Maximum characters of content per page.",
                },
            },
            "required": ["query"],
        },
        annotations={
            "readOnlyHint": True,
            "openWorldHint": True,
        },
    ),
    Tool(
        name="get-web-search-summaries",
        title="Web Search Summaries",
        description="""Search the web and return titles, URLs and snippets only.

Faster than full-web-search: no result page is fetched.""",
        inputSchema={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Search query.",
                },
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": 10,
                    "default": 5,
                    "description": "Number of results to return (1-10).",
                },
            },
            "required": ["query"],
        },
        annotations={
            "readOnlyHint": True,
            "openWorldHint": True,
        },
    ),
    Tool(
        name="get-single-web-page-content",
        title="Web Page Content",
        description="""Extract the readable text of one web page.

Fetches over HTTP and renders in a headless browser when the page needs JavaScript
or blocks plain clients. PDF URLs are rejected.""",
        inputSchema={
            "type": "object",
            "properties": {
                "url": {
                    "type": "string",
                    "description": "Absolute http(s) URL of the page.",
                },
                "max_content_length": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "Maximum characters of content.",
                },
            },
            "required": ["url"],
        },
        annotations={
            "readOnlyHint": True,
            "openWorldHint": True,
        },
    ),
]

ToolHandler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]

HANDLERS: dict[str, ToolHandler] = {
    "full-web-search": handle_full_web_search,
    "get-web-search-summaries": handle_get_web_search_summaries,
    "get-single-web-page-content": handle_get_single_web_page_content,
}


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return TOOLS


@app.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls.

    Args:
        name: Tool name.
        arguments: Tool arguments.

    Returns:
        One JSON text content item: the tool result or an error body.
    """
    logger.info("Tool called", tool=name, arguments=arguments)
    result = await execute_tool(name, arguments or {})
    return [TextContent(type="text", text=json.dumps(result, ensure_ascii=False, indent=2))]


async def execute_tool(name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    """Run a tool handler, turning every failure into an MCP error body."""
    try:
        return await _dispatch_tool(name, arguments)
    except MCPError as e:
        logger.warning(
            "Tool MCP error",
            tool=name,
            error_code=e.code.value,
            error=e.message,
        )
        return e.to_dict()
    except Exception as e:
        error_id = generate_error_id()
        logger.error(
            "Tool internal error",
            tool=name,
            error=str(e),
            error_id=error_id,
            exc_info=True,
        )
        return create_error_response(
            MCPErrorCode.INTERNAL_ERROR,
            "Internal error while running the tool",
            details={"error_type": type(e).__name__},
            error_id=error_id,
        )


async def _dispatch_tool(name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    handler = HANDLERS.get(name)
    if handler is None:
        raise MCPError(
            MCPErrorCode.INVALID_PARAMS,
            f"Unknown tool: {name}",
            details={"available_tools": sorted(HANDLERS)},
        )
    return await handler(arguments)


async def run_server() -> None:
    """Run the MCP server over stdio until the client disconnects."""
    logger.info("Starting websift MCP server", tools=len(TOOLS))
    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                app.create_initialization_options(),
            )
    finally:
        await close_services()
        logger.info("websift MCP server stopped")


def main() -> None:
    """Main entry point."""
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
