"""
Main entry point for websift.

Commands:
    websift search QUERY [--limit N] [--content]
    websift fetch URL [--max-length N]
    websift serve

Results are printed to stdout as JSON; logs go to stderr.
"""

import argparse
import asyncio
import json
import sys
from typing import Any

from src.utils.config import get_settings
from src.utils.logging import configure_logging, get_logger


def initialize() -> None:
    """Configure logging from settings."""
    settings = get_settings()
    configure_logging(log_level=settings.general.log_level)

    logger = get_logger(__name__)
    logger.debug(
        "websift initializing",
        version=settings.general.version,
        log_level=settings.general.log_level,
    )


def _print_json(payload: dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(payload, ensure_ascii=False, indent=2) + "\n")
    sys.stdout.flush()


async def run_search(query: str, limit: int, include_content: bool) -> dict[str, Any]:
    """Search, optionally extracting page content, through the MCP handlers."""
    from src.mcp.helpers import close_services
    from src.mcp.server import execute_tool

    tool = "full-web-search" if include_content else "get-web-search-summaries"
    arguments: dict[str, Any] = {"query": query, "limit": limit}
    if include_content:
        arguments["include_content"] = True
    try:
        return await execute_tool(tool, arguments)
    finally:
        await close_services()


async def run_fetch(url: str, max_length: int | None) -> dict[str, Any]:
    """Extract one page through the MCP handler."""
    from src.mcp.helpers import close_services
    from src.mcp.server import execute_tool

    arguments: dict[str, Any] = {"url": url}
    if max_length is not None:
        arguments["max_content_length"] = max_length
    try:
        return await execute_tool("get-single-web-page-content", arguments)
    finally:
        await close_services()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="websift",
        description="websift - multi-engine web search and page content extraction",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Search the web")
    search.add_argument("query", help="Search query")
    search.add_argument(
        "--limit",
        "-n",
        type=int,
        default=5,
        help="Number of results (1-10, default 5)",
    )
    search.add_argument(
        "--content",
        action="store_true",
        help="Also extract page content for each result",
    )

    fetch = subparsers.add_parser("fetch", help="Extract the content of one page")
    fetch.add_argument("url", help="Page URL")
    fetch.add_argument(
        "--max-length",
        type=int,
        default=None,
        help="Maximum characters of content",
    )

    subparsers.add_parser("serve", help="Run the MCP server over stdio")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code: 0 on success, 1 when the command returned an error body.
    """
    args = build_parser().parse_args(argv)
    initialize()

    if args.command == "serve":
        from src.mcp.server import run_server

        asyncio.run(run_server())
        return 0

    if args.command == "search":
        result = asyncio.run(run_search(args.query, args.limit, args.content))
    else:
        result = asyncio.run(run_fetch(args.url, args.max_length))

    _print_json(result)
    return 1 if result.get("ok") is False else 0


if __name__ == "__main__":
    sys.exit(main())
