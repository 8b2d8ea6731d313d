"""MCP tool handlers.

This package contains handlers for MCP tools, organized by functionality.
"""

from src.mcp.tools import content, search

__all__ = [
    "content",
    "search",
]
