"""
Search result page parsers.

One ParsingStrategy per engine, all run by the same ResultParser:
- Ordered container, title and snippet selector rules
- Pure per-engine URL normalizers that unwrap redirect links
- Block/captcha page detection
"""

from src.search.parsers.bing import BING_STRATEGY, normalize_bing_url
from src.search.parsers.brave import BRAVE_STRATEGY, normalize_brave_url
from src.search.parsers.duckduckgo import DUCKDUCKGO_STRATEGY, normalize_duckduckgo_url
from src.search.parsers.google import GOOGLE_STRATEGY, normalize_google_url
from src.search.parsers.registry import (
    get_available_parsers,
    get_parser,
    register_parser,
)
from src.search.parsers.strategy import ParsingStrategy, ResultParser

# Register built-in strategies
register_parser(BING_STRATEGY)
register_parser(BRAVE_STRATEGY)
register_parser(DUCKDUCKGO_STRATEGY)
register_parser(GOOGLE_STRATEGY)

__all__ = [
    "ParsingStrategy",
    "ResultParser",
    "BING_STRATEGY",
    "BRAVE_STRATEGY",
    "DUCKDUCKGO_STRATEGY",
    "GOOGLE_STRATEGY",
    "normalize_bing_url",
    "normalize_brave_url",
    "normalize_duckduckgo_url",
    "normalize_google_url",
    "get_parser",
    "get_available_parsers",
    "register_parser",
]
