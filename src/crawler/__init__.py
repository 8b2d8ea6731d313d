"""
websift crawler module.

Fetches page markup over HTTP (curl_cffi) or by rendering it in a pooled
headless browser (Playwright), with challenge page detection.
"""

from src.crawler.browser_fetcher import BrowserFetcher
from src.crawler.challenge_detector import (
    detect_challenge_type,
    is_challenge_page,
    requires_javascript,
)
from src.crawler.fetch_result import FetchResult
from src.crawler.http_fetcher import HTTPFetcher, build_request_headers

__all__ = [
    "BrowserFetcher",
    "FetchResult",
    "HTTPFetcher",
    "build_request_headers",
    "detect_challenge_type",
    "is_challenge_page",
    "requires_javascript",
]
