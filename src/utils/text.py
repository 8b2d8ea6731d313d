"""
Text and URL helpers shared by the search and extraction layers.
"""

from __future__ import annotations

import random
import re
from datetime import UTC, datetime
from urllib.parse import urlparse

USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.1 Safari/605.1.15",
]

_WHITESPACE_RE = re.compile(r"\s+")

PREVIEW_LENGTH = 500


def clean_text(text: str, max_length: int = 10000) -> str:
    """Collapse whitespace runs and trim to max_length characters."""
    return _WHITESPACE_RE.sub(" ", text).strip()[:max_length]


def get_word_count(text: str) -> int:
    return len(text.split())


def get_content_preview(text: str, max_length: int = PREVIEW_LENGTH) -> str:
    """First max_length characters of the cleaned text, with "..." when cut."""
    cleaned = clean_text(text, max_length)
    return cleaned + "..." if len(cleaned) == max_length else cleaned


def generate_timestamp() -> str:
    """Current UTC instant in ISO-8601 form with a Z suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def validate_url(url: str) -> bool:
    """True for absolute http(s) URLs with a host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def sanitize_query(query: str, max_length: int = 1000) -> str:
    """Trim surrounding whitespace and cap the query length."""
    return query.strip()[:max_length]


def get_random_user_agent() -> str:
    return random.choice(USER_AGENTS)


def is_pdf_url(url: str) -> bool:
    """Detect PDF targets by path suffix (raw string when the URL won't parse)."""
    try:
        path = urlparse(url).path
    except ValueError:
        path = url
    return path.lower().endswith(".pdf")
