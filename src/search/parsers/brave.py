"""
Brave Search result page strategy.
"""

from __future__ import annotations

from src.search.parsers.strategy import (
    ParsingStrategy,
    element_text,
    link_text_and_href,
)


def normalize_brave_url(url: str) -> str:
    """Brave links are direct; only protocol-relative URLs need a scheme."""
    if url.startswith("//"):
        return "https:" + url
    return url


BRAVE_STRATEGY = ParsingStrategy(
    engine="brave",
    base_url="https://search.brave.com",
    container_selectors=('[data-type="web"]', ".result", ".fdb"),
    title_rules=(
        (".title a", link_text_and_href),
        ("h2 a", link_text_and_href),
        (".result-title a", link_text_and_href),
        ('a[href*="://"]', link_text_and_href),
        (".snippet-title a", link_text_and_href),
    ),
    snippet_rules=(
        (".snippet-content", element_text),
        (".snippet", element_text),
        (".description", element_text),
        ("p", element_text),
    ),
    normalize_url=normalize_brave_url,
    internal_domains=("search.brave.com",),
    require_http_title_link=True,
    title_from_text=True,
)
