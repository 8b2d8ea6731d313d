"""
DuckDuckGo HTML endpoint strategy.

Result links on html.duckduckgo.com point at a redirect,
``//duckduckgo.com/l/?uddg=<percent-encoded destination>&rut=...``.
"""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

from src.search.parsers.strategy import (
    ParsingStrategy,
    element_text,
    link_text_and_href,
)

_REDIRECT_PREFIXES = (
    "//duckduckgo.com/l/",
    "https://duckduckgo.com/l/",
    "http://duckduckgo.com/l/",
)


def normalize_duckduckgo_url(url: str) -> str:
    """Unwrap the uddg redirect; add a scheme to protocol-relative URLs.

    Returns the input unchanged when no destination can be recovered.
    """
    if url.startswith(_REDIRECT_PREFIXES):
        # parse_qs percent-decodes values
        destination = parse_qs(urlparse(url).query).get("uddg", [""])[0]
        if destination.startswith(("http://", "https://")):
            return destination

    if url.startswith("//"):
        return "https:" + url
    return url


DUCKDUCKGO_STRATEGY = ParsingStrategy(
    engine="duckduckgo",
    base_url="https://duckduckgo.com",
    container_selectors=(".result",),
    title_rules=((".result__title a", link_text_and_href),),
    snippet_rules=((".result__snippet", element_text),),
    normalize_url=normalize_duckduckgo_url,
    internal_domains=("duckduckgo.com",),
    exclude_selectors=(".result--ad",),
    block_markers=("anomaly-modal",),
)
