"""
Google result page strategy.

Kept for parsing saved Google SERPs and for callers that register a
Google transport; the default fallback chain does not query Google.
"""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

from src.search.parsers.strategy import (
    ParsingStrategy,
    element_text,
    heading_in_link,
)


def normalize_google_url(url: str) -> str:
    """Unwrap /url?q= (or url=) redirects; add a scheme to protocol-relative URLs."""
    if url.startswith("/url?"):
        params = parse_qs(urlparse(url).query)
        destination = (params.get("q") or params.get("url") or [""])[0]
        if destination:
            url = destination

    if url.startswith("//"):
        return "https:" + url
    return url


GOOGLE_STRATEGY = ParsingStrategy(
    engine="google",
    base_url="https://www.google.com",
    container_selectors=(
        "div.g",
        "div[data-sokoban-container]",
        ".tF2Cxc",
        ".rc",
        "[data-ved]",
        "div[jscontroller]",
    ),
    title_rules=(
        ("h3", heading_in_link),
        (".LC20lb", heading_in_link),
        (".DKV0Md", heading_in_link),
        ("a[data-ved]", heading_in_link),
        (".r", heading_in_link),
        (".s", heading_in_link),
    ),
    snippet_rules=(
        (".VwiC3b", element_text),
        (".st", element_text),
        (".aCOpRe", element_text),
        (".IsZvec", element_text),
        (".s3v9rd", element_text),
        (".MUxGbd", element_text),
        (".snippet-content", element_text),
    ),
    normalize_url=normalize_google_url,
    internal_domains=("google.com", "googleusercontent.com"),
    block_markers=('id="captcha-form"', "/sorry/index"),
    fallback_headings=("h3",),
)
