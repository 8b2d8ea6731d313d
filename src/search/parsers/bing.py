"""
Bing result page strategy.

Bing wraps organic links in click-tracking redirects of the form
``https://www.bing.com/ck/a?...&u=a1<base64 destination>&...``.
"""

from __future__ import annotations

import base64
import binascii
import re
from urllib.parse import unquote

from src.search.parsers.strategy import (
    ParsingStrategy,
    element_text,
    link_text_and_href,
)

_BING_TRACKING_PARAM_RE = re.compile(r"[?&]u=a1([^&]+)")

# Relative age stamps such as "3 days ago" are metadata, not snippets
_AGE_STAMP_RE = re.compile(r"^\d+\s*(min|sec|hour|day|week|month|year)", re.IGNORECASE)


def normalize_bing_url(url: str) -> str:
    """Decode a Bing /ck/a redirect; add a scheme to protocol-relative URLs.

    Returns the input unchanged when the redirect cannot be decoded.
    """
    if "bing.com/ck/a" in url:
        match = _BING_TRACKING_PARAM_RE.search(url)
        if match:
            decoded = _decode_base64_url(unquote(match.group(1)))
            if decoded is not None:
                return decoded

    if url.startswith("//"):
        return "https:" + url
    return url


def _decode_base64_url(encoded: str) -> str | None:
    padded = encoded + "=" * (-len(encoded) % 4)
    for decode in (base64.urlsafe_b64decode, base64.b64decode):
        try:
            decoded = decode(padded).decode("utf-8")
        except (binascii.Error, ValueError):
            continue
        if decoded.startswith(("http://", "https://")):
            return decoded
    return None


def bing_snippet_filter(text: str) -> bool:
    return len(text) > 20 and not _AGE_STAMP_RE.match(text)


BING_STRATEGY = ParsingStrategy(
    engine="bing",
    base_url="https://www.bing.com",
    container_selectors=(".b_algo", ".b_result", ".b_card"),
    title_rules=(
        ("h2 a", link_text_and_href),
        (".b_title a", link_text_and_href),
        ("a[data-seid]", link_text_and_href),
    ),
    snippet_rules=(
        (".b_caption p", element_text),
        (".b_snippet", element_text),
        (".b_descript", element_text),
        (".b_caption", element_text),
        (".b_caption > span", element_text),
        (".b_excerpt", element_text),
        ("p", element_text),
        (".b_algo_content p", element_text),
        (".b_algo_content", element_text),
        (".b_context", element_text),
    ),
    snippet_filter=bing_snippet_filter,
    normalize_url=normalize_bing_url,
    internal_domains=("bing.com", "bing.net"),
    exclude_selectors=(".b_ad", ".b_adTop", ".b_adBottom"),
    block_markers=('id="b_captcha"', "/challenge/verify"),
)
