"""
HTML to readable text.

Pipeline:
1. normalize_html: cheap regex pass dropping script/style/noscript and comments
2. BeautifulSoup pass removing page chrome (navigation, forms, ads, cookie
   banners, sidebars, share widgets, comment threads)
3. trafilatura main-content extraction; when it finds nothing, the text of
   the first main-content candidate element, else <body>
4. whitespace cleanup and trim
"""

from __future__ import annotations

import re

import trafilatura
from bs4 import BeautifulSoup, Tag

from src.utils.logging import get_logger
from src.utils.text import clean_text

logger = get_logger(__name__)

REMOVED_TAGS = (
    "script",
    "style",
    "noscript",
    "nav",
    "header",
    "footer",
    "aside",
    "form",
    "iframe",
    "svg",
)

REMOVED_SELECTORS = (
    ".advertisement",
    ".ads",
    ".ad",
    "[class*='cookie']",
    "[id*='cookie']",
    ".sidebar",
    "#sidebar",
    ".menu",
    ".navigation",
    ".social",
    ".share",
    ".social-share",
    ".comments",
    "#comments",
    ".popup",
    ".modal",
)

MAIN_CONTENT_SELECTORS = (
    "main",
    "article",
    "[role='main']",
    ".content",
    "#content",
    ".post-content",
    ".entry-content",
    ".article-body",
)

_SCRIPT_RE = re.compile(r"<script[^>]*>.*?</script>", re.DOTALL | re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[^>]*>.*?</style>", re.DOTALL | re.IGNORECASE)
_NOSCRIPT_RE = re.compile(r"<noscript[^>]*>.*?</noscript>", re.DOTALL | re.IGNORECASE)
_COMMENT_RE = re.compile(r"<!--(?!\[if).*?-->", re.DOTALL)


def normalize_html(html: str) -> str:
    """Strip script, style and noscript blocks and HTML comments.

    Args:
        html: Raw HTML string.

    Returns:
        HTML with the non-content blocks removed.
    """
    if not html:
        return html

    html = _SCRIPT_RE.sub("", html)
    html = _STYLE_RE.sub("", html)
    html = _NOSCRIPT_RE.sub("", html)
    html = _COMMENT_RE.sub("", html)
    return html.strip()


def strip_page_chrome(html: str) -> BeautifulSoup:
    """Parse HTML and decompose every denylisted element."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(list(REMOVED_TAGS)):
        element.decompose()
    for selector in REMOVED_SELECTORS:
        for element in soup.select(selector):
            if not _wraps_content(element):
                element.decompose()
    return soup


def _wraps_content(element: Tag) -> bool:
    """True for html/body and main-content candidates or their ancestors.

    Class-substring selectors such as [class*='cookie'] also match
    <body class="cookie-consent-pending"> and similar page wrappers.
    """
    if element.name in ("html", "body"):
        return True
    return any(
        element.css.match(selector) or element.select_one(selector) is not None
        for selector in MAIN_CONTENT_SELECTORS
    )


def _main_content_text(soup: BeautifulSoup) -> str:
    for selector in MAIN_CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            text = element.get_text(" ", strip=True)
            if text:
                return text
    root = soup.body or soup
    return root.get_text(" ", strip=True)


def html_to_text(markup: str, max_length: int = 10000) -> str:
    """Readable main-content text of an HTML page.

    Args:
        markup: Raw HTML.
        max_length: Maximum length of the returned text.

    Returns:
        Cleaned text, possibly empty.
    """
    if not markup:
        return ""

    soup = strip_page_chrome(normalize_html(markup))
    cleaned = str(soup)

    extracted = None
    try:
        extracted = trafilatura.extract(
            cleaned,
            include_comments=False,
            include_tables=True,
            include_links=False,
            include_images=False,
            output_format="txt",
            favor_precision=True,
        )
    except Exception as e:
        logger.debug("trafilatura extraction failed", error=str(e))

    if not extracted:
        extracted = _main_content_text(soup)
        logger.debug("Using main-content fallback", text_length=len(extracted))

    return clean_text(extracted, max_length)


def text_ratio(markup: str, text: str) -> float:
    """Share of the raw markup that survived as text (0.0 for empty markup)."""
    if not markup:
        return 0.0
    return len(text) / len(markup)


def extract_title(markup: str) -> str:
    """Text of the document's <title>, or "" when missing."""
    if not markup:
        return ""
    soup = BeautifulSoup(markup, "html.parser")
    if soup.title is None:
        return ""
    return clean_text(soup.title.get_text(" ", strip=True), 500)
