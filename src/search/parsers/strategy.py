"""
Table-driven SERP parsing.

Each engine is described by a ParsingStrategy: ordered container
selectors, ordered (selector, extractor) rules for titles and snippets,
and a pure URL normalizer. ResultParser runs any strategy over raw
markup with the same acceptance rules:

- A candidate needs a title, a URL and a valid normalized URL
  (absolute http(s), not engine-internal, not javascript:/mailto:/#).
- Rejected candidates never abort the scan.
- Container selector families are tried in order; the first family that
  yields at least one accepted result wins.
- When nothing is accepted, a final pass takes any heading inside a link.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from src.search.models import SearchResult
from src.utils.logging import get_logger
from src.utils.text import generate_timestamp, validate_url

logger = get_logger(__name__)

# (element, card) -> (title, href)
TitleExtractor = Callable[[Tag, Tag], tuple[str, str]]
SnippetExtractor = Callable[[Tag], str]

_REJECTED_PREFIXES = ("javascript:", "mailto:", "#")


def element_text(element: Tag) -> str:
    return element.get_text(" ", strip=True)


def link_text_and_href(element: Tag, card: Tag) -> tuple[str, str]:
    """Title and href taken from the same anchor."""
    return element_text(element), str(element.get("href") or "")


def heading_in_link(element: Tag, card: Tag) -> tuple[str, str]:
    """Title from a heading; href from its enclosing link, else any link in the card."""
    title = element_text(element)
    link = element if element.name == "a" else element.find_parent("a")
    if link is None or not link.get("href"):
        link = card.select_one("a[href]")
    href = str(link.get("href") or "") if link is not None else ""
    return title, href


def any_snippet(text: str) -> bool:
    return bool(text)


@dataclass(frozen=True)
class ParsingStrategy:
    """Selectors and URL rules for one engine's result page."""

    engine: str
    base_url: str
    container_selectors: tuple[str, ...]
    title_rules: tuple[tuple[str, TitleExtractor], ...]
    snippet_rules: tuple[tuple[str, SnippetExtractor], ...]
    normalize_url: Callable[[str], str]
    snippet_filter: Callable[[str], bool] = any_snippet
    internal_domains: tuple[str, ...] = ()
    exclude_selectors: tuple[str, ...] = ()
    # Lower-cased substrings of <title> that mean the SERP was blocked
    block_title_markers: tuple[str, ...] = ("access denied", "blocked", "captcha")
    # Lower-cased substrings of the raw markup that mean the same
    block_markers: tuple[str, ...] = ()
    fallback_headings: tuple[str, ...] = ("h3", "h2")
    # Keep trying title rules until one yields an absolute http(s) href
    require_http_title_link: bool = False
    # Use the card's first text line as title when no title rule matched
    title_from_text: bool = False


class ResultParser:
    """Turns one engine's result page into SearchResult records."""

    def __init__(self, strategy: ParsingStrategy) -> None:
        self.strategy = strategy

    @property
    def engine(self) -> str:
        return self.strategy.engine

    def normalize_url(self, raw: str) -> str:
        """Unwrap engine redirect URLs; returns the input when decoding fails."""
        return self.strategy.normalize_url(raw)

    def detect_block(self, markup: str) -> str | None:
        """Return why the page looks like a block/captcha page, or None."""
        soup = BeautifulSoup(markup, "html.parser")
        title = soup.title.get_text(strip=True) if soup.title else ""
        title_lower = title.lower()
        for marker in self.strategy.block_title_markers:
            if marker in title_lower:
                return f"blocked page title: {title[:100]}"

        markup_lower = markup.lower()
        for marker in self.strategy.block_markers:
            if marker in markup_lower:
                return f"block marker found: {marker}"
        return None

    def parse_result_set(self, markup: str, max_results: int) -> list[SearchResult]:
        """Extract up to max_results accepted results from a SERP.

        Args:
            markup: Raw HTML of the result page.
            max_results: Maximum number of results to return.

        Returns:
            Accepted results in page order (possibly empty).
        """
        if max_results < 1 or not markup:
            return []

        soup = BeautifulSoup(markup, "html.parser")
        for selector in self.strategy.exclude_selectors:
            for element in soup.select(selector):
                element.decompose()

        timestamp = generate_timestamp()
        results: list[SearchResult] = []
        seen: set[str] = set()

        for selector in self.strategy.container_selectors:
            cards = soup.select(selector)
            if not cards:
                continue
            for card in cards:
                if len(results) >= max_results:
                    break
                result = self._parse_card(card, timestamp)
                if result is None or result.url in seen:
                    continue
                seen.add(result.url)
                results.append(result)
            logger.debug(
                "Container selector tried",
                engine=self.engine,
                selector=selector,
                card_count=len(cards),
                accepted=len(results),
            )
            if results:
                break

        if not results:
            results = self._parse_linked_headings(soup, max_results, timestamp)

        logger.debug("Parsed result page", engine=self.engine, result_count=len(results))
        return results

    def _parse_card(self, card: Tag, timestamp: str) -> SearchResult | None:
        title, href = self._extract_title(card)
        if not title or not href:
            return None

        url = self._accept_url(href)
        if url is None:
            return None

        return SearchResult.from_parsed(
            title=title,
            url=url,
            description=self._extract_snippet(card),
            timestamp=timestamp,
        )

    def _extract_title(self, card: Tag) -> tuple[str, str]:
        fallback_href = ""
        for selector, extractor in self.strategy.title_rules:
            element = card.select_one(selector)
            if element is None:
                continue
            title, href = extractor(element, card)
            if href and not fallback_href:
                fallback_href = href
            if not title or not href:
                continue
            if self.strategy.require_http_title_link and not href.startswith("http"):
                continue
            return title, href

        if self.strategy.title_from_text and fallback_href:
            lines = [line.strip() for line in card.get_text("\n").splitlines() if line.strip()]
            if lines:
                return lines[0], fallback_href
        return "", ""

    def _extract_snippet(self, card: Tag) -> str:
        for selector, extractor in self.strategy.snippet_rules:
            element = card.select_one(selector)
            if element is None:
                continue
            text = extractor(element)
            if self.strategy.snippet_filter(text):
                return text
        return ""

    def _parse_linked_headings(
        self, soup: BeautifulSoup, max_results: int, timestamp: str
    ) -> list[SearchResult]:
        results: list[SearchResult] = []
        seen: set[str] = set()
        for heading in soup.select(", ".join(self.strategy.fallback_headings)):
            if len(results) >= max_results:
                break
            link = heading.find_parent("a")
            title = element_text(heading)
            if link is None or not title or not link.get("href"):
                continue
            url = self._accept_url(str(link["href"]))
            if url is None or url in seen:
                continue
            seen.add(url)
            results.append(
                SearchResult.from_parsed(
                    title=title, url=url, description=None, timestamp=timestamp
                )
            )

        if results:
            logger.info(
                "Heading fallback recovered results", engine=self.engine, count=len(results)
            )
        return results

    def _accept_url(self, raw: str) -> str | None:
        """Normalize a raw href, or None when it must not become a result URL."""
        raw = raw.strip()
        if not raw or raw.startswith(_REJECTED_PREFIXES):
            return None

        url = self.normalize_url(raw)
        if url.startswith("/") and not url.startswith("//"):
            url = urljoin(self.strategy.base_url, url)

        if not validate_url(url):
            return None
        if self._is_internal(urlparse(url).hostname or ""):
            return None
        return url

    def _is_internal(self, host: str) -> bool:
        host = host.lower()
        return any(
            host == domain or host.endswith("." + domain)
            for domain in self.strategy.internal_domains
        )
