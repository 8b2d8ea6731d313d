"""
Content extraction module for websift.

Turns result URLs into readable page text (HTTP first, browser rendering
as escalation).
"""

from src.extractor.content import ContentExtractor, PageContent
from src.extractor.html_normalizer import (
    extract_title,
    html_to_text,
    normalize_html,
    text_ratio,
)

__all__ = [
    "ContentExtractor",
    "PageContent",
    "extract_title",
    "html_to_text",
    "normalize_html",
    "text_ratio",
]
