"""Page content handler for MCP tools.

Handles get-single-web-page-content.
"""

from typing import Any

from src.mcp.errors import ExtractionFailedError
from src.mcp.helpers import get_services, optional_int, require_string
from src.search.errors import ExtractionFailed
from src.utils.logging import LogContext, get_logger
from src.utils.text import generate_timestamp, get_content_preview, get_word_count

logger = get_logger(__name__)


async def handle_get_single_web_page_content(args: dict[str, Any]) -> dict[str, Any]:
    """
    Handle get-single-web-page-content tool call.

    Args:
        url: Page URL
        max_content_length: Maximum characters of content

    Returns:
        {url, title, content, content_preview, word_count, timestamp, fetch_status}

    Raises:
        ExtractionFailedError: If the page yields no content (PDFs included).
    """
    url = require_string(args, "url")
    max_content_length = optional_int(args, "max_content_length", None, minimum=1)
    services = await get_services()

    with LogContext(tool="get-single-web-page-content"):
        try:
            page = await services.extractor.extract_page(url, max_length=max_content_length)
        except ExtractionFailed as e:
            logger.info("Single page extraction failed", url=url[:100], kind=e.kind.value)
            raise ExtractionFailedError(e) from e

    logger.info("Single page extracted", url=url[:100], method=page.method)
    return {
        "url": page.url,
        "title": page.title,
        "content": page.text,
        "content_preview": get_content_preview(page.text),
        "word_count": get_word_count(page.text),
        "timestamp": generate_timestamp(),
        "fetch_status": "success",
    }
