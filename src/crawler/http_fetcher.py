"""HTTP client fetcher (curl_cffi with Chrome impersonation)."""

from __future__ import annotations

import random
import time
from typing import Any

from src.crawler.challenge_detector import detect_challenge_type, is_challenge_page
from src.crawler.fetch_result import FetchResult
from src.search.errors import (
    ExtractionFailureKind,
    classify_extraction_error,
    is_markup_type,
)
from src.utils.logging import get_logger
from src.utils.text import get_random_user_agent

logger = get_logger(__name__)

_ACCEPT_LANGUAGES = (
    "en-US,en;q=0.9",
    "en-US,en;q=0.8",
    "en-GB,en;q=0.9,en-US;q=0.8",
)


def build_request_headers(user_agent: str | None = None) -> dict[str, str]:
    """Browser-like request headers with a rotating user agent."""
    return {
        "User-Agent": user_agent or get_random_user_agent(),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": random.choice(_ACCEPT_LANGUAGES),
        "Accept-Encoding": "gzip, deflate, br",
        "DNT": "1",
        "Upgrade-Insecure-Requests": "1",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "none",
        "Sec-Fetch-User": "?1",
    }


class HTTPFetcher:
    """HTTP client fetcher using curl_cffi.

    Features:
    - Chrome TLS impersonation through one pooled AsyncSession
    - Rotating user agent and browser-like headers
    - Challenge page and non-markup response detection

    Failures are returned as FetchResult(ok=False) with a failure kind,
    never raised.
    """

    def __init__(self, impersonate: str = "chrome") -> None:
        self._impersonate = impersonate
        self._session: Any = None
        self._request_count = 0

    def _get_session(self) -> Any:
        if self._session is None:
            from curl_cffi.requests import AsyncSession

            self._session = AsyncSession(impersonate=self._impersonate)
        return self._session

    async def fetch(
        self,
        url: str,
        *,
        timeout: float,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> FetchResult:
        """Fetch URL.

        Args:
            url: URL to fetch.
            timeout: Request timeout in seconds.
            params: Query string parameters.
            headers: Headers replacing the generated browser-like ones.

        Returns:
            FetchResult instance.
        """
        req_headers = build_request_headers()
        if headers:
            req_headers.update(headers)

        self._request_count += 1
        start = time.monotonic()
        try:
            response = await self._get_session().get(
                url,
                params=params,
                headers=req_headers,
                timeout=timeout,
                allow_redirects=True,
            )
        except Exception as e:
            kind = classify_extraction_error(e)
            logger.warning("HTTP fetch error", url=url[:100], error=str(e), kind=kind.value)
            return FetchResult(
                ok=False,
                url=url,
                reason=str(e),
                failure_kind=kind,
                elapsed_ms=(time.monotonic() - start) * 1000,
            )

        elapsed_ms = (time.monotonic() - start) * 1000
        resp_headers = {k.lower(): v for k, v in response.headers.items()}
        status = response.status_code
        content_type = resp_headers.get("content-type", "")
        final_url = str(response.url)

        if content_type and not is_markup_type(content_type):
            logger.info("Non-markup response", url=url[:100], content_type=content_type)
            return FetchResult(
                ok=False,
                url=url,
                final_url=final_url,
                status=status,
                headers=resp_headers,
                reason=f"unsupported content type: {content_type}",
                failure_kind=ExtractionFailureKind.UNSUPPORTED_CONTENT,
                elapsed_ms=elapsed_ms,
            )

        text = response.text or ""

        if is_challenge_page(text, resp_headers):
            challenge_type = detect_challenge_type(text)
            logger.info("Challenge detected", url=url[:100], challenge_type=challenge_type)
            return FetchResult(
                ok=False,
                url=url,
                final_url=final_url,
                status=status,
                headers=resp_headers,
                html=text,
                reason="challenge_detected",
                failure_kind=ExtractionFailureKind.ACCESS_DENIED,
                challenge_type=challenge_type,
                elapsed_ms=elapsed_ms,
            )

        if status >= 400:
            logger.info("HTTP error status", url=url[:100], status=status)
            return FetchResult(
                ok=False,
                url=url,
                final_url=final_url,
                status=status,
                headers=resp_headers,
                html=text,
                reason=f"HTTP {status}",
                failure_kind=classify_extraction_error(status=status),
                elapsed_ms=elapsed_ms,
            )

        logger.debug(
            "HTTP fetch success",
            url=url[:100],
            status=status,
            content_length=len(text),
            elapsed_ms=round(elapsed_ms, 1),
        )
        return FetchResult(
            ok=True,
            url=url,
            final_url=final_url,
            status=status,
            headers=resp_headers,
            html=text,
            elapsed_ms=elapsed_ms,
        )

    async def close(self) -> None:
        """Close the pooled session."""
        if self._session is not None:
            session, self._session = self._session, None
            await session.close()
            logger.debug("HTTP session closed", request_count=self._request_count)
