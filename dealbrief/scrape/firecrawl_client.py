"""Async Firecrawl scrape client.

Maps every Firecrawl response onto one of the four ScrapeOutcome cases so the
executor never has to look at raw status codes or error text.
"""

from __future__ import annotations

import logging
import re

import httpx

from dealbrief.models import (
    ScrapeEmpty,
    ScrapeOutcome,
    ScrapeSuccess,
    ScrapeTransientFailure,
    ScrapeUnsupported,
)
from dealbrief.scrape.extractor import text_from_html

logger = logging.getLogger(__name__)

FIRECRAWL_SCRAPE_URL = "https://api.firecrawl.dev/v1/scrape"

# Error text that condemns the whole host for the rest of a run
_UNSUPPORTED_SITE = re.compile(
    r"ERR_TUNNEL_CONNECTION_FAILED|no longer supported|not supported|unsupported",
    re.IGNORECASE,
)
_LOAD_FAILED = re.compile(r"load failed", re.IGNORECASE)


def _is_transient_status(status: int) -> bool:
    return status in (408, 429) or status >= 500


def classify_error(status: int | None, error_text: str) -> ScrapeOutcome:
    """Map a failed scrape (HTTP status and/or error text) to an outcome."""
    text = error_text or ""
    if _LOAD_FAILED.search(text):
        return ScrapeEmpty(reason=text[:200])
    if _UNSUPPORTED_SITE.search(text):
        return ScrapeUnsupported(site_wide=True, reason=text[:200])
    if status is None or _is_transient_status(status):
        return ScrapeTransientFailure(reason=text[:200] or f"http_{status}")
    if 400 <= status < 500:
        return ScrapeUnsupported(site_wide=False, reason=text[:200] or f"http_{status}")
    return ScrapeTransientFailure(reason=text[:200] or f"http_{status}")


def outcome_from_response(data: dict, url: str = "") -> ScrapeOutcome:
    """Map a 2xx Firecrawl JSON body to an outcome."""
    if not data.get("success", False):
        return classify_error(None, str(data.get("error") or data.get("warning") or "unknown error"))

    doc = data.get("data") or {}
    article = doc.get("article") or {}
    text = (article.get("text_content") or doc.get("markdown") or "").strip()
    if text:
        return ScrapeSuccess(text=text)

    html = doc.get("html") or doc.get("rawHtml") or ""
    if html:
        text = text_from_html(html, url=url)
        if text:
            return ScrapeSuccess(text=text, reason="html_fallback")
    return ScrapeEmpty(reason="no_extractable_content")


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or "")
    return ""


class FirecrawlScraper:
    """Scrape capability backed by the Firecrawl /v1/scrape endpoint."""

    def __init__(self, api_key: str, transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = api_key
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def scrape(self, url: str, timeout: float) -> ScrapeOutcome:
        """Scrape one URL. Never raises; failures come back as outcomes."""
        payload = {
            "url": url,
            "formats": ["markdown", "html"],
            "onlyMainContent": True,
        }
        client = await self._get_client()
        try:
            response = await client.post(FIRECRAWL_SCRAPE_URL, json=payload, timeout=timeout)
        except httpx.TimeoutException:
            logger.warning("Firecrawl timeout (%.0fs) for %s", timeout, url[:100])
            return ScrapeTransientFailure(reason="timeout")
        except Exception as e:
            logger.warning("Firecrawl error for %s: %s", url[:100], e)
            return classify_error(None, str(e))

        if response.status_code >= 400:
            error = _error_text(response)
            logger.warning("Firecrawl HTTP %d for %s: %s", response.status_code, url[:100], error[:120])
            return classify_error(response.status_code, error)

        try:
            data = response.json()
        except ValueError:
            logger.warning("Firecrawl returned non-JSON body for %s", url[:100])
            return ScrapeTransientFailure(reason="invalid_json")
        return outcome_from_response(data, url=url)
