"""Free DuckDuckGo search fallback — no API key required."""

from __future__ import annotations

import asyncio
import logging
import time

from ddgs import DDGS

logger = logging.getLogger(__name__)

_DDG_MIN_INTERVAL = 2.0  # seconds between requests


class DuckDuckGoSearch:
    """Serialised DuckDuckGo search.

    An asyncio lock plus a minimum interval between requests keeps the free
    backends from returning 429s. State lives on the instance, so each
    pipeline run starts fresh.
    """

    def __init__(self, min_interval: float = _DDG_MIN_INTERVAL, max_retries: int = 2):
        self.min_interval = min_interval
        self.max_retries = max_retries
        self._lock = asyncio.Lock()
        self._last_request_time = 0.0

    async def search(self, query: str, num_results: int = 10) -> dict:
        """Search DuckDuckGo and return results in the same format as Serper.

        Returns a normalised dict with:
          - 'organic_results': list of {link, title, snippet, position}
        Returns a dict with an 'error' key on failure.
        """
        for attempt in range(self.max_retries + 1):
            # Serialise: only one DDG request at a time
            async with self._lock:
                elapsed = time.monotonic() - self._last_request_time
                if elapsed < self.min_interval:
                    await asyncio.sleep(self.min_interval - elapsed)

                try:
                    raw = await asyncio.to_thread(_ddg_search_sync, query, num_results)
                    self._last_request_time = time.monotonic()
                except Exception as e:
                    self._last_request_time = time.monotonic()
                    err_str = str(e)
                    if ("429" in err_str or "Too Many" in err_str) and attempt < self.max_retries:
                        wait = self.min_interval * (attempt + 2)
                        logger.debug("DDG 429 for '%s', retrying in %.1fs...", query[:40], wait)
                        await asyncio.sleep(wait)
                        continue
                    logger.warning("DuckDuckGo search error for '%s': %s", query[:80], e)
                    return {"error": err_str}

            organic_results = []
            for i, item in enumerate(raw):
                url = item.get("href", "")
                if url:
                    organic_results.append({
                        "link": url,
                        "title": item.get("title", ""),
                        "snippet": item.get("body", ""),
                        "position": i + 1,
                    })
            return {"organic_results": organic_results}

        return {"error": "max retries exceeded"}


def _ddg_search_sync(query: str, num_results: int) -> list[dict]:
    """Run the synchronous DDG search in a thread."""
    with DDGS() as ddgs:
        return list(ddgs.text(query, max_results=num_results))
