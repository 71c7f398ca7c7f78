"""Search capability: Serper first, DuckDuckGo once Serper credits run out."""

from __future__ import annotations

import logging

import httpx

from dealbrief.search.duckduckgo_client import DuckDuckGoSearch
from dealbrief.search.serper_client import search_serper

logger = logging.getLogger(__name__)


class WebSearch:
    """Execute a search query, falling back from Serper to DuckDuckGo.

    Permanently switches to DuckDuckGo (for this instance) if Serper returns
    402/payment errors. Other Serper errors are returned to the caller as-is.
    """

    def __init__(
        self,
        serper_key: str,
        timeout: float = 20,
        fallback: DuckDuckGoSearch | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.serper_key = serper_key
        self.timeout = timeout
        self._serper_available = bool(serper_key)
        self._fallback = fallback
        self._transport = transport

    async def search(self, query: str, num_results: int = 10) -> dict:
        if self._serper_available:
            response = await search_serper(
                query,
                self.serper_key,
                num_results=num_results,
                timeout=self.timeout,
                transport=self._transport,
            )
            error = str(response.get("error", ""))
            if not error:
                return response
            if "402" not in error and "payment" not in error.lower():
                return response
            self._serper_available = False
            logger.warning("Serper credits exhausted — switching to DuckDuckGo (free)")

        if self._fallback is None:
            self._fallback = DuckDuckGoSearch()
        return await self._fallback.search(query, num_results=num_results)
