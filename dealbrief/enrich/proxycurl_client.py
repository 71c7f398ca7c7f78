"""Proxycurl API client — async LinkedIn company and person enrichment."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from dealbrief.models import CompanyProfile, PersonProfile

logger = logging.getLogger(__name__)

PROXYCURL_BASE_URL = "https://nubela.co/proxycurl/api"


class ProxycurlClient:
    """Async client for the Proxycurl REST API."""

    def __init__(
        self,
        api_key: str = "",
        timeout: float = 20,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=PROXYCURL_BASE_URL,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get(self, endpoint: str, params: dict[str, Any]) -> dict:
        """Make an authenticated GET request. Returns {} on any failure."""
        if not self.api_key:
            return {}
        client = await self._get_client()
        try:
            r = await client.get(endpoint, params=params)
            r.raise_for_status()
            data = r.json()
        except httpx.TimeoutException:
            logger.warning("Proxycurl timeout for %s", params.get("url", "")[:100])
            return {}
        except httpx.HTTPStatusError as e:
            logger.warning("Proxycurl API error %s for %s", e.response.status_code, endpoint)
            return {}
        except Exception as e:
            logger.warning("Proxycurl request failed for %s: %s", endpoint, e)
            return {}
        return data if isinstance(data, dict) else {}

    async def enrich_company(self, url: str) -> CompanyProfile | None:
        """Enrich a linkedin.com/company/ URL."""
        data = await self._get("/linkedin/company", {"url": url})
        if not data:
            return None
        try:
            return CompanyProfile.model_validate(data)
        except ValidationError as e:
            logger.warning("Unexpected Proxycurl company payload for %s: %s", url[:100], e)
            return None

    async def enrich_person(self, url: str) -> PersonProfile | None:
        """Enrich a linkedin.com/in/ URL."""
        data = await self._get("/v2/linkedin", {"url": url})
        if not data:
            return None
        try:
            return PersonProfile.model_validate(data)
        except ValidationError as e:
            logger.warning("Unexpected Proxycurl person payload for %s: %s", url[:100], e)
            return None
