import json

import httpx
import pytest

from dealbrief.search import duckduckgo_client
from dealbrief.search.duckduckgo_client import DuckDuckGoSearch
from dealbrief.search.provider import WebSearch
from dealbrief.search.serper_client import search_serper


def _transport(status=200, body=None, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=body if body is not None else {})
    return httpx.MockTransport(handler)


class FallbackSearch:
    def __init__(self):
        self.queries = []

    async def search(self, query, num_results=10):
        self.queries.append(query)
        return {"organic_results": [{"link": "https://ddg.example", "title": "", "snippet": "", "position": 1}]}


class TestSerperClient:
    @pytest.mark.asyncio
    async def test_normalises_organic_results(self):
        seen = []
        body = {"organic": [
            {"link": "https://a.example", "title": "A", "snippet": "a"},
            {"title": "no link"},
            {"link": "https://b.example", "position": 7},
        ]}
        response = await search_serper("acme", "key", num_results=5, transport=_transport(body=body, seen=seen))

        assert [r["link"] for r in response["organic_results"]] == ["https://a.example", "https://b.example"]
        assert response["organic_results"][0]["position"] == 1
        assert response["organic_results"][1]["position"] == 7
        assert seen[0].headers["X-API-KEY"] == "key"
        assert json.loads(seen[0].content)["num"] == 5

    @pytest.mark.asyncio
    async def test_http_error(self):
        response = await search_serper("acme", "key", transport=_transport(status=500))
        assert response == {"error": "http_500"}


class TestWebSearch:
    @pytest.mark.asyncio
    async def test_switches_to_fallback_on_payment_error(self):
        fallback = FallbackSearch()
        seen = []
        search = WebSearch("key", fallback=fallback, transport=_transport(status=402, seen=seen))

        first = await search.search("one")
        second = await search.search("two")

        assert first["organic_results"][0]["link"] == "https://ddg.example"
        assert second["organic_results"][0]["link"] == "https://ddg.example"
        assert len(seen) == 1
        assert fallback.queries == ["one", "two"]

    @pytest.mark.asyncio
    async def test_other_errors_are_returned(self):
        fallback = FallbackSearch()
        search = WebSearch("key", fallback=fallback, transport=_transport(status=503))
        assert await search.search("one") == {"error": "http_503"}
        assert fallback.queries == []

    @pytest.mark.asyncio
    async def test_no_key_uses_fallback(self):
        fallback = FallbackSearch()
        await WebSearch("", fallback=fallback).search("one")
        assert fallback.queries == ["one"]


class TestDuckDuckGoSearch:
    @pytest.mark.asyncio
    async def test_maps_results(self, monkeypatch):
        monkeypatch.setattr(
            duckduckgo_client, "_ddg_search_sync",
            lambda query, n: [{"href": "https://x.example", "title": "X", "body": "snippet"}, {"title": "none"}],
        )
        response = await DuckDuckGoSearch(min_interval=0).search("acme")
        assert response == {"organic_results": [
            {"link": "https://x.example", "title": "X", "snippet": "snippet", "position": 1},
        ]}

    @pytest.mark.asyncio
    async def test_error_is_returned(self, monkeypatch):
        def boom(query, n):
            raise RuntimeError("backend down")

        monkeypatch.setattr(duckduckgo_client, "_ddg_search_sync", boom)
        response = await DuckDuckGoSearch(min_interval=0).search("acme")
        assert response == {"error": "backend down"}
