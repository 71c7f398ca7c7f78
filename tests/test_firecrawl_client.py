import json

import httpx
import pytest

from dealbrief.scrape.firecrawl_client import FIRECRAWL_SCRAPE_URL, FirecrawlScraper, classify_error


def _scraper(handler):
    return FirecrawlScraper("fc-key", transport=httpx.MockTransport(handler))


class TestFirecrawlScraper:
    @pytest.mark.asyncio
    async def test_success_with_markdown(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"success": True, "data": {"markdown": "# Acme\nBody"}})

        outcome = await _scraper(handler).scrape("https://news.example/a", timeout=5)

        assert outcome.kind == "success"
        assert outcome.text == "# Acme\nBody"
        assert seen["url"] == FIRECRAWL_SCRAPE_URL
        assert seen["auth"] == "Bearer fc-key"
        assert seen["body"]["url"] == "https://news.example/a"
        assert seen["body"]["onlyMainContent"] is True

    @pytest.mark.asyncio
    async def test_prefers_article_text(self):
        def handler(request):
            return httpx.Response(200, json={
                "success": True,
                "data": {"article": {"text_content": "Article text"}, "markdown": "md"},
            })

        outcome = await _scraper(handler).scrape("https://a.example", timeout=5)
        assert outcome.text == "Article text"

    @pytest.mark.asyncio
    async def test_html_fallback(self):
        html = "<html><body><script>x()</script><p>" + "Acme Widgets recalled products. " * 10 + "</p></body></html>"

        def handler(request):
            return httpx.Response(200, json={"success": True, "data": {"markdown": "", "html": html}})

        outcome = await _scraper(handler).scrape("https://a.example", timeout=5)
        assert outcome.kind == "success"
        assert "Acme Widgets recalled products." in outcome.text
        assert "x()" not in outcome.text

    @pytest.mark.asyncio
    async def test_empty_when_no_content(self):
        def handler(request):
            return httpx.Response(200, json={"success": True, "data": {}})

        outcome = await _scraper(handler).scrape("https://a.example", timeout=5)
        assert outcome.kind == "empty"

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        outcome = await _scraper(handler).scrape("https://a.example", timeout=5)
        assert outcome.kind == "transient"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status, body, kind, site_wide", [
        (500, {"error": "Internal error"}, "transient", None),
        (502, {"error": "Bad gateway"}, "transient", None),
        (408, {"error": "Request timeout"}, "transient", None),
        (429, {"error": "Rate limited"}, "transient", None),
        (403, {"error": "This website is no longer supported"}, "unsupported", True),
        (400, {"error": "net::ERR_TUNNEL_CONNECTION_FAILED"}, "unsupported", True),
        (404, {"error": "Not found"}, "unsupported", False),
        (500, {"error": "Load failed for page"}, "empty", None),
    ])
    async def test_error_mapping(self, status, body, kind, site_wide):
        def handler(request):
            return httpx.Response(status, json=body)

        outcome = await _scraper(handler).scrape("https://a.example", timeout=5)
        assert outcome.kind == kind
        if site_wide is not None:
            assert outcome.site_wide is site_wide

    @pytest.mark.asyncio
    async def test_unsuccessful_body(self):
        def handler(request):
            return httpx.Response(200, json={"success": False, "error": "Site not supported"})

        outcome = await _scraper(handler).scrape("https://a.example", timeout=5)
        assert outcome.kind == "unsupported"
        assert outcome.site_wide is True


class TestClassifyError:
    def test_network_error_without_status_is_transient(self):
        assert classify_error(None, "connection reset").kind == "transient"
