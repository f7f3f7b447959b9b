"""Tests for the HTTP page fetcher."""

import asyncio

import httpx
import pytest

from gpteo_scanner.crawler import PageFetcher
from gpteo_scanner.models import PageType

HOME_HTML = """
<html><head>
<title>Acme Outdoor</title>
<link rel="canonical" href="https://example.com/">
<script type="application/ld+json">{"@type": "Organization", "name": "Acme"}</script>
<script type="application/ld+json">{broken</script>
</head><body><h1>Acme</h1></body></html>
"""


def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/old":
        return httpx.Response(301, headers={"Location": "https://example.com/"})
    if path == "/":
        return httpx.Response(200, html=HOME_HTML, headers={"X-Served-By": "edge-1"})
    if path == "/robots.txt":
        return httpx.Response(200, text="User-agent: *\nAllow: /\n")
    if path == "/sitemap.xml":
        return httpx.Response(200, text='<?xml version="1.0"?><urlset></urlset>')
    if path == "/ai-feed.json":
        return httpx.Response(200, json={"brand": "Acme", "license": "CC-BY-4.0"})
    if path == "/loop":
        return httpx.Response(302, headers={"Location": "https://example.com/loop"})
    if path == "/slow":
        raise httpx.ReadTimeout("read timed out", request=request)
    if path == "/down":
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.Response(404, text="not found")


class TestPageFetcher:
    """Test cases for PageFetcher."""

    @pytest.mark.asyncio
    async def test_follows_redirects(self):
        async with PageFetcher(transport=httpx.MockTransport(_handler)) as fetcher:
            page = await fetcher.fetch("https://example.com/old", timeout=5)

        assert page.ok
        assert page.status_code == 200
        assert page.final_url == "https://example.com/"
        assert page.redirect_chain == ["https://example.com/old"]
        assert page.type == PageType.HOMEPAGE
        assert page.headers["x-served-by"] == "edge-1"
        assert page.size_bytes > 0
        assert page.load_time_ms is not None
        assert page.ttfb_ms is not None
        assert page.ttfb_ms <= page.load_time_ms

    @pytest.mark.asyncio
    async def test_extracts_structured_data(self):
        async with PageFetcher(transport=httpx.MockTransport(_handler)) as fetcher:
            page = await fetcher.fetch("https://example.com/", timeout=5)

        assert page.json_ld == [{"@type": "Organization", "name": "Acme"}]
        assert page.meta_tags["title"] == "Acme Outdoor"
        assert page.fields["canonical"] == "https://example.com/"
        assert page.fields["h1"] == ["Acme"]

    @pytest.mark.asyncio
    async def test_homepage_probes_site_resources(self):
        async with PageFetcher(transport=httpx.MockTransport(_handler)) as fetcher:
            page = await fetcher.fetch("https://example.com/", timeout=5)

        assert page.fields["robots_txt"] is True
        assert page.fields["sitemap_xml"] is True
        assert page.fields["ai_feed"] is True
        assert page.fields["ai_licensing"] is True

    @pytest.mark.asyncio
    async def test_probes_can_be_disabled(self):
        transport = httpx.MockTransport(_handler)
        async with PageFetcher(transport=transport, probe_site_resources=False) as fetcher:
            page = await fetcher.fetch("https://example.com/", timeout=5)

        assert page.fields["robots_txt"] is None
        assert page.fields["ai_feed"] is None

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        async with PageFetcher(transport=httpx.MockTransport(_handler)) as fetcher:
            page = await fetcher.fetch("https://example.com/missing", timeout=5)

        assert not page.ok
        assert page.status_code == 404
        assert page.error.kind == "http_status"
        assert page.error.status_code == 404
        assert page.fields["indexable"] is False

    @pytest.mark.asyncio
    async def test_connection_error(self):
        async with PageFetcher(transport=httpx.MockTransport(_handler)) as fetcher:
            page = await fetcher.fetch("https://example.com/down", timeout=5)

        assert page.error.kind == "connection"
        assert page.status_code is None

    @pytest.mark.asyncio
    async def test_timeout(self):
        async with PageFetcher(transport=httpx.MockTransport(_handler)) as fetcher:
            page = await fetcher.fetch("https://example.com/slow", timeout=5)

        assert page.error.kind == "timeout"

    @pytest.mark.asyncio
    async def test_too_many_redirects(self):
        async with PageFetcher(transport=httpx.MockTransport(_handler), max_redirects=3) as fetcher:
            page = await fetcher.fetch("https://example.com/loop", timeout=5)

        assert page.error.kind == "too_many_redirects"

    @pytest.mark.asyncio
    async def test_resource_probe_cached_per_origin(self):
        calls = []

        def counting_handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            return _handler(request)

        async with PageFetcher(transport=httpx.MockTransport(counting_handler)) as fetcher:
            await fetcher.fetch("https://example.com/", timeout=5)
            await fetcher.fetch("https://example.com/", timeout=5)

        assert calls.count("/robots.txt") == 1
        assert calls.count("/") == 2


class FakeRenderer:
    """Renderer returning a fixed DOM, optionally after a delay."""

    def __init__(self, html: str | None, delay: float = 0.0):
        self.html = html
        self.delay = delay
        self.started = False
        self.start_calls = 0
        self.rendered: list[str] = []

    async def start(self):
        self.start_calls += 1
        self.started = True

    async def stop(self):
        self.started = False

    async def render(self, url: str) -> str | None:
        self.rendered.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.html


class TestHeadlessRendering:
    """Test cases for fetching through a headless renderer."""

    @pytest.mark.asyncio
    async def test_rendered_dom_replaces_html(self):
        renderer = FakeRenderer("<html><head><title>Rendered</title></head><body><h1>JS</h1></body></html>")
        transport = httpx.MockTransport(_handler)

        async with PageFetcher(transport=transport, renderer=renderer, probe_site_resources=False) as fetcher:
            assert renderer.started is True
            page = await fetcher.fetch("https://example.com/", timeout=5)

        assert page.used_headless_browser is True
        assert page.meta_tags["title"] == "Rendered"
        assert page.fields["h1"] == ["JS"]
        assert renderer.rendered == ["https://example.com/"]
        assert renderer.started is False

    @pytest.mark.asyncio
    async def test_failed_render_keeps_http_body(self):
        renderer = FakeRenderer(None)
        transport = httpx.MockTransport(_handler)

        async with PageFetcher(transport=transport, renderer=renderer, probe_site_resources=False) as fetcher:
            page = await fetcher.fetch("https://example.com/", timeout=5)

        assert page.used_headless_browser is False
        assert page.meta_tags["title"] == "Acme Outdoor"

    @pytest.mark.asyncio
    async def test_error_pages_are_not_rendered(self):
        renderer = FakeRenderer("<html></html>")

        async with PageFetcher(transport=httpx.MockTransport(_handler), renderer=renderer) as fetcher:
            await fetcher.fetch("https://example.com/missing", timeout=5)

        assert renderer.rendered == []

    @pytest.mark.asyncio
    async def test_slow_render_keeps_http_response(self):
        """Test that a render outliving the timeout falls back to the HTTP body."""
        renderer = FakeRenderer("<html><title>Too late</title></html>", delay=5)
        transport = httpx.MockTransport(_handler)

        async with PageFetcher(transport=transport, renderer=renderer, probe_site_resources=False) as fetcher:
            page = await fetcher.fetch("https://example.com/", timeout=0.1)

        assert page.ok
        assert page.status_code == 200
        assert page.headers["x-served-by"] == "edge-1"
        assert page.used_headless_browser is False
        assert page.meta_tags["title"] == "Acme Outdoor"

    @pytest.mark.asyncio
    async def test_renderer_started_once_for_concurrent_fetches(self):
        renderer = FakeRenderer(None)
        fetcher = PageFetcher(transport=httpx.MockTransport(_handler), renderer=renderer, probe_site_resources=False)

        await asyncio.gather(*(fetcher.fetch(f"https://example.com/p{i}", timeout=5) for i in range(3)))
        await fetcher.fetch("https://example.com/", timeout=5)
        await fetcher.stop()

        assert renderer.start_calls == 1
        assert renderer.started is False
