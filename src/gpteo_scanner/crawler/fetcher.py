"""HTTP page fetcher."""

import asyncio
import json
import time
from typing import Any
from urllib.parse import urlparse

import httpx
import structlog

from ..config import settings
from ..models import FetchError, Page, PageType
from .browser import HeadlessRenderer
from .extract import classify_page, derive_fields, extract_json_ld, extract_meta_tags, parse_html

logger = structlog.get_logger()

FEED_LICENSE_KEYS = ("license", "licensing", "terms", "usage_terms")
RESOURCE_TIMEOUT = 10.0


class PageFetcher:
    """Fetches pages over HTTP and extracts what the checks need.

    A fetch never raises for network or HTTP problems. The returned page
    carries a ``FetchError`` together with whatever was received, so checks
    that only need HTTP-level data can still run.
    """

    def __init__(
        self,
        user_agent: str | None = None,
        max_redirects: int | None = None,
        probe_site_resources: bool | None = None,
        renderer: HeadlessRenderer | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.user_agent = user_agent or settings.user_agent
        self.max_redirects = max_redirects or settings.max_redirects
        self.probe_site_resources = (
            probe_site_resources if probe_site_resources is not None else settings.probe_site_resources
        )
        self.renderer = renderer
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._start_lock = asyncio.Lock()
        self._renderer_started = False
        self._resource_cache: dict[str, dict[str, Any]] = {}
        self._resource_locks: dict[str, asyncio.Lock] = {}

    async def start(self) -> None:
        """Initialize HTTP client and start the renderer once."""
        async with self._start_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    follow_redirects=True,
                    max_redirects=self.max_redirects,
                    headers={"User-Agent": self.user_agent},
                    transport=self._transport,
                )
            if self.renderer and not self._renderer_started:
                await self.renderer.start()
                self._renderer_started = True

    async def stop(self) -> None:
        """Close HTTP client."""
        async with self._start_lock:
            if self._client:
                await self._client.aclose()
                self._client = None
            if self.renderer and self._renderer_started:
                await self.renderer.stop()
                self._renderer_started = False

    async def __aenter__(self) -> "PageFetcher":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    async def fetch(self, url: str, timeout: float) -> Page:
        """Fetch a URL and return the recorded page."""
        await self.start()

        page = Page(url=url)
        start_time = time.perf_counter()

        try:
            async with self._client.stream("GET", url, timeout=timeout) as response:
                # Headers of the final hop have arrived.
                page.ttfb_ms = int((time.perf_counter() - start_time) * 1000)
                await response.aread()
        except httpx.TimeoutException:
            page.error = FetchError(kind="timeout", message=f"Timed out after {timeout:g}s")
        except httpx.TooManyRedirects:
            page.error = FetchError(kind="too_many_redirects", message=f"More than {self.max_redirects} redirects")
        except httpx.HTTPError as e:
            page.error = FetchError(kind="connection", message=f"Connection failed: {e}")

        page.load_time_ms = int((time.perf_counter() - start_time) * 1000)

        if page.error:
            logger.warning("Fetch failed", url=url, kind=page.error.kind, error=page.error.message)
            page.type = classify_page(url, [])
            page.fields = derive_fields(page, None)
            return page

        await self._record_response(page, response, timeout)
        return page

    async def _record_response(self, page: Page, response: httpx.Response, timeout: float) -> None:
        page.final_url = str(response.url)
        page.status_code = response.status_code
        page.redirect_chain = [str(hop.url) for hop in response.history]
        page.headers = {key.lower(): value for key, value in response.headers.items()}
        page.size_bytes = len(response.content)

        if not response.is_success:
            page.error = FetchError(
                kind="http_status",
                message=f"HTTP {response.status_code}",
                status_code=response.status_code,
            )
            logger.warning("Non-success response", url=page.url, status=response.status_code)
            page.type = classify_page(page.final_url, [])
            page.fields = derive_fields(page, None)
            return

        html = response.text
        if self.renderer:
            try:
                rendered = await asyncio.wait_for(self.renderer.render(page.final_url), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("Render timed out, using HTTP body", url=page.url, timeout=timeout)
                rendered = None
            if rendered is not None:
                html = rendered
                page.used_headless_browser = True

        soup = parse_html(html)
        page.json_ld = extract_json_ld(soup)
        page.meta_tags = extract_meta_tags(soup)
        page.type = classify_page(page.final_url, page.json_ld)
        if settings.store_html_snapshot:
            page.html_snapshot = html

        resources = None
        if page.type == PageType.HOMEPAGE and self.probe_site_resources:
            resources = await self.probe_resources(page.final_url)

        page.fields = derive_fields(page, soup, resources)

        logger.info(
            "Fetched page",
            url=page.url,
            status=page.status_code,
            page_type=page.type.value,
            json_ld_blocks=len(page.json_ld),
            ttfb_ms=page.ttfb_ms,
            load_time_ms=page.load_time_ms,
        )

    async def probe_resources(self, page_url: str) -> dict[str, Any]:
        """Look for robots.txt, sitemap.xml and an AI feed on the page's origin.

        Results are cached per origin for the lifetime of the fetcher.
        """
        parsed = urlparse(page_url)
        origin = f"{parsed.scheme}://{parsed.netloc}"

        lock = self._resource_locks.setdefault(origin, asyncio.Lock())
        async with lock:
            if origin in self._resource_cache:
                return self._resource_cache[origin]

            robots, sitemap, feed = await asyncio.gather(
                self._get_text(f"{origin}/robots.txt"),
                self._get_text(f"{origin}/sitemap.xml"),
                self._get_text(f"{origin}/ai-feed.json"),
            )

            resources: dict[str, Any] = {
                "robots_txt": bool(robots and "<html" not in robots[:500].lower()),
                "sitemap_xml": bool(sitemap and ("<urlset" in sitemap or "<sitemapindex" in sitemap)),
                "ai_feed": False,
                "ai_feed_license": False,
            }

            if feed:
                try:
                    data = json.loads(feed)
                except ValueError:
                    data = None
                if isinstance(data, dict):
                    resources["ai_feed"] = True
                    resources["ai_feed_license"] = any(key in data for key in FEED_LICENSE_KEYS)

            logger.debug("Probed site resources", origin=origin, **resources)
            self._resource_cache[origin] = resources
            return resources

    async def _get_text(self, url: str) -> str | None:
        try:
            response = await self._client.get(url, timeout=RESOURCE_TIMEOUT)
        except httpx.HTTPError as e:
            logger.debug("Resource probe failed", url=url, error=str(e))
            return None
        if not response.is_success:
            return None
        return response.text
