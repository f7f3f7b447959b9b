"""Headless browser rendering for JavaScript-built pages."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeout,
)

from ..config import settings

logger = structlog.get_logger()


class BrowserManager:
    """Manages Playwright browser lifecycle and provides page contexts."""

    def __init__(self, user_agent: str | None = None):
        self.user_agent = user_agent or settings.user_agent
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._start_lock = asyncio.Lock()

    async def start(self) -> None:
        """Initialize the browser once, even when called concurrently."""
        async with self._start_lock:
            if self._browser is not None:
                return

            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=True,
                args=[
                    "--no-sandbox",
                    "--disable-setuid-sandbox",
                    "--disable-dev-shm-usage",
                    "--disable-gpu",
                ],
            )
            self._context = await self._browser.new_context(
                user_agent=self.user_agent,
                ignore_https_errors=True,
                java_script_enabled=True,
            )

            logger.info("Browser started")

    async def stop(self) -> None:
        """Close the browser and cleanup resources."""
        if self._context:
            await self._context.close()
            self._context = None

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
            logger.info("Browser stopped")

    @asynccontextmanager
    async def new_page(self) -> AsyncGenerator[Page, None]:
        """Create a new page in the browser context."""
        if self._context is None:
            await self.start()

        page = await self._context.new_page()
        try:
            yield page
        finally:
            await page.close()


class HeadlessRenderer:
    """Renders a URL in a headless browser and returns the resulting DOM.

    Pages are rendered one at a time per renderer; the browser is shared
    across all pages of all scans that use the renderer.
    """

    def __init__(
        self,
        manager: BrowserManager | None = None,
        page_load_timeout: int | None = None,
        js_wait_timeout: int | None = None,
        concurrency: int = 1,
    ):
        self.manager = manager or BrowserManager()
        self.page_load_timeout = page_load_timeout or settings.page_load_timeout
        self.js_wait_timeout = js_wait_timeout or settings.js_wait_timeout
        self._semaphore = asyncio.Semaphore(concurrency)

    async def start(self) -> None:
        await self.manager.start()

    async def stop(self) -> None:
        await self.manager.stop()

    async def render(self, url: str) -> str | None:
        """Return the rendered HTML, or None when rendering failed."""
        async with self._semaphore:
            async with self.manager.new_page() as page:
                try:
                    response = await page.goto(
                        url,
                        wait_until="domcontentloaded",
                        timeout=self.page_load_timeout,
                    )
                    if response is None or response.status >= 400:
                        logger.warning(
                            "Render got no usable response",
                            url=url,
                            status=response.status if response else None,
                        )
                        return None

                    try:
                        await page.wait_for_load_state("networkidle", timeout=5000)
                    except PlaywrightTimeout:
                        pass  # Continue even if network doesn't fully idle

                    await page.wait_for_timeout(self.js_wait_timeout)
                    return await page.content()

                except PlaywrightTimeout:
                    logger.warning("Render timed out", url=url, timeout=self.page_load_timeout)
                    return None
                except Exception as e:
                    logger.warning("Render failed", url=url, error=str(e))
                    return None
