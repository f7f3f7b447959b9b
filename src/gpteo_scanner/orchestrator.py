"""Scan orchestrator: drives one scan from queued to a terminal state."""

import asyncio
import dataclasses

import structlog

from .checks import ChecksEngine, CheckRegistry, RegistrySnapshot
from .config import settings
from .crawler import PageFetcher
from .crawler.fetcher import RESOURCE_TIMEOUT
from .crawler.extract import classify_page, derive_fields
from .errors import OrchestrationError
from .models import CheckCategory, FetchError, Page, Scan, ScanMode, ScanStatus
from .scoring import aggregate, to_int_score
from .storage import ScanStore

logger = structlog.get_logger()


def page_budget(mode: ScanMode) -> int:
    """Maximum number of seed URLs a scan of this mode processes."""
    return {
        ScanMode.QUICK: settings.quick_max_pages,
        ScanMode.STANDARD: settings.standard_max_pages,
        ScanMode.DEEP: settings.deep_max_pages,
    }[mode]


def page_timeout(mode: ScanMode) -> float:
    """Per-page network timeout in seconds."""
    return {
        ScanMode.QUICK: settings.quick_timeout,
        ScanMode.STANDARD: settings.standard_timeout,
        ScanMode.DEEP: settings.deep_timeout,
    }[mode]


class ScanCancelled(Exception):
    """Raised internally when a cancel signal is seen at a page boundary."""


class ScanOrchestrator:
    """Runs the fetch, evaluate and aggregate phases of a scan.

    The orchestrator is the only writer of a running scan's status. Pages,
    findings and the summary are persisted together, and only when the scan
    completes; a cancelled or failed scan keeps none of them.
    """

    def __init__(
        self,
        store: ScanStore,
        registry: CheckRegistry,
        fetcher: PageFetcher | None = None,
        engine: ChecksEngine | None = None,
        page_concurrency: int | None = None,
    ):
        self.store = store
        self.registry = registry
        self.fetcher = fetcher or PageFetcher()
        self.engine = engine or ChecksEngine()
        self.page_concurrency = page_concurrency or settings.page_concurrency

    async def close(self) -> None:
        """Release network resources."""
        await self.fetcher.stop()

    async def run(self, scan_id: str, cancel_event: asyncio.Event | None = None) -> Scan:
        """Run a queued scan to completion, cancellation or failure."""
        cancel_event = cancel_event or asyncio.Event()

        scan = await self.store.get_scan(scan_id)
        if scan is None:
            raise OrchestrationError(f"Scan not found: {scan_id}")

        if scan.status.is_terminal:
            logger.info("Skipping terminal scan", scan_id=scan_id, status=scan.status.value)
            return scan

        if cancel_event.is_set():
            scan.transition_to(ScanStatus.CANCELLED)
            await self.store.update_scan(scan)
            logger.info("Scan cancelled before start", scan_id=scan_id)
            return scan

        scan.transition_to(ScanStatus.RUNNING)
        scan.user_agent = self.fetcher.user_agent
        await self.store.update_scan(scan)
        logger.info("Scan started", scan_id=scan_id, domain=scan.domain, mode=scan.mode.value)

        try:
            snapshot = self._snapshot_registry()
            scan.checks_version = snapshot.version

            pages = await self._process_pages(scan, snapshot, cancel_event)
            if cancel_event.is_set():
                raise ScanCancelled()

            return await self._complete(scan, pages, snapshot)

        except ScanCancelled:
            scan.transition_to(ScanStatus.CANCELLED)
            await self.store.update_scan(scan)
            logger.info("Scan cancelled", scan_id=scan_id)
            return scan

        except Exception as e:
            logger.error("Scan failed", scan_id=scan_id, error=str(e))
            scan.transition_to(ScanStatus.FAILED, error_message=str(e) or type(e).__name__)
            await self.store.update_scan(scan)
            return scan

    def _snapshot_registry(self) -> RegistrySnapshot:
        try:
            return self.registry.snapshot()
        except Exception as e:
            raise OrchestrationError(f"Checks registry unavailable: {e}") from e

    async def _complete(self, scan: Scan, pages: list[Page], snapshot: RegistrySnapshot) -> Scan:
        findings = [finding for page in pages for finding in page.findings]
        summary = aggregate(scan.id, findings, snapshot, total_pages=len(pages))

        completed = dataclasses.replace(scan)
        completed.seo_score = to_int_score(summary.category_scores[CheckCategory.SEO.value])
        completed.gpteo_score = to_int_score(summary.category_scores[CheckCategory.GPTEO.value])
        completed.score_breakdown = summary.score_breakdown
        completed.transition_to(ScanStatus.COMPLETED)

        try:
            await self.store.save_results(completed, pages, summary)
        except Exception as e:
            raise OrchestrationError(f"Failed to persist scan results: {e}") from e

        logger.info(
            "Scan completed",
            scan_id=scan.id,
            pages=len(pages),
            findings=len(findings),
            seo_score=completed.seo_score,
            gpteo_score=completed.gpteo_score,
        )
        return completed

    async def _process_pages(
        self,
        scan: Scan,
        snapshot: RegistrySnapshot,
        cancel_event: asyncio.Event,
    ) -> list[Page]:
        """Fetch and evaluate seed URLs with bounded parallelism.

        Cancellation is checked before each fetch starts; fetches already in
        flight are allowed to finish. Pages come back in seed order.
        """
        urls = scan.seed_urls[:page_budget(scan.mode)]
        timeout = page_timeout(scan.mode)
        semaphore = asyncio.Semaphore(self.page_concurrency)
        lock = asyncio.Lock()
        collected: list[tuple[int, Page]] = []

        async def worker(index: int, url: str) -> None:
            async with semaphore:
                if cancel_event.is_set():
                    return
                page = await self._fetch_page(url, timeout)
                page.findings = self.engine.evaluate(page, snapshot)
                async with lock:
                    collected.append((index, page))

        await asyncio.gather(*(worker(index, url) for index, url in enumerate(urls)))

        collected.sort(key=lambda item: item[0])
        return [page for _, page in collected]

    async def _fetch_page(self, url: str, timeout: float) -> Page:
        """Fetch one page; any failure is recorded on the page instead of raised."""
        # Last-resort bound. The fetcher bounds the request and the render itself.
        limit = timeout * 3 + RESOURCE_TIMEOUT
        try:
            return await asyncio.wait_for(self.fetcher.fetch(url, timeout), timeout=limit)
        except asyncio.TimeoutError:
            error = FetchError(kind="timeout", message=f"Page processing exceeded {limit:g}s")
        except Exception as e:
            error = FetchError(kind="error", message=str(e) or type(e).__name__)

        logger.warning("Page fetch aborted", url=url, kind=error.kind, error=error.message)
        page = Page(url=url, error=error, type=classify_page(url, []))
        page.fields = derive_fields(page, None)
        return page
