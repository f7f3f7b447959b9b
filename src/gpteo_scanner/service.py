"""Owner-scoped entry points for submitting and reading scans."""

import structlog

from .checks import CheckRegistry
from .errors import AlreadyTerminalError, CheckInUseError, ScanActiveError, ScanNotFoundError
from .models import (
    Scan,
    ScanDetail,
    ScanListing,
    ScanMode,
    ScanRequest,
    ScanStats,
    ScanStatus,
)
from .queue import JobQueue
from .storage import ScanStore

logger = structlog.get_logger()

DEFAULT_LIST_LIMIT = 10


class ScanService:
    """Facade used by the presentation layer and other producers.

    Every call takes the caller's owner id; scans owned by someone else
    behave exactly like scans that do not exist.
    """

    def __init__(self, store: ScanStore, queue: JobQueue, registry: CheckRegistry):
        self.store = store
        self.queue = queue
        self.registry = registry

    async def submit_scan(
        self,
        owner_id: str,
        domain: str,
        seed_urls: list[str],
        mode: ScanMode | str | None = None,
    ) -> str:
        """Admit a scan. Raises ValidationError for bad input."""
        request = ScanRequest(owner_id=owner_id, domain=domain, seed_urls=seed_urls, mode=mode)
        return await self.queue.submit(request)

    async def cancel_scan(self, owner_id: str, scan_id: str) -> None:
        """Cancel a queued or running scan.

        Raises:
            ScanNotFoundError: Unknown scan or another owner's scan.
            AlreadyTerminalError: The scan already completed, failed or was cancelled.
        """
        scan = await self._owned_scan(owner_id, scan_id)
        if scan.status.is_terminal:
            raise AlreadyTerminalError(scan_id, scan.status.value)

        if not await self.queue.cancel(scan_id):
            scan = await self._owned_scan(owner_id, scan_id)
            if not scan.transition_to(ScanStatus.CANCELLED):
                # Finished between the read and the cancel.
                raise AlreadyTerminalError(scan_id, scan.status.value)
            # Stored as active but not held by this queue.
            await self.store.update_scan(scan)
            logger.info("Orphaned scan cancelled", scan_id=scan_id, owner_id=owner_id)
            return

        logger.info("Scan cancel accepted", scan_id=scan_id, owner_id=owner_id)

    async def get_scan(self, owner_id: str, scan_id: str) -> ScanDetail:
        """Return the scan with its pages, findings and summary."""
        scan = await self._owned_scan(owner_id, scan_id)
        pages = await self.store.get_pages(scan_id)
        summary = await self.store.get_summary(scan_id)
        return ScanDetail(scan=scan, pages=pages, summary=summary)

    async def list_scans(
        self,
        owner_id: str,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> ScanListing:
        """Return one page of the owner's scans, newest first, with summaries."""
        limit = limit if limit and limit > 0 else DEFAULT_LIST_LIMIT
        offset = max(offset or 0, 0)

        scans, total = await self.store.list_scans(owner_id, limit, offset)
        rows = [(scan, await self.store.get_summary(scan.id)) for scan in scans]
        return ScanListing(scans=rows, total=total, has_more=total > offset + limit)

    async def scan_stats(self, owner_id: str) -> ScanStats:
        """Totals by status and average scores over the owner's scans."""
        _, total = await self.store.list_scans(owner_id, 0, 0)
        scans, _ = await self.store.list_scans(owner_id, total, 0)

        stats = ScanStats(total=len(scans))
        for scan in scans:
            name = scan.status.value
            setattr(stats, name, getattr(stats, name) + 1)

        seo = [scan.seo_score for scan in scans if scan.seo_score is not None]
        gpteo = [scan.gpteo_score for scan in scans if scan.gpteo_score is not None]
        stats.avg_seo_score = round(sum(seo) / len(seo), 2) if seo else 0.0
        stats.avg_gpteo_score = round(sum(gpteo) / len(gpteo), 2) if gpteo else 0.0
        return stats

    async def delete_scan(self, owner_id: str, scan_id: str) -> None:
        """Delete a finished scan with its pages, findings and summary."""
        scan = await self._owned_scan(owner_id, scan_id)
        if scan.status in (ScanStatus.QUEUED, ScanStatus.RUNNING):
            raise ScanActiveError(f"Scan {scan_id} is {scan.status.value}; cancel it first")
        await self.store.delete_scan(scan_id)

    async def delete_check(self, check_key: str) -> None:
        """Remove a check unless stored findings still reference it."""
        references = await self.store.count_check_references(check_key)
        if references:
            raise CheckInUseError(check_key, references)
        self.registry.remove(check_key)

    async def _owned_scan(self, owner_id: str, scan_id: str) -> Scan:
        scan = await self.store.get_scan(scan_id)
        if scan is None or scan.owner_id != owner_id:
            raise ScanNotFoundError(scan_id)
        return scan
