"""In-memory scan store."""

import asyncio
import copy
from datetime import datetime

import structlog

from ..errors import StoreError
from ..models import Page, Scan, ScanSummary
from .base import ScanStore

logger = structlog.get_logger()


class InMemoryScanStore(ScanStore):
    """Process-local store keeping deep copies of every record.

    Callers always receive copies, so a record only changes through an
    explicit update.
    """

    def __init__(self):
        self._scans: dict[str, Scan] = {}
        self._pages: dict[str, list[Page]] = {}
        self._summaries: dict[str, ScanSummary] = {}
        self._lock = asyncio.Lock()

    async def create_scan(self, scan: Scan) -> None:
        async with self._lock:
            if scan.id in self._scans:
                raise StoreError(f"Scan already exists: {scan.id}")
            self._scans[scan.id] = copy.deepcopy(scan)

    async def get_scan(self, scan_id: str) -> Scan | None:
        async with self._lock:
            scan = self._scans.get(scan_id)
            return copy.deepcopy(scan) if scan else None

    async def update_scan(self, scan: Scan) -> None:
        async with self._lock:
            if scan.id not in self._scans:
                raise StoreError(f"Scan not found: {scan.id}")
            scan.updated_at = datetime.now()
            self._scans[scan.id] = copy.deepcopy(scan)

    async def list_scans(self, owner_id: str, limit: int, offset: int) -> tuple[list[Scan], int]:
        async with self._lock:
            owned = [scan for scan in self._scans.values() if scan.owner_id == owner_id]
            owned.sort(key=lambda scan: scan.created_at, reverse=True)
            return [copy.deepcopy(scan) for scan in owned[offset:offset + limit]], len(owned)

    async def save_results(self, scan: Scan, pages: list[Page], summary: ScanSummary) -> None:
        async with self._lock:
            if scan.id not in self._scans:
                raise StoreError(f"Scan not found: {scan.id}")
            scan.updated_at = datetime.now()
            self._scans[scan.id] = copy.deepcopy(scan)
            self._pages[scan.id] = copy.deepcopy(pages)
            self._summaries[scan.id] = copy.deepcopy(summary)

    async def get_pages(self, scan_id: str) -> list[Page]:
        async with self._lock:
            return copy.deepcopy(self._pages.get(scan_id, []))

    async def get_summary(self, scan_id: str) -> ScanSummary | None:
        async with self._lock:
            summary = self._summaries.get(scan_id)
            return copy.deepcopy(summary) if summary else None

    async def delete_scan(self, scan_id: str) -> bool:
        async with self._lock:
            if self._scans.pop(scan_id, None) is None:
                return False
            pages = self._pages.pop(scan_id, [])
            self._summaries.pop(scan_id, None)
            logger.info("Scan deleted", scan_id=scan_id, pages=len(pages))
            return True

    async def count_check_references(self, check_key: str) -> int:
        async with self._lock:
            return sum(
                1
                for pages in self._pages.values()
                for page in pages
                for finding in page.findings
                if finding.check_key == check_key
            )
