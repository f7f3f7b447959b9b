"""Durable store interface."""

from abc import ABC, abstractmethod

from ..models import Page, Scan, ScanSummary


class ScanStore(ABC):
    """Abstract base class for scan persistence backends.

    A scan owns its pages and each page owns its findings; deleting a scan
    cascades to both and to the summary.
    """

    @abstractmethod
    async def create_scan(self, scan: Scan) -> None:
        """Persist a newly admitted scan."""

    @abstractmethod
    async def get_scan(self, scan_id: str) -> Scan | None:
        """Return a copy of the scan record, or None."""

    @abstractmethod
    async def update_scan(self, scan: Scan) -> None:
        """Replace the stored scan record."""

    @abstractmethod
    async def list_scans(self, owner_id: str, limit: int, offset: int) -> tuple[list[Scan], int]:
        """Return one page of an owner's scans, newest first, and the total count."""

    @abstractmethod
    async def save_results(self, scan: Scan, pages: list[Page], summary: ScanSummary) -> None:
        """Store the final scan record with its pages, findings and summary in one step."""

    @abstractmethod
    async def get_pages(self, scan_id: str) -> list[Page]:
        """Return the scan's pages (with findings) in seed order."""

    @abstractmethod
    async def get_summary(self, scan_id: str) -> ScanSummary | None:
        """Return the scan summary, present only for completed scans."""

    @abstractmethod
    async def delete_scan(self, scan_id: str) -> bool:
        """Delete a scan and everything it owns."""

    @abstractmethod
    async def count_check_references(self, check_key: str) -> int:
        """Number of stored findings that reference a check."""
