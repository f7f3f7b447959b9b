"""Job queue feeding scans to the orchestrator."""

import asyncio
from collections import deque

import structlog

from .config import settings
from .models import QueueStatus, Scan, ScanRequest, ScanStatus
from .orchestrator import ScanOrchestrator
from .storage import ScanStore
from .validation import validate_scan_request

logger = structlog.get_logger()


class JobQueue:
    """FIFO backlog of scans drained by a fixed pool of asyncio workers.

    The number of workers is the bound on concurrently executing scans.
    Workers start lazily on the first submission. A job that raises is
    logged and the worker moves on to the next scan.
    """

    def __init__(
        self,
        store: ScanStore,
        orchestrator: ScanOrchestrator,
        concurrency: int | None = None,
        max_seed_urls: int | None = None,
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.concurrency = concurrency or settings.queue_concurrency
        self.max_seed_urls = max_seed_urls or settings.max_seed_urls

        self._backlog: deque[str] = deque()
        self._active: dict[str, asyncio.Event] = {}
        self._condition = asyncio.Condition()
        self._idle = asyncio.Event()
        self._idle.set()
        self._workers: list[asyncio.Task] = []
        self._closed = False

    async def start(self) -> None:
        """Spawn the worker pool."""
        if self._workers:
            return
        self._closed = False
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"scan-worker-{i}")
            for i in range(self.concurrency)
        ]
        logger.info("Queue started", workers=self.concurrency)

    async def stop(self, drain: bool = False) -> None:
        """Stop the workers.

        With ``drain`` the backlog is processed first; otherwise running
        scans are asked to cancel and queued scans stay queued.
        """
        if drain:
            await self.join()

        async with self._condition:
            self._closed = True
            for event in self._active.values():
                event.set()
            self._condition.notify_all()

        if self._workers:
            await asyncio.gather(*self._workers, return_exceptions=True)
            self._workers = []

        await self.orchestrator.close()
        logger.info("Queue stopped", backlog=len(self._backlog))

    async def submit(self, request: ScanRequest) -> str:
        """Validate a request, create the scan record and enqueue it.

        Raises:
            ValidationError: If the request is rejected; no scan is created.
        """
        domain, seed_urls, mode = validate_scan_request(request, self.max_seed_urls)

        scan = Scan(owner_id=request.owner_id, domain=domain, seed_urls=seed_urls, mode=mode)
        await self.store.create_scan(scan)

        await self.start()
        async with self._condition:
            self._backlog.append(scan.id)
            self._idle.clear()
            self._condition.notify()

        logger.info("Scan enqueued", scan_id=scan.id, domain=domain, position=len(self._backlog))
        return scan.id

    async def cancel(self, scan_id: str) -> bool:
        """Cancel a queued or running scan.

        A queued scan is removed and marked cancelled at once. A running scan
        is signalled and stops at its next page boundary. Returns False when
        the scan is neither queued nor running here.
        """
        async with self._condition:
            if scan_id in self._backlog:
                self._backlog.remove(scan_id)
                scan = await self.store.get_scan(scan_id)
                if scan is not None and scan.transition_to(ScanStatus.CANCELLED):
                    await self.store.update_scan(scan)
                self._update_idle()
                logger.info("Queued scan cancelled", scan_id=scan_id)
                return True

            event = self._active.get(scan_id)
            if event is not None:
                event.set()
                logger.info("Cancel requested for running scan", scan_id=scan_id)
                return True

        return False

    def status(self) -> QueueStatus:
        return QueueStatus(queue_length=len(self._backlog), active_count=len(self._active))

    async def join(self) -> None:
        """Wait until the backlog is empty and no scan is running."""
        await self._idle.wait()

    def _update_idle(self) -> None:
        if not self._backlog and not self._active:
            self._idle.set()

    async def _worker(self, worker_id: int) -> None:
        """Worker coroutine that runs scans from the backlog."""
        while True:
            async with self._condition:
                await self._condition.wait_for(lambda: self._backlog or self._closed)
                if self._closed:
                    return
                scan_id = self._backlog.popleft()
                cancel_event = asyncio.Event()
                self._active[scan_id] = cancel_event

            logger.info("Dispatching scan", scan_id=scan_id, worker=worker_id)
            try:
                await self.orchestrator.run(scan_id, cancel_event)
            except Exception as e:
                logger.error("Scan job crashed", scan_id=scan_id, worker=worker_id, error=str(e))
                await self._mark_failed(scan_id, e)
            finally:
                async with self._condition:
                    self._active.pop(scan_id, None)
                    self._update_idle()

    async def _mark_failed(self, scan_id: str, error: Exception) -> None:
        try:
            scan = await self.store.get_scan(scan_id)
            if scan is None or scan.status.is_terminal:
                return
            if scan.status == ScanStatus.QUEUED:
                scan.transition_to(ScanStatus.RUNNING)
            scan.transition_to(ScanStatus.FAILED, error_message=str(error) or type(error).__name__)
            await self.store.update_scan(scan)
        except Exception as e:
            logger.error("Could not record scan failure", scan_id=scan_id, error=str(e))
