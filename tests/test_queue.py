"""Tests for the job queue."""

import asyncio

import pytest

from conftest import FakeFetcher
from gpteo_scanner.errors import ValidationError
from gpteo_scanner.models import ScanRequest, ScanStatus
from gpteo_scanner.orchestrator import ScanOrchestrator
from gpteo_scanner.queue import JobQueue
from gpteo_scanner.storage import InMemoryScanStore


class FlakyOrchestrator:
    """Orchestrator whose first run crashes outright."""

    def __init__(self, inner: ScanOrchestrator):
        self.inner = inner
        self.runs = 0

    async def run(self, scan_id, cancel_event=None):
        self.runs += 1
        if self.runs == 1:
            raise RuntimeError("worker blew up")
        return await self.inner.run(scan_id, cancel_event)

    async def close(self):
        await self.inner.close()


def _request(*paths: str, owner_id: str = "owner-1", mode=None) -> ScanRequest:
    return ScanRequest(
        owner_id=owner_id,
        domain="example.com",
        seed_urls=[f"https://example.com/{path}" for path in paths],
        mode=mode,
    )


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


@pytest.fixture
def store():
    return InMemoryScanStore()


class TestJobQueue:
    """Test cases for JobQueue."""

    @pytest.mark.asyncio
    async def test_submit_runs_scan(self, store, registry, fake_fetcher):
        queue = JobQueue(store, ScanOrchestrator(store, registry, fetcher=fake_fetcher))

        scan_id = await queue.submit(_request(""))
        await queue.join()
        await queue.stop()

        scan = await store.get_scan(scan_id)
        assert scan.status == ScanStatus.COMPLETED
        assert scan.domain == "example.com"
        assert fake_fetcher.stopped is True

    @pytest.mark.asyncio
    async def test_invalid_request_creates_nothing(self, store, registry, fake_fetcher):
        queue = JobQueue(store, ScanOrchestrator(store, registry, fetcher=fake_fetcher))

        with pytest.raises(ValidationError):
            await queue.submit(_request())

        _, total = await store.list_scans("owner-1", 10, 0)
        assert total == 0
        assert queue.status().queue_length == 0

    @pytest.mark.asyncio
    async def test_fifo_order(self, store, registry, fake_fetcher):
        queue = JobQueue(store, ScanOrchestrator(store, registry, fetcher=fake_fetcher), concurrency=1)

        for path in ("first", "second", "third"):
            await queue.submit(_request(path))
        await queue.join()
        await queue.stop()

        assert fake_fetcher.calls == [
            "https://example.com/first",
            "https://example.com/second",
            "https://example.com/third",
        ]

    @pytest.mark.asyncio
    async def test_concurrency_bound(self, store, registry):
        fetcher = FakeFetcher()
        fetcher.gate = asyncio.Event()
        queue = JobQueue(store, ScanOrchestrator(store, registry, fetcher=fetcher), concurrency=2)

        for path in ("a", "b", "c"):
            await queue.submit(_request(path))
        await _wait_until(lambda: queue.status().active_count == 2)
        await asyncio.sleep(0.05)

        status = queue.status()
        assert status.active_count == 2
        assert status.queue_length == 1
        assert len(fetcher.calls) == 2

        fetcher.gate.set()
        await queue.join()
        await queue.stop()
        assert len(fetcher.calls) == 3

    @pytest.mark.asyncio
    async def test_cancel_queued_scan(self, store, registry):
        fetcher = FakeFetcher()
        fetcher.gate = asyncio.Event()
        queue = JobQueue(store, ScanOrchestrator(store, registry, fetcher=fetcher), concurrency=1)

        running_id = await queue.submit(_request("running"))
        queued_id = await queue.submit(_request("queued"))
        await fetcher.started.wait()

        assert await queue.cancel(queued_id) is True
        assert (await store.get_scan(queued_id)).status == ScanStatus.CANCELLED
        assert queue.status().queue_length == 0

        fetcher.gate.set()
        await queue.join()
        await queue.stop()

        assert (await store.get_scan(running_id)).status == ScanStatus.COMPLETED
        assert "https://example.com/queued" not in fetcher.calls

    @pytest.mark.asyncio
    async def test_cancel_running_scan(self, store, registry):
        fetcher = FakeFetcher()
        fetcher.gate = asyncio.Event()
        queue = JobQueue(store, ScanOrchestrator(store, registry, fetcher=fetcher))

        scan_id = await queue.submit(_request("a", "b"))
        await fetcher.started.wait()

        assert await queue.cancel(scan_id) is True
        fetcher.gate.set()
        await queue.join()
        await queue.stop()

        scan = await store.get_scan(scan_id)
        assert scan.status == ScanStatus.CANCELLED
        assert await store.get_pages(scan_id) == []

    @pytest.mark.asyncio
    async def test_cancel_unknown_or_finished(self, store, registry, fake_fetcher):
        queue = JobQueue(store, ScanOrchestrator(store, registry, fetcher=fake_fetcher))

        assert await queue.cancel("no-such-scan") is False

        scan_id = await queue.submit(_request(""))
        await queue.join()
        assert await queue.cancel(scan_id) is False
        await queue.stop()

    @pytest.mark.asyncio
    async def test_crashing_job_does_not_stop_worker(self, store, registry, fake_fetcher):
        """Test that a job failure is recorded and the next scan still runs."""
        orchestrator = FlakyOrchestrator(ScanOrchestrator(store, registry, fetcher=fake_fetcher))
        queue = JobQueue(store, orchestrator, concurrency=1)

        crashed_id = await queue.submit(_request("one"))
        next_id = await queue.submit(_request("two"))
        await queue.join()
        await queue.stop()

        crashed = await store.get_scan(crashed_id)
        assert crashed.status == ScanStatus.FAILED
        assert crashed.error_message == "worker blew up"
        assert (await store.get_scan(next_id)).status == ScanStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_status_initially_empty(self, store, registry, fake_fetcher):
        queue = JobQueue(store, ScanOrchestrator(store, registry, fetcher=fake_fetcher))

        status = queue.status()

        assert status.queue_length == 0
        assert status.active_count == 0
