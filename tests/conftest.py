"""Shared fixtures for the scanner tests."""

import asyncio
import copy

import pytest

from gpteo_scanner.checks import Check, CheckRegistry, PresenceRule
from gpteo_scanner.models import CheckCategory, Page, PageType, Severity


def _make_page(url: str = "https://example.com/", page_type: PageType = PageType.HOMEPAGE, **fields) -> Page:
    return Page(url=url, final_url=url, type=page_type, status_code=200, fields=dict(fields))


def _make_check(
    key: str = "seo.meta.canonical",
    category: CheckCategory = CheckCategory.SEO,
    severity: Severity = Severity.HIGH,
    weight: int = 10,
    page_types: frozenset = frozenset(),
    rule=None,
    **kwargs,
) -> Check:
    return Check(
        key=key,
        name=key,
        category=category,
        severity=severity,
        weight=weight,
        page_types=page_types,
        rule=rule or PresenceRule(fields=("canonical",)),
        **kwargs,
    )


class FakeFetcher:
    """Stands in for PageFetcher; returns canned pages without network access."""

    user_agent = "test-agent"

    def __init__(self, pages: dict[str, Page] | None = None, delays: dict[str, float] | None = None):
        self.pages = pages or {}
        self.delays = delays or {}
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()
        self.errors: dict[str, Exception] = {}
        self.in_flight = 0
        self.max_in_flight = 0
        self.on_fetch = None
        self.stopped = False

    async def fetch(self, url: str, timeout: float) -> Page:
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.started.set()
        try:
            if self.on_fetch:
                self.on_fetch(url)
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(self.delays.get(url, 0))
            if url in self.errors:
                raise self.errors[url]
            page = self.pages.get(url) or _make_page(url, canonical=url)
            return copy.deepcopy(page)
        finally:
            self.in_flight -= 1

    async def stop(self) -> None:
        self.stopped = True


@pytest.fixture
def make_page():
    return _make_page


@pytest.fixture
def make_check():
    return _make_check


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def registry():
    """Two-check registry: one seo presence check, one gpteo presence check."""
    return CheckRegistry(
        [
            _make_check("seo.meta.canonical", weight=10),
            _make_check(
                "gpteo.feed.present",
                category=CheckCategory.GPTEO,
                severity=Severity.MEDIUM,
                weight=5,
                rule=PresenceRule(fields=("ai_feed",)),
            ),
        ],
        version="1.0.0",
    )
