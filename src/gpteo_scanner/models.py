"""Data models for the scan pipeline."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .errors import InvalidTransitionError


class CheckCategory(Enum):
    """Category a check contributes to."""

    SEO = "seo"
    GPTEO = "gpteo"


class Severity(Enum):
    """Severity of a check."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Higher is more severe."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
    Severity.INFO: 0,
}


class ScanMode(Enum):
    """Scan depth, bounds how many pages are processed."""

    QUICK = "quick"
    STANDARD = "standard"
    DEEP = "deep"


class ScanStatus(Enum):
    """Lifecycle status of a scan."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanStatus.COMPLETED, ScanStatus.FAILED, ScanStatus.CANCELLED)


ALLOWED_TRANSITIONS: dict[ScanStatus, frozenset[ScanStatus]] = {
    ScanStatus.QUEUED: frozenset({ScanStatus.RUNNING, ScanStatus.CANCELLED}),
    ScanStatus.RUNNING: frozenset({ScanStatus.COMPLETED, ScanStatus.FAILED, ScanStatus.CANCELLED}),
    ScanStatus.COMPLETED: frozenset(),
    ScanStatus.FAILED: frozenset(),
    ScanStatus.CANCELLED: frozenset(),
}


class PageType(Enum):
    """Heuristic page classification."""

    HOMEPAGE = "homepage"
    PRODUCT = "product"
    CATEGORY = "category"
    POLICY = "policy"
    OTHER = "other"


class FindingStatus(Enum):
    """Outcome of one check against one page."""

    PASS = "pass"
    PARTIAL = "partial"
    FAIL = "fail"
    WARNING = "warning"
    INFO = "info"


@dataclass
class Evidence:
    """What a check looked at and what it expected."""

    found: Any = None
    expected: Any = None
    location: str | None = None  # meta tag name, header or JSON path
    snippet: str | None = None

    def to_dict(self) -> dict:
        return {
            "found": self.found,
            "expected": self.expected,
            "location": self.location,
            "snippet": self.snippet,
        }


@dataclass
class FetchError:
    """Why a page could not be fetched cleanly."""

    kind: str  # http_status, timeout, connection, too_many_redirects
    message: str
    status_code: int | None = None


@dataclass
class Finding:
    """Result of evaluating one check against one page."""

    check_key: str
    page_url: str
    status: FindingStatus
    score: float
    message: str
    evidence: Evidence = field(default_factory=Evidence)
    fix_suggestion: str | None = None
    fix_snippet: str | None = None
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class Page:
    """One fetched URL within a scan."""

    url: str
    final_url: str | None = None
    type: PageType = PageType.OTHER
    status_code: int | None = None
    redirect_chain: list[str] = field(default_factory=list)
    headers: dict[str, str] = field(default_factory=dict)
    json_ld: list[Any] = field(default_factory=list)
    meta_tags: dict[str, str] = field(default_factory=dict)
    ttfb_ms: int | None = None
    load_time_ms: int | None = None
    size_bytes: int | None = None
    fields: dict[str, Any] = field(default_factory=dict)  # derived values read by check rules
    error: FetchError | None = None
    html_snapshot: str | None = None
    used_headless_browser: bool = False
    findings: list[Finding] = field(default_factory=list)
    scanned_at: datetime = field(default_factory=datetime.now)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class CriticalIssue:
    """A high-severity problem surfaced in a scan summary."""

    check_key: str
    severity: Severity
    message: str
    affected_pages: int


@dataclass
class ScanSummary:
    """Aggregate over all findings of a completed scan."""

    scan_id: str
    total_pages: int
    total_findings: int
    pass_count: int
    fail_count: int
    warning_count: int
    status_counts: dict[str, int] = field(default_factory=dict)
    category_scores: dict[str, float | None] = field(default_factory=dict)
    score_breakdown: dict[str, dict[str, float]] = field(default_factory=dict)
    critical_issues: list[CriticalIssue] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class ScanRequest:
    """A request to scan a domain."""

    owner_id: str
    domain: str
    seed_urls: list[str]
    mode: ScanMode | str | None = None


@dataclass
class Scan:
    """One evaluation run over a domain."""

    owner_id: str
    domain: str
    seed_urls: list[str]
    mode: ScanMode = ScanMode.QUICK
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: ScanStatus = ScanStatus.QUEUED
    queued_at: datetime = field(default_factory=datetime.now)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    seo_score: int | None = None
    gpteo_score: int | None = None
    score_breakdown: dict[str, dict[str, float]] | None = None
    error_message: str | None = None
    user_agent: str | None = None
    checks_version: str | None = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def transition_to(self, status: ScanStatus, error_message: str | None = None) -> bool:
        """Move the scan to ``status``.

        Returns False without changing anything when the scan is already
        terminal. Raises InvalidTransitionError for any other move the state
        machine does not allow.
        """
        if self.status.is_terminal:
            return False

        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Cannot move scan {self.id} from {self.status.value} to {status.value}"
            )

        now = datetime.now()
        self.status = status
        self.updated_at = now

        if status == ScanStatus.RUNNING:
            self.started_at = now
        elif status.is_terminal:
            self.completed_at = now

        if status == ScanStatus.FAILED:
            self.error_message = error_message or "Unknown error occurred"

        return True


@dataclass
class QueueStatus:
    """Snapshot of the job queue."""

    queue_length: int
    active_count: int


@dataclass
class ScanDetail:
    """A scan with its pages, findings and summary."""

    scan: Scan
    pages: list[Page] = field(default_factory=list)
    summary: ScanSummary | None = None

    @property
    def findings(self) -> list[Finding]:
        return [finding for page in self.pages for finding in page.findings]


@dataclass
class ScanListing:
    """One page of an owner's scans."""

    scans: list[tuple[Scan, ScanSummary | None]]
    total: int
    has_more: bool


@dataclass
class ScanStats:
    """Per-owner totals by status and average scores."""

    total: int = 0
    queued: int = 0
    running: int = 0
    completed: int = 0
    failed: int = 0
    cancelled: int = 0
    avg_seo_score: float = 0.0
    avg_gpteo_score: float = 0.0
