"""Roll page-level findings up into a scan summary."""

import math
from collections import Counter, defaultdict
from collections.abc import Iterable, Mapping

import structlog

from ..checks.registry import Check, RegistrySnapshot
from ..config import settings
from ..models import CheckCategory, CriticalIssue, Finding, FindingStatus, ScanSummary, Severity

logger = structlog.get_logger()

CRITICAL_SEVERITIES = (Severity.CRITICAL, Severity.HIGH)
CRITICAL_STATUSES = (FindingStatus.FAIL, FindingStatus.WARNING)

# Five statuses folded into the three summary counters.
PASS_STATUSES = (FindingStatus.PASS, FindingStatus.INFO)
WARNING_STATUSES = (FindingStatus.WARNING, FindingStatus.PARTIAL)


def weighted_score(pairs: Iterable[tuple[int, float]]) -> float | None:
    """100 * sum(weight * score/100) / sum(weight), or None with no input."""
    total_weight = 0
    total = 0.0
    for weight, score in pairs:
        total_weight += weight
        total += weight * (score / 100.0)
    if total_weight == 0:
        return None
    return round(100.0 * total / total_weight, 2)


def to_int_score(score: float | None) -> int | None:
    """Round half up to an integer 0-100 score."""
    if score is None:
        return None
    return min(100, max(0, math.floor(score + 0.5)))


def _critical_issues(
    findings: list[tuple[Finding, Check]],
    limit: int,
) -> list[CriticalIssue]:
    grouped: dict[str, list[Finding]] = defaultdict(list)
    checks: dict[str, Check] = {}

    for finding, check in findings:
        if finding.status in CRITICAL_STATUSES and check.severity in CRITICAL_SEVERITIES:
            grouped[check.key].append(finding)
            checks[check.key] = check

    issues = []
    for key, group in grouped.items():
        representative = min(group, key=lambda f: (f.score, f.page_url, f.message))
        issues.append(
            CriticalIssue(
                check_key=key,
                severity=checks[key].severity,
                message=representative.message,
                affected_pages=len({f.page_url for f in group}),
            )
        )

    issues.sort(key=lambda issue: (-issue.severity.rank, -issue.affected_pages, issue.check_key))
    return issues[:limit]


def aggregate(
    scan_id: str,
    findings: Iterable[Finding],
    checks: RegistrySnapshot | Mapping[str, Check],
    total_pages: int,
    critical_issue_limit: int | None = None,
) -> ScanSummary:
    """Compute category scores, sub-scores, counts and critical issues.

    The result depends only on the set of findings and the check
    definitions; input order does not matter.
    """
    limit = critical_issue_limit or settings.critical_issue_limit
    by_key = checks.by_key() if isinstance(checks, RegistrySnapshot) else dict(checks)

    findings = list(findings)
    resolved: list[tuple[Finding, Check]] = []
    for finding in findings:
        check = by_key.get(finding.check_key)
        if check is None:
            logger.warning("Finding references unknown check", scan_id=scan_id, check=finding.check_key)
            continue
        resolved.append((finding, check))

    category_pairs: dict[CheckCategory, list[tuple[int, float]]] = defaultdict(list)
    group_pairs: dict[CheckCategory, dict[str, list[tuple[int, float]]]] = defaultdict(lambda: defaultdict(list))

    for finding, check in resolved:
        pair = (check.weight, finding.score)
        category_pairs[check.category].append(pair)
        group_pairs[check.category][check.group].append(pair)

    category_scores = {
        category.value: weighted_score(category_pairs.get(category, ()))
        for category in CheckCategory
    }
    score_breakdown = {
        category.value: {
            group: weighted_score(pairs)
            for group, pairs in sorted(group_pairs.get(category, {}).items())
        }
        for category in CheckCategory
    }

    status_counts = Counter(finding.status for finding in findings)

    summary = ScanSummary(
        scan_id=scan_id,
        total_pages=total_pages,
        total_findings=len(findings),
        pass_count=sum(status_counts[status] for status in PASS_STATUSES),
        fail_count=status_counts[FindingStatus.FAIL],
        warning_count=sum(status_counts[status] for status in WARNING_STATUSES),
        status_counts={status.value: status_counts[status] for status in FindingStatus},
        category_scores=category_scores,
        score_breakdown=score_breakdown,
        critical_issues=_critical_issues(resolved, limit),
    )

    logger.info(
        "Scan aggregated",
        scan_id=scan_id,
        findings=summary.total_findings,
        seo=category_scores[CheckCategory.SEO.value],
        gpteo=category_scores[CheckCategory.GPTEO.value],
        critical_issues=len(summary.critical_issues),
    )
    return summary
