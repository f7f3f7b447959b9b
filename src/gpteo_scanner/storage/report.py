"""Report export for completed scans."""

import json
from pathlib import Path

import aiofiles
import structlog

from ..config import settings
from ..models import Finding, Page, Scan, ScanDetail, ScanSummary

logger = structlog.get_logger()


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def scan_to_dict(scan: Scan) -> dict:
    return {
        "id": scan.id,
        "owner_id": scan.owner_id,
        "domain": scan.domain,
        "mode": scan.mode.value,
        "seed_urls": scan.seed_urls,
        "status": scan.status.value,
        "queued_at": _iso(scan.queued_at),
        "started_at": _iso(scan.started_at),
        "completed_at": _iso(scan.completed_at),
        "seo_score": scan.seo_score,
        "gpteo_score": scan.gpteo_score,
        "score_breakdown": scan.score_breakdown,
        "error_message": scan.error_message,
        "user_agent": scan.user_agent,
        "checks_version": scan.checks_version,
    }


def finding_to_dict(finding: Finding) -> dict:
    return {
        "check_key": finding.check_key,
        "status": finding.status.value,
        "score": finding.score,
        "message": finding.message,
        "evidence": finding.evidence.to_dict(),
        "fix_suggestion": finding.fix_suggestion,
        "fix_snippet": finding.fix_snippet,
    }


def page_to_dict(page: Page) -> dict:
    return {
        "url": page.url,
        "final_url": page.final_url,
        "type": page.type.value,
        "status_code": page.status_code,
        "redirect_chain": page.redirect_chain,
        "headers": page.headers,
        "json_ld": page.json_ld,
        "meta_tags": page.meta_tags,
        "ttfb_ms": page.ttfb_ms,
        "load_time_ms": page.load_time_ms,
        "size_bytes": page.size_bytes,
        "used_headless_browser": page.used_headless_browser,
        "error": (
            {
                "kind": page.error.kind,
                "message": page.error.message,
                "status_code": page.error.status_code,
            }
            if page.error
            else None
        ),
        "scanned_at": _iso(page.scanned_at),
        "findings": [finding_to_dict(finding) for finding in page.findings],
    }


def summary_to_dict(summary: ScanSummary) -> dict:
    return {
        "total_pages": summary.total_pages,
        "total_findings": summary.total_findings,
        "pass_count": summary.pass_count,
        "fail_count": summary.fail_count,
        "warning_count": summary.warning_count,
        "status_counts": summary.status_counts,
        "category_scores": summary.category_scores,
        "score_breakdown": summary.score_breakdown,
        "critical_issues": [
            {
                "check_key": issue.check_key,
                "severity": issue.severity.value,
                "message": issue.message,
                "affected_pages": issue.affected_pages,
            }
            for issue in summary.critical_issues
        ],
        "created_at": _iso(summary.created_at),
    }


def detail_to_dict(detail: ScanDetail) -> dict:
    return {
        "scan": scan_to_dict(detail.scan),
        "summary": summary_to_dict(detail.summary) if detail.summary else None,
        "pages": [page_to_dict(page) for page in detail.pages],
    }


class ReportWriter:
    """Writes JSON and plain-text reports for a scan."""

    def __init__(self, reports_dir: Path | None = None):
        self.reports_dir = reports_dir or settings.reports_dir

    def report_dir_for(self, scan: Scan) -> Path:
        timestamp = scan.queued_at.strftime("%Y%m%d_%H%M%S")
        folder_name = f"{scan.domain.replace('.', '_')}_{timestamp}"
        return self.reports_dir / folder_name

    async def write(self, detail: ScanDetail) -> Path:
        """Save the report and return the JSON file path."""
        output_dir = self.report_dir_for(detail.scan)
        output_dir.mkdir(parents=True, exist_ok=True)

        filepath = output_dir / "scan_report.json"
        async with aiofiles.open(filepath, "w", encoding="utf-8") as f:
            await f.write(json.dumps(detail_to_dict(detail), indent=2, default=str))

        await self._save_human_readable_summary(detail, output_dir / "summary.txt")

        logger.info("Saved scan report", scan_id=detail.scan.id, path=str(filepath))
        return filepath

    async def _save_human_readable_summary(self, detail: ScanDetail, filepath: Path) -> None:
        """Save a human-readable summary of the scan."""
        scan = detail.scan
        lines = [
            "=" * 80,
            "GPTEO SCAN REPORT",
            "=" * 80,
            "",
            f"Domain: {scan.domain}",
            f"Mode: {scan.mode.value}",
            f"Status: {scan.status.value}",
            f"Started: {scan.started_at}",
            f"Completed: {scan.completed_at}",
            f"Checks version: {scan.checks_version}",
            "",
            "SCORES",
            "-" * 40,
            f"SEO: {scan.seo_score if scan.seo_score is not None else 'n/a'}",
            f"GPTeo: {scan.gpteo_score if scan.gpteo_score is not None else 'n/a'}",
        ]

        if scan.error_message:
            lines += ["", f"Error: {scan.error_message}"]

        summary = detail.summary
        if summary:
            lines += [
                "",
                "SUMMARY",
                "-" * 40,
                f"Pages: {summary.total_pages}",
                f"Findings: {summary.total_findings}",
                f"Passed: {summary.pass_count}",
                f"Warnings: {summary.warning_count}",
                f"Failed: {summary.fail_count}",
            ]
            if summary.critical_issues:
                lines += ["", "CRITICAL ISSUES", "-" * 40]
                for issue in summary.critical_issues:
                    lines.append(
                        f"[{issue.severity.value}] {issue.check_key} "
                        f"({issue.affected_pages} pages): {issue.message}"
                    )

        async with aiofiles.open(filepath, "w", encoding="utf-8") as f:
            await f.write("\n".join(lines) + "\n")
