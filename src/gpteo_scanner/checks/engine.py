"""Checks engine: evaluate a page against a registry snapshot."""

import structlog

from ..models import Evidence, Finding, FindingStatus, Page, Severity
from .registry import Check, RegistrySnapshot
from .rules import NO_SCORE

logger = structlog.get_logger()


class ChecksEngine:
    """Runs every applicable check against a fetched page."""

    def evaluate(self, page: Page, snapshot: RegistrySnapshot) -> list[Finding]:
        """Produce one finding per applicable check.

        Checks whose page types exclude the page's type are skipped and leave
        no finding behind. A rule that raises is recorded as a failing
        finding and does not stop the remaining checks.
        """
        findings = []

        for check in snapshot:
            if not check.enabled or not check.applies_to(page.type):
                continue
            findings.append(self._run_check(check, page))

        logger.debug(
            "Page evaluated",
            url=page.url,
            page_type=page.type.value,
            findings=len(findings),
        )
        return findings

    def _run_check(self, check: Check, page: Page) -> Finding:
        try:
            outcome = check.rule.evaluate(page)
        except Exception as e:
            logger.warning("Check evaluation failed", check=check.key, url=page.url, error=str(e))
            return Finding(
                check_key=check.key,
                page_url=page.url,
                status=FindingStatus.FAIL,
                score=NO_SCORE,
                message=f"{check.name}: evaluation error",
                evidence=Evidence(found=None, expected=None, snippet=f"{type(e).__name__}: {e}"),
                fix_suggestion=check.description or None,
                fix_snippet=check.fix_template,
            )

        status = outcome.status
        if check.severity == Severity.INFO and status != FindingStatus.PASS:
            status = FindingStatus.INFO

        passed = status == FindingStatus.PASS
        return Finding(
            check_key=check.key,
            page_url=page.url,
            status=status,
            score=outcome.score,
            message=outcome.message,
            evidence=outcome.evidence,
            fix_suggestion=None if passed else (check.description or None),
            fix_snippet=None if passed else check.fix_template,
        )
