"""Tests for the checks engine."""

from gpteo_scanner.checks import ChecksEngine, CheckRegistry, PresenceRule, Rule, ThresholdRule
from gpteo_scanner.errors import RuleEvaluationError
from gpteo_scanner.models import FindingStatus, PageType, Severity


class ExplodingRule(Rule):
    """Rule that always fails to evaluate."""

    kind = "exploding"

    def evaluate(self, page):
        raise RuleEvaluationError("schema node is a string")


class TestChecksEngine:
    """Test cases for ChecksEngine."""

    def test_one_finding_per_applicable_check(self, registry, make_page):
        page = make_page(canonical="https://example.com/", ai_feed=True)

        findings = ChecksEngine().evaluate(page, registry.snapshot())

        assert [f.check_key for f in findings] == ["seo.meta.canonical", "gpteo.feed.present"]
        assert all(f.status == FindingStatus.PASS for f in findings)
        assert all(f.page_url == page.url for f in findings)

    def test_non_applicable_check_leaves_no_finding(self, make_check, make_page):
        """Test that a product-only check is skipped on a homepage."""
        registry = CheckRegistry([
            make_check("gpteo.schema.product.present", page_types=frozenset({PageType.PRODUCT})),
        ])

        findings = ChecksEngine().evaluate(make_page(page_type=PageType.HOMEPAGE), registry.snapshot())

        assert findings == []

    def test_rule_error_becomes_failing_finding(self, make_check, make_page):
        """Test that one broken rule does not stop the others."""
        registry = CheckRegistry([
            make_check("gpteo.schema.broken", rule=ExplodingRule()),
            make_check("seo.meta.canonical"),
        ])
        page = make_page(canonical="https://example.com/")

        findings = ChecksEngine().evaluate(page, registry.snapshot())

        broken, canonical = findings
        assert broken.status == FindingStatus.FAIL
        assert broken.score == 0
        assert broken.message == "gpteo.schema.broken: evaluation error"
        assert "RuleEvaluationError" in broken.evidence.snippet
        assert canonical.status == FindingStatus.PASS

    def test_fix_details_only_on_failures(self, make_check, make_page):
        check = make_check(
            description="Add a canonical link",
            fix_template='<link rel="canonical" href="...">',
        )
        snapshot = CheckRegistry([check]).snapshot()
        engine = ChecksEngine()

        passed = engine.evaluate(make_page(canonical="https://example.com/"), snapshot)[0]
        failed = engine.evaluate(make_page(), snapshot)[0]

        assert passed.fix_suggestion is None
        assert passed.fix_snippet is None
        assert failed.status == FindingStatus.FAIL
        assert failed.fix_suggestion == "Add a canonical link"
        assert failed.fix_snippet == '<link rel="canonical" href="...">'

    def test_info_severity_reports_info(self, make_check, make_page):
        check = make_check("seo.meta.canonical", severity=Severity.INFO)
        snapshot = CheckRegistry([check]).snapshot()

        finding = ChecksEngine().evaluate(make_page(), snapshot)[0]

        assert finding.status == FindingStatus.INFO
        assert finding.score == 0

    def test_warning_status_from_threshold(self, make_check, make_page):
        check = make_check(
            "seo.performance.ttfb",
            rule=ThresholdRule(field="ttfb_ms", good=200, fair=600),
        )
        snapshot = CheckRegistry([check]).snapshot()

        finding = ChecksEngine().evaluate(make_page(ttfb_ms=400), snapshot)[0]

        assert finding.status == FindingStatus.WARNING
        assert finding.score == 50

    def test_evidence_recorded(self, make_check, make_page):
        check = make_check(rule=PresenceRule(fields=("canonical",)))
        finding = ChecksEngine().evaluate(make_page(), CheckRegistry([check]).snapshot())[0]

        assert finding.evidence.expected == ["canonical"]
        assert finding.evidence.found == {"missing": ["canonical"]}
