"""Rule kinds a check can use to judge a page.

Every check carries exactly one rule. A rule reads derived values from
``Page.fields`` (or the page's JSON-LD blocks), produces a 0-100 score and
maps that score to a finding status with its own thresholds.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar

from ..errors import RuleEvaluationError
from ..models import Evidence, FindingStatus, Page

FULL_SCORE = 100.0
HALF_SCORE = 50.0
NO_SCORE = 0.0

SNIPPET_LIMIT = 200


@dataclass(frozen=True)
class RuleOutcome:
    """Score, status and evidence produced by a rule."""

    score: float
    status: FindingStatus
    message: str
    evidence: Evidence


def is_present(value: Any) -> bool:
    """A value counts as present unless it is None, False or empty."""
    if value is None or value is False:
        return False
    if isinstance(value, (str, list, tuple, dict, set)):
        return bool(value.strip() if isinstance(value, str) else value)
    return True


def _snippet(value: Any) -> str | None:
    if value is None:
        return None
    text = value if isinstance(value, str) else json.dumps(value, default=str)
    if len(text) > SNIPPET_LIMIT:
        return text[:SNIPPET_LIMIT] + "..."
    return text


class Rule(ABC):
    """Base class for all rule kinds."""

    kind: ClassVar[str]

    @abstractmethod
    def evaluate(self, page: Page) -> RuleOutcome:
        """Judge a page and return the outcome."""

    def status_for(self, score: float) -> FindingStatus:
        """Default mapping: full marks pass, zero fails, anything else is partial."""
        if score >= FULL_SCORE:
            return FindingStatus.PASS
        if score <= NO_SCORE:
            return FindingStatus.FAIL
        return FindingStatus.PARTIAL

    def _outcome(self, score: float, message: str, evidence: Evidence) -> RuleOutcome:
        return RuleOutcome(
            score=score,
            status=self.status_for(score),
            message=message,
            evidence=evidence,
        )


@dataclass(frozen=True)
class PresenceRule(Rule):
    """Binary check that every listed field is present on the page."""

    kind: ClassVar[str] = "presence"

    fields: tuple[str, ...]
    label: str | None = None

    def status_for(self, score: float) -> FindingStatus:
        return FindingStatus.PASS if score >= FULL_SCORE else FindingStatus.FAIL

    def evaluate(self, page: Page) -> RuleOutcome:
        label = self.label or ", ".join(self.fields)
        found = {name: page.fields.get(name) for name in self.fields}
        missing = [name for name, value in found.items() if not is_present(value)]

        evidence = Evidence(
            found={name: value for name, value in found.items() if is_present(value)},
            expected=list(self.fields),
            location=", ".join(self.fields),
        )

        if missing:
            evidence.found = {"missing": missing, **evidence.found}
            return self._outcome(NO_SCORE, f"Missing {label}: {', '.join(missing)}", evidence)

        return self._outcome(FULL_SCORE, f"{label} present", evidence)


@dataclass(frozen=True)
class LengthRangeRule(Rule):
    """Field must exist and its length must fall inside a range."""

    kind: ClassVar[str] = "length_range"

    field: str
    min_length: int
    max_length: int
    unit: str = "characters"

    def evaluate(self, page: Page) -> RuleOutcome:
        value = page.fields.get(self.field)
        expected = f"{self.min_length}-{self.max_length} {self.unit}"

        if not is_present(value):
            return self._outcome(
                NO_SCORE,
                f"{self.field} is missing",
                Evidence(found=None, expected=expected, location=self.field),
            )

        try:
            length = len(value.strip()) if isinstance(value, str) else len(value)
        except TypeError as e:
            raise RuleEvaluationError(f"{self.field} has no length: {e}") from e

        evidence = Evidence(
            found=length,
            expected=expected,
            location=self.field,
            snippet=_snippet(value),
        )

        if self.min_length <= length <= self.max_length:
            return self._outcome(FULL_SCORE, f"{self.field} length {length} is within range", evidence)

        side = "short" if length < self.min_length else "long"
        return self._outcome(
            HALF_SCORE,
            f"{self.field} is too {side} ({length} {self.unit}, expected {expected})",
            evidence,
        )


@dataclass(frozen=True)
class ThresholdRule(Rule):
    """Numeric field compared against good/fair limits.

    At or under ``good`` passes, at or under ``fair`` is a warning, anything
    beyond fails. With ``higher_is_better`` the comparison is reversed.
    """

    kind: ClassVar[str] = "threshold"

    field: str
    good: float
    fair: float
    higher_is_better: bool = False
    unit: str = ""

    def status_for(self, score: float) -> FindingStatus:
        if score >= FULL_SCORE:
            return FindingStatus.PASS
        if score <= NO_SCORE:
            return FindingStatus.FAIL
        return FindingStatus.WARNING

    def _within(self, value: float, limit: float) -> bool:
        return value >= limit if self.higher_is_better else value <= limit

    def evaluate(self, page: Page) -> RuleOutcome:
        value = page.fields.get(self.field)
        comparator = ">=" if self.higher_is_better else "<="
        expected = f"{comparator} {self.good:g}{self.unit}"

        if value is None:
            return self._outcome(
                NO_SCORE,
                f"No {self.field} value available",
                Evidence(found=None, expected=expected, location=self.field),
            )

        try:
            number = float(value)
        except (TypeError, ValueError) as e:
            raise RuleEvaluationError(f"{self.field} is not numeric: {value!r}") from e

        evidence = Evidence(found=number, expected=expected, location=self.field)

        if self._within(number, self.good):
            return self._outcome(FULL_SCORE, f"{self.field} {number:g}{self.unit} is good", evidence)
        if self._within(number, self.fair):
            return self._outcome(
                HALF_SCORE,
                f"{self.field} {number:g}{self.unit} is fair (target {expected})",
                evidence,
            )
        return self._outcome(
            NO_SCORE,
            f"{self.field} {number:g}{self.unit} exceeds {comparator} {self.fair:g}{self.unit}",
            evidence,
        )


def find_schema_nodes(blocks: list[Any], schema_type: str) -> list[tuple[str, dict]]:
    """Locate JSON-LD nodes of a schema.org type.

    Walks top-level lists and ``@graph`` containers. Returns (json path, node)
    pairs in document order.
    """
    matches: list[tuple[str, dict]] = []

    def visit(node: Any, path: str) -> None:
        if isinstance(node, list):
            for index, item in enumerate(node):
                visit(item, f"{path}[{index}]")
            return
        if not isinstance(node, dict):
            return

        node_type = node.get("@type")
        types = node_type if isinstance(node_type, list) else [node_type]
        if schema_type in types:
            matches.append((path, node))

        graph = node.get("@graph")
        if graph is not None:
            visit(graph, f"{path}.@graph")

    for index, block in enumerate(blocks):
        visit(block, f"$[{index}]")

    return matches


@dataclass(frozen=True)
class StructuredFieldRule(Rule):
    """JSON-LD node of a type must carry required fields.

    ``path`` descends into a nested property first (``("offers",)``).
    ``minimum`` is how many of the fields must be present for full marks;
    None means all of them. Fewer present fields earn proportional credit.
    """

    kind: ClassVar[str] = "structured_field"

    schema_type: str
    required_fields: tuple[str, ...]
    path: tuple[str, ...] = ()
    minimum: int | None = None

    def _descend(self, node: dict, location: str) -> tuple[Any, str]:
        for key in self.path:
            if not isinstance(node, dict):
                raise RuleEvaluationError(f"Expected an object at {location}, got {type(node).__name__}")
            node = node.get(key)
            location = f"{location}.{key}"
            if isinstance(node, list):
                node = node[0] if node else None
                location = f"{location}[0]"
            if node is None:
                return None, location
        return node, location

    def evaluate(self, page: Page) -> RuleOutcome:
        nodes = find_schema_nodes(page.json_ld, self.schema_type)
        target = ".".join((self.schema_type, *self.path))
        expected = list(self.required_fields)

        if not nodes:
            return self._outcome(
                NO_SCORE,
                f"No {self.schema_type} schema found",
                Evidence(found=None, expected=expected, location=f"@type={self.schema_type}"),
            )

        location, node = nodes[0]
        node, location = self._descend(node, location)

        if node is None:
            return self._outcome(
                NO_SCORE,
                f"{target} is missing",
                Evidence(found=None, expected=expected, location=location),
            )
        if not isinstance(node, dict):
            raise RuleEvaluationError(f"Expected an object at {location}, got {type(node).__name__}")

        present = [name for name in self.required_fields if is_present(node.get(name))]
        missing = [name for name in self.required_fields if name not in present]
        needed = min(self.minimum or len(self.required_fields), len(self.required_fields))
        score = round(FULL_SCORE * min(len(present), needed) / needed, 2)

        evidence = Evidence(
            found=present,
            expected=expected if self.minimum is None else f"at least {needed} of {expected}",
            location=location,
            snippet=_snippet(node),
        )

        if score >= FULL_SCORE:
            return self._outcome(score, f"{target} has the required fields", evidence)
        if present:
            return self._outcome(score, f"{target} is incomplete, missing: {', '.join(missing)}", evidence)
        return self._outcome(score, f"{target} has none of: {', '.join(expected)}", evidence)
