"""Versioned registry of check definitions."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from datetime import datetime

import structlog

from ..config import settings
from ..models import CheckCategory, PageType, Severity
from .rules import Rule

logger = structlog.get_logger()


@dataclass(frozen=True)
class Check:
    """An immutable, weighted rule definition."""

    key: str  # dotted namespace, e.g. seo.meta.title
    name: str
    category: CheckCategory
    severity: Severity
    weight: int
    rule: Rule
    description: str = ""
    page_types: frozenset[PageType] = field(default_factory=frozenset)  # empty = all types
    version: str = "1.0.0"
    active: bool = True
    docs_url: str | None = None
    fix_template: str | None = None
    deprecated_at: datetime | None = None
    deprecation_message: str | None = None

    def __post_init__(self):
        if "." not in self.key:
            raise ValueError(f"Check key must be dotted: {self.key!r}")
        if self.weight <= 0:
            raise ValueError(f"Check {self.key} weight must be positive, got {self.weight}")

    @property
    def group(self) -> str:
        """Sub-score group, the second segment of the key."""
        return self.key.split(".")[1]

    @property
    def enabled(self) -> bool:
        return self.active and self.deprecated_at is None

    def applies_to(self, page_type: PageType) -> bool:
        return not self.page_types or page_type in self.page_types


@dataclass(frozen=True)
class RegistrySnapshot:
    """Read-only view of the enabled checks, pinned by a scan."""

    version: str
    checks: tuple[Check, ...]

    def __iter__(self) -> Iterator[Check]:
        return iter(self.checks)

    def __len__(self) -> int:
        return len(self.checks)

    def get(self, key: str) -> Check | None:
        for check in self.checks:
            if check.key == key:
                return check
        return None

    def by_key(self) -> dict[str, Check]:
        return {check.key: check for check in self.checks}


def _bump_patch(version: str) -> str:
    parts = version.split(".")
    try:
        parts[-1] = str(int(parts[-1]) + 1)
    except ValueError:
        parts.append("1")
    return ".".join(parts)


class CheckRegistry:
    """Mutable catalogue of checks.

    Every change bumps the registry version, so two scans that report the
    same ``checks_version`` evaluated the same set of rules.
    """

    def __init__(self, checks: Iterable[Check] = (), version: str | None = None):
        self.version = version or settings.checks_version
        self._checks: dict[str, Check] = {}
        for check in checks:
            if check.key in self._checks:
                raise ValueError(f"Duplicate check key: {check.key}")
            self._checks[check.key] = check

    def __len__(self) -> int:
        return len(self._checks)

    def __contains__(self, key: str) -> bool:
        return key in self._checks

    def get(self, key: str) -> Check | None:
        return self._checks.get(key)

    def all(self) -> list[Check]:
        return list(self._checks.values())

    def register(self, check: Check) -> None:
        """Add a check or replace the definition with the same key."""
        replaced = check.key in self._checks
        self._checks[check.key] = check
        self.version = _bump_patch(self.version)
        logger.info("Check registered", key=check.key, replaced=replaced, version=self.version)

    def set_active(self, key: str, active: bool) -> None:
        check = self._require(key)
        self._checks[key] = replace(check, active=active)
        self.version = _bump_patch(self.version)
        logger.info("Check toggled", key=key, active=active, version=self.version)

    def deprecate(self, key: str, message: str | None = None) -> None:
        check = self._require(key)
        self._checks[key] = replace(
            check,
            deprecated_at=datetime.now(),
            deprecation_message=message,
        )
        self.version = _bump_patch(self.version)
        logger.info("Check deprecated", key=key, version=self.version)

    def remove(self, key: str) -> Check:
        check = self._require(key)
        del self._checks[key]
        self.version = _bump_patch(self.version)
        logger.info("Check removed", key=key, version=self.version)
        return check

    def snapshot(self) -> RegistrySnapshot:
        """Freeze the currently enabled checks."""
        return RegistrySnapshot(
            version=self.version,
            checks=tuple(check for check in self._checks.values() if check.enabled),
        )

    def _require(self, key: str) -> Check:
        check = self._checks.get(key)
        if check is None:
            raise KeyError(f"Unknown check: {key}")
        return check
