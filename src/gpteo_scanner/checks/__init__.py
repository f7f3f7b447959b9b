"""Check definitions, rule kinds and the checks engine."""

from .builtin import BUILTIN_CHECKS, default_registry
from .engine import ChecksEngine
from .registry import Check, CheckRegistry, RegistrySnapshot
from .rules import LengthRangeRule, PresenceRule, Rule, RuleOutcome, StructuredFieldRule, ThresholdRule

__all__ = [
    "BUILTIN_CHECKS",
    "Check",
    "CheckRegistry",
    "ChecksEngine",
    "LengthRangeRule",
    "PresenceRule",
    "RegistrySnapshot",
    "Rule",
    "RuleOutcome",
    "StructuredFieldRule",
    "ThresholdRule",
    "default_registry",
]
