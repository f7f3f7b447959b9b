"""Scan persistence and report export."""

from .base import ScanStore
from .memory import InMemoryScanStore
from .report import ReportWriter

__all__ = ["InMemoryScanStore", "ReportWriter", "ScanStore"]
