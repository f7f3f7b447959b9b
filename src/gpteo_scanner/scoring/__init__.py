"""Scan scoring."""

from .aggregator import aggregate, to_int_score, weighted_score

__all__ = ["aggregate", "to_int_score", "weighted_score"]
