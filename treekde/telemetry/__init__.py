"""Structured records describing KDE evaluations."""

from .records import EvaluationStats
from .schemas import KDE_EVALUATION_SCHEMA, KDE_EVALUATION_SCHEMA_ID

__all__ = ["EvaluationStats", "KDE_EVALUATION_SCHEMA", "KDE_EVALUATION_SCHEMA_ID"]
