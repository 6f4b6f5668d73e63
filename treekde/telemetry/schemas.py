from __future__ import annotations

from typing import Dict

KDE_EVALUATION_SCHEMA_VERSION = 1
KDE_EVALUATION_SCHEMA_ID = "treekde.kde_evaluation.v1"
KDE_EVALUATION_SCHEMA: Dict[str, object] = {
    "id": KDE_EVALUATION_SCHEMA_ID,
    "version": KDE_EVALUATION_SCHEMA_VERSION,
    "description": "Per-call counters and tolerances recorded by KDE.evaluate.",
    "required": (
        "schema_id",
        "traversal",
        "kernel",
        "metric",
        "bandwidth",
        "rel_error",
        "abs_error",
        "num_queries",
        "num_references",
        "base_cases",
        "scores",
        "prunes",
        "max_error_bound",
        "traversal_ms",
    ),
}


__all__ = [
    "KDE_EVALUATION_SCHEMA",
    "KDE_EVALUATION_SCHEMA_ID",
    "KDE_EVALUATION_SCHEMA_VERSION",
]
