from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

from .schemas import KDE_EVALUATION_SCHEMA, KDE_EVALUATION_SCHEMA_ID


@dataclass(frozen=True)
class EvaluationStats:
    """Summary of one ``KDE.evaluate`` call."""

    traversal: str
    kernel: str
    metric: str
    bandwidth: float
    rel_error: float
    abs_error: float
    num_queries: int
    num_references: int
    base_cases: int
    scores: int
    prunes: int
    max_error_bound: float
    traversal_ms: float
    leaf_pairs: int = 0
    max_depth: int = 0

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"schema_id": KDE_EVALUATION_SCHEMA_ID}
        payload.update(asdict(self))
        missing = [key for key in KDE_EVALUATION_SCHEMA["required"] if key not in payload]
        if missing:  # pragma: no cover - guarded by the dataclass fields
            raise KeyError(f"Evaluation record missing fields: {missing}")
        return payload


__all__ = ["EvaluationStats"]
