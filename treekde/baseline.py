from __future__ import annotations

from typing import Any

import numpy as np

from treekde.core.kernels import Kernel
from treekde.core.metrics import Metric, get_metric

_DEFAULT_CHUNK = 1024


def brute_force_density(
    reference_set: Any,
    query_set: Any,
    kernel: Kernel,
    *,
    metric: Metric | None = None,
    chunk_size: int = _DEFAULT_CHUNK,
) -> np.ndarray:
    """Exact density: mean kernel value over every reference point, per query."""

    metric = metric or get_metric()
    references = np.asarray(reference_set, dtype=np.float64)
    queries = np.asarray(query_set, dtype=np.float64)
    if references.ndim == 1:
        references = references[:, None]
    if queries.ndim == 1:
        queries = queries[:, None]
    if references.shape[0] == 0:
        raise ValueError("Reference set must contain at least one point.")
    if references.shape[1] != queries.shape[1]:
        raise ValueError("Query and reference dimensions differ.")

    densities = np.zeros(queries.shape[0], dtype=np.float64)
    step = max(1, int(chunk_size))
    for start in range(0, queries.shape[0], step):
        block = queries[start : start + step]
        distances = metric.pairwise(block, references)
        densities[start : start + step] = np.sum(kernel.evaluate(distances), axis=1)
    return densities / references.shape[0]


__all__ = ["brute_force_density"]
