from __future__ import annotations

import math

import numpy as np

try:  # pragma: no cover - optional dependency
    from numba import njit  # type: ignore

    NUMBA_PAIRWISE_AVAILABLE = True
except Exception:  # pragma: no cover - when numba unavailable
    njit = None  # type: ignore
    NUMBA_PAIRWISE_AVAILABLE = False


if NUMBA_PAIRWISE_AVAILABLE:

    @njit(cache=True)
    def _euclidean_block(lhs: np.ndarray, rhs: np.ndarray) -> np.ndarray:
        rows = lhs.shape[0]
        cols = rhs.shape[0]
        dim = lhs.shape[1]
        out = np.empty((rows, cols), dtype=np.float64)
        for i in range(rows):
            for j in range(cols):
                total = 0.0
                for d in range(dim):
                    diff = lhs[i, d] - rhs[j, d]
                    total += diff * diff
                out[i, j] = math.sqrt(total)
        return out


def euclidean_block_numba(lhs: np.ndarray, rhs: np.ndarray) -> np.ndarray:
    """Dense Euclidean distances between two leaf blocks."""

    if not NUMBA_PAIRWISE_AVAILABLE:  # pragma: no cover - defensive
        raise RuntimeError("Numba pairwise distances require numba to be installed.")
    lhs_arr = np.ascontiguousarray(lhs, dtype=np.float64)
    rhs_arr = np.ascontiguousarray(rhs, dtype=np.float64)
    return _euclidean_block(lhs_arr, rhs_arr)


__all__ = ["NUMBA_PAIRWISE_AVAILABLE", "euclidean_block_numba"]
