from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from treekde import config as tk_config

_PRECISION_DTYPES = {
    "float32": (np.float32, np.int32),
    "float64": (np.float64, np.int64),
}


@dataclass(frozen=True)
class TreeBackend:
    """Array namespace and dtypes shared by trees, rules and accumulators."""

    name: str
    xp: Any
    default_float: Any
    default_int: Any

    @classmethod
    def numpy(cls, *, precision: str = "float64") -> "TreeBackend":
        try:
            float_dtype, int_dtype = _PRECISION_DTYPES[precision]
        except KeyError as exc:
            raise ValueError(f"Unsupported precision '{precision}'.") from exc
        return cls(name="numpy", xp=np, default_float=float_dtype, default_int=int_dtype)

    def asarray(self, value: Any, *, dtype: Any = None) -> np.ndarray:
        return np.asarray(value, dtype=dtype)

    def copy(self, value: Any, *, dtype: Any = None) -> np.ndarray:
        return np.array(value, dtype=dtype or self.default_float, copy=True)

    def zeros(self, size: int) -> np.ndarray:
        return np.zeros(int(size), dtype=self.default_float)


def get_runtime_backend() -> TreeBackend:
    return tk_config.runtime_context().get_backend()


__all__ = ["TreeBackend", "get_runtime_backend"]
