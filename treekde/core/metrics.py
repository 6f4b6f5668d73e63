from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple

import numpy as np

from treekde import config as tk_config
from treekde.errors import ConfigurationError

ArrayLike = Any

NormKernel = Callable[[np.ndarray], np.ndarray]


def _as_float(array: ArrayLike) -> np.ndarray:
    arr = np.asarray(array)
    if not np.issubdtype(arr.dtype, np.floating):
        arr = arr.astype(np.float64)
    return arr


def _ensure_2d(array: ArrayLike) -> np.ndarray:
    arr = _as_float(array)
    if arr.ndim == 1:
        arr = arr[None, :]
    return arr


@dataclass(frozen=True)
class Metric:
    """Minkowski-family distance exposed through a small capability set.

    ``norm_kernel`` reduces per-dimension differences (last axis) to a
    distance. Region bounds reuse it on per-dimension gaps, which is valid for
    every metric registered here since they are monotone in each coordinate.
    """

    name: str
    power: float
    norm_kernel: NormKernel

    def norm(self, diff: ArrayLike) -> np.ndarray:
        return self.norm_kernel(np.asarray(diff))

    def distance(self, lhs: ArrayLike, rhs: ArrayLike) -> float:
        lhs_arr = _as_float(lhs)
        rhs_arr = _as_float(rhs)
        if lhs_arr.shape != rhs_arr.shape:
            raise ValueError("Pointwise metric operands must have identical shapes.")
        return float(self.norm_kernel(lhs_arr - rhs_arr))

    def pairwise(self, lhs: ArrayLike, rhs: ArrayLike) -> np.ndarray:
        lhs_arr = _ensure_2d(lhs)
        rhs_arr = _ensure_2d(rhs)
        if lhs_arr.size == 0 or rhs_arr.size == 0:
            return np.zeros((lhs_arr.shape[0], rhs_arr.shape[0]), dtype=lhs_arr.dtype)
        diff = lhs_arr[:, None, :] - rhs_arr[None, :, :]
        return self.norm_kernel(diff)


class MetricRegistry:
    """Minimal registry for runtime-selectable metrics."""

    def __init__(self) -> None:
        self._metrics: Dict[str, Metric] = {}

    def register(self, metric: Metric, *, overwrite: bool = False) -> None:
        name = metric.name.lower()
        if not overwrite and name in self._metrics:
            raise ValueError(f"Metric '{metric.name}' already registered.")
        self._metrics[name] = metric

    def get(self, name: str) -> Metric:
        key = name.lower()
        if key not in self._metrics:
            raise ConfigurationError(
                f"Metric '{name}' not registered. Expected one of {self.names()}."
            )
        return self._metrics[key]

    def names(self) -> Tuple[str, ...]:
        return tuple(sorted(self._metrics.keys()))


def _euclidean_norm(diff: np.ndarray) -> np.ndarray:
    return np.sqrt(np.sum(diff * diff, axis=-1))


def _manhattan_norm(diff: np.ndarray) -> np.ndarray:
    return np.sum(np.abs(diff), axis=-1)


def _chebyshev_norm(diff: np.ndarray) -> np.ndarray:
    if diff.shape[-1] == 0:
        return np.zeros(diff.shape[:-1], dtype=diff.dtype)
    return np.max(np.abs(diff), axis=-1)


def _load_registry() -> MetricRegistry:
    registry = MetricRegistry()
    registry.register(Metric(name="euclidean", power=2.0, norm_kernel=_euclidean_norm))
    registry.register(Metric(name="manhattan", power=1.0, norm_kernel=_manhattan_norm))
    registry.register(Metric(name="chebyshev", power=np.inf, norm_kernel=_chebyshev_norm))
    return registry


_REGISTRY = _load_registry()


def get_metric(name: str | None = None) -> Metric:
    """Return a registered metric, defaulting to the runtime-selected metric."""

    if name is None:
        name = tk_config.runtime_config().metric
    return _REGISTRY.get(name)


def register_metric(metric: Metric, *, overwrite: bool = False) -> None:
    _REGISTRY.register(metric, overwrite=overwrite)


def available_metrics() -> Tuple[str, ...]:
    return _REGISTRY.names()


__all__ = [
    "Metric",
    "MetricRegistry",
    "available_metrics",
    "get_metric",
    "register_metric",
]
