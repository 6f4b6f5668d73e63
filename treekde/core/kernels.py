"""Radial smoothing kernels.

Every kernel here is a non-increasing function of distance with its maximum
at distance zero, parameterised by a bandwidth. Values are unnormalised (the
peak is 1.0); density estimates are therefore relative, as in the classic
tree-based KDE formulation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Dict, Protocol, Tuple, runtime_checkable

import numpy as np

from treekde import config as tk_config
from treekde.errors import ConfigurationError


@runtime_checkable
class Kernel(Protocol):
    bandwidth: float

    def evaluate(self, distance: Any) -> Any:
        ...

    def bounds(self, min_distance: float, max_distance: float) -> Tuple[float, float]:
        ...


def _as_output(values: np.ndarray, distance: Any) -> Any:
    if np.ndim(distance) == 0:
        return float(values)
    return values


@dataclass(frozen=True)
class RadialKernel:
    name: ClassVar[str] = "radial"

    bandwidth: float = 1.0

    def __post_init__(self) -> None:
        if not np.isfinite(self.bandwidth) or self.bandwidth <= 0.0:
            raise ConfigurationError(
                f"Kernel bandwidth must be positive and finite, got {self.bandwidth!r}."
            )

    def _profile(self, scaled: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def evaluate(self, distance: Any) -> Any:
        """Kernel values computed in the floating dtype of ``distance``."""

        dist = np.asarray(distance)
        if not np.issubdtype(dist.dtype, np.floating):
            dist = dist.astype(np.float64)
        scaled = dist / dist.dtype.type(self.bandwidth)
        return _as_output(self._profile(scaled).astype(dist.dtype, copy=False), distance)

    def bounds(self, min_distance: float, max_distance: float) -> Tuple[float, float]:
        """Return ``(min_weight, max_weight)`` over ``[min_distance, max_distance]``."""

        return self.evaluate(max_distance), self.evaluate(min_distance)


@dataclass(frozen=True)
class GaussianKernel(RadialKernel):
    name: ClassVar[str] = "gaussian"

    def _profile(self, scaled: np.ndarray) -> np.ndarray:
        return np.exp(-0.5 * scaled * scaled)


@dataclass(frozen=True)
class EpanechnikovKernel(RadialKernel):
    name: ClassVar[str] = "epanechnikov"

    def _profile(self, scaled: np.ndarray) -> np.ndarray:
        return np.maximum(0.0, 1.0 - scaled * scaled)


@dataclass(frozen=True)
class LaplacianKernel(RadialKernel):
    name: ClassVar[str] = "laplacian"

    def _profile(self, scaled: np.ndarray) -> np.ndarray:
        return np.exp(-scaled)


@dataclass(frozen=True)
class SphericalKernel(RadialKernel):
    name: ClassVar[str] = "spherical"

    def _profile(self, scaled: np.ndarray) -> np.ndarray:
        return np.where(scaled <= 1.0, 1.0, 0.0)


@dataclass(frozen=True)
class TriangularKernel(RadialKernel):
    name: ClassVar[str] = "triangular"

    def _profile(self, scaled: np.ndarray) -> np.ndarray:
        return np.maximum(0.0, 1.0 - scaled)


_KERNELS: Dict[str, Callable[[float], RadialKernel]] = {
    cls.name: cls
    for cls in (
        GaussianKernel,
        EpanechnikovKernel,
        LaplacianKernel,
        SphericalKernel,
        TriangularKernel,
    )
}


def get_kernel(name: str | None = None, *, bandwidth: float = 1.0) -> RadialKernel:
    """Instantiate a registered kernel, defaulting to the runtime-selected one."""

    if name is None:
        name = tk_config.runtime_config().kernel
    key = name.strip().lower()
    if key not in _KERNELS:
        raise ConfigurationError(
            f"Kernel '{name}' not registered. Expected one of {available_kernels()}."
        )
    return _KERNELS[key](float(bandwidth))


def available_kernels() -> Tuple[str, ...]:
    return tuple(sorted(_KERNELS))


__all__ = [
    "Kernel",
    "RadialKernel",
    "GaussianKernel",
    "EpanechnikovKernel",
    "LaplacianKernel",
    "SphericalKernel",
    "TriangularKernel",
    "available_kernels",
    "get_kernel",
]
