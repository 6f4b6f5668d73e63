from __future__ import annotations

from typing import Tuple

import numpy as np
from numpy.random import Generator, default_rng

Array = np.ndarray


def _ensure_rng(rng: Generator | None) -> Generator:
    return rng or default_rng()


def gaussian_points(
    rng: Generator | None,
    count: int,
    dimension: int,
    *,
    dtype: np.dtype | type[np.floating] = np.float64,
) -> Array:
    """Sample `count` Gaussian points with the requested dimensionality."""

    generator = _ensure_rng(rng)
    if count <= 0 or dimension <= 0:
        return np.zeros((max(count, 0), max(dimension, 0)), dtype=dtype)
    samples = generator.normal(loc=0.0, scale=1.0, size=(count, dimension))
    return np.asarray(samples, dtype=dtype)


def gaussian_dataset(
    rng: Generator | None,
    *,
    reference_points: int,
    queries: int,
    dimension: int,
    dtype: np.dtype | type[np.floating] = np.float64,
) -> Tuple[Array, Array]:
    """Return a tuple `(references, queries)` drawn from the same Gaussian."""

    generator = _ensure_rng(rng)
    references = gaussian_points(generator, reference_points, dimension, dtype=dtype)
    query_points = gaussian_points(generator, queries, dimension, dtype=dtype)
    return references, query_points


def clustered_points(
    rng: Generator | None,
    *,
    clusters: int,
    per_cluster: int,
    dimension: int,
    spread: float = 0.05,
    separation: float = 10.0,
) -> Array:
    """Tight blobs far apart from each other, so node pairs prune readily."""

    generator = _ensure_rng(rng)
    centres = generator.uniform(-separation, separation, size=(clusters, dimension))
    blobs = [
        centre + spread * generator.normal(size=(per_cluster, dimension)) for centre in centres
    ]
    return np.concatenate(blobs, axis=0)


def gaussian_kde_dense(
    references: Array,
    queries: Array,
    *,
    bandwidth: float,
) -> Array:
    """Mean unnormalised Gaussian kernel value per query, via a dense matrix."""

    if references.ndim != 2 or queries.ndim != 2:
        raise ValueError("Dense KDE expects 2D arrays.")
    if references.shape[1] != queries.shape[1]:
        raise ValueError("Dense KDE received mismatched dimensionality.")
    diff = queries[:, None, :] - references[None, :, :]
    sq_dist = np.sum(diff * diff, axis=2, dtype=np.float64)
    scaled = -0.5 * sq_dist / (bandwidth * bandwidth)
    return np.exp(scaled, dtype=np.float64).mean(axis=1)
