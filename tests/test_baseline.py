import numpy as np
import pytest

from treekde.baseline import brute_force_density
from treekde.core.kernels import GaussianKernel
from treekde.core.metrics import get_metric

from tests.utils.datasets import gaussian_dataset, gaussian_kde_dense


def test_brute_force_matches_dense_gaussian():
    references, queries = gaussian_dataset(
        np.random.default_rng(0), reference_points=70, queries=25, dimension=3
    )
    densities = brute_force_density(
        references, queries, GaussianKernel(0.6), metric=get_metric("euclidean"), chunk_size=7
    )
    np.testing.assert_allclose(
        densities, gaussian_kde_dense(references, queries, bandwidth=0.6), rtol=1e-12
    )


def test_brute_force_validates_inputs():
    kernel = GaussianKernel(1.0)
    with pytest.raises(ValueError):
        brute_force_density(np.zeros((0, 2)), np.zeros((3, 2)), kernel)
    with pytest.raises(ValueError):
        brute_force_density(np.zeros((4, 2)), np.zeros((3, 3)), kernel)
