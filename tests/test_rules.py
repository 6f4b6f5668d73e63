import math

import numpy as np
import pytest

from treekde.algo.rules import PRUNE, KDERules, TraversalInfo
from treekde.core.kernels import GaussianKernel, SphericalKernel
from treekde.core.metrics import get_metric
from treekde.core.tree import KDTree
from treekde.errors import GeometricInconsistencyError


def _rules(references, queries, *, kernel=None, rel_error=0.0, abs_error=0.0, mapping=None):
    reference_tree = KDTree(references, leaf_size=2)
    query_tree = KDTree(queries, leaf_size=2)
    densities = np.zeros(query_tree.num_points)
    rules = KDERules(
        reference_tree.dataset,
        query_tree.dataset,
        densities,
        rel_error=rel_error,
        abs_error=abs_error,
        old_from_new_queries=query_tree.old_from_new if mapping is None else mapping,
        metric=get_metric("euclidean"),
        kernel=kernel or GaussianKernel(1.0),
    )
    return rules, query_tree, reference_tree, densities


class _ReversedKernel:
    bandwidth = 1.0

    def evaluate(self, distance):
        return 1.0

    def bounds(self, min_distance, max_distance):
        return 1.0, 0.5


def test_base_case_accumulates_in_original_query_order():
    references = np.array([[0.0], [1.0]])
    queries = np.array([[5.0], [0.0], [2.0]])
    rules, query_tree, _, densities = _rules(references, queries)

    for q in range(query_tree.num_points):
        for r in range(2):
            rules.base_case(q, r)

    kernel = GaussianKernel(1.0)
    expected = [
        sum(kernel.evaluate(abs(float(q) - float(r))) for r in references[:, 0])
        for q in queries[:, 0]
    ]
    np.testing.assert_allclose(densities, expected)
    assert rules.base_cases == 6


def test_base_case_block_matches_single_pairs():
    rng = np.random.default_rng(0)
    references = rng.normal(size=(6, 2))
    queries = rng.normal(size=(5, 2))
    blocked, query_tree, reference_tree, blocked_densities = _rules(references, queries)
    single, _, _, single_densities = _rules(references, queries)

    blocked.base_case_block(0, query_tree.num_points, 0, reference_tree.num_points)
    for q in range(query_tree.num_points):
        for r in range(reference_tree.num_points):
            single.base_case(q, r)

    np.testing.assert_allclose(blocked_densities, single_densities)
    assert blocked.base_cases == single.base_cases == 30


def test_far_pair_within_tolerance_is_pruned_and_credited():
    references = np.array([[100.0, 0.0], [100.5, 0.0], [101.0, 0.0]])
    queries = np.array([[0.0, 0.0], [0.2, 0.0]])
    rules, query_tree, reference_tree, densities = _rules(
        references, queries, abs_error=1e-6
    )

    score = rules.score(query_tree.root, reference_tree.root)

    assert score == PRUNE
    assert rules.prunes == 1
    assert rules.scores == 1
    np.testing.assert_allclose(densities, 0.0, atol=1e-12)
    assert np.all(rules.error_bound <= 3 * 1e-6)


def test_uniform_kernel_region_is_pruned_exactly_at_zero_tolerance():
    references = np.array([[0.0], [0.1], [0.2]])
    queries = np.array([[0.05], [0.15]])
    rules, query_tree, reference_tree, densities = _rules(
        references, queries, kernel=SphericalKernel(1.0)
    )

    assert rules.score(query_tree.root, reference_tree.root) == PRUNE
    np.testing.assert_allclose(densities, [3.0, 3.0])
    np.testing.assert_allclose(rules.error_bound, 0.0)


def test_close_pair_returns_min_distance_priority():
    references = np.array([[0.0, 0.0], [3.0, 0.0]])
    queries = np.array([[1.0, 0.0], [2.0, 0.0]])
    rules, query_tree, reference_tree, densities = _rules(references, queries, rel_error=0.01)

    score = rules.score(query_tree.root, reference_tree.root)

    assert math.isfinite(score)
    assert score == pytest.approx(0.0)
    assert rules.prunes == 0
    np.testing.assert_allclose(densities, 0.0)


def test_rescore_keeps_prune_and_reuses_cached_bounds():
    references = np.array([[0.0, 0.0], [3.0, 0.0]])
    queries = np.array([[1.0, 0.0], [2.0, 0.0]])
    rules, query_tree, reference_tree, _ = _rules(references, queries, rel_error=0.01)

    assert rules.rescore(query_tree.root, reference_tree.root, PRUNE) == PRUNE

    score = rules.score(query_tree.root, reference_tree.root)
    assert rules.traversal_info.matches(query_tree.root, reference_tree.root)
    assert rules.rescore(query_tree.root, reference_tree.root, score) == score
    assert rules.scores == 1


def test_single_tree_queries_use_point_bounds():
    references = np.array([[0.0], [1.0], [2.0], [3.0]])
    queries = np.array([[1.5]])
    rules, _, reference_tree, _ = _rules(references, queries, rel_error=0.0)

    score = rules.score(0, reference_tree.root)

    assert score == pytest.approx(0.0)
    assert rules.traversal_info.matches(0, reference_tree.root)
    assert not rules.traversal_info.matches(1, reference_tree.root)


def test_inverted_kernel_bounds_raise():
    references = np.array([[0.0], [1.0]])
    queries = np.array([[0.5]])
    rules, query_tree, reference_tree, _ = _rules(
        references, queries, kernel=_ReversedKernel()
    )
    with pytest.raises(GeometricInconsistencyError):
        rules.score(query_tree.root, reference_tree.root)


def test_mismatched_inputs_rejected():
    metric = get_metric("euclidean")
    kernel = GaussianKernel(1.0)
    with pytest.raises(ValueError):
        KDERules(
            np.zeros((3, 2)),
            np.zeros((2, 3)),
            np.zeros(2),
            rel_error=0.0,
            abs_error=0.0,
            old_from_new_queries=np.arange(2),
            metric=metric,
            kernel=kernel,
        )
    with pytest.raises(ValueError):
        KDERules(
            np.zeros((3, 2)),
            np.zeros((2, 2)),
            np.zeros(3),
            rel_error=0.0,
            abs_error=0.0,
            old_from_new_queries=np.arange(2),
            metric=metric,
            kernel=kernel,
        )


def test_traversal_info_defaults_match_nothing():
    info = TraversalInfo()
    assert not info.matches(object(), object())
