"""Pruning and accounting rules for error-bounded kernel density estimation.

For a query node ``Q`` and a reference node ``R`` the bounding regions give
``[d_min, d_max]`` for every point pair, hence ``[w_min, w_max]`` for every
kernel value. Replacing each of the ``|R|`` contributions with the midpoint
``(w_min + w_max) / 2`` costs at most half the spread per pair. Each pair is
allotted ``abs_error + rel_error * w_min``, so the pair ``(Q, R)`` is pruned
when

    (w_max - w_min) * |R| <= 2 * |R| * (abs_error + rel_error * w_min)

Summed over the whole reference set this keeps every normalised estimate
within ``abs_error + rel_error * exact`` of the exact value. The allotment is
proportional to ``|R|``, so it is the same whether a subtree is pruned at its
root or resolved further down, and a larger tolerance can only prune more.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np

from treekde.core.kernels import Kernel
from treekde.core.metrics import Metric
from treekde.core.tree import TreeNode
from treekde.errors import GeometricInconsistencyError
from ._pairwise_numba import NUMBA_PAIRWISE_AVAILABLE, euclidean_block_numba

PRUNE = math.inf

QueryRef = Any  # a query TreeNode, or an int query index for single-tree rules


def _is_index(query: QueryRef) -> bool:
    return isinstance(query, (int, np.integer))


@dataclass
class TraversalInfo:
    """Memo of the last scored node pair and the distance bounds found for it."""

    last_query: QueryRef = None
    last_reference: Any = None
    last_min_distance: float = 0.0
    last_max_distance: float = 0.0
    last_score: float = 0.0

    def matches(self, query: QueryRef, reference: Any) -> bool:
        if self.last_reference is not reference:
            return False
        if _is_index(query):
            return _is_index(self.last_query) and int(self.last_query) == int(query)
        return self.last_query is query

    def remember(
        self,
        query: QueryRef,
        reference: Any,
        min_distance: float,
        max_distance: float,
        score: float,
    ) -> None:
        self.last_query = query
        self.last_reference = reference
        self.last_min_distance = min_distance
        self.last_max_distance = max_distance
        self.last_score = score


class KDERules:
    """Score/Rescore/BaseCase rules accumulating into ``densities``.

    ``query_set`` and ``reference_set`` are the tree-ordered datasets; results
    are written to ``densities[old_from_new_queries[q]]`` so the accumulator is
    in the caller's original query order.
    """

    def __init__(
        self,
        reference_set: np.ndarray,
        query_set: np.ndarray,
        densities: np.ndarray,
        *,
        rel_error: float,
        abs_error: float,
        old_from_new_queries: np.ndarray,
        metric: Metric,
        kernel: Kernel,
        use_numba: bool = False,
    ) -> None:
        if reference_set.ndim != 2 or query_set.ndim != 2:
            raise ValueError("Reference and query sets must be 2-D arrays.")
        if reference_set.shape[1] != query_set.shape[1]:
            raise ValueError(
                "Query dimension %d does not match reference dimension %d."
                % (query_set.shape[1], reference_set.shape[1])
            )
        num_queries = int(query_set.shape[0])
        if densities.shape != (num_queries,):
            raise ValueError("densities must hold one slot per query point.")
        if len(old_from_new_queries) != num_queries:
            raise ValueError("old_from_new_queries must map every query point.")

        self.reference_set = reference_set
        self.query_set = query_set
        self.densities = densities
        self.rel_error = float(rel_error)
        self.abs_error = float(abs_error)
        self.old_from_new_queries = np.asarray(old_from_new_queries, dtype=np.int64)
        self.metric = metric
        self.kernel = kernel
        # Bounds, distances and kernel values all use the accumulator dtype.
        self.dtype = np.dtype(densities.dtype)
        self.use_numba = bool(
            use_numba
            and NUMBA_PAIRWISE_AVAILABLE
            and metric.name == "euclidean"
            and self.dtype == np.float64
        )
        self.traversal_info = TraversalInfo()
        # Worst-case absolute error charged to each query point (tree order).
        self.error_bound = np.zeros(num_queries, dtype=densities.dtype)
        self._base_cases = 0
        self._scores = 0
        self._prunes = 0

    @property
    def base_cases(self) -> int:
        return self._base_cases

    @property
    def scores(self) -> int:
        return self._scores

    @property
    def prunes(self) -> int:
        return self._prunes

    def base_case(self, query_index: int, reference_index: int) -> float:
        distance = self.metric.distance(
            self.query_set[query_index], self.reference_set[reference_index]
        )
        value = float(self.kernel.evaluate(self.dtype.type(distance)))
        self.densities[self.old_from_new_queries[query_index]] += value
        self._base_cases += 1
        return value

    def base_case_block(
        self,
        query_begin: int,
        query_count: int,
        reference_begin: int,
        reference_count: int,
    ) -> None:
        """Evaluate every pair of two contiguous point ranges in one shot."""

        queries = self.query_set[query_begin : query_begin + query_count]
        references = self.reference_set[reference_begin : reference_begin + reference_count]
        if self.use_numba:
            distances = euclidean_block_numba(queries, references)
        else:
            distances = self.metric.pairwise(queries, references)
        values = np.asarray(self.kernel.evaluate(distances), dtype=self.densities.dtype)
        targets = self.old_from_new_queries[query_begin : query_begin + query_count]
        self.densities[targets] += values.sum(axis=1)
        self._base_cases += int(query_count) * int(reference_count)

    def _distance_bounds(self, query: QueryRef, reference_node: TreeNode) -> Tuple[float, float]:
        if _is_index(query):
            point = self.query_set[int(query)]
            return (
                reference_node.min_distance_to_point(point, self.metric),
                reference_node.max_distance_to_point(point, self.metric),
            )
        return (
            query.min_distance(reference_node, self.metric),
            query.max_distance(reference_node, self.metric),
        )

    def _query_range(self, query: QueryRef) -> slice:
        if _is_index(query):
            return slice(int(query), int(query) + 1)
        return slice(query.begin, query.begin + query.count)

    def _decide(
        self,
        query: QueryRef,
        reference_node: TreeNode,
        min_distance: float,
        max_distance: float,
    ) -> float:
        min_weight, max_weight = self.kernel.bounds(
            self.dtype.type(min_distance), self.dtype.type(max_distance)
        )
        if min_weight > max_weight:
            raise GeometricInconsistencyError(
                f"Kernel bounds out of order for distances [{min_distance}, {max_distance}]: "
                f"min_weight={min_weight} > max_weight={max_weight}."
            )
        tolerance = self.abs_error + self.rel_error * min_weight
        if max_weight - min_weight > 2.0 * tolerance:
            return min_distance

        # Prune: credit the midpoint estimate to every query point in range.
        count = reference_node.count
        rows = self._query_range(query)
        targets = self.old_from_new_queries[rows]
        self.densities[targets] += count * 0.5 * (min_weight + max_weight)
        self.error_bound[rows] += count * 0.5 * (max_weight - min_weight)
        self._prunes += 1
        return PRUNE

    def score(self, query: QueryRef, reference_node: TreeNode) -> float:
        """Return ``PRUNE`` after crediting the pair, or a recursion priority.

        ``query`` is a query node (dual-tree) or a query index (single-tree).
        Lower priorities are closer pairs and should be visited first.
        """

        self._scores += 1
        min_distance, max_distance = self._distance_bounds(query, reference_node)
        score = self._decide(query, reference_node, min_distance, max_distance)
        self.traversal_info.remember(query, reference_node, min_distance, max_distance, score)
        return score

    def rescore(self, query: QueryRef, reference_node: TreeNode, old_score: float) -> float:
        if old_score == PRUNE:
            return PRUNE
        if self.traversal_info.matches(query, reference_node):
            min_distance = self.traversal_info.last_min_distance
            max_distance = self.traversal_info.last_max_distance
        else:
            min_distance, max_distance = self._distance_bounds(query, reference_node)
        score = self._decide(query, reference_node, min_distance, max_distance)
        self.traversal_info.remember(query, reference_node, min_distance, max_distance, score)
        return score


__all__ = ["KDERules", "PRUNE", "TraversalInfo"]
