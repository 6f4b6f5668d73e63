"""kd-tree with hyper-rectangle bounds used as the default spatial index.

The tree reorders a private copy of its dataset so that every node owns a
contiguous slice ``[begin, begin + count)``. ``old_from_new[i]`` is the
caller-visible index of the point stored at tree position ``i``.

Nodes split at the midpoint of their widest dimension; when that leaves
fewer than a tenth of the points on one side the split moves to the median,
which keeps the height logarithmic for any data.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, ClassVar, Iterator, List, Optional, Protocol, Sequence, Tuple

import numpy as np

from treekde.core.backend import TreeBackend, get_runtime_backend
from treekde.core.metrics import Metric

_MIN_SPLIT_FRACTION = 0.1


class TreeNode(Protocol):
    begin: int
    count: int

    @property
    def children(self) -> Sequence["TreeNode"]:
        ...

    @property
    def is_leaf(self) -> bool:
        ...

    def min_distance(self, other: "TreeNode", metric: Metric) -> float:
        ...

    def max_distance(self, other: "TreeNode", metric: Metric) -> float:
        ...

    def min_distance_to_point(self, point: np.ndarray, metric: Metric) -> float:
        ...

    def max_distance_to_point(self, point: np.ndarray, metric: Metric) -> float:
        ...


class SpaceTree(Protocol):
    """A built tree over ``dataset``.

    Trees that reorder their points set ``rearranges_dataset`` and expose
    ``old_from_new`` (original index of each tree position); trees that keep
    input order may leave ``old_from_new`` as ``None``.
    """

    dataset: np.ndarray
    old_from_new: Optional[np.ndarray]
    root: TreeNode
    rearranges_dataset: bool

    @property
    def num_points(self) -> int:
        ...


@dataclass(frozen=True)
class HRectBound:
    """Axis-aligned bounding box of a node's points."""

    lo: np.ndarray
    hi: np.ndarray

    @property
    def dimension(self) -> int:
        return int(self.lo.shape[0])

    @property
    def widths(self) -> np.ndarray:
        return self.hi - self.lo

    def contains(self, point: np.ndarray) -> bool:
        return bool(np.all(point >= self.lo) and np.all(point <= self.hi))

    def min_distance(self, other: "HRectBound", metric: Metric) -> float:
        gaps = np.maximum(0.0, np.maximum(other.lo - self.hi, self.lo - other.hi))
        return float(metric.norm(gaps))

    def max_distance(self, other: "HRectBound", metric: Metric) -> float:
        spans = np.maximum(np.abs(self.hi - other.lo), np.abs(other.hi - self.lo))
        return float(metric.norm(spans))

    def min_distance_to_point(self, point: np.ndarray, metric: Metric) -> float:
        gaps = np.maximum(0.0, np.maximum(self.lo - point, point - self.hi))
        return float(metric.norm(gaps))

    def max_distance_to_point(self, point: np.ndarray, metric: Metric) -> float:
        spans = np.maximum(np.abs(point - self.lo), np.abs(self.hi - point))
        return float(metric.norm(spans))


class KDNode:
    __slots__ = ("begin", "count", "bound", "depth", "left", "right")

    def __init__(self, begin: int, count: int, bound: HRectBound, depth: int) -> None:
        self.begin = begin
        self.count = count
        self.bound = bound
        self.depth = depth
        self.left: Optional[KDNode] = None
        self.right: Optional[KDNode] = None

    def __repr__(self) -> str:
        return (
            f"KDNode(begin={self.begin}, count={self.count}, depth={self.depth}, "
            f"leaf={self.is_leaf})"
        )

    @property
    def children(self) -> Tuple["KDNode", ...]:
        if self.left is None or self.right is None:
            return ()
        return (self.left, self.right)

    @property
    def is_leaf(self) -> bool:
        return self.left is None

    @property
    def end(self) -> int:
        return self.begin + self.count

    def point_indices(self) -> range:
        return range(self.begin, self.begin + self.count)

    def min_distance(self, other: "KDNode", metric: Metric) -> float:
        return self.bound.min_distance(other.bound, metric)

    def max_distance(self, other: "KDNode", metric: Metric) -> float:
        return self.bound.max_distance(other.bound, metric)

    def min_distance_to_point(self, point: np.ndarray, metric: Metric) -> float:
        return self.bound.min_distance_to_point(point, metric)

    def max_distance_to_point(self, point: np.ndarray, metric: Metric) -> float:
        return self.bound.max_distance_to_point(point, metric)


def _ensure_points(backend: TreeBackend, points: Any) -> np.ndarray:
    arr = backend.copy(points, dtype=backend.default_float)
    if arr.ndim == 1:
        arr = arr[:, None]
    if arr.ndim != 2:
        raise ValueError("KDTree expects a 2-D array of shape (n_points, dimension).")
    if arr.shape[0] == 0:
        raise ValueError("Cannot build a KDTree over an empty dataset.")
    if not np.all(np.isfinite(arr)):
        raise ValueError("KDTree points must be finite.")
    return arr


class KDTree:
    """Midpoint-split kd-tree that rearranges its (copied) dataset."""

    rearranges_dataset: ClassVar[bool] = True

    def __init__(
        self,
        points: Any,
        *,
        leaf_size: int = 20,
        backend: TreeBackend | None = None,
    ) -> None:
        if int(leaf_size) <= 0:
            raise ValueError("leaf_size must be a positive integer.")
        self.backend = backend or get_runtime_backend()
        self.leaf_size = int(leaf_size)
        data = _ensure_points(self.backend, points)
        order = np.arange(data.shape[0], dtype=np.int64)
        self._num_nodes = 0
        self.root = self._build(data, order, 0, data.shape[0], 0)
        self.dataset = data[order]
        self.dataset.setflags(write=False)
        self.old_from_new = order
        self.old_from_new.setflags(write=False)

    @classmethod
    def build(
        cls,
        points: Any,
        *,
        leaf_size: int = 20,
        backend: TreeBackend | None = None,
    ) -> "KDTree":
        return cls(points, leaf_size=leaf_size, backend=backend)

    def _build(
        self,
        data: np.ndarray,
        order: np.ndarray,
        begin: int,
        count: int,
        depth: int,
    ) -> KDNode:
        segment = order[begin : begin + count]
        block = data[segment]
        bound = HRectBound(lo=block.min(axis=0), hi=block.max(axis=0))
        node = KDNode(begin, count, bound, depth)
        self._num_nodes += 1
        if count <= self.leaf_size:
            return node
        widths = bound.widths
        dim = int(np.argmax(widths))
        if widths[dim] <= 0.0:
            # All points coincide; splitting cannot tighten any bound.
            return node

        values = data[segment, dim]
        split = 0.5 * (bound.lo[dim] + bound.hi[dim])
        mask = values < split
        left_count = int(np.count_nonzero(mask))
        smallest = max(1, int(count * _MIN_SPLIT_FRACTION))
        if min(left_count, count - left_count) < smallest:
            # Lopsided midpoint split; split at the median to bound the height.
            left_count = count // 2
            partition = np.argpartition(values, left_count)
            segment = segment[partition]
        else:
            segment = np.concatenate((segment[mask], segment[~mask]))
        order[begin : begin + count] = segment

        node.left = self._build(data, order, begin, left_count, depth + 1)
        node.right = self._build(
            data, order, begin + left_count, count - left_count, depth + 1
        )
        return node

    @property
    def num_points(self) -> int:
        return int(self.dataset.shape[0])

    @property
    def dimension(self) -> int:
        return int(self.dataset.shape[1])

    @property
    def num_nodes(self) -> int:
        return self._num_nodes

    @property
    def new_from_old(self) -> np.ndarray:
        inverse = np.empty_like(self.old_from_new)
        inverse[self.old_from_new] = np.arange(self.old_from_new.shape[0])
        return inverse

    def height(self) -> int:
        return max(node.depth for node in self.nodes()) + 1

    def nodes(self) -> Iterator[KDNode]:
        """Iterate nodes in pre-order."""

        stack: List[KDNode] = [self.root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def leaves(self) -> Iterator[KDNode]:
        return (node for node in self.nodes() if node.is_leaf)

    def copy(self) -> "KDTree":
        """Deep copy: nodes and the reordered dataset are duplicated."""

        return copy.deepcopy(self)

    def __deepcopy__(self, memo: dict) -> "KDTree":
        clone = self.__class__.__new__(self.__class__)
        memo[id(self)] = clone
        clone.backend = self.backend
        clone.leaf_size = self.leaf_size
        clone._num_nodes = self._num_nodes
        clone.root = copy.deepcopy(self.root, memo)
        clone.dataset = np.array(self.dataset, copy=True)
        clone.dataset.setflags(write=False)
        clone.old_from_new = np.array(self.old_from_new, copy=True)
        clone.old_from_new.setflags(write=False)
        return clone


__all__ = ["HRectBound", "KDNode", "KDTree", "SpaceTree", "TreeNode"]
