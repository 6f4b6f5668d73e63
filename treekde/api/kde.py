from __future__ import annotations

import dataclasses
import time
from dataclasses import dataclass
from typing import Any, Optional, Union

import numpy as np

from treekde import config as tk_config
from treekde.algo.registry import normalise_strategy_name, select_traversal_strategy
from treekde.algo.rules import KDERules
from treekde.api.runtime import Runtime
from treekde.core.backend import TreeBackend
from treekde.core.kernels import Kernel, get_kernel
from treekde.core.metrics import Metric, get_metric
from treekde.core.tree import KDTree, SpaceTree
from treekde.diagnostics import OperationLog, log_operation
from treekde.errors import ConfigurationError, PreconditionError
from treekde.logging import get_logger
from treekde.telemetry import EvaluationStats

LOGGER = get_logger("api.kde")

DEFAULT_REL_ERROR = 0.05
DEFAULT_ABS_ERROR = 0.0


@dataclass(frozen=True)
class OwnedTree:
    """Reference tree built by the KDE from its own copy of the data."""

    tree: KDTree

    def duplicate(self) -> "OwnedTree":
        return OwnedTree(self.tree.copy())


@dataclass(frozen=True)
class BorrowedTree:
    """Caller-owned reference tree; the KDE never copies or releases it."""

    tree: SpaceTree

    def duplicate(self) -> "BorrowedTree":
        return self


TreeHandle = Union[OwnedTree, BorrowedTree]


def _is_space_tree(candidate: Any) -> bool:
    return (
        candidate is not None
        and not isinstance(candidate, np.ndarray)
        and getattr(candidate, "root", None) is not None
        and getattr(candidate, "dataset", None) is not None
    )


def _tree_mapping(tree: SpaceTree) -> np.ndarray:
    """Tree position -> caller index; identity for trees that keep input order."""

    num_points = int(np.asarray(tree.dataset).shape[0])
    mapping = getattr(tree, "old_from_new", None)
    if mapping is None or not getattr(tree, "rearranges_dataset", True):
        return np.arange(num_points, dtype=np.int64)
    return np.asarray(mapping, dtype=np.int64)


def _validate_rel_error(value: float) -> float:
    value = float(value)
    if not (0.0 <= value <= 1.0):
        raise ConfigurationError(
            f"Relative error tolerance must be a value between 0 and 1, got {value}."
        )
    return value


def _validate_abs_error(value: float) -> float:
    value = float(value)
    if not value >= 0.0:
        raise ConfigurationError(
            f"Absolute error tolerance must be greater or equal to 0, got {value}."
        )
    return value


def _warn_if_summed(rel_error: float, abs_error: float) -> None:
    if rel_error > 0.0 and abs_error > 0.0:
        LOGGER.warning(
            "Absolute (%g) and relative (%g) error tolerances will be summed up.",
            abs_error,
            rel_error,
        )


class KDE:
    """Kernel density estimation over a trained reference tree.

    The reference tree is either built here (``train(points)``, owned) or
    supplied by the caller (``train(tree)``, borrowed). ``evaluate`` returns
    densities in the caller's query order, each equal to the mean kernel value
    over the reference set within ``abs_error + rel_error * exact``.

    When both tolerances are positive their allowances add up; a warning is
    logged in that case.
    """

    def __init__(
        self,
        bandwidth: float = 1.0,
        rel_error: float = DEFAULT_REL_ERROR,
        abs_error: float = DEFAULT_ABS_ERROR,
        traversal: str | None = None,
        *,
        kernel: str | Kernel | None = None,
        metric: str | Metric | None = None,
        leaf_size: int | None = None,
        runtime: Runtime | None = None,
    ) -> None:
        self._rel_error = _validate_rel_error(rel_error)
        self._abs_error = _validate_abs_error(abs_error)
        _warn_if_summed(self._rel_error, self._abs_error)

        self._config = runtime.to_config() if runtime is not None else tk_config.runtime_config()
        if isinstance(kernel, str) or kernel is None:
            self._kernel: Kernel = get_kernel(kernel or self._config.kernel, bandwidth=bandwidth)
        else:
            self._kernel = kernel
        if isinstance(metric, str) or metric is None:
            self._metric = get_metric(metric or self._config.metric)
        else:
            self._metric = metric

        self._traversal = normalise_strategy_name(traversal or self._config.traversal)
        select_traversal_strategy(self._traversal)
        self._leaf_size = int(leaf_size if leaf_size is not None else self._config.leaf_size)
        if self._leaf_size <= 0:
            raise ConfigurationError("leaf_size must be a positive integer.")
        self._backend = TreeBackend.numpy(precision=self._config.precision)

        self._handle: Optional[TreeHandle] = None
        self._last_evaluation: Optional[EvaluationStats] = None

    # ------------------------------------------------------------------ config

    @property
    def rel_error(self) -> float:
        return self._rel_error

    @rel_error.setter
    def rel_error(self, value: float) -> None:
        self.set_relative_error(value)

    @property
    def abs_error(self) -> float:
        return self._abs_error

    @abs_error.setter
    def abs_error(self, value: float) -> None:
        self.set_absolute_error(value)

    def set_relative_error(self, value: float) -> None:
        self._rel_error = _validate_rel_error(value)
        _warn_if_summed(self._rel_error, self._abs_error)

    def set_absolute_error(self, value: float) -> None:
        self._abs_error = _validate_abs_error(value)
        _warn_if_summed(self._rel_error, self._abs_error)

    @property
    def kernel(self) -> Kernel:
        return self._kernel

    @property
    def bandwidth(self) -> float:
        return float(self._kernel.bandwidth)

    def set_bandwidth(self, value: float) -> None:
        if not dataclasses.is_dataclass(self._kernel):
            raise ConfigurationError(
                f"Kernel {type(self._kernel).__name__} does not support bandwidth updates."
            )
        self._kernel = dataclasses.replace(self._kernel, bandwidth=float(value))

    @property
    def metric(self) -> Metric:
        return self._metric

    @property
    def traversal(self) -> str:
        return self._traversal

    @property
    def leaf_size(self) -> int:
        return self._leaf_size

    # --------------------------------------------------------------- ownership

    @property
    def is_trained(self) -> bool:
        return self._handle is not None

    @property
    def owns_reference_tree(self) -> bool:
        return isinstance(self._handle, OwnedTree)

    @property
    def reference_tree(self) -> SpaceTree | None:
        return None if self._handle is None else self._handle.tree

    def train(self, reference: Any) -> "KDE":
        """Build an owned tree over a copy of ``reference``, or adopt a tree."""

        if _is_space_tree(reference):
            return self.train_tree(reference)
        if reference is None:
            raise PreconditionError("train() requires a reference set or a built tree.")
        if np.size(reference) == 0:
            raise PreconditionError("Cannot train on an empty reference set.")
        with log_operation(LOGGER, "kde_train") as op_log:
            tree = KDTree(reference, leaf_size=self._leaf_size, backend=self._backend)
            self._install(OwnedTree(tree))
            op_log.add_metadata(
                references=tree.num_points,
                dimension=tree.dimension,
                nodes=tree.num_nodes,
                owned=True,
            )
        return self

    def train_tree(self, tree: SpaceTree) -> "KDE":
        """Adopt a caller-owned tree by reference; it must outlive this KDE."""

        if not _is_space_tree(tree):
            raise PreconditionError(
                "train_tree() requires a built spatial tree exposing root and dataset."
            )
        if np.asarray(tree.dataset).shape[0] == 0:
            raise PreconditionError("Cannot train on an empty reference tree.")
        self._install(BorrowedTree(tree))
        LOGGER.debug("Adopted borrowed reference tree with %d points", tree.num_points)
        return self

    def _install(self, handle: TreeHandle) -> None:
        self._release_reference_tree()
        self._handle = handle

    def _release_reference_tree(self) -> None:
        handle = self._handle
        self._handle = None
        if isinstance(handle, OwnedTree):
            LOGGER.debug("Released owned reference tree (%d points)", handle.tree.num_points)

    def release(self) -> None:
        """Drop the reference tree (only an owned one is discarded) and untrain."""

        self._release_reference_tree()
        self._last_evaluation = None

    def __enter__(self) -> "KDE":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()

    def __copy__(self) -> "KDE":
        clone = self.__class__.__new__(self.__class__)
        clone.__dict__.update(self.__dict__)
        if self._handle is not None:
            clone._handle = self._handle.duplicate()
        return clone

    def __deepcopy__(self, memo: dict) -> "KDE":
        clone = self.__copy__()
        memo[id(self)] = clone
        return clone

    def copy(self) -> "KDE":
        return self.__copy__()

    # -------------------------------------------------------------- evaluation

    @property
    def last_evaluation(self) -> EvaluationStats | None:
        return self._last_evaluation

    @property
    def base_cases(self) -> int:
        return 0 if self._last_evaluation is None else self._last_evaluation.base_cases

    @property
    def scores(self) -> int:
        return 0 if self._last_evaluation is None else self._last_evaluation.scores

    @property
    def prunes(self) -> int:
        return 0 if self._last_evaluation is None else self._last_evaluation.prunes

    def _require_reference(self) -> SpaceTree:
        if self._handle is None:
            raise PreconditionError("KDE must be trained before calling evaluate().")
        return self._handle.tree

    def _coerce_queries(self, query_set: Any, dimension: int) -> np.ndarray:
        queries = self._backend.asarray(query_set, dtype=self._backend.default_float)
        if queries.ndim == 1:
            queries = queries[:, None] if dimension == 1 else queries[None, :]
        if queries.ndim != 2:
            raise ValueError("Query set must be a 2-D array of shape (n_points, dimension).")
        if queries.shape[0] and queries.shape[1] != dimension:
            raise ValueError(
                f"Query dimension {queries.shape[1]} does not match reference dimension "
                f"{dimension}."
            )
        return queries

    def evaluate(self, query_set: Any) -> np.ndarray:
        """Estimate densities at ``query_set`` (returned in the caller's order)."""

        reference_tree = self._require_reference()
        dimension = int(np.asarray(reference_tree.dataset).shape[1])
        queries = self._coerce_queries(query_set, dimension)
        with log_operation(LOGGER, "kde_evaluate") as op_log:
            if queries.shape[0] == 0:
                op_log.add_metadata(queries=0)
                return np.zeros(0, dtype=self._backend.default_float)
            # The query tree lives only for this call.
            query_tree = KDTree(queries, leaf_size=self._leaf_size, backend=self._backend)
            return self._run(reference_tree, query_tree, query_tree.old_from_new, op_log)

    def evaluate_tree(
        self,
        query_tree: SpaceTree,
        old_from_new: Any = None,
    ) -> np.ndarray:
        """Estimate densities for a caller-built query tree.

        ``old_from_new`` maps tree positions back to the caller's order. It
        defaults to the tree's own mapping, or to the identity when the tree
        keeps its points in input order. The tree is left untouched.
        """

        reference_tree = self._require_reference()
        if not _is_space_tree(query_tree):
            raise PreconditionError("evaluate_tree() requires a built query tree.")
        if old_from_new is None:
            mapping = _tree_mapping(query_tree)
        else:
            mapping = np.asarray(old_from_new, dtype=np.int64)
        num_queries = int(np.asarray(query_tree.dataset).shape[0])
        if mapping.shape != (num_queries,):
            raise ValueError("old_from_new must have one entry per query point.")
        if np.asarray(query_tree.dataset).shape[1] != np.asarray(reference_tree.dataset).shape[1]:
            raise ValueError("Query tree dimension does not match the reference tree.")
        with log_operation(LOGGER, "kde_evaluate") as op_log:
            return self._run(reference_tree, query_tree, mapping, op_log)

    def _run(
        self,
        reference_tree: SpaceTree,
        query_tree: SpaceTree,
        old_from_new: np.ndarray,
        op_log: OperationLog,
    ) -> np.ndarray:
        dtype = np.result_type(
            np.asarray(reference_tree.dataset).dtype, np.asarray(query_tree.dataset).dtype
        )
        reference_set = np.asarray(reference_tree.dataset, dtype=dtype)
        query_set = np.asarray(query_tree.dataset, dtype=dtype)
        densities = self._backend.zeros(query_set.shape[0]).astype(dtype, copy=False)
        rules = KDERules(
            reference_set,
            query_set,
            densities,
            rel_error=self._rel_error,
            abs_error=self._abs_error,
            old_from_new_queries=old_from_new,
            metric=self._metric,
            kernel=self._kernel,
            use_numba=self._config.enable_numba,
        )
        runner = select_traversal_strategy(self._traversal)

        start = time.perf_counter()
        context = runner(rules, query_tree, reference_tree)
        traversal_ms = (time.perf_counter() - start) * 1e3

        num_references = int(reference_set.shape[0])
        densities /= num_references
        max_error = float(np.max(rules.error_bound)) / num_references if rules.error_bound.size else 0.0

        self._last_evaluation = EvaluationStats(
            traversal=self._traversal,
            kernel=getattr(self._kernel, "name", type(self._kernel).__name__),
            metric=self._metric.name,
            bandwidth=self.bandwidth,
            rel_error=self._rel_error,
            abs_error=self._abs_error,
            num_queries=int(query_set.shape[0]),
            num_references=num_references,
            base_cases=rules.base_cases,
            scores=rules.scores,
            prunes=rules.prunes,
            max_error_bound=max_error,
            traversal_ms=traversal_ms,
            leaf_pairs=context.num_leaf_pairs,
            max_depth=context.max_depth,
        )
        op_log.add_metadata(
            traversal=self._traversal,
            queries=int(query_set.shape[0]),
            references=num_references,
            base_cases=rules.base_cases,
            scores=rules.scores,
            prunes=rules.prunes,
        )
        return densities


__all__ = ["KDE", "OwnedTree", "BorrowedTree", "TreeHandle"]
