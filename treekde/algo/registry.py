from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from treekde.core.tree import SpaceTree
from treekde.errors import ConfigurationError
from treekde.logging import get_logger
from .traverse import (
    BreadthFirstDualTreeTraverser,
    DualTreeTraverser,
    SingleTreeTraverser,
    TraversalContext,
    TraversalRules,
)

LOGGER = get_logger("algo.traverse.registry")

TraversalRunner = Callable[[TraversalRules, SpaceTree, SpaceTree], TraversalContext]


@dataclass(frozen=True)
class _TraversalStrategySpec:
    name: str
    runner: TraversalRunner
    description: str


_TRAVERSAL_REGISTRY: Dict[str, _TraversalStrategySpec] = {}


def normalise_strategy_name(name: str) -> str:
    return name.strip().lower().replace("-", "_")


def register_traversal_strategy(
    name: str,
    *,
    runner: TraversalRunner,
    description: str = "",
) -> None:
    """Register or replace a traversal strategy under ``name``."""

    key = normalise_strategy_name(name)
    _TRAVERSAL_REGISTRY[key] = _TraversalStrategySpec(
        name=key, runner=runner, description=description
    )
    LOGGER.debug("Registered traversal strategy: %s", key)


def registered_traversal_strategies() -> Tuple[str, ...]:
    return tuple(sorted(_TRAVERSAL_REGISTRY))


def select_traversal_strategy(name: str) -> TraversalRunner:
    spec = _TRAVERSAL_REGISTRY.get(normalise_strategy_name(name))
    if spec is None:
        raise ConfigurationError(
            f"Unknown traversal mode '{name}'. Expected one of "
            f"{registered_traversal_strategies()}."
        )
    return spec.runner


def _run_depth_first(
    rules: TraversalRules, query_tree: SpaceTree, reference_tree: SpaceTree
) -> TraversalContext:
    return DualTreeTraverser(rules).traverse(query_tree.root, reference_tree.root)


def _run_breadth_first(
    rules: TraversalRules, query_tree: SpaceTree, reference_tree: SpaceTree
) -> TraversalContext:
    return BreadthFirstDualTreeTraverser(rules).traverse(query_tree.root, reference_tree.root)


def _run_single_tree(
    rules: TraversalRules, query_tree: SpaceTree, reference_tree: SpaceTree
) -> TraversalContext:
    traverser = SingleTreeTraverser(rules)
    for query_index in range(query_tree.num_points):
        traverser.traverse(query_index, reference_tree.root)
    return traverser.context


register_traversal_strategy(
    "depth_first",
    runner=_run_depth_first,
    description="Dual-tree recursion, closest reference child first.",
)
register_traversal_strategy(
    "breadth_first",
    runner=_run_breadth_first,
    description="Dual-tree traversal over a FIFO queue of node pairs.",
)
register_traversal_strategy(
    "single_tree",
    runner=_run_single_tree,
    description="One reference-tree descent per query point.",
)


__all__ = [
    "normalise_strategy_name",
    "register_traversal_strategy",
    "registered_traversal_strategies",
    "select_traversal_strategy",
]
