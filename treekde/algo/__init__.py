"""Traversal engines and the KDE pruning rules they drive."""

from .registry import (
    register_traversal_strategy,
    registered_traversal_strategies,
    select_traversal_strategy,
)
from .rules import PRUNE, KDERules, TraversalInfo
from .traverse import (
    BreadthFirstDualTreeTraverser,
    DualTreeTraverser,
    SingleTreeTraverser,
    TraversalContext,
    TraversalRules,
)

__all__ = [
    "PRUNE",
    "KDERules",
    "TraversalInfo",
    "TraversalRules",
    "TraversalContext",
    "DualTreeTraverser",
    "BreadthFirstDualTreeTraverser",
    "SingleTreeTraverser",
    "register_traversal_strategy",
    "registered_traversal_strategies",
    "select_traversal_strategy",
]
