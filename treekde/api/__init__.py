"""Public facades: the KDE estimator and its runtime configuration."""

from .kde import KDE, BorrowedTree, OwnedTree, TreeHandle
from .runtime import Runtime

__all__ = ["KDE", "OwnedTree", "BorrowedTree", "TreeHandle", "Runtime"]
