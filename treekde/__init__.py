"""treekde: error-bounded kernel density estimation with dual-tree traversal.

Quick Start
-----------
>>> import numpy as np
>>> from treekde import KDE
>>>
>>> reference = np.random.randn(10000, 3)
>>> queries = np.random.randn(500, 3)
>>> kde = KDE(bandwidth=0.5, rel_error=0.05).train(reference)
>>> densities = kde.evaluate(queries)

Borrowed trees
--------------
>>> from treekde import KDTree
>>>
>>> tree = KDTree(reference, leaf_size=32)
>>> kde = KDE(bandwidth=0.5).train(tree)  # the caller keeps ownership of ``tree``

Classes
-------
KDE : Kernel density estimator over a kd-tree.
KDTree : Midpoint-split kd-tree with a rearranged dataset.
Runtime : Configuration for precision, traversal, kernel and metric defaults.
"""

from importlib.metadata import version as _pkg_version

try:
    __version__ = _pkg_version("treekde")
except Exception:  # pragma: no cover - best effort during local development
    __version__ = "0.1.0"

from .api import KDE, BorrowedTree, OwnedTree, Runtime
from .baseline import brute_force_density
from .core.kernels import available_kernels, get_kernel
from .core.metrics import available_metrics, get_metric
from .core.tree import KDTree
from .errors import (
    ConfigurationError,
    GeometricInconsistencyError,
    PreconditionError,
    TreeKDEError,
)

__all__ = [
    "__version__",
    "KDE",
    "KDTree",
    "OwnedTree",
    "BorrowedTree",
    "Runtime",
    "brute_force_density",
    "available_kernels",
    "get_kernel",
    "available_metrics",
    "get_metric",
    "TreeKDEError",
    "ConfigurationError",
    "PreconditionError",
    "GeometricInconsistencyError",
]
