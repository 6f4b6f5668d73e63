#!/usr/bin/env python
"""Quick-start guide for treekde.

Run with: python -m treekde

Only the guide text is printed; no treekde internals are imported.
"""

from __future__ import annotations

QUICKSTART = """\
================================================================================
                                  TREEKDE
        Error-bounded kernel density estimation with dual-tree traversal
================================================================================

INSTALLATION
------------
    pip install treekde            # numpy only
    pip install "treekde[numba]"   # njit leaf-block kernels

BASIC USAGE
-----------
    import numpy as np
    from treekde import KDE

    reference = np.random.randn(10000, 3)
    queries = np.random.randn(500, 3)

    kde = KDE(bandwidth=0.5, rel_error=0.05, abs_error=0.0)
    kde.train(reference)                 # builds and owns a kd-tree
    densities = kde.evaluate(queries)    # one value per query, input order

    kde.last_evaluation.to_dict()        # base cases, prunes, error bound

TOLERANCES
----------
    Each estimate is within abs_error + rel_error * exact of the exact mean
    kernel value. rel_error lies in [0, 1], abs_error >= 0; zero for both
    gives exact results. Positive values for both are summed.

BORROWED TREES
--------------
    from treekde import KDTree

    tree = KDTree(reference, leaf_size=32)
    kde = KDE(bandwidth=0.5).train(tree)   # tree stays owned by the caller

    query_tree = KDTree(queries, leaf_size=32)
    densities = kde.evaluate_tree(query_tree)

RUNTIME
-------
    from treekde import Runtime

    Runtime(traversal="breadth_first", kernel="epanechnikov").activate()

    Environment variables: TREEKDE_PRECISION, TREEKDE_ENABLE_NUMBA,
    TREEKDE_ENABLE_DIAGNOSTICS, TREEKDE_LOG_LEVEL, TREEKDE_TRAVERSAL,
    TREEKDE_LEAF_SIZE, TREEKDE_KERNEL, TREEKDE_METRIC.

    Traversals: depth_first, breadth_first, single_tree
    Kernels:    gaussian, epanechnikov, laplacian, spherical, triangular
    Metrics:    euclidean, manhattan, chebyshev

================================================================================
"""


def main() -> None:
    """Print quick-start guide."""
    print(QUICKSTART)


if __name__ == "__main__":
    main()
