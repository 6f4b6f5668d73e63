"""Collaborators of the KDE core: backend dtypes, metrics, kernels and trees."""

from .backend import TreeBackend, get_runtime_backend
from .kernels import (
    EpanechnikovKernel,
    GaussianKernel,
    Kernel,
    LaplacianKernel,
    RadialKernel,
    SphericalKernel,
    TriangularKernel,
    available_kernels,
    get_kernel,
)
from .metrics import Metric, MetricRegistry, available_metrics, get_metric, register_metric
from .tree import HRectBound, KDNode, KDTree, SpaceTree, TreeNode

__all__ = [
    "TreeBackend",
    "get_runtime_backend",
    "Kernel",
    "RadialKernel",
    "GaussianKernel",
    "EpanechnikovKernel",
    "LaplacianKernel",
    "SphericalKernel",
    "TriangularKernel",
    "available_kernels",
    "get_kernel",
    "Metric",
    "MetricRegistry",
    "available_metrics",
    "get_metric",
    "register_metric",
    "HRectBound",
    "KDNode",
    "KDTree",
    "SpaceTree",
    "TreeNode",
]
