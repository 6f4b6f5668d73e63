"""Exception taxonomy shared by the KDE facade, rules and collaborators."""

from __future__ import annotations


class TreeKDEError(Exception):
    """Base class for all treekde errors."""


class ConfigurationError(TreeKDEError, ValueError):
    """Invalid tolerance, bandwidth or component name; raised where it is set."""


class PreconditionError(TreeKDEError, RuntimeError):
    """An operation was invoked on an object that is not ready for it."""


class GeometricInconsistencyError(TreeKDEError, RuntimeError):
    """A bound computation returned a lower bound above its upper bound."""


__all__ = [
    "TreeKDEError",
    "ConfigurationError",
    "PreconditionError",
    "GeometricInconsistencyError",
]
