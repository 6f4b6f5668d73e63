from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from treekde.errors import ConfigurationError

_SUPPORTED_PRECISION = {"float32", "float64"}
_DEFAULT_TRAVERSAL = "depth_first"
_DEFAULT_LEAF_SIZE = 20
_DEFAULT_KERNEL = "gaussian"
_DEFAULT_METRIC = "euclidean"


def _bool_from_env(value: str | None, *, default: bool) -> bool:
    if value is None:
        return default
    value = value.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_optional_int(raw: str | None) -> int | None:
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid integer value '{raw}'") from exc


def _normalise_precision(value: str | None) -> str:
    if value is None:
        return "float64"
    value = value.strip().lower()
    if value not in _SUPPORTED_PRECISION:
        raise ConfigurationError(
            f"Unsupported precision '{value}'. Expected one of {_SUPPORTED_PRECISION}."
        )
    return value


def _normalise_traversal(value: str | None) -> str:
    if value is None or value.strip() == "":
        return _DEFAULT_TRAVERSAL
    # lazy import to avoid cycles
    from treekde.algo.registry import (
        normalise_strategy_name,
        registered_traversal_strategies,
    )

    mode = normalise_strategy_name(value)
    modes = registered_traversal_strategies()
    if mode not in modes:
        raise ConfigurationError(
            f"Unsupported traversal mode '{mode}'. Expected one of {modes}."
        )
    return mode


def _parse_leaf_size(raw: str | None) -> int:
    value = _parse_optional_int(raw)
    if value is None:
        return _DEFAULT_LEAF_SIZE
    if value <= 0:
        raise ConfigurationError("TREEKDE_LEAF_SIZE must be a positive integer")
    return value


@dataclass(frozen=True)
class RuntimeConfig:
    precision: str = "float64"
    enable_numba: bool = False
    enable_diagnostics: bool = True
    log_level: str = "INFO"
    traversal: str = _DEFAULT_TRAVERSAL
    leaf_size: int = _DEFAULT_LEAF_SIZE
    kernel: str = _DEFAULT_KERNEL
    metric: str = _DEFAULT_METRIC

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        precision = _normalise_precision(os.getenv("TREEKDE_PRECISION"))
        enable_numba = _bool_from_env(os.getenv("TREEKDE_ENABLE_NUMBA"), default=False)
        enable_diagnostics = _bool_from_env(
            os.getenv("TREEKDE_ENABLE_DIAGNOSTICS"), default=True
        )
        log_level = os.getenv("TREEKDE_LOG_LEVEL", "INFO").strip().upper() or "INFO"
        traversal = _normalise_traversal(os.getenv("TREEKDE_TRAVERSAL"))
        leaf_size = _parse_leaf_size(os.getenv("TREEKDE_LEAF_SIZE"))
        kernel = os.getenv("TREEKDE_KERNEL", _DEFAULT_KERNEL).strip().lower() or _DEFAULT_KERNEL
        metric = os.getenv("TREEKDE_METRIC", _DEFAULT_METRIC).strip().lower() or _DEFAULT_METRIC
        return cls(
            precision=precision,
            enable_numba=enable_numba,
            enable_diagnostics=enable_diagnostics,
            log_level=log_level,
            traversal=traversal,
            leaf_size=leaf_size,
            kernel=kernel,
            metric=metric,
        )


def _configure_logging(level: str) -> None:
    logger = logging.getLogger("treekde")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(level)
        formatter = logging.Formatter("%(levelname)s %(name)s: %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)


@dataclass
class RuntimeContext:
    """Aggregate runtime configuration and lazily-resolved backend state."""

    config: RuntimeConfig
    _backend: Any = field(default=None, init=False, repr=False)
    _activated: bool = field(default=False, init=False, repr=False)

    def activate(self) -> "RuntimeContext":
        """Apply side effects (logging) once."""

        if not self._activated:
            _configure_logging(self.config.log_level)
            self._activated = True
        return self

    def get_backend(self) -> "TreeBackend":
        """Return the active backend, instantiating it lazily."""

        if self._backend is None:
            from treekde.core.backend import TreeBackend  # lazy import to avoid cycles

            self._backend = TreeBackend.numpy(precision=self.config.precision)
        return self._backend


_CONTEXT_CACHE: Optional[RuntimeContext] = None


def runtime_context() -> RuntimeContext:
    """Return the cached runtime context, constructing it if necessary."""

    global _CONTEXT_CACHE
    if _CONTEXT_CACHE is None:
        context = RuntimeContext(config=RuntimeConfig.from_env())
        context.activate()
        _CONTEXT_CACHE = context
    return _CONTEXT_CACHE


def current_runtime_context() -> RuntimeContext | None:
    return _CONTEXT_CACHE


def runtime_config() -> RuntimeConfig:
    """Accessor for the active runtime configuration."""

    return runtime_context().config


def configure_runtime(config: RuntimeConfig) -> RuntimeContext:
    """Force the active runtime context to use ``config`` instead of env defaults."""

    global _CONTEXT_CACHE
    context = RuntimeContext(config=config)
    context.activate()
    _CONTEXT_CACHE = context
    return context


def reset_runtime_context() -> None:
    """Clear the cached runtime context (used in tests)."""

    global _CONTEXT_CACHE
    _CONTEXT_CACHE = None


def reset_runtime_config_cache() -> None:
    reset_runtime_context()


def describe_runtime() -> Dict[str, Any]:
    """Return a serialisable view of the active runtime configuration."""

    config = runtime_config()
    return {
        "precision": config.precision,
        "enable_numba": config.enable_numba,
        "enable_diagnostics": config.enable_diagnostics,
        "log_level": config.log_level,
        "traversal": config.traversal,
        "leaf_size": config.leaf_size,
        "kernel": config.kernel,
        "metric": config.metric,
    }


__all__ = [
    "RuntimeConfig",
    "RuntimeContext",
    "runtime_context",
    "current_runtime_context",
    "runtime_config",
    "configure_runtime",
    "reset_runtime_context",
    "reset_runtime_config_cache",
    "describe_runtime",
]
