from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict

from treekde import config as tk_config

_ATTR_TO_FIELD = {
    "precision": "precision",
    "enable_numba": "enable_numba",
    "diagnostics": "enable_diagnostics",
    "log_level": "log_level",
    "traversal": "traversal",
    "leaf_size": "leaf_size",
    "kernel": "kernel",
    "metric": "metric",
}


def _active_runtime_config() -> tk_config.RuntimeConfig:
    active = tk_config.current_runtime_context()
    if active is not None:
        return active.config
    return tk_config.RuntimeConfig.from_env()


@dataclass(frozen=True)
class Runtime:
    """Declarative runtime configuration that can activate a treekde context.

    Unset fields fall back to the active context (or the environment).
    """

    precision: str | None = None
    enable_numba: bool | None = None
    diagnostics: bool | None = None
    log_level: str | None = None
    traversal: str | None = None
    leaf_size: int | None = None
    kernel: str | None = None
    metric: str | None = None

    def to_config(self, base: tk_config.RuntimeConfig | None = None) -> tk_config.RuntimeConfig:
        base_config = base or _active_runtime_config()
        updates: Dict[str, Any] = {}
        for attr, field_name in _ATTR_TO_FIELD.items():
            value = getattr(self, attr)
            if value is not None:
                updates[field_name] = value
        if "precision" in updates:
            updates["precision"] = tk_config._normalise_precision(updates["precision"])
        if "traversal" in updates:
            updates["traversal"] = tk_config._normalise_traversal(updates["traversal"])
        if "log_level" in updates:
            updates["log_level"] = str(updates["log_level"]).upper()
        if not updates:
            return base_config
        return replace(base_config, **updates)

    def activate(self) -> tk_config.RuntimeContext:
        """Install this runtime as the active global context and return it."""

        return tk_config.configure_runtime(self.to_config())

    def describe(self) -> Dict[str, Any]:
        config = self.to_config()
        return {
            "precision": config.precision,
            "enable_numba": config.enable_numba,
            "enable_diagnostics": config.enable_diagnostics,
            "traversal": config.traversal,
            "leaf_size": config.leaf_size,
            "kernel": config.kernel,
            "metric": config.metric,
        }

    def with_updates(self, **kwargs: Any) -> "Runtime":
        return replace(self, **kwargs)

    @classmethod
    def from_config(cls, config: tk_config.RuntimeConfig) -> "Runtime":
        return cls(
            precision=config.precision,
            enable_numba=config.enable_numba,
            diagnostics=config.enable_diagnostics,
            log_level=config.log_level,
            traversal=config.traversal,
            leaf_size=config.leaf_size,
            kernel=config.kernel,
            metric=config.metric,
        )

    @classmethod
    def from_active(cls) -> "Runtime":
        return cls.from_config(_active_runtime_config())


__all__ = ["Runtime"]
