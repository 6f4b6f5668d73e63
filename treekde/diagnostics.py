from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

try:  # pragma: no cover - unavailable on Windows
    import resource
except ImportError:  # pragma: no cover
    resource = None  # type: ignore

from treekde import config as tk_config
from treekde.logging import get_logger

LOGGER = get_logger("diagnostics")


@dataclass(frozen=True)
class _ResourceSnapshot:
    wall: float
    cpu_user: Optional[float]
    rss_bytes: Optional[int]


def _read_statm_rss_bytes() -> int | None:
    try:
        with open("/proc/self/statm", "r", encoding="utf-8") as handle:
            fields = handle.readline().strip().split()
        if len(fields) < 2:
            return None
        return int(fields[1]) * int(os.sysconf("SC_PAGE_SIZE"))
    except (OSError, ValueError, AttributeError) as exc:
        LOGGER.debug("/proc/self/statm unavailable (%s); falling back to getrusage", exc)
        return None


def _read_rss_bytes() -> int | None:
    rss = _read_statm_rss_bytes()
    if rss is not None:
        return rss
    if resource is None:  # pragma: no cover - Windows fallback
        return None
    usage = resource.getrusage(resource.RUSAGE_SELF)
    if getattr(usage, "ru_maxrss", 0):
        return int(usage.ru_maxrss * 1024)
    return None


def _resource_snapshot(with_resources: bool) -> _ResourceSnapshot:
    wall = time.perf_counter()
    if not with_resources or resource is None:
        return _ResourceSnapshot(wall=wall, cpu_user=None, rss_bytes=None)
    usage = resource.getrusage(resource.RUSAGE_SELF)
    return _ResourceSnapshot(
        wall=wall,
        cpu_user=float(usage.ru_utime),
        rss_bytes=_read_rss_bytes(),
    )


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.6g}"
    return str(value)


@dataclass
class OperationLog:
    """Mutable record collected while an operation runs."""

    op: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    wall_ms: float | None = None
    cpu_user_ms: float | None = None
    rss_delta: int | None = None

    def add_metadata(self, **values: Any) -> None:
        self.metadata.update(values)

    def render(self) -> str:
        parts = [f"op={self.op}"]
        parts.append(
            f"wall_ms={self.wall_ms:.3f}" if self.wall_ms is not None else "wall_ms=NA"
        )
        parts.append(
            f"cpu_user_ms={self.cpu_user_ms:.3f}"
            if self.cpu_user_ms is not None
            else "cpu_user_ms=NA"
        )
        parts.append(
            f"rss_delta={self.rss_delta}" if self.rss_delta is not None else "rss_delta=NA"
        )
        for key, value in self.metadata.items():
            parts.append(f"{key}={_format_value(value)}")
        return " ".join(parts)


@contextmanager
def log_operation(
    logger: logging.Logger,
    op: str,
    *,
    level: int = logging.INFO,
) -> Iterator[OperationLog]:
    """Measure an operation and emit a single ``op=<name> ...`` log line.

    CPU and RSS deltas are only collected when runtime diagnostics are enabled;
    otherwise they are reported as ``NA``. Nothing is logged if the wrapped
    block raises.
    """

    with_resources = tk_config.runtime_config().enable_diagnostics
    record = OperationLog(op=op)
    start = _resource_snapshot(with_resources)
    yield record
    end = _resource_snapshot(with_resources)
    record.wall_ms = max(0.0, end.wall - start.wall) * 1e3
    if start.cpu_user is not None and end.cpu_user is not None:
        record.cpu_user_ms = max(0.0, end.cpu_user - start.cpu_user) * 1e3
    if start.rss_bytes is not None and end.rss_bytes is not None:
        record.rss_delta = end.rss_bytes - start.rss_bytes
    logger.log(level, record.render())


__all__ = ["OperationLog", "log_operation"]
