import logging

import pytest

from treekde import config as tk_config

_ENV_KEYS = (
    "TREEKDE_PRECISION",
    "TREEKDE_ENABLE_NUMBA",
    "TREEKDE_ENABLE_DIAGNOSTICS",
    "TREEKDE_LOG_LEVEL",
    "TREEKDE_TRAVERSAL",
    "TREEKDE_LEAF_SIZE",
    "TREEKDE_KERNEL",
    "TREEKDE_METRIC",
)


@pytest.fixture(autouse=True)
def _isolated_runtime(monkeypatch: pytest.MonkeyPatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    package_logger = logging.getLogger("treekde")
    level = package_logger.level
    tk_config.reset_runtime_config_cache()
    yield
    tk_config.reset_runtime_config_cache()
    package_logger.setLevel(level)
