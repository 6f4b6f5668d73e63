import logging

import numpy as np
import pytest

from treekde import KDE
from treekde import config as tk_config
from treekde.diagnostics import OperationLog, log_operation
from treekde.logging import get_logger


def _messages(caplog: pytest.LogCaptureFixture, op: str):
    return [record.message for record in caplog.records if f"op={op}" in record.message]


def test_kde_evaluate_emits_resource_log(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="treekde.api.kde")
    rng = np.random.default_rng(0)
    kde = KDE(bandwidth=0.5).train(rng.normal(size=(50, 2)))

    kde.evaluate(rng.normal(size=(10, 2)))

    assert _messages(caplog, "kde_train"), "expected kde_train operation log"
    messages = _messages(caplog, "kde_evaluate")
    assert messages, "expected kde_evaluate operation log"
    message = messages[-1]
    assert "wall_ms=" in message
    assert "cpu_user_ms=" in message
    assert "rss_delta=" in message
    assert "queries=10" in message
    assert "references=50" in message
    assert "base_cases=" in message


def test_resource_fields_na_when_diagnostics_disabled(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setenv("TREEKDE_ENABLE_DIAGNOSTICS", "0")
    tk_config.reset_runtime_config_cache()
    caplog.set_level(logging.INFO, logger="treekde.api.kde")

    kde = KDE().train(np.zeros((5, 2)))
    kde.evaluate(np.ones((2, 2)))

    message = _messages(caplog, "kde_evaluate")[-1]
    assert "cpu_user_ms=NA" in message
    assert "rss_delta=NA" in message
    assert "wall_ms=NA" not in message


def test_log_operation_skips_logging_on_error(caplog: pytest.LogCaptureFixture) -> None:
    logger = get_logger("tests.diagnostics")
    caplog.set_level(logging.INFO, logger=logger.name)

    with pytest.raises(RuntimeError):
        with log_operation(logger, "failing"):
            raise RuntimeError("boom")

    assert not _messages(caplog, "failing")


def test_operation_log_render_orders_fields() -> None:
    record = OperationLog(op="demo")
    record.add_metadata(points=3, ratio=0.125)
    assert record.render() == "op=demo wall_ms=NA cpu_user_ms=NA rss_delta=NA points=3 ratio=0.125"


def test_get_logger_namespaces_under_package() -> None:
    assert get_logger().name == "treekde"
    assert get_logger("algo").name == "treekde.algo"
    assert get_logger("treekde.api").name == "treekde.api"


def test_rss_reader_logs_statm_fallback(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    from treekde import diagnostics

    def _missing(*args, **kwargs):
        raise FileNotFoundError("/proc/self/statm")

    monkeypatch.setattr(diagnostics, "open", _missing, raising=False)
    caplog.set_level(logging.DEBUG, logger="treekde.diagnostics")

    rss = diagnostics._read_rss_bytes()

    assert rss is None or rss > 0
    assert any("falling back to getrusage" in record.message for record in caplog.records)
