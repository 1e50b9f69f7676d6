import json
import logging

import pytest

from smb_metrics.logging_setup import MetricsJsonFormatter, setup_logging


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_text(restore_root_logger) -> None:
    setup_logging("debug", "text")

    root = restore_root_logger
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert not isinstance(root.handlers[0].formatter, MetricsJsonFormatter)


def test_setup_logging_is_idempotent(restore_root_logger) -> None:
    setup_logging()
    setup_logging()

    assert len(restore_root_logger.handlers) == 1


def test_json_formatter_adds_service_fields(restore_root_logger) -> None:
    setup_logging("INFO", "json")
    formatter = restore_root_logger.handlers[0].formatter
    assert isinstance(formatter, MetricsJsonFormatter)

    record = logging.LogRecord(
        name="smb_metrics.store",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Serving cached snapshot for %s",
        args=("kpis",),
        exc_info=None,
    )
    payload = json.loads(formatter.format(record))

    assert payload["message"] == "Serving cached snapshot for kpis"
    assert payload["level"] == "WARNING"
    assert payload["service"] == "smb-metrics"
    assert payload["name"] == "smb_metrics.store"
    assert "timestamp" in payload


def test_json_formatter_uses_current_module(recwarn) -> None:
    """The formatter builds on pythonjsonlogger.json without deprecation noise."""
    from pythonjsonlogger.json import JsonFormatter

    formatter = MetricsJsonFormatter()

    assert isinstance(formatter, JsonFormatter)
    assert not [w for w in recwarn if issubclass(w.category, DeprecationWarning)]
