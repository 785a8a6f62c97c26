"""
Tests for structured JSON logging.
"""

import json
import logging

from graphmail.config import get_graph_mail_config
from graphmail.shared.logging import (
    StructuredFormatter,
    correlation_id_var,
    get_logger,
    setup_logging,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("graphmail.test", logging.INFO, __file__, 1, "Mail accepted", (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_includes_extra_fields(self) -> None:
        output = json.loads(StructuredFormatter().format(_record(sender="a@x.com", status_code=202)))

        assert output["message"] == "Mail accepted"
        assert output["level"] == "INFO"
        assert output["logger"] == "graphmail.test"
        assert output["sender"] == "a@x.com"
        assert output["status_code"] == 202

    def test_correlation_id(self) -> None:
        token = correlation_id_var.set("corr-1")
        try:
            output = json.loads(StructuredFormatter().format(_record()))
        finally:
            correlation_id_var.reset(token)

        assert output["correlation_id"] == "corr-1"

    def test_extra_cannot_override_base_keys(self) -> None:
        record = _record()
        record.__dict__["level"] = "custom"

        output = json.loads(StructuredFormatter().format(record))

        assert output["level"] == "INFO"
        assert output["extra_level"] == "custom"


def test_get_logger_adds_single_handler() -> None:
    logger = get_logger("graphmail.test.handlers")
    get_logger("graphmail.test.handlers")

    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, StructuredFormatter)


def test_setup_logging_configures_root(monkeypatch) -> None:
    monkeypatch.setenv("GRAPH_MAIL_LOG_LEVEL", "DEBUG")
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging()

        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)


def test_get_logger_level_comes_from_config(monkeypatch) -> None:
    monkeypatch.setenv("GRAPH_MAIL_LOG_LEVEL", "warning")

    logger = get_logger("graphmail.test.level")

    assert logger.level == logging.WARNING
    assert logger.propagate is False


def test_setup_logging_relevels_package_loggers(monkeypatch) -> None:
    monkeypatch.setenv("GRAPH_MAIL_LOG_LEVEL", "ERROR")
    logger = get_logger("graphmail.test.relevel")
    assert logger.level == logging.ERROR

    monkeypatch.setenv("GRAPH_MAIL_LOG_LEVEL", "DEBUG")
    get_graph_mail_config.cache_clear()
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging()

        assert logger.level == logging.DEBUG
        assert logger.isEnabledFor(logging.DEBUG)
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)
