"""Unit tests for ledger_sync/core/logging_utils.py"""

import json
import logging

import pytest

from ledger_sync.core.logging_utils import JsonFormatter, PrettyFormatter, setup_logging


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord("ledger_sync.test", logging.INFO, __file__, 1, "sync %s", ("done",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_structured_fields() -> None:
    line = JsonFormatter().format(_record(synced=2, failed=0, pending_id="abc"))
    payload = json.loads(line)
    assert payload["message"] == "sync done"
    assert payload["level"] == "INFO"
    assert payload["synced"] == 2
    assert payload["failed"] == 0
    assert payload["pending_id"] == "abc"
    assert "status" not in payload


def test_pretty_formatter_appends_context() -> None:
    line = PrettyFormatter().format(_record(action="getParams", status=200))
    assert "sync done" in line
    assert "[action=getParams status=200]" in line


@pytest.mark.parametrize("fmt, formatter", [("json", JsonFormatter), ("pretty", PrettyFormatter)])
def test_setup_logging_format_from_env(
    monkeypatch: pytest.MonkeyPatch, fmt: str, formatter: type
) -> None:
    monkeypatch.setenv("LOG_FORMAT", fmt)
    logger = setup_logging("DEBUG")
    try:
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, formatter)
    finally:
        logger.handlers.clear()
        logger.propagate = True
