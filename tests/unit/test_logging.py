# tests/unit/test_logging.py
from __future__ import annotations

import json
import logging
import sys

import pytest
import structlog

from prodtrack.core.logging import setup_logging


@pytest.fixture()
def restore_root():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


def _record(msg: str, *args, exc_info=None) -> logging.LogRecord:
    return logging.LogRecord("prodtrack.test", logging.WARNING, __file__, 1, msg, args, exc_info)


def test_json_mode_renders_one_object_per_line(restore_root):
    setup_logging("INFO", json=True)
    handlers = restore_root.handlers
    assert len(handlers) == 1
    fmt = handlers[0].formatter
    assert isinstance(fmt, structlog.stdlib.ProcessorFormatter)

    line = fmt.format(_record("bundle %s moved %d", "b1", 3))
    assert "\n" not in line
    out = json.loads(line)
    assert out["event"] == "bundle b1 moved 3"
    assert out["logger"] == "prodtrack.test"
    assert out["level"] == "warning"
    assert "ts" in out


def test_json_mode_carries_exception_text(restore_root):
    setup_logging("INFO", json=True)
    fmt = restore_root.handlers[0].formatter
    try:
        raise RuntimeError("wip store down")
    except RuntimeError:
        rec = _record("read failed", exc_info=sys.exc_info())
    out = json.loads(fmt.format(rec))
    assert "RuntimeError: wip store down" in out["exception"]


def test_plain_mode_and_sql_logger_level(restore_root):
    setup_logging("debug")
    fmt = restore_root.handlers[0].formatter
    assert not isinstance(fmt, structlog.stdlib.ProcessorFormatter)
    assert restore_root.level == logging.DEBUG
    assert logging.getLogger("sqlalchemy.engine").level == logging.INFO

    setup_logging("INFO")
    assert len(restore_root.handlers) == 1
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
