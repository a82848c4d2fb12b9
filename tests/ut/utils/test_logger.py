"""日志配置单元测试"""

from __future__ import annotations

import json
import logging
import sys

import pytest

from gitan.utils.logger import JSONFormatter, reset_logging, setup_logging


@pytest.fixture(autouse=True)
def _restore_root():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    reset_logging()
    for h in saved_handlers:
        root.addHandler(h)
    root.setLevel(saved_level)


def _record(msg: str, exc_info=None) -> logging.LogRecord:
    return logging.LogRecord("gitan.core.repo", logging.WARNING, __file__, 1, msg, (), exc_info)


class TestJSONFormatter:
    def test_fields(self) -> None:
        entry = json.loads(JSONFormatter().format(_record("仓库 %s")))
        assert entry.keys() == {"ts", "level", "logger", "msg", "pid", "thread"}
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "gitan.core.repo"
        assert entry["msg"] == "仓库 %s"

    def test_exception(self) -> None:
        try:
            raise ValueError("坏对象")
        except ValueError:
            record = _record("失败", exc_info=sys.exc_info())
        entry = json.loads(JSONFormatter().format(record))
        assert "ValueError: 坏对象" in entry["exc"]


class TestSetupLogging:
    def test_repeated_setup_keeps_one_handler(self) -> None:
        setup_logging("DEBUG")
        setup_logging("WARNING", json_output=True)
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert root.level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self) -> None:
        setup_logging("chatty")
        assert logging.getLogger().level == logging.INFO
