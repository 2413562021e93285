"""Unit tests for logging setup."""

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
from fuel.infrastructure.logger import LOG_FILE_NAME, get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    setup_logging()
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


def _own_handlers() -> list[logging.Handler]:
    return [
        h
        for h in logging.getLogger().handlers
        if type(h) in (logging.StreamHandler, logging.FileHandler)
    ]


class TestSetupLogging:
    def test_repeated_setup_replaces_handlers(self, tmp_path: Path) -> None:
        setup_logging("INFO", tmp_path)
        setup_logging("INFO", tmp_path)

        assert len(_own_handlers()) == 2

    def test_level_applied(self) -> None:
        setup_logging("ERROR")

        assert logging.getLogger().level == logging.ERROR

    def test_console_logs_go_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging("INFO")

        get_logger("fuel.test").info("something_happened", task_id="f-000001")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "something_happened" in captured.err

    def test_file_logs_are_json_lines(self, tmp_path: Path) -> None:
        setup_logging("INFO", tmp_path)

        get_logger("fuel.test").info("task_created", task_id="f-000001")
        for handler in _own_handlers():
            handler.flush()

        lines = (tmp_path / LOG_FILE_NAME).read_text().splitlines()
        event = json.loads(lines[-1])
        assert event["event"] == "task_created"
        assert event["task_id"] == "f-000001"
        assert event["level"] == "info"
