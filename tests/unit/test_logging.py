from __future__ import annotations

import logging
from collections.abc import Iterator
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from rig.config import ConfigError, LoggingConfig
from rig.logging import ConsoleFormatter, configure_logging, level_from_string


@pytest.fixture()
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_configure_logging_installs_file_handler(
    tmp_path: Path, restore_root_logger: None
) -> None:
    log_file = tmp_path / "logs" / "rig.log"

    configure_logging(LoggingConfig(level="debug", file=log_file))
    logging.getLogger("rig.test").debug("written to file")

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    file_handlers = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
    assert len(file_handlers) == 1
    file_handlers[0].flush()
    assert "written to file" in log_file.read_text(encoding="utf-8")


def test_level_override_wins(restore_root_logger: None) -> None:
    configure_logging(LoggingConfig(level="debug"), "error")

    assert logging.getLogger().level == logging.ERROR


def test_unknown_level_is_a_config_error() -> None:
    with pytest.raises(ConfigError):
        level_from_string("loud")


def test_level_names_are_case_insensitive() -> None:
    assert level_from_string(" Warn ") == logging.WARNING


def test_console_formatter_tags_loader_component() -> None:
    record = logging.LogRecord("rig.graph", logging.WARNING, __file__, 1, "careful", None, None)

    assert ConsoleFormatter(use_color=False).format(record) == "! [graph] careful"
    assert ConsoleFormatter(use_color=True).format(record).startswith("\x1b[33m!")


def test_console_formatter_keeps_foreign_logger_names() -> None:
    record = logging.LogRecord("asyncio", logging.CRITICAL, __file__, 1, "stopped", None, None)

    assert ConsoleFormatter(use_color=False).format(record) == "X [asyncio] stopped"
