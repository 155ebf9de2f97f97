"""Console and file logging setup for the loader CLI."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import ConfigError, LoggingConfig

FILE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
PACKAGE_PREFIX = "rig."

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class ConsoleFormatter(logging.Formatter):
    """Prefixes each line with a level marker and the emitting loader component.

    ``rig.graph`` records render as ``I [graph] message``; records from other
    loggers keep their full name.
    """

    MARKERS: dict[int, tuple[str, str]] = {
        logging.DEBUG: ("D", "\x1b[2m"),
        logging.INFO: ("I", "\x1b[32m"),
        logging.WARNING: ("!", "\x1b[33m"),
        logging.ERROR: ("X", "\x1b[31m"),
    }

    RESET = "\x1b[0m"

    def __init__(self, use_color: bool) -> None:
        super().__init__("%(message)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        marker, color = self.MARKERS.get(min(record.levelno, logging.ERROR), ("?", ""))
        message = f"[{_component(record.name)}] {super().format(record)}"
        if self.use_color and color:
            return f"{color}{marker}{self.RESET} {message}"
        return f"{marker} {message}"


def configure_logging(logging_config: LoggingConfig, level_override: str | None = None) -> None:
    """Install the console handler and, when configured, a rotating log file."""

    level = level_from_string(level_override or logging_config.level)
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(ConsoleFormatter(_is_tty(console.stream)))
    handlers: list[logging.Handler] = [console]

    if logging_config.file is not None:
        handlers.append(_log_file_handler(logging_config.file.expanduser()))

    logging.basicConfig(level=level, handlers=handlers, force=True)


def _log_file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(path, maxBytes=5_000_000, backupCount=5, encoding="utf-8")
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def _component(name: str) -> str:
    if name.startswith(PACKAGE_PREFIX):
        return name[len(PACKAGE_PREFIX):]
    return name


def _is_tty(stream: object) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def level_from_string(level: str) -> int:
    try:
        return LEVELS[level.strip().upper()]
    except KeyError as exc:
        raise ConfigError(f"Unknown log level: {level}") from exc


__all__ = ["ConsoleFormatter", "configure_logging", "level_from_string"]
