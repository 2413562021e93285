"""Structured logging configuration using structlog.

Console output goes to stderr so that ``--json`` output on stdout stays
parseable. Nothing may log before :func:`setup_logging` runs: an unconfigured
structlog prints to stdout.
"""

import logging
import sys
from pathlib import Path
from typing import Any, cast

import structlog

LOG_FILE_NAME = "fuel.log"

# Handlers installed by the last setup_logging() call
_fuel_handlers: list[logging.Handler] = []

_SHARED_PROCESSORS: list[Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
]


def _formatter(renderer: Any) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )


def setup_logging(log_level: str = "WARNING", log_dir: Path | None = None) -> None:
    """Configure structured logging with structlog.

    Safe to call more than once per process; each call replaces the handlers
    installed by the previous one.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for the JSON log file (if None, only console logging)
    """
    level = getattr(logging, log_level.upper())

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        _formatter(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    )
    handlers: list[logging.Handler] = [console_handler]

    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_dir / LOG_FILE_NAME))
        file_handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
        handlers.append(file_handler)

    root = logging.getLogger()
    for old in _fuel_handlers:
        root.removeHandler(old)
        old.close()
    _fuel_handlers[:] = handlers
    for handler in handlers:
        handler.setLevel(level)
        root.addHandler(handler)
    root.setLevel(level)

    structlog.configure(
        processors=[*_SHARED_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
