"""Logging for the request limiter.

The package logs through loguru but stays silent until the host opts in:
``request_limiter/__init__.py`` disables the ``request_limiter`` namespace
on import, and ``setup_logging()`` (called by the CLI) turns it back on
together with a console sink. Applications that already configure loguru
can call ``enable_logging()`` instead and keep their own sinks.

Modules that use stdlib ``logging`` are covered too: the package logger
carries a ``NullHandler`` and ``setup_logging()`` routes stdlib records
into loguru with ``InterceptHandler``.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger, Record

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

PACKAGE = "request_limiter"

CONSOLE_FORMAT = (
    "<dim>{time:HH:mm:ss}</dim> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>{extra[run_tag]} - "
    "<level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[name]}:{line} | {extra} | {message}"
)


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru, keeping the original call site."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip frames inside the logging package so loguru reports the caller
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _patch_record(record: Record) -> None:
    """Give every record a ``name`` and a printable run tag."""
    extra = record["extra"]
    extra.setdefault("name", record["name"])
    run = extra.get("run")
    extra["run_tag"] = f" [{run}]" if run else ""


def enable_logging() -> None:
    """Let records from the package reach whatever sinks loguru has."""
    logger.enable(PACKAGE)


def disable_logging() -> None:
    """Silence the package; other loguru users are unaffected."""
    logger.disable(PACKAGE)


def setup_logging(
    level: LogLevel = "WARNING",
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> Logger:
    """Install limiter sinks and enable package logging.

    Replaces every existing loguru sink, so this is for programs that own
    their logging (such as the ``reqlimit`` CLI). Libraries embedding the
    limiter should prefer ``enable_logging()``.

    Args:
        level: Console level when neither flag is given
        verbose: Force DEBUG (wins over ``quiet``)
        quiet: Force WARNING
        log_file: Optional file that receives everything at DEBUG, rotated
        rotation: Rotation trigger for ``log_file`` (e.g. "10 MB", "1 day")
        retention: How long rotated files are kept
        serialize: Write ``log_file`` records as JSON

    Returns:
        The configured loguru logger
    """
    if verbose:
        console_level: LogLevel = "DEBUG"
    elif quiet:
        console_level = "WARNING"
    else:
        console_level = level

    handlers: list[dict[str, Any]] = [
        {"sink": sys.stderr, "level": console_level, "format": CONSOLE_FORMAT, "colorize": True},
    ]
    if log_file:
        handlers.append(
            {
                "sink": log_file,
                "level": "DEBUG",
                "format": FILE_FORMAT,
                "rotation": rotation,
                "retention": retention,
                "compression": "gz",
                "serialize": serialize,
            }
        )

    logger.configure(handlers=handlers, patcher=_patch_record, activation=[(PACKAGE, True)])

    root = logging.getLogger()
    if not any(isinstance(h, InterceptHandler) for h in root.handlers):
        root.addHandler(InterceptHandler())
    root.setLevel(logging.DEBUG if console_level in ("TRACE", "DEBUG") else logging.INFO)

    return logger


def reset_logging() -> None:
    """Drop all sinks and return the package to its silent default."""
    logger.remove()
    disable_logging()
    root = logging.getLogger()
    for handler in [h for h in root.handlers if isinstance(h, InterceptHandler)]:
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)


def get_logger(name: str) -> Logger:
    """Return the loguru logger with ``name`` bound (typically ``__name__``)."""
    return logger.bind(name=name)


def bind_run(run_id: str, name: str = "limiter") -> Logger:
    """Return a logger bound to a limiter run.

    Args:
        run_id: Short identifier of a limiter run
        name: Logger name to bind alongside the run id
    """
    return logger.bind(name=name, run=run_id)
