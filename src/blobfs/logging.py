"""
Structured logging for blobfs.

Provides:
- Context variables for node_id and operation (using contextvars)
- JSONFormatter for machine-readable logs to file
- RichHandler for pretty console output
- ContextLogger wrapper that attaches context to all log calls
- setup_logging() that configures both file and console handlers
- Context manager log_context() for scoped context
- get_logger() factory
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

# Context variables for structured logging
_node_id_var: ContextVar[str | None] = ContextVar("node_id", default=None)
_operation_var: ContextVar[str | None] = ContextVar("operation", default=None)


def get_node_id() -> str | None:
    """Get the current node ID from context."""
    return _node_id_var.get()


def get_operation() -> str | None:
    """Get the current operation name from context."""
    return _operation_var.get()


@contextmanager
def log_context(
    node_id: str | None = None,
    operation: str | None = None,
) -> Generator[None, None, None]:
    """Context manager for scoped logging context.

    Args:
        node_id: Node ID to set in context.
        operation: Operation name to set in context.

    Yields:
        None. Context variables are set for the duration of the context.
    """
    old_node_id = _node_id_var.get()
    old_operation = _operation_var.get()

    try:
        if node_id is not None:
            _node_id_var.set(node_id)
        if operation is not None:
            _operation_var.set(operation)
        yield
    finally:
        _node_id_var.set(old_node_id)
        _operation_var.set(old_operation)


class JSONFormatter(logging.Formatter):
    """JSON formatter for machine-readable log files.

    Produces JSON Lines format with structured context.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON."""
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        node_id = get_node_id()
        operation = get_operation()

        if node_id:
            log_obj["node_id"] = node_id
        if operation:
            log_obj["operation"] = operation

        if hasattr(record, "extra"):
            log_obj["extra"] = record.extra

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


class ContextRichHandler(RichHandler):
    """Rich handler that includes context in console output."""

    def get_level_text(self, record: logging.LogRecord) -> Text:
        """Override to add context prefix."""
        level_text = super().get_level_text(record)

        parts: list[str] = []
        node_id = get_node_id()
        operation = get_operation()

        if node_id:
            parts.append(f"[dim]{node_id[:12]}[/dim]")
        if operation:
            parts.append(f"[cyan]{operation}[/cyan]")

        if parts:
            prefix = " ".join(parts)
            return Text.from_markup(f"{level_text} {prefix}")

        return level_text


class ContextLogger:
    """Logger wrapper that automatically attaches context to log calls.

    Keyword arguments other than the standard logging ones are collected
    into the record's ``extra`` mapping.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @property
    def name(self) -> str:
        """Get the logger name."""
        return self._logger.name

    def _log(
        self,
        level: int,
        msg: str,
        *args: Any,
        exc_info: bool = False,
        **kwargs: Any,
    ) -> None:
        """Internal logging method that adds context."""
        if not self._logger.isEnabledFor(level):
            return

        extra = kwargs.pop("extra", {})

        node_id = get_node_id()
        operation = get_operation()

        if node_id:
            extra["node_id"] = node_id
        if operation:
            extra["operation"] = operation

        for key in list(kwargs.keys()):
            if key not in ("exc_info", "stack_info", "stacklevel"):
                extra[key] = kwargs.pop(key)

        self._logger.log(level, msg, *args, exc_info=exc_info, extra={"extra": extra})

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, exc_info: bool = False, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log exception with traceback."""
        self._log(logging.ERROR, msg, *args, exc_info=True, **kwargs)


_console: Console | None = None
_setup_done: bool = False


def get_console() -> Console:
    """Get the global rich console."""
    global _console
    if _console is None:
        _console = Console(stderr=True)
    return _console


def setup_logging(
    log_level: str = "WARNING",
    log_file: Path | None = None,
    console_output: bool = True,
) -> None:
    """Set up logging with JSON file handler and rich console handler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Path to log file. If None, only console logging is enabled.
        console_output: Whether to enable console output.
    """
    global _setup_done

    root_logger = logging.getLogger("blobfs")
    root_logger.setLevel(getattr(logging, log_level.upper()))

    root_logger.handlers.clear()

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        file_handler.setLevel(logging.DEBUG)
        root_logger.addHandler(file_handler)
        # The file handler records everything; the console keeps its own level
        root_logger.setLevel(logging.DEBUG)

    if console_output:
        rich_handler = ContextRichHandler(
            console=get_console(),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
            markup=False,
        )
        rich_handler.setLevel(getattr(logging, log_level.upper()))
        root_logger.addHandler(rich_handler)

    root_logger.propagate = False

    for noisy_logger in ["aiosqlite", "asyncio"]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)

    _setup_done = True


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger.

    Args:
        name: Logger name (usually __name__).

    Returns:
        ContextLogger wrapper around the standard logger.
    """
    if not _setup_done:
        setup_logging()

    if not name.startswith("blobfs"):
        name = f"blobfs.{name}"

    return ContextLogger(logging.getLogger(name))
