"""
Logging utilities for the Print Dispatch Engine

Structured JSON logging plus a context filter that stamps dispatch records
with the component, job and printer they concern.
"""

import contextvars
import logging
import sys
import json
from datetime import datetime
from typing import Dict, Any, Optional
from pathlib import Path


# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset({
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'message', 'exc_info', 'exc_text',
    'stack_info', 'taskName'
})


class StructuredFormatter(logging.Formatter):
    """
    Formats log records as single-line JSON documents.

    Fields passed through ``extra=`` (job ids, printer ids, queue sizes) are
    collected under an ``extra`` key so they can be filtered downstream.
    """

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        if record.exc_info:
            entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info)
            }

        if self.include_extra:
            extra_fields = {
                key: value for key, value in record.__dict__.items()
                if key not in _RESERVED_ATTRS and not key.startswith('_')
            }
            if extra_fields:
                entry["extra"] = extra_fields

        return json.dumps(entry, default=str, ensure_ascii=False)


class DispatchContextFilter(logging.Filter):
    """
    Adds dispatch context (component, job_id, printer_id) to every record
    passing through the logger it is attached to.

    Defaults set with set_context apply to the whole logger. Scoped values
    pushed by LoggerContext live in a context variable, so they stay with
    the thread or asyncio task that pushed them.
    """

    def __init__(self, name: str = ""):
        super().__init__()
        self.defaults: Dict[str, Any] = {}
        self._scoped: contextvars.ContextVar = contextvars.ContextVar(
            f"dispatch_log_context:{name}", default={}
        )

    @property
    def context(self) -> Dict[str, Any]:
        """Context in effect for the current thread or task."""
        return {**self.defaults, **self._scoped.get()}

    def set_context(self, **kwargs):
        """Set logger-wide context variables."""
        self.defaults.update(kwargs)

    def clear_context(self):
        """Clear all context variables."""
        self.defaults.clear()
        self._scoped.set({})

    def push(self, **kwargs) -> contextvars.Token:
        """Add scoped context for the current thread or task."""
        return self._scoped.set({**self._scoped.get(), **kwargs})

    def pop(self, token: contextvars.Token):
        """Restore the scoped context saved by push."""
        self._scoped.reset(token)

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.context.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def _build_formatter(structured: bool) -> logging.Formatter:
    if structured:
        return StructuredFormatter()
    return logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')


def setup_logger(
    name: str,
    level: str = "INFO",
    structured: bool = True,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up a logger with console (and optionally file) output.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        structured: Whether to use structured JSON logging
        log_file: Optional log file path

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Already configured
    if any(not isinstance(h, logging.NullHandler) for h in logger.handlers):
        logger.setLevel(getattr(logging, level.upper()))
        return logger

    numeric_level = getattr(logging, level.upper())
    logger.setLevel(numeric_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(_build_formatter(structured))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(_build_formatter(structured))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger carrying its own dispatch context filter.

    Args:
        name: Logger name

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    if not hasattr(logger, 'context_filter'):
        context_filter = DispatchContextFilter(name)
        logger.addFilter(context_filter)
        logger.context_filter = context_filter
    return logger


def set_log_context(logger: logging.Logger, **kwargs):
    """
    Set context variables for a logger.

    Args:
        logger: Logger instance
        **kwargs: Context variables to set
    """
    if hasattr(logger, 'context_filter'):
        logger.context_filter.set_context(**kwargs)


def clear_log_context(logger: logging.Logger):
    """Clear context variables for a logger."""
    if hasattr(logger, 'context_filter'):
        logger.context_filter.clear_context()


class LoggerContext:
    """
    Context manager for temporary log context, e.g. the job being assigned.

    The previous context is restored on exit. Only the current thread or
    asyncio task sees the temporary values.
    """

    def __init__(self, logger: logging.Logger, **kwargs):
        self.logger = logger
        self.context = kwargs
        self._token: Optional[contextvars.Token] = None

    def __enter__(self):
        if hasattr(self.logger, 'context_filter'):
            self._token = self.logger.context_filter.push(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            self.logger.context_filter.pop(self._token)
            self._token = None
