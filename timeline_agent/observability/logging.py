"""
Logging for the Timeline Agent connectors.

Listing tasks tag their log lines through a context variable, so output
from concurrent calendars can be told apart. Handlers are only installed
when the host asks for them, either by calling ``setup_logging`` or by
setting ``LOG_LEVEL`` in the environment.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

log_context_var: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})

PLAIN_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s:%(lineno)s] %(context)s%(message)s"

# Client libraries that log every request at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "aiohttp", "asyncio")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with the active log context under "context"."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }

        context = log_context_var.get()
        if context:
            entry["context"] = context

        entry.update(getattr(record, "extra_fields", {}))
        return json.dumps(entry, default=str)


class ContextFilter(logging.Filter):
    """Prefix plain-text records with the current log context."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = log_context_var.get()
        record.context = (
            "[" + " ".join(f"{k}={v}" for k, v in ctx.items()) + "] " if ctx else ""
        )
        return True


def _handler(handler: logging.Handler, level: int, json_format: bool) -> logging.Handler:
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(ContextFilter())
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = True,
) -> None:
    """
    Replace the root logger's handlers with a stdout handler, plus a file
    handler when ``log_file`` is given.

    Unknown level names fall back to INFO.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)
    for existing in list(root.handlers):
        root.removeHandler(existing)

    root.addHandler(_handler(logging.StreamHandler(sys.stdout), log_level, json_format))
    if log_file:
        root.addHandler(_handler(logging.FileHandler(log_file), log_level, json_format))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={level}, json={json_format}, file={log_file}"
    )


def setup_logging_from_env(environ: Mapping[str, str] = os.environ) -> bool:
    """
    Configure logging from LOG_LEVEL, LOG_FILE and LOG_JSON.

    Returns:
        False (and changes nothing) when LOG_LEVEL is unset
    """
    level = environ.get("LOG_LEVEL")
    if not level:
        return False

    setup_logging(
        level=level,
        log_file=environ.get("LOG_FILE"),
        json_format=environ.get("LOG_JSON", "true").lower() == "true",
    )
    return True


class log_context:
    """
    Add key-value pairs to every log line emitted inside the block.

    Values are scoped to the current asyncio task, so concurrent listing
    tasks never see each other's context.

    Example:
        with log_context(source_id="google_calendar", collection_id="primary"):
            logger.info("Listing page")
    """

    def __init__(self, **kwargs):
        self.context = kwargs
        self.token = None

    def __enter__(self):
        self.token = log_context_var.set({**log_context_var.get(), **self.context})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        log_context_var.reset(self.token)


def add_log_context(**kwargs) -> None:
    log_context_var.set({**log_context_var.get(), **kwargs})


def clear_log_context() -> None:
    log_context_var.set({})


setup_logging_from_env()
