"""
Logging utilities for gcs-deploy.

Provides structured logging for deploy runs: colorized console output for
interactive use, JSON lines for CI log collectors, a per-run id that ties all
events of one deploy together, and an entry/exit decorator with timing.

Per-file events carry their key/value fields through ``extra``:

    >>> from gcs_deploy.utils.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info(
    ...     "Uploading file",
    ...     extra={"file": "build/app.js", "target": "releases/v1/app.js"},
    ... )

Text output renders the message only; JSON output (``LOG_FORMAT=json``) puts
the fields under ``"fields"``.
"""

import logging
import functools
import json
import os
import uuid
from typing import Any, Callable, TypeVar, cast, Optional, Dict
from datetime import datetime, timezone
from contextvars import ContextVar

import coloredlogs

F = TypeVar("F", bound=Callable[..., Any])

_run_id: ContextVar[Optional[str]] = ContextVar("run_id", default=None)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attributes every LogRecord has; anything else arrived through ``extra``.
_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
        "message",
        "asctime",
    }
)


# ============================================================================
# Run ID Management
# ============================================================================

def get_run_id() -> str:
    """
    Get the id of the current deploy run, generating one if unset.

    Returns:
        Current run id (a UUID4 string unless set explicitly)
    """
    run_id = _run_id.get()
    if run_id is None:
        run_id = str(uuid.uuid4())
        _run_id.set(run_id)
    return run_id


def set_run_id(run_id: str) -> None:
    """Set the run id for the current context."""
    _run_id.set(run_id)


def clear_run_id() -> None:
    """Clear the run id for the current context."""
    _run_id.set(None)


def json_logging_enabled() -> bool:
    """Whether ``LOG_FORMAT=json`` is set in the environment."""
    return os.getenv("LOG_FORMAT", "text").lower() == "json"


# ============================================================================
# JSON Formatter
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for CI log collectors.

    Example output:
        {
            "timestamp": "2026-10-19T10:30:15.123456+00:00",
            "level": "INFO",
            "logger": "gcs_deploy.uploader.uploader",
            "message": "Uploaded file",
            "run_id": "5f0c...",
            "fields": {"file": "build/app.js", "target": "releases/v1/app.js"}
        }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": get_run_id(),
        }

        fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if fields:
            log_data["fields"] = fields

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        # CI build metadata, when running as a pipeline step
        build = {
            "repo": os.getenv("DRONE_REPO", ""),
            "build_number": os.getenv("DRONE_BUILD_NUMBER", ""),
            "commit": os.getenv("DRONE_COMMIT_SHA", ""),
        }
        if any(build.values()):
            log_data["build"] = build

        return json.dumps(log_data, default=str)


def setup_logging(level: Optional[str] = None, enable_colors: bool = True) -> None:
    """
    Configure global logging settings for the application.

    Uses JSON output when ``LOG_FORMAT=json``, otherwise colorized text via
    coloredlogs (or plain text when ``enable_colors`` is False).

    Args:
        level: Logging level name; defaults to ``LOG_LEVEL`` or INFO
        enable_colors: Whether to colorize console output
    """
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    if json_logging_enabled():
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(console_handler)
    elif enable_colors:
        coloredlogs.install(
            level=log_level,
            fmt=LOG_FORMAT,
            datefmt=LOG_DATE_FORMAT,
            logger=root_logger,
        )
    else:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(
            logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
        )
        root_logger.addHandler(console_handler)

    # The storage SDK is chatty at DEBUG
    logging.getLogger("google").setLevel(max(log_level, logging.INFO))
    logging.getLogger("urllib3").setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(name)


def log_function_call(func: F) -> F:
    """
    Decorator that logs function entry and exit with timing.

    Entry is logged at DEBUG with the call arguments, exit at DEBUG with the
    return value and duration. Exceptions are logged at ERROR and re-raised
    unchanged.

    Example:
        >>> @log_function_call
        ... def resolve_matches(include, excludes):
        ...     ...
        >>> # DEBUG - ENTER resolve_matches(include='build/**', excludes=())
        >>> # DEBUG - EXIT resolve_matches -> [...] (0.01s)
    """
    logger = get_logger(func.__module__)

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        run_id = get_run_id()

        arg_names = func.__code__.co_varnames[: func.__code__.co_argcount]
        args_repr = [f"{name}={value!r}" for name, value in zip(arg_names, args)]
        kwargs_repr = [f"{key}={value!r}" for key, value in kwargs.items()]
        all_args = ", ".join(args_repr + kwargs_repr)

        logger.debug(
            f"ENTER {func.__name__}({all_args})",
            extra={
                "function": func.__name__,
                "run_id": run_id,
                "event": "function_entry",
            },
        )

        start_time = datetime.now()

        try:
            result = func(*args, **kwargs)
        except Exception as error:
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.error(
                f"ERROR {func.__name__} raised {type(error).__name__}: {error}",
                extra={
                    "function": func.__name__,
                    "duration_seconds": execution_time,
                    "run_id": run_id,
                    "event": "function_error",
                    "error_type": type(error).__name__,
                },
            )
            raise

        execution_time = (datetime.now() - start_time).total_seconds()
        logger.debug(
            f"EXIT {func.__name__} -> {result!r} ({execution_time:.2f}s)",
            extra={
                "function": func.__name__,
                "duration_seconds": execution_time,
                "run_id": run_id,
                "event": "function_exit",
            },
        )

        return result

    return cast(F, wrapper)
