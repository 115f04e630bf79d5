"""
Structured logging utilities with JSON formatting and context injection.

This module provides structured logging capabilities with:
- JSON formatted log output for machine-readable logs
- Context injection (change_set_id, run_id, stage) via LoggerAdapter
- Standardized log fields across the resolution pipeline
"""

import logging
import json
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, MutableMapping
from logging import LogRecord


# Fields promoted to the top level of every JSON log line
CONTEXT_FIELDS = ("change_set_id", "run_id", "action", "stage", "request_id")

_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "taskName", "exc_info", "exc_text", "stack_info",
}


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON with standard fields:
    - timestamp: ISO 8601 formatted timestamp
    - level: Log level (INFO, WARNING, ERROR, etc.)
    - logger: Logger name
    - message: Log message
    - change_set_id / run_id / action / stage / request_id when present
    - context: Any other extra fields
    - error: Error details when exception info is attached
    """

    def format(self, record: LogRecord) -> str:
        """
        Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON formatted log string
        """
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and key not in CONTEXT_FIELDS
        }
        if extra_fields:
            log_data["context"] = extra_fields

        if record.exc_info:
            log_data["error"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "stack_trace": "".join(traceback.format_exception(*record.exc_info))
            }

        log_data["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName
        }

        return json.dumps(log_data, default=str)


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that injects context fields into all log records.

    A webhook handler binds change_set_id once and every stage logs with it.
    """

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: MutableMapping[str, Any]) -> tuple[str, MutableMapping[str, Any]]:
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **context: Any) -> "ContextLoggerAdapter":
        """
        Create a new logger adapter with additional context.

        Args:
            **context: Additional context fields

        Returns:
            New logger adapter with merged context
        """
        new_extra = self.extra.copy()
        new_extra.update(context)
        return ContextLoggerAdapter(self.logger, new_extra)


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    formatter = JSONFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str, **context: Any) -> ContextLoggerAdapter:
    """
    Get a context-aware logger for a module.

    Example:
        logger = get_logger(__name__, change_set_id="0123abcd...")
        logger.info("Resolving change set")
    """
    base_logger = logging.getLogger(name)
    return ContextLoggerAdapter(base_logger, context)


def log_pull_request_event(
    logger: logging.LoggerAdapter,
    change_set_id: str,
    action: str,
    source_branch: str
) -> None:
    """Log an accepted pull request event with its required fields."""
    logger.info(
        f"Pull request event received: {action}",
        extra={
            "change_set_id": change_set_id,
            "action": action,
            "source_branch": source_branch,
        }
    )


def log_stage_transition(logger: logging.LoggerAdapter, stage: str, status: str) -> None:
    """
    Log pipeline stage transition.

    Args:
        logger: Logger to use
        stage: Stage name (e.g. 'change_set', 'merge_base', 'dispatch')
        status: 'started', 'completed' or 'skipped'
    """
    logger.info(
        f"Stage {status}: {stage}",
        extra={"stage": stage, "status": status}
    )


def log_git_command(
    logger: logging.LoggerAdapter,
    args: List[str],
    returncode: Optional[int] = None,
    duration_ms: Optional[float] = None,
    error: Optional[str] = None
) -> None:
    """
    Log a git subprocess invocation.

    Args:
        logger: Logger to use
        args: git arguments (without the leading 'git')
        returncode: Process exit code (if it finished)
        duration_ms: Wall time in milliseconds (if available)
        error: Error text (if the command failed)
    """
    extra: Dict[str, Any] = {"command": "git " + " ".join(args)}

    if returncode is not None:
        extra["returncode"] = returncode
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)
    if error is not None:
        extra["error"] = error

    if error:
        logger.error(f"git {args[0]} failed", extra=extra)
    else:
        logger.debug(f"git {args[0]}", extra=extra)


def log_error_with_context(
    logger: logging.LoggerAdapter,
    message: str,
    error: Exception,
    **context: Any
) -> None:
    """Log error with full stack trace and context."""
    context.setdefault("error_type", type(error).__name__)
    logger.error(
        message,
        extra=context,
        exc_info=(type(error), error, error.__traceback__)
    )
