"""
Structured JSON logging for LLM Visibility Tracker.

One JSON object per line on stderr; stdout stays reserved for command
output. Modules log with ``logging.getLogger(__name__)`` and attach
structured data through ``extra``:

    >>> logger.info("Topic added", extra={"context": {"topic": "running-shoes"}})

Recognised extras:
- context: dict of structured fields
- analysis_id: id of the analysis run the message belongs to

Security:
    - API keys and bearer tokens are masked before a record is formatted
"""

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any

from llm_visibility.utils.time import TIMESTAMP_FORMAT


class JSONFormatter(logging.Formatter):
    """Format records as JSON with timestamp, level, component and message."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).strftime(
                TIMESTAMP_FORMAT
            ),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            log_entry["context"] = context

        analysis_id = getattr(record, "analysis_id", None)
        if analysis_id is not None:
            log_entry["analysis_id"] = analysis_id

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class SecretRedactingFilter(logging.Filter):
    """
    Mask anything that looks like a credential, keeping the last 4 characters.

    "sk-proj-abcdef123456..." -> "sk-...3456"
    "Bearer abc123xyz789..."  -> "Bearer ***z789"
    """

    SECRET_PATTERNS = [
        (re.compile(r"\bsk-[a-zA-Z0-9_-]{20,}\b"), "sk-...{last4}"),
        (re.compile(r"\bBearer\s+[a-zA-Z0-9_.-]{20,}\b"), "Bearer ***{last4}"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        # Merge args first so secrets passed as %-arguments are caught too
        record.msg = self.redact(record.getMessage())
        record.args = None

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            record.context = self.redact(context)

        return True

    @classmethod
    def redact(cls, value: Any) -> Any:
        """Redact strings, recursing into dicts, lists and tuples."""
        if isinstance(value, str):
            for pattern, template in cls.SECRET_PATTERNS:
                value = pattern.sub(
                    lambda m, t=template: t.format(last4=m.group(0)[-4:]), value
                )
            return value
        if isinstance(value, dict):
            return {key: cls.redact(item) for key, item in value.items()}
        if isinstance(value, list | tuple):
            return type(value)(cls.redact(item) for item in value)
        return value


def setup_logging(verbose: bool = False, quiet_logs: bool = False) -> None:
    """
    Configure the root logger for a CLI invocation.

    Log level: DEBUG if verbose, WARNING if quiet_logs, INFO otherwise.
    Calling it again replaces the previous handler.

    Args:
        verbose: Enable debug logging
        quiet_logs: Only warnings and errors; used in human output mode so the
            terminal is not cluttered with JSON lines
    """
    if verbose:
        level = logging.DEBUG
    elif quiet_logs:
        level = logging.WARNING
    else:
        level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(SecretRedactingFilter())
    root_logger.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(component: str) -> logging.Logger:
    return logging.getLogger(component)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: dict[str, Any] | None = None,
    analysis_id: str | None = None,
) -> None:
    """
    Log a message with structured context and optional analysis_id.

    Example:
        >>> log_with_context(
        ...     logger, logging.INFO, "Analysis finished",
        ...     context={"status": "complete"}, analysis_id="4f1c...",
        ... )
    """
    extra: dict[str, Any] = {}

    if context is not None:
        extra["context"] = context

    if analysis_id is not None:
        extra["analysis_id"] = analysis_id

    logger.log(level, message, extra=extra or None)
