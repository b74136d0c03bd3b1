"""Structured logging with correlation IDs and PII redaction.

Every query handled by the pipeline binds a correlation ID so the
classification, retrieval and generation events of one request can be
joined back together.
"""

import logging
import re
import sys
from typing import Any
from uuid import uuid4

import structlog

# PII patterns to redact
PII_PATTERNS = [
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b"), "[EMAIL]"),
    (re.compile(r"\b\d{16}\b"), "[CARD]"),
    (re.compile(r"<@!?\d{17,20}>"), "[MENTION]"),
    (re.compile(r"rate_limit:\d{17,20}"), "rate_limit:[REDACTED]"),
]


def redact_pii(message: str) -> str:
    """Redact PII from log message.

    Args:
        message: Log message

    Returns:
        Message with PII redacted
    """
    for pattern, replacement in PII_PATTERNS:
        message = pattern.sub(replacement, message)
    return message


def short_user_id(user_id: str) -> str:
    """Shorten a user identifier for log output."""
    if len(user_id) <= 8:
        return user_id
    return f"{user_id[:8]}..."


def add_correlation_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add correlation ID to log events.

    Args:
        logger: Logger instance
        method_name: Method name
        event_dict: Event dictionary

    Returns:
        Updated event dictionary
    """
    if "correlation_id" not in event_dict:
        event_dict["correlation_id"] = str(uuid4())
    return event_dict


def redact_pii_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Redact PII from every string field of a log event."""
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = redact_pii(value)

    return event_dict


def setup_logging(log_level: str = "INFO") -> None:
    """Setup structured logging with correlation IDs and PII redaction.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = logging.getLevelName(log_level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_correlation_id,
            redact_pii_processor,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    # httpx logs every request at INFO through the standard library
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> Any:
    """Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Structured logger
    """
    return structlog.get_logger(name)


def set_correlation_id(correlation_id: str) -> None:
    """Set correlation ID for current context.

    Args:
        correlation_id: Correlation ID
    """
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_correlation_id() -> None:
    """Remove the correlation ID, leaving other bound context untouched."""
    structlog.contextvars.unbind_contextvars("correlation_id")
