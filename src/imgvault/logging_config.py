"""
Structured logging for imgvault.

All modules log through structlog with snake_case event names. Request
handling binds ``method`` and ``path`` into contextvars so every event emitted
while serving a request carries them. Values under credential-like keys are
masked before rendering, so passwords, tokens and image payloads never reach
the log stream.
"""

import logging
import os
import sys
from typing import Any

import structlog

LEVEL_MAPPING = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

SENSITIVE_KEYS = frozenset({"password", "password_hash", "token", "authorization", "secret", "content"})
REDACTED = "[redacted]"

_configured = False


def get_log_level() -> int:
    """Level from ``LOG_LEVEL``, INFO when unset or unknown."""
    return LEVEL_MAPPING.get(os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)


def is_development_environment() -> bool:
    return os.getenv("ENVIRONMENT", "development").lower() in ["development", "dev", "local", "test"]


def redact_sensitive_fields(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor that masks credential-like values."""
    for key in event_dict.keys() & SENSITIVE_KEYS:
        event_dict[key] = REDACTED
    return event_dict


def configure_structured_logging(force: bool = False) -> None:
    """
    Configure structlog and the stdlib root logger.

    Development renders human-readable console lines; any other environment
    renders one JSON object per line. Calling this again is a no-op unless
    ``force`` is set.

    Args:
        force: Reconfigure even if logging was already set up
    """
    global _configured
    if _configured and not force:
        return

    log_level = get_log_level()
    is_dev = is_development_environment()

    logging.basicConfig(level=log_level, format="%(message)s", stream=sys.stderr, force=force)
    logging.getLogger().setLevel(log_level)

    renderer: Any
    if is_dev:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_sensitive_fields,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _configured = True

    structlog.get_logger("imgvault.logging").info(
        "logging_configured",
        log_level=logging.getLevelName(log_level),
        renderer="console" if is_dev else "json",
    )


def get_logger(name: str) -> Any:
    """Structured logger for ``name`` (pass the module's ``__name__``)."""
    return structlog.get_logger(name)


def bind_request_context(**context: Any) -> None:
    """Replace the per-request logging context."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**context)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def log_performance(operation: str, duration: float, **context: Any) -> None:
    """
    Record how long an operation took.

    Args:
        operation: Name of the operation
        duration: Duration in seconds
        **context: Additional context information
    """
    get_logger("imgvault.performance").info(
        "performance_metric",
        operation=operation,
        duration_ms=round(duration * 1000, 2),
        **context,
    )


def log_user_action(username: str, action: str, **context: Any) -> None:
    """Audit trail entry for something ``username`` did."""
    get_logger("imgvault.audit").info("user_action", username=username, action=action, **context)


def log_error(error: Exception, context: dict[str, Any] | None = None, level: str = "error") -> None:
    """
    Log an exception with its type and message plus ``context``.

    Args:
        error: Exception that occurred
        context: Additional context information
        level: Log method name, e.g. ``info`` for expected client errors
    """
    getattr(get_logger("imgvault.errors"), level)(
        "error_occurred",
        error_type=type(error).__name__,
        error_message=str(error),
        **(context or {}),
    )


def log_security_event(event_type: str, username: str | None = None, **context: Any) -> None:
    """
    Log an authentication or authorization event.

    Args:
        event_type: Short event name, e.g. ``missing_authorization_header``
        username: Claimed or verified username, when known
        **context: Additional context information
    """
    get_logger("imgvault.security").warning("security_event", event_type=event_type, username=username, **context)
