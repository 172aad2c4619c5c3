"""Structured logging setup using structlog with per-request correlation IDs."""

import logging
import uuid
from contextvars import ContextVar

import structlog
from structlog.types import EventDict, WrappedLogger

# Correlation ID of the webhook delivery currently being handled
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

# Keys whose values must never reach the log stream
REDACTED_KEYS = frozenset(
    {
        "signature",
        "webhook_secret",
        "plane_api_key",
        "s3_secret_access_key",
        "db_password",
    }
)
REDACTED = "[redacted]"


def add_correlation_id(
    _logger: WrappedLogger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Attach the current delivery's correlation ID, if any."""
    correlation_id = correlation_id_var.get()
    if correlation_id:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def redact_secrets(
    _logger: WrappedLogger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask credential-bearing keys before rendering."""
    for key in REDACTED_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def setup_logging(log_level: str = "INFO") -> None:
    """Configure JSON logging for the relay.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper())

    # aiohttp and asyncpg log through the standard library
    logging.basicConfig(format="%(message)s", level=level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_correlation_id,
            redact_secrets,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]


def set_correlation_id(correlation_id: str) -> None:
    """Set correlation ID for current async context."""
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Get correlation ID from current async context, or empty string."""
    return correlation_id_var.get()


def new_correlation_id() -> str:
    """Generate and install a fresh correlation ID for one delivery.

    Returns:
        The generated ID (short hex form)
    """
    correlation_id = uuid.uuid4().hex[:16]
    set_correlation_id(correlation_id)
    return correlation_id
