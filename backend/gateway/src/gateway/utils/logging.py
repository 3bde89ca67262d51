"""Structured logging with correlation ID support.

Usage:
    from gateway.utils.logging import get_logger, set_correlation_id

    # In middleware:
    set_correlation_id(request.headers.get("X-Correlation-ID"))

    # In service code:
    logger = get_logger(__name__)
    log_mandate_operation(logger, "create", mandate_id="mandate_E1", status="INITIALIZED")
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any

# Async-safe per-request correlation id
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

NO_CORRELATION_ID = "no-correlation-id"


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set the correlation ID for the current context, generating one if needed.

    Returns:
        The correlation ID that was set
    """
    cid = correlation_id or generate_correlation_id()
    _correlation_id.set(cid)
    return cid


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Adds ``correlation_id`` to every record passing through the logger."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class StructuredFormatter(logging.Formatter):
    """Prefixes formatted records with ``[correlation_id]``."""

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return f"[{record.correlation_id}] {super().format(record)}"


def get_logger(name: str) -> logging.Logger:
    """Get a logger with correlation ID support.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())
    return logger


def _emit(logger: logging.Logger, level: int, headline: str, context: dict[str, Any]) -> None:
    parts = [headline]
    parts.extend(f"{key}={value}" for key, value in context.items() if key != "operation")
    logger.log(level, " | ".join(parts), extra={"context": context})


def log_mandate_operation(
    logger: logging.Logger,
    operation: str,
    *,
    mandate_id: str | None = None,
    enrollment_id: str | None = None,
    subscription_id: str | None = None,
    status: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log a mandate operation with structured context.

    Args:
        logger: Logger instance
        operation: Operation name (e.g., "create", "authorize", "manage")
        mandate_id: Mandate document id if known
        enrollment_id: Enrollment id if known
        subscription_id: Subscription id if known
        status: Resulting status
        error: Error message if the operation failed
        **extra: Additional context fields
    """
    context: dict[str, Any] = {"operation": operation}
    if mandate_id:
        context["mandate_id"] = mandate_id
    if enrollment_id:
        context["enrollment_id"] = enrollment_id
    if subscription_id:
        context["subscription_id"] = subscription_id
    if status:
        context["status"] = status
    if error:
        context["error"] = error
    context.update(extra)

    level = logging.ERROR if error else logging.INFO
    _emit(logger, level, f"Mandate operation: {operation}", context)


def log_webhook_event(
    logger: logging.Logger,
    event_type: str,
    event_key: str,
    *,
    mandate_id: str | None = None,
    payment_id: str | None = None,
    result: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log a webhook event with structured context.

    Errors log at ERROR, duplicates and skips at WARNING, everything else
    at INFO.

    Args:
        logger: Logger instance
        event_type: Cashfree event type (e.g., "SUBSCRIPTION_PAYMENT_SUCCESS")
        event_key: Dedup key of the delivery
        mandate_id: Resolved mandate if any
        payment_id: Payment id if present
        result: Processing result (received, success, duplicate, skipped, error)
        error: Error message if processing failed
        **extra: Additional context fields
    """
    context: dict[str, Any] = {"event_type": event_type, "event_key": event_key}
    if mandate_id:
        context["mandate_id"] = mandate_id
    if payment_id:
        context["payment_id"] = payment_id
    if result:
        context["result"] = result
    if error:
        context["error"] = error
    context.update(extra)

    if result == "error":
        level = logging.ERROR
    elif result in ("duplicate", "skipped"):
        level = logging.WARNING
    else:
        level = logging.INFO

    headline = f"Webhook event: {event_type} ({event_key})"
    _emit(logger, level, headline, {k: v for k, v in context.items() if k not in ("event_type", "event_key")})
