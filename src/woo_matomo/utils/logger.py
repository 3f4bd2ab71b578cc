"""
Module: logger.py
Description: Structured logging configuration for the order tracking service.

Configures structlog for JSON output suitable for CloudWatch Logs.
Every module obtains its logger through get_logger() so delivery
attempts, audit writes and pruning runs share one line format.

Key Components:
- JSON output with timestamp and level
- Context variables merged into every entry (order_id, event_type)
- configure_logging() to apply the configured level
- get_logger() helper function

Dependencies: structlog, logging, datetime
Author: Order Tracking Team
"""

import logging
from datetime import datetime, timezone

import structlog


def _add_timestamp(logger, method_name, event_dict):
    """Add an ISO 8601 UTC timestamp to log entries."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _add_log_level(logger, method_name, event_dict):
    """Add the upper-cased log level to the event dictionary."""
    event_dict["level"] = method_name.upper()
    return event_dict


def configure_logging(level: str = "INFO") -> None:
    """
    Configure structlog processors and the minimum log level.

    Args:
        level: Standard logging level name (DEBUG, INFO, ...)
    """
    structlog.configure(
        processors=[
            # Order/event identifiers bound by the tracker
            structlog.contextvars.merge_contextvars,
            _add_timestamp,
            _add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.WriteLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        cache_logger_on_first_use=False,
    )


configure_logging()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Delivery recorded", order_id=101, status="success")
        {"order_id": 101, "status": "success", "event": "Delivery recorded", "timestamp": "...", "level": "INFO"}
    """
    return structlog.get_logger(name)
