"""Logging setup shared by every service.

Example:
    >>> from libs.common.logging.config import configure_logging
    >>> logger = configure_logging(service_name="client_ip_service", log_level="INFO")
    >>> logger.info("Service started", extra={"context": {"port": 8000}})
"""

import logging
import sys
from typing import Optional

from libs.common.logging.context import get_request_id
from libs.common.logging.formatter import JSONFormatter


class RequestIDFilter(logging.Filter):
    """Stamps every record with the request ID of the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


def configure_logging(
    service_name: str,
    log_level: str = "INFO",
    include_context: bool = True,
) -> logging.Logger:
    """Configure JSON logging to stdout on the root logger.

    Replaces any existing root handlers, so call it once at startup.

    Args:
        service_name: Name of the service (e.g., "client_ip_service")
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        include_context: Whether to include context dict in output

    Returns:
        Configured root logger instance

    Raises:
        ValueError: If log_level is invalid
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter(service_name=service_name, include_context=include_context))
    handler.addFilter(RequestIDFilter())
    root_logger.addHandler(handler)

    return root_logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context_fields: object,
) -> None:
    """Log ``message`` with ``context_fields`` under the "context" key.

    Example:
        >>> log_with_context(logger, "INFO", "Resolved client", client_ip="1.2.3.4")
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra={"context": context_fields})
