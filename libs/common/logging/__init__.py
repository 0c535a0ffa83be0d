"""Structured JSON logging with request ID correlation.

Usage:
    # At service startup
    from libs.common.logging import configure_logging
    configure_logging(service_name="client_ip_service", log_level="INFO")

    # In request handlers
    from libs.common.logging import get_logger, log_with_context
    logger = get_logger(__name__)
    log_with_context(logger, "INFO", "Resolved client", client_ip="203.0.113.7")
"""

from libs.common.logging.config import (
    RequestIDFilter,
    configure_logging,
    get_logger,
    log_with_context,
)
from libs.common.logging.context import (
    REQUEST_ID_HEADER,
    LogContext,
    clear_request_id,
    generate_request_id,
    get_or_create_request_id,
    get_request_id,
    set_request_id,
)
from libs.common.logging.formatter import JSONFormatter
from libs.common.logging.middleware import RequestIDMiddleware, add_request_id_middleware

__all__ = [
    # Configuration
    "configure_logging",
    "get_logger",
    "log_with_context",
    "RequestIDFilter",
    # Request ID management
    "generate_request_id",
    "get_request_id",
    "set_request_id",
    "clear_request_id",
    "get_or_create_request_id",
    "LogContext",
    "REQUEST_ID_HEADER",
    # ASGI
    "RequestIDMiddleware",
    "add_request_id_middleware",
    # Formatter (for advanced usage)
    "JSONFormatter",
]
