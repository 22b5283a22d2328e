"""Health checks and structured logging shared by the services."""

from .health import ServiceHealth, HealthStatus
from .logging_config import (
    setup_logging,
    get_logger,
    current_context,
    set_request_context,
    generate_request_id,
    RequestLoggingMiddleware,
    LoggerAdapter,
)

__all__ = [
    "ServiceHealth",
    "HealthStatus",
    "setup_logging",
    "get_logger",
    "current_context",
    "set_request_context",
    "generate_request_id",
    "RequestLoggingMiddleware",
    "LoggerAdapter",
]
