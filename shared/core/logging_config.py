"""
Structured JSON logging.

One JSON object per line. Request-scoped identifiers live in context
variables so a stock movement can be followed from the HTTP request that
asked for it down to the committed transaction:

    RequestLoggingMiddleware -> request_id, correlation_id
    auth dependency          -> actor_id
    any logger.info(..., extra={'extra_fields': {...}}) -> "data"
"""

from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import json
import logging
import logging.handlers
import os
import re
import sys
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

_CONTEXT: Dict[str, ContextVar] = {
    name: ContextVar(name, default=None)
    for name in ("request_id", "correlation_id", "actor_id")
}

REDACTED = "***REDACTED***"
SENSITIVE_KEYS = ("password", "token", "secret", "authorization", "api_key", "cookie")
_BEARER = re.compile(r"(Bearer\s+)[A-Za-z0-9\-_.=]+")


def current_context() -> Dict[str, str]:
    return {name: var.get() for name, var in _CONTEXT.items() if var.get()}


class StructuredFormatter(logging.Formatter):
    """Renders a record as a single JSON document"""

    def __init__(self, service_name: str = "unknown-service"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        doc: Dict[str, Any] = {
            "@timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "environment": os.getenv("ENVIRONMENT", "development"),
            "version": os.getenv("SERVICE_VERSION", "1.0.0"),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        context = current_context()
        if context:
            doc["trace"] = context
        data = getattr(record, "extra_fields", None)
        if data:
            doc["data"] = data
        if record.exc_info:
            doc["error"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "stacktrace": self.formatException(record.exc_info),
            }
        return json.dumps(doc, default=str)


class SecurityFilter(logging.Filter):
    """Masks bearer tokens in messages and sensitive keys in structured data"""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str) and "Bearer" in record.msg:
            record.msg = _BEARER.sub(rf"\1{REDACTED}", record.msg)
        data = getattr(record, "extra_fields", None)
        if isinstance(data, dict):
            record.extra_fields = {
                k: REDACTED if any(s in k.lower() for s in SENSITIVE_KEYS) else v
                for k, v in data.items()
            }
        return True


def setup_logging(
    service_name: str,
    level: str = "INFO",
    log_file: Optional[str] = None,
) -> None:
    """
    Route the root logger through the JSON formatter

    Args:
        service_name: Reported as ``service`` on every line
        level: Root log level name
        log_file: Also write to this rotating file when given
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.handlers.RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5))

    formatter = StructuredFormatter(service_name)
    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers = []
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(SecurityFilter())
        root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    root.info(
        "Logging initialized",
        extra={'extra_fields': {'service': service_name, 'level': level, 'log_file': log_file}}
    )


class LoggerAdapter(logging.LoggerAdapter):
    """Passes ``extra`` through untouched instead of replacing it"""

    def process(self, msg, kwargs):
        kwargs.setdefault("extra", {})
        return msg, kwargs


def get_logger(name: str) -> LoggerAdapter:
    return LoggerAdapter(logging.getLogger(name), {})


def set_request_context(
    request_id: Optional[str] = None,
    correlation_id: Optional[str] = None,
    actor_id: Optional[str] = None,
) -> None:
    """Bind identifiers for the rest of the current context; None leaves a value as is"""
    for name, value in (("request_id", request_id), ("correlation_id", correlation_id), ("actor_id", actor_id)):
        if value:
            _CONTEXT[name].set(value)


def generate_request_id() -> str:
    return str(uuid.uuid4())


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One line per finished request; echoes X-Request-ID"""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_context(
            request_id=request_id,
            correlation_id=request.headers.get("X-Correlation-ID"),
        )
        logger = get_logger(__name__)
        fields = {"method": request.method, "path": request.url.path}
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            fields["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
            logger.error("Request failed", exc_info=True, extra={'extra_fields': fields})
            raise

        fields["status_code"] = response.status_code
        fields["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
        log = logger.warning if response.status_code >= 500 else logger.info
        log("Request completed", extra={'extra_fields': fields})

        response.headers["X-Request-ID"] = request_id
        return response
