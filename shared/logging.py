"""
Shared logging configuration for the Text Analysis Service.

Every log line is a JSON object rendered by structlog. Request-scoped
fields (request id, authenticated user) live in context variables set by
the HTTP middleware and the auth dependency, and are merged into each event.
"""

import sys
import uuid
import logging
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog
from opentelemetry import trace

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

# Event key -> context variable
CORRELATION_FIELDS = {
    "request_id": request_id_var,
    "user_id": user_id_var,
}

SENSITIVE_FIELDS = frozenset({"password", "password_hash", "token", "authorization", "jwt_secret"})
REDACTED = "***"

# uvicorn's access log duplicates the request line the service middleware writes
QUIET_LOGGERS = ("uvicorn.access",)


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Route structlog and stdlib logging to JSON lines on stdout."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_service_context,
            add_trace_context,
            add_correlation_context,
            redact_sensitive_fields,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.get_logger(service_name).debug("Logging configured", level=log_level)


def add_service_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """``service`` is the first segment of ``<service>.<component>`` logger names."""
    logger_name = event_dict.get("logger") or ""
    service_name, _, component = logger_name.partition(".")
    if service_name:
        event_dict.setdefault("service", service_name)
    if component:
        event_dict.setdefault("component", component)
    return event_dict


def add_trace_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    current_span = trace.get_current_span()
    if not current_span.is_recording():
        return event_dict

    span_context = current_span.get_span_context()
    if span_context.trace_id:
        event_dict["trace_id"] = f"{span_context.trace_id:032x}"
    if span_context.span_id:
        event_dict["span_id"] = f"{span_context.span_id:016x}"
    return event_dict


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Merge request-scoped fields; explicit event values win."""
    for key, var in CORRELATION_FIELDS.items():
        value = var.get()
        if value:
            event_dict.setdefault(key, value)
    return event_dict


def redact_sensitive_fields(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Mask credentials and bearer tokens before rendering."""
    for key in SENSITIVE_FIELDS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind the request id for the current request, generating one if absent."""
    request_id = request_id or uuid.uuid4().hex
    request_id_var.set(request_id)
    return request_id


def set_user_context(user_id: Optional[str] = None):
    if user_id:
        user_id_var.set(user_id)


def clear_context():
    for var in CORRELATION_FIELDS.values():
        var.set(None)


def get_logger(name: str) -> structlog.BoundLogger:
    """Logger named ``<service>.<component>``."""
    return structlog.get_logger(name)
