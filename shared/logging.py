"""
Structured logging for the Tasks service.

Events are rendered as JSON lines through the stdlib root logger. Every event
carries the service name (taken from the ``<service>.<component>`` logger
name) and, inside an HTTP request, the request id set by the middleware.
"""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Dict, List, Optional

import structlog

EventDict = Dict[str, Any]

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def service_context(service_name: str):
    """Processor tagging each event with the service that emitted it."""

    def add_service_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        logger_name = event_dict.get("logger", "")
        event_dict["service"] = logger_name.split(".", 1)[0] if "." in logger_name else service_name
        return event_dict

    return add_service_context


def add_correlation_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Attach the current request id, when there is one."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_timestamp(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Epoch seconds alongside the ISO ``ts`` field."""
    event_dict["timestamp"] = time.time()
    return event_dict


def _processors(service_name: str) -> List[Any]:
    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", key="ts"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        service_context(service_name),
        add_correlation_context,
        add_timestamp,
        structlog.processors.JSONRenderer(sort_keys=True),
    ]


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Configure structlog and the stdlib root logger for ``service_name``."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=_processors(service_name),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger().setLevel(level)


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind ``request_id`` (or a fresh uuid4) to the current context."""
    request_id = request_id or str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def clear_context() -> None:
    request_id_var.set(None)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a logger named ``<service>.<component>``."""
    return structlog.get_logger(name)
