"""Structured logging configuration with request IDs and secret redaction."""

import logging
import re
import sys
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

import orjson
import structlog

from prompt_studio.config import Settings, get_settings

# Context variable for request tracking
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class SecretRedactor:
    """Redact credentials and contact details from log values."""

    EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b")
    API_KEY_PATTERN = re.compile(r"\b(sk-|sk-or-|api[_-]?key[\s=:]+)[\w-]{20,}\b", re.IGNORECASE)
    BEARER_PATTERN = re.compile(r"\bBearer\s+[\w.\-]+", re.IGNORECASE)

    @classmethod
    def redact(cls, value: Any) -> Any:
        """Redact secrets from value."""
        if not isinstance(value, str):
            return value

        value = cls.EMAIL_PATTERN.sub("[EMAIL_REDACTED]", value)
        value = cls.BEARER_PATTERN.sub("Bearer [REDACTED]", value)
        value = cls.API_KEY_PATTERN.sub("[API_KEY_REDACTED]", value)

        return value


def add_context_vars(logger, method_name, event_dict):
    """Add the current request ID to log events."""
    if request_id := request_id_var.get():
        event_dict["request_id"] = request_id
    return event_dict


def redact_sensitive_data(logger, method_name, event_dict):
    """Redact sensitive data from logs."""
    for key, value in event_dict.items():
        if key in ("timestamp", "level", "logger", "request_id"):
            continue
        if isinstance(value, str):
            event_dict[key] = SecretRedactor.redact(value)
        elif isinstance(value, dict):
            event_dict[key] = {k: SecretRedactor.redact(v) for k, v in value.items()}

    return event_dict


def setup_logging(
    level: str | None = None,
    format: str | None = None,
    redact: bool = True,
    settings: Settings | None = None,
) -> None:
    """Configure structured logging."""
    settings = settings or get_settings()
    log_level = level or settings.log_level
    log_format = format or settings.log_format

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_context_vars,
    ]

    if redact and settings.is_production:
        processors.append(redact_sensitive_data)

    processors.extend(
        [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
        ]
    )

    if log_format == "json":
        processors.append(
            structlog.processors.JSONRenderer(serializer=lambda obj, **kw: orjson.dumps(obj, **kw).decode())
        )
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # Suppress noisy loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


class RequestContext:
    """Context manager for request-scoped logging."""

    def __init__(self, request_id: str | None = None):
        self.request_id = request_id or str(uuid4())
        self._token = None

    def __enter__(self):
        self._token = request_id_var.set(self.request_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            request_id_var.reset(self._token)
        return False
