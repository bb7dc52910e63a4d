"""Structured logging configuration using structlog."""

import logging
import sys
from collections.abc import Mapping
from typing import Any

import structlog
from structlog.typing import EventDict, Processor

from mail_audit_agent import __version__
from mail_audit_agent.config.settings import settings

SERVICE_NAME = "mail-audit-agent"
REDACTED = "***"

# Matched case-insensitively against event keys and header mapping keys
SECRET_FIELDS = frozenset(
    {
        "api_key",
        "bot_api_key",
        "x-api-key",
        "secret_key",
        "access_key",
        "authorization",
    }
)


def add_service_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag every event with the service name, version and environment."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", __version__)
    event_dict.setdefault("env", settings.app.env)
    return event_dict


def _redact_mapping(values: Mapping[str, Any]) -> dict[str, Any]:
    return {
        key: REDACTED if str(key).lower() in SECRET_FIELDS else value
        for key, value in values.items()
    }


def redact_secrets(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credentials in the event, including inside logged header mappings."""
    for key, value in list(event_dict.items()):
        if key.lower() in SECRET_FIELDS:
            event_dict[key] = REDACTED
        elif key == "headers" and isinstance(value, Mapping):
            event_dict[key] = _redact_mapping(value)
    return event_dict


def configure_logging() -> None:
    """Configure structured logging for the service."""
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service_context,
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.app.log_format == "json":
        processors: list[Processor] = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.app.log_level),
    )
    # httpx logs every request URL at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance."""
    return structlog.get_logger(name)
