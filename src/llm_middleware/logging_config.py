"""Structured logging configuration using structlog.

JSON output in production, console output otherwise. Secrets that can
reach a log event (API keys in Gemini query strings, bearer tokens,
service account private keys) are masked by a processor before rendering.

The library itself never calls configure_logging(); the embedding
application does, once, at startup.
"""

import logging
import re
import sys
from typing import Optional, TextIO

import structlog
from structlog.types import EventDict, WrappedLogger

from llm_middleware.config import Settings, get_settings

REDACTED = "***"

SECRET_KEYS = frozenset({
    "api_key",
    "auth_token",
    "authorization",
    "x-api-key",
    "bearer_token",
    "private_key",
    "access_token",
    "token",
})

_KEY_QUERY_PARAM = re.compile(r"([?&]key=)[^&\s]+")
_BEARER = re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]+")


def add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add application context to all log events."""
    event_dict["app"] = "llm-middleware"
    return event_dict


def _redact_value(value):
    if isinstance(value, str):
        value = _KEY_QUERY_PARAM.sub(rf"\g<1>{REDACTED}", value)
        return _BEARER.sub(rf"\g<1>{REDACTED}", value)
    if isinstance(value, dict):
        return {
            k: REDACTED if isinstance(k, str) and k.lower() in SECRET_KEYS else _redact_value(v)
            for k, v in value.items()
        }
    return value


def redact_secrets(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask secret-named fields and credentials embedded in strings.

    Examples:
        url="https://.../models/x:generateContent?key=AIza..." -> "...?key=***"
        headers={"Authorization": "Bearer ya29..."}          -> {"Authorization": "***"}
    """
    for key in list(event_dict):
        if key.lower() in SECRET_KEYS:
            event_dict[key] = REDACTED
        else:
            event_dict[key] = _redact_value(event_dict[key])
    return event_dict


def configure_logging(
    settings: Optional[Settings] = None,
    log_level: Optional[str] = None,
    environment: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        settings: Source of LOG_LEVEL / ENVIRONMENT (defaults to get_settings())
        log_level: Overrides settings.LOG_LEVEL
        environment: Overrides settings.ENVIRONMENT ("production" selects JSON)
        stream: Output stream (default: stdout)
    """
    settings = settings or get_settings()
    log_level = log_level or settings.LOG_LEVEL
    environment = environment or settings.ENVIRONMENT
    log_level_int = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
        redact_secrets,
    ]

    is_production = environment.lower() == "production"

    if is_production:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream is None)

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)
    handler.setLevel(log_level_int)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level_int)

    # httpx logs full request URLs at INFO
    for noisy in ("httpx", "httpcore", "asyncio", "google.auth", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    structlog.get_logger(__name__).info(
        "Logging configured",
        log_level=log_level,
        environment=environment,
        renderer="json" if is_production else "console",
        app_name=settings.APP_NAME,
        app_version=settings.APP_VERSION,
    )
