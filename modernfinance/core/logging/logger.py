#!/usr/bin/env python3
"""
Structured Logging Module using structlog

This module provides structured logging with:
- Request ID correlation across cache and provider calls
- Stage identifiers for execution flow (CACHE, TAG, CHAIN, SYNTH, ...)
- JSON formatting for log aggregation
- Automatic API key redaction

Degraded quality (synthetic data served, cache backend down) is reported
here at warning level and never in response payloads.
"""

import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone

import structlog
from structlog.types import EventDict, WrappedLogger

from modernfinance.core.config.settings import get_settings

# Context variable for request ID
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

_SECRET_PATTERNS = (
    re.compile(r"\bsk-[a-zA-Z0-9_-]+\b"),
    re.compile(r"\bAIza[a-zA-Z0-9_-]+\b"),
    re.compile(r"(apikey=)[A-Za-z0-9]+", re.IGNORECASE),
)


def add_request_id(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add request ID to log event from context variable.

    STAGE-L.1: Request ID injection
    """
    request_id = request_id_ctx.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """STAGE-L.2: ISO timestamp injection."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return event_dict


def redact_secrets(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Redact provider API keys from log messages and string fields.

    STAGE-L.3: Secret redaction

    Patterns redacted:
    - OpenAI / Anthropic keys (sk-...) → [REDACTED]
    - Google keys (AIza...) → [REDACTED]
    - apikey= query parameters (Alpha Vantage URLs) → apikey=[REDACTED]
    """
    for field, value in list(event_dict.items()):
        if not isinstance(value, str):
            continue
        for pattern in _SECRET_PATTERNS:
            if pattern.groups:
                value = pattern.sub(r"\1[REDACTED]", value)
            else:
                value = pattern.sub("[REDACTED]", value)
        event_dict[field] = value
    return event_dict


def add_log_level_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """STAGE-L.4: Uppercase log level."""
    if "level" in event_dict:
        event_dict["level"] = event_dict["level"].upper()
    return event_dict


def setup_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """
    Setup structured logging with structlog.

    STAGE-L: Logging initialization

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'console')
    """
    if log_level is None or log_format is None:
        settings = get_settings()
        log_level = log_level or settings.logging.LOG_LEVEL
        log_format = log_format or settings.logging.LOG_FORMAT

    logging.basicConfig(
        format="%(message)s", stream=sys.stdout, level=getattr(logging, log_level.upper())
    )

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_request_id,
            add_timestamp,
            structlog.stdlib.add_log_level,
            add_log_level_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            redact_secrets,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("message", key="value", stage="CACHE.GET")
    """
    return structlog.get_logger(name)


def set_request_id(request_id: str) -> None:
    """Set request ID in context for the current request."""
    request_id_ctx.set(request_id)


def get_request_id() -> str | None:
    return request_id_ctx.get()


def clear_request_id() -> None:
    request_id_ctx.set(None)


def log_stage(
    logger: structlog.stdlib.BoundLogger, stage: str, message: str, level: str = "info", **kwargs
) -> None:
    """
    Log a message with stage information.

    Args:
        logger: Logger instance
        stage: Stage identifier (e.g., "CACHE.GET", "CHAIN.ADVANCE")
        message: Log message
        level: Log level (debug, info, warning, error, critical)
        **kwargs: Additional fields to log

    Usage:
        log_stage(logger, "CACHE.HIT", "Cache hit", cache_key="fundamentals:AAPL")
    """
    log_func = getattr(logger, level.lower())
    log_func(message, stage=stage, **kwargs)
