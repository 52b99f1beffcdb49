"""Logging configuration using structlog."""

import logging
import re
import sys
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

from tokenwatch.config.settings import get_settings

# Telegram puts the bot token in the request path
_BOT_TOKEN_PATTERN = re.compile(r"/bot[^/\s]+/")

# httpx logs every request URL at INFO, bot token included
_NOISY_LOGGERS = ("httpx", "httpcore")


def redact_bot_token(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Mask Telegram bot tokens in string values."""
    for key, value in event_dict.items():
        if isinstance(value, str) and "/bot" in value:
            event_dict[key] = _BOT_TOKEN_PATTERN.sub("/bot<redacted>/", value)
    return event_dict


def add_app_context(app_name: str, app_version: str) -> Any:
    """Processor stamping every event with the service name and version."""

    def processor(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", app_name)
        event_dict.setdefault("version", app_version)
        return event_dict

    return processor


def configure_logging() -> None:
    """Configure structlog for the TokenWatch service."""
    settings = get_settings()
    log_level = getattr(logging, settings.log_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            add_app_context(settings.app_name.lower(), settings.app_version),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_bot_token,
            structlog.dev.ConsoleRenderer()
            if settings.debug
            else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Standard logging for uvicorn and the HTTP stack
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
