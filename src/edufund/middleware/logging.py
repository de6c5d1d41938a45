"""Structured logging setup with structlog."""

import logging

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from edufund.config import Settings


def service_fields(settings: Settings) -> Processor:
    """Processor stamping every event with the deployment environment and version.

    Fields already on the event win, so a request can still override them.
    """
    defaults = {"environment": settings.environment, "version": settings.app_version}

    def add_service_fields(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
        for key, value in defaults.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_service_fields


def build_processors(settings: Settings) -> list[Processor]:
    """Processor chain ending in the JSON or console renderer."""
    if settings.log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()
    return [
        structlog.contextvars.merge_contextvars,
        service_fields(settings),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ]


def setup_logging(settings: Settings) -> None:
    structlog.configure(
        processors=build_processors(settings),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
    # SQL echo only with debug on
    logging.getLogger("sqlalchemy.engine").setLevel(logging.DEBUG if settings.debug else logging.WARNING)
