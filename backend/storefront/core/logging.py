"""
structlog setup: JSON lines in production, readable console output elsewhere.

Request-scoped fields (request_id, method, path) arrive through
structlog.contextvars, bound by RequestContextMiddleware.
"""
import logging
import sys
from typing import Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from storefront import __version__
from storefront.core.config import settings

# Per-request access logs and SQL echo drown out ingestion logs at INFO
NOISY_LOGGERS = ("uvicorn.access", "httpx", "aiosqlite", "sqlalchemy.engine.Engine")


def add_service_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", "storefront-activity")
    event_dict.setdefault("version", __version__)
    return event_dict


def _renderer(environment: str) -> list[Processor]:
    if environment == "production":
        return [
            add_service_context,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def configure_logging(
    log_level: Optional[str] = None,
    environment: Optional[str] = None,
) -> None:
    """Configure structlog and route stdlib logging to stdout at the given level."""
    level = logging.getLevelName((log_level or settings.log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            *_renderer(environment or settings.environment),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
