"""
Structured logging with structlog.

structlog and the standard library share one handler on stdout: structlog
events and records from third-party loggers (uvicorn, APScheduler,
SQLAlchemy) go through the same processor chain, so request ids bound in
contextvars show up on both.

Renderer by environment:
    production   one JSON object per line
    otherwise    human-readable console lines (no colors under pytest)

Usage:
    logger = get_logger(__name__)
    logger.info("Post edited", post_id=12, version=4)
"""

import logging
import sys
from typing import Any, List

import structlog

from inkwell.core.config import settings

QUIET_LOGGERS = ("apscheduler", "sqlalchemy.engine", "uvicorn.access")


def _renderer() -> Any:
    if settings.ENVIRONMENT == "production":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors="pytest" not in sys.modules and sys.stdout.isatty())


def configure_logging(level: str = "INFO") -> None:
    pre_chain: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=pre_chain + [
            structlog.stdlib.filter_by_level,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    final: List[Any] = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if settings.ENVIRONMENT == "production":
        final.append(structlog.processors.format_exc_info)
    final.append(_renderer())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(foreign_pre_chain=pre_chain, processors=final))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


configure_logging(settings.LOG_LEVEL)
