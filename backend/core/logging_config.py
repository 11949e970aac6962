"""Structured logging for the workflow engine and its Celery workers.

Every entry carries the environment plus whatever the engine has bound with
``structlog.contextvars`` (``execution_id``, ``workflow_id``, ``tenant_id``),
so the lines of one run can be grepped out of a shared worker log.
"""

import logging
import sys
from typing import Optional

import structlog

from app.config import Settings, get_settings

# Library loggers that are too chatty at INFO
QUIET_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "celery": logging.INFO,
}


def _environment_stamper(environment: str):
    def add_environment(logger, method_name, event_dict):
        event_dict.setdefault("environment", environment)
        return event_dict

    return add_environment


def _renderer(settings: Settings):
    if settings.is_development or settings.LOG_FORMAT == "text":
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return structlog.processors.JSONRenderer()


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Colored console output in development (or when ``LOG_FORMAT=text``),
    one JSON object per line everywhere else.
    """
    settings = settings or get_settings()

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _environment_stamper(settings.ENVIRONMENT),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(settings),
            ],
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)
    # SQLALCHEMY_ECHO already makes the engine log every statement
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.SQLALCHEMY_ECHO else logging.WARNING
    )
