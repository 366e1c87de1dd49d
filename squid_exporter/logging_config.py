"""
Structured logging for the exporter.

- JSON lines when ``APP_ENV=production`` (shipped to the log pipeline)
- Colored console output otherwise
- Level taken from ``LOG_LEVEL``

Usage::

    from squid_exporter.logging_config import get_logger
    logger = get_logger(__name__)
    logger.warning("mem_report_bad_value", k_id="kid1", pool="mem_node", value="x")
"""
import logging
import sys
import structlog
from squid_exporter.config import settings

# Uvicorn installs its own handlers; route them through ours instead.
_THIRD_PARTY_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def configure_logging(app_env: str | None = None, log_level: str | None = None) -> None:
    """Configure structlog processors and route stdlib logging through them."""
    env = (app_env or settings.app_env).lower()
    level = (log_level or settings.log_level).upper()

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if env == "production":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _THIRD_PARTY_LOGGERS:
        third_party = logging.getLogger(name)
        third_party.handlers.clear()
        third_party.propagate = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger for *name*."""
    return structlog.get_logger(name)


# Auto-configure on import
configure_logging()
