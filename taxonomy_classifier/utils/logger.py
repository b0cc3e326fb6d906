"""
Structured Logging Configuration
================================

structlog setup for the classifier: JSON lines in production, colored
console output elsewhere.

Every event logged while a product is being classified carries the
product's title (and its batch position) through contextvars, so the
candidate, decision and scoring events of one product can be grouped.

Usage:
    configure_logging(settings)
    logger = get_logger(__name__)

    with classification_log_context(product.title, batch_index=3):
        logger.info("Candidates retrieved", merged_count=8)
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from taxonomy_classifier.config.settings import Settings, get_settings

# Title prefix bound to log events
LOG_TITLE_MAX_LENGTH = 80

# Client libraries that log every HTTP request / SQL statement at INFO
CHATTY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")


def configure_logging(settings: Settings | None = None) -> None:
    """
    Configure structured logging for the classifier.

    Args:
        settings: Source of log level and environment (cached settings if omitted)
    """
    settings = settings or get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    # Ollama calls go through httpx; keep them out of the log unless debugging
    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: list[Any]
    if settings.is_production:
        renderer = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderer = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=[*shared_processors, *renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def classification_log_context(title: str, **extra: Any) -> Iterator[None]:
    """
    Bind the product being classified to every log event in the block.

    Nested blocks add to the outer context; leaving a block restores
    what was bound before it.

    Args:
        title: Product title (truncated)
        **extra: Additional keys, e.g. batch_index
    """
    with structlog.contextvars.bound_contextvars(product=title[:LOG_TITLE_MAX_LENGTH], **extra):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a logger instance for the given name.

    Args:
        name: Logger name, typically __name__

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)
