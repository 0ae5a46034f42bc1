# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging configuration using structlog.

Two streams share one configuration:

- Module loggers (``escolar.*``) follow the configured log level.
- The audit logger (``escolar.audit``) records every enrollment event and
  stays at INFO even when the rest of the package is quieter, so the
  lifecycle trail is never filtered out by a WARNING deployment.

Levels are resolved per stdlib logger, which is what lets the audit
stream and the module loggers diverge.

Example:
    >>> from escolar.utils.logging import setup_logging, get_audit_logger
    >>> from escolar.core.config import get_settings
    >>> setup_logging(get_settings())
    >>> with actor_context("u-1", institution_id="i-1"):
    ...     get_audit_logger().info("enrollment_event", type="WITHDRAWN")
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from escolar.core.config.settings import Settings

AUDIT_LOGGER_NAME = "escolar.audit"

_QUIET_LOGGERS = ("sqlalchemy", "sqlalchemy.engine", "asyncpg", "asyncio", "alembic")


def setup_logging(settings: "Settings") -> None:
    """Configure structured logging for the application.

    Development (or debug) renders colored console lines; any other
    environment renders JSON for log aggregation.

    Args:
        settings: Application settings containing log_level and debug flag.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_development or settings.debug:
        renderer: Processor = structlog.dev.ConsoleRenderer(colors=True)
    else:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    for logger_name in _QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger("escolar").setLevel(log_level)
    logging.getLogger(AUDIT_LOGGER_NAME).setLevel(min(log_level, logging.INFO))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given module name."""
    return structlog.get_logger(name)


def get_audit_logger() -> structlog.stdlib.BoundLogger:
    """Logger for the enrollment audit trail."""
    return structlog.get_logger(AUDIT_LOGGER_NAME)


def bind_context(**kwargs: object) -> None:
    """Bind context variables to all subsequent log calls in this context.

    Args:
        **kwargs: Key-value pairs to bind to the logging context.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def actor_context(actor_id: str, institution_id: str | None = None) -> Iterator[None]:
    """Attach the acting user (and institution) to log lines inside the block.

    Previously bound values are restored on exit.
    """
    values: dict[str, object] = {"actor_id": actor_id}
    if institution_id is not None:
        values["institution_id"] = institution_id
    with structlog.contextvars.bound_contextvars(**values):
        yield
