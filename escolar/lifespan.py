# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Process lifespan for applications embedding the lifecycle engines.

Configures logging (including the ``escolar.audit`` stream) and the
database engine on entry, and disposes the engine on exit.

Example:
    from escolar.lifespan import lifespan
    from escolar.infrastructure.database import get_session

    async with lifespan():
        async with get_session() as session:
            service = EnrollmentService(session)
            ...
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from escolar.core.config import Settings, get_settings
from escolar.infrastructure.database import close_database, init_database
from escolar.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(settings: Settings | None = None) -> AsyncIterator[Settings]:
    """Start logging and the database; shut the database down on exit.

    Args:
        settings: Settings to use. Defaults to the cached environment settings.

    Yields:
        The settings in effect.
    """
    settings = settings or get_settings()

    setup_logging(settings)
    logger.info("Starting Escolar (environment=%s)", settings.environment)

    await init_database(settings)
    try:
        yield settings
    finally:
        await close_database()
        logger.info("Escolar shut down")
