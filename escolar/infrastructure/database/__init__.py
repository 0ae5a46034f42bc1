# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for PostgreSQL connections.

This package provides:
- SQLAlchemy async engine/session management
- ORM models for the academic calendar, catalogs and enrollments
- Repository adapters used by the lifecycle engines

Example:
    from escolar.infrastructure.database import init_database, get_session

    await init_database(settings)
    async with get_session() as session:
        ...
"""

from escolar.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    commit_or_conflict,
    close_database,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
)

__all__ = [
    "DatabaseError",
    "check_database_connection",
    "commit_or_conflict",
    "close_database",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_database",
]
