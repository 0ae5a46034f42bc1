# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for database connection management.

No database is contacted: creating the async engine does not connect.
"""

import pytest

from escolar.core.config.settings import Settings
from escolar.infrastructure.database import (
    DatabaseError,
    check_database_connection,
    close_database,
    get_engine,
    get_session,
    get_sessionmaker,
    init_database,
)


class TestUninitialized:
    """Tests before init_database() is called."""

    def test_get_engine_requires_init(self):
        with pytest.raises(DatabaseError, match="not initialized"):
            get_engine()

    def test_get_sessionmaker_requires_init(self):
        with pytest.raises(DatabaseError):
            get_sessionmaker()

    @pytest.mark.asyncio
    async def test_get_session_requires_init(self):
        with pytest.raises(DatabaseError):
            async with get_session():
                pass

    @pytest.mark.asyncio
    async def test_check_connection_without_engine(self):
        assert await check_database_connection() is False


class TestLifecycle:
    """Tests for init/close."""

    @pytest.mark.asyncio
    async def test_init_and_close(self):
        await init_database(Settings(debug=False))
        try:
            engine = get_engine()
            assert engine.url.drivername == "postgresql+asyncpg"
            assert get_sessionmaker().kw["expire_on_commit"] is False
        finally:
            await close_database()

        with pytest.raises(DatabaseError):
            get_engine()


def test_database_error_str():
    error = DatabaseError("Database operation failed", ValueError("boom"))

    assert str(error) == "Database operation failed: boom"
    assert str(DatabaseError("plain")) == "plain"
