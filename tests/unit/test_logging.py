# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for logging configuration and datetime helpers."""

import logging
from datetime import date, datetime, timedelta, timezone

import structlog

from escolar.core.config.settings import Settings
from escolar.utils.datetime import date_to_utc, ensure_utc, utc_now
from escolar.utils.logging import (
    AUDIT_LOGGER_NAME,
    actor_context,
    bind_context,
    clear_context,
    get_audit_logger,
    get_logger,
    setup_logging,
)


class TestLogging:
    """Tests for structlog setup."""

    def test_setup_logging_sets_levels(self):
        setup_logging(Settings(log_level="WARNING"))

        assert logging.getLogger("escolar").level == logging.WARNING
        assert logging.getLogger("sqlalchemy").level == logging.WARNING
        structlog.reset_defaults()

    def test_audit_stream_stays_at_info(self):
        """A quieter deployment still keeps the enrollment audit trail."""
        setup_logging(Settings(environment="staging", debug=False, log_level="ERROR"))

        assert logging.getLogger("escolar").level == logging.ERROR
        assert logging.getLogger(AUDIT_LOGGER_NAME).level == logging.INFO
        structlog.reset_defaults()

    def test_audit_stream_follows_debug(self):
        setup_logging(Settings(log_level="DEBUG"))

        assert logging.getLogger(AUDIT_LOGGER_NAME).level == logging.DEBUG
        structlog.reset_defaults()

    def test_bound_context(self):
        clear_context()
        bind_context(actor_id="u1")
        try:
            assert structlog.contextvars.get_contextvars() == {"actor_id": "u1"}
        finally:
            clear_context()

        assert structlog.contextvars.get_contextvars() == {}

    def test_actor_context_restores_previous_values(self):
        clear_context()
        bind_context(request="r-1")
        try:
            with actor_context("u-1", institution_id="i-1"):
                assert structlog.contextvars.get_contextvars() == {
                    "request": "r-1",
                    "actor_id": "u-1",
                    "institution_id": "i-1",
                }

            assert structlog.contextvars.get_contextvars() == {"request": "r-1"}
        finally:
            clear_context()

    def test_actor_context_without_institution(self):
        clear_context()
        with actor_context("u-1"):
            assert structlog.contextvars.get_contextvars() == {"actor_id": "u-1"}
        assert structlog.contextvars.get_contextvars() == {}

    def test_get_logger(self):
        assert hasattr(get_logger(__name__), "info")
        assert hasattr(get_audit_logger(), "info")


class TestDatetime:
    """Tests for UTC helpers."""

    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is not None

    def test_ensure_utc(self):
        naive = datetime(2025, 1, 1, 12, 0)
        bogota = datetime(2025, 1, 1, 7, 0, tzinfo=timezone(timedelta(hours=-5)))

        assert ensure_utc(None) is None
        assert ensure_utc(naive) == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert ensure_utc(bogota) == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_date_to_utc(self):
        assert date_to_utc(date(2025, 2, 3)) == datetime(2025, 2, 3, tzinfo=timezone.utc)
