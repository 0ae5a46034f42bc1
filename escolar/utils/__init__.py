# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for Escolar.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime operations
"""

from escolar.utils.datetime import date_to_utc, ensure_utc, utc_now, utc_today
from escolar.utils.logging import (
    AUDIT_LOGGER_NAME,
    actor_context,
    bind_context,
    clear_context,
    get_audit_logger,
    get_logger,
    setup_logging,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "actor_context",
    "get_audit_logger",
    "AUDIT_LOGGER_NAME",
    # Datetime
    "utc_now",
    "utc_today",
    "ensure_utc",
    "date_to_utc",
]
