# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for Escolar.

All timestamps are stored in UTC (PostgreSQL TIMESTAMPTZ) and every Python
datetime handled by the engines is timezone-aware. Academic year boundaries
are plain dates; ``date_to_utc`` lifts them onto the same timeline so that
year progress can be computed against ``utc_now()``.

Usage:
------
    from escolar.utils.datetime import utc_now

    now = utc_now()
    performed_at = Column(DateTime(timezone=True), default=utc_now)
"""

from datetime import date, datetime, time, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Get today's date in UTC."""
    return utc_now().date()


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def date_to_utc(value: date | datetime) -> datetime:
    """Convert a date (or datetime) to a UTC datetime at midnight.

    Args:
        value: Calendar date or datetime.

    Returns:
        Timezone-aware UTC datetime.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)  # type: ignore[return-value]
    return datetime.combine(value, time.min, tzinfo=timezone.utc)
