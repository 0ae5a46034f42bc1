# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Promote-or-repeat decision applied when a year is closed.

The lifecycle engine asks a ``PromotionPolicy`` about every ACTIVE
enrollment. Institutions plug in their own policy (final averages, area
failures, attendance) without touching the year state machine.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from escolar.infrastructure.database.models import StudentEnrollment


@runtime_checkable
class PromotionPolicy(Protocol):
    """Decides whether an enrollment is promoted at year closure."""

    def should_promote(self, enrollment: StudentEnrollment) -> bool:
        """Return True to mark the enrollment PROMOTED, False for REPEATED."""
        ...


class AlwaysPromotePolicy:
    """Placeholder policy: every active student is promoted.

    Final grade averages are not computed yet, so no threshold or
    weighting is assumed here.
    """

    def should_promote(self, enrollment: StudentEnrollment) -> bool:
        return True
