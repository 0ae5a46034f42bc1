# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment domain package.

This package provides:
- The per-student enrollment state machine (enroll, withdraw, transfer,
  change group, reactivate) with its audit trail
- Enrollment queries, statistics and group capacity
- The cross-year promotion engine
"""

from escolar.domains.enrollment.promotion import PromotionCandidate, PromotionEngine
from escolar.domains.enrollment.service import (
    EnrollmentExistsError,
    EnrollmentNotFoundError,
    EnrollmentService,
    EnrollmentStateError,
    GroupFullError,
    GroupNotFoundError,
    StudentNotFoundError,
    YearNotOpenError,
)

__all__ = [
    "EnrollmentExistsError",
    "EnrollmentNotFoundError",
    "EnrollmentService",
    "EnrollmentStateError",
    "GroupFullError",
    "GroupNotFoundError",
    "PromotionCandidate",
    "PromotionEngine",
    "StudentNotFoundError",
    "YearNotOpenError",
]
