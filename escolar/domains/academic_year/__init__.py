# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic year domain package.

This package provides the academic year lifecycle engine:
- DRAFT -> ACTIVE -> CLOSED state machine with activation/closure validation
- Year-closure promotion computation through a pluggable promotion policy
- Status-derived permissions consulted by the enrollment engine
"""

from escolar.domains.academic_year.promotion_policy import (
    AlwaysPromotePolicy,
    PromotionPolicy,
)
from escolar.domains.academic_year.service import (
    AcademicYearExistsError,
    AcademicYearInUseError,
    AcademicYearLifecycleService,
    AcademicYearLockedError,
    AcademicYearNotFoundError,
    AcademicYearStateError,
    ActiveYearConflictError,
)

__all__ = [
    "AcademicYearExistsError",
    "AcademicYearInUseError",
    "AcademicYearLifecycleService",
    "AcademicYearLockedError",
    "AcademicYearNotFoundError",
    "AcademicYearStateError",
    "ActiveYearConflictError",
    "AlwaysPromotePolicy",
    "PromotionPolicy",
]
