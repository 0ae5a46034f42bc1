# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade-change domain package.

This package provides the rule engine that classifies, validates and
executes grade/group changes of an enrollment.
"""

from escolar.domains.grade_change.service import (
    AcademicActNotApprovedError,
    AcademicActRequiredError,
    GradeChangeNotAllowedError,
    GradeChangeService,
    RuleOutcome,
    calculate_year_progress,
)

__all__ = [
    "AcademicActNotApprovedError",
    "AcademicActRequiredError",
    "GradeChangeNotAllowedError",
    "GradeChangeService",
    "RuleOutcome",
    "calculate_year_progress",
]
