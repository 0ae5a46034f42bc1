# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade ordering utility."""

from escolar.domains.grade_order.ordering import (
    STAGE_WEIGHTS,
    GradeLike,
    classify_grade_change,
    grade_order_key,
    stage_weight,
)

__all__ = [
    "STAGE_WEIGHTS",
    "GradeLike",
    "classify_grade_change",
    "grade_order_key",
    "stage_weight",
]
