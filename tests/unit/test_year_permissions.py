# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for status-derived year permissions."""

import pytest

from escolar.domains.academic_year import permissions
from escolar.models.enums import AcademicYearStatus

DRAFT = AcademicYearStatus.DRAFT.value
ACTIVE = AcademicYearStatus.ACTIVE.value
CLOSED = AcademicYearStatus.CLOSED.value


@pytest.mark.parametrize(
    ("status", "edit", "grades", "enroll", "modify"),
    [
        (DRAFT, True, False, False, True),
        (ACTIVE, False, True, True, True),
        (CLOSED, False, False, False, False),
        (None, False, False, False, False),
    ],
)
def test_predicates(status, edit, grades, enroll, modify):
    assert permissions.can_edit_structure(status) is edit
    assert permissions.can_record_grades(status) is grades
    assert permissions.can_enroll_students(status) is enroll
    assert permissions.can_modify(status) is modify
