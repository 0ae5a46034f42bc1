# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""What a year's status allows.

DRAFT years are open for structural edits, ACTIVE years take enrollments
and grades, and anything but a CLOSED year may still be modified. A missing
year (status None) allows nothing.
"""

from escolar.models.enums import AcademicYearStatus


def can_edit_structure(status: str | None) -> bool:
    return status == AcademicYearStatus.DRAFT


def can_record_grades(status: str | None) -> bool:
    return status == AcademicYearStatus.ACTIVE


def can_enroll_students(status: str | None) -> bool:
    return status == AcademicYearStatus.ACTIVE


def can_modify(status: str | None) -> bool:
    return status is not None and status != AcademicYearStatus.CLOSED
