# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models.

Four tables carry lifecycle state (academic_years, academic_terms,
student_enrollments, enrollment_events); the remaining tables are
read-only catalogs referenced by id.
"""

from escolar.infrastructure.database.models.academic import (
    AcademicTerm,
    AcademicYear,
    PerformanceScale,
)
from escolar.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    new_uuid,
)
from escolar.infrastructure.database.models.catalog import (
    AcademicAct,
    Area,
    Grade,
    Group,
    Student,
    StudentGrade,
    Subject,
    Teacher,
    TeacherAssignment,
)
from escolar.infrastructure.database.models.enrollment import (
    EnrollmentEvent,
    StudentEnrollment,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "new_uuid",
    # Calendar
    "AcademicYear",
    "AcademicTerm",
    "PerformanceScale",
    # Catalog
    "Grade",
    "Group",
    "Student",
    "AcademicAct",
    "StudentGrade",
    "Area",
    "Subject",
    "Teacher",
    "TeacherAssignment",
    # Enrollment
    "StudentEnrollment",
    "EnrollmentEvent",
]
