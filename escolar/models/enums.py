# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enumerations shared by the ORM layer and the DTOs.

Values are stored as plain strings in the database.
"""

from enum import StrEnum


class AcademicYearStatus(StrEnum):
    """Academic year lifecycle: DRAFT -> ACTIVE -> CLOSED (terminal)."""

    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class AcademicTermType(StrEnum):
    """Kind of grading period."""

    PERIOD = "PERIOD"
    SEMESTER = "SEMESTER"
    TRIMESTER = "TRIMESTER"


class GradeStage(StrEnum):
    """Pedagogical band used to order grades."""

    PREESCOLAR = "PREESCOLAR"
    BASICA_PRIMARIA = "BASICA_PRIMARIA"
    BASICA_SECUNDARIA = "BASICA_SECUNDARIA"
    MEDIA = "MEDIA"


class EnrollmentType(StrEnum):
    """How the student entered the year."""

    NEW = "NEW"
    RENEWAL = "RENEWAL"
    REENTRY = "REENTRY"
    TRANSFER = "TRANSFER"


class EnrollmentStatus(StrEnum):
    """Per-year enrollment status."""

    ACTIVE = "ACTIVE"
    WITHDRAWN = "WITHDRAWN"
    TRANSFERRED = "TRANSFERRED"
    PROMOTED = "PROMOTED"
    REPEATED = "REPEATED"


class EnrollmentEventType(StrEnum):
    """Audit event kinds, one per mutating operation."""

    CREATED = "CREATED"
    WITHDRAWN = "WITHDRAWN"
    TRANSFERRED = "TRANSFERRED"
    GROUP_CHANGED = "GROUP_CHANGED"
    REACTIVATED = "REACTIVATED"
    GRADE_CHANGED = "GRADE_CHANGED"
    PROMOTED = "PROMOTED"
    REPEATED = "REPEATED"


class EnrollmentMovementType(StrEnum):
    """Classifier tag for student movements."""

    ACADEMIC = "ACADEMIC"
    ADMINISTRATIVE = "ADMINISTRATIVE"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"
    GROUP_REASSIGNMENT = "GROUP_REASSIGNMENT"


class SchoolShift(StrEnum):
    """School day shift."""

    MORNING = "MORNING"
    AFTERNOON = "AFTERNOON"
    EVENING = "EVENING"
    FULL_DAY = "FULL_DAY"
    WEEKEND = "WEEKEND"


class StudyModality(StrEnum):
    """Study modality."""

    PRESENTIAL = "PRESENTIAL"
    DISTANCE = "DISTANCE"
    VIRTUAL = "VIRTUAL"


class GradeChangeType(StrEnum):
    """Classification of a proposed group change."""

    SAME_GRADE = "SAME_GRADE"
    PROMOTION = "PROMOTION"
    DEMOTION = "DEMOTION"


class PerformanceLevel(StrEnum):
    """Institutional performance scale levels."""

    BAJO = "BAJO"
    BASICO = "BASICO"
    ALTO = "ALTO"
    SUPERIOR = "SUPERIOR"
