# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request and response models for enrollment operations."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from escolar.models.enums import (
    EnrollmentEventType,
    EnrollmentMovementType,
    EnrollmentStatus,
    EnrollmentType,
    SchoolShift,
    StudyModality,
)


class EnrollStudentRequest(BaseModel):
    """Enroll a student in a group for a year."""

    student_id: str
    academic_year_id: str
    group_id: str
    enrollment_type: EnrollmentType = EnrollmentType.NEW
    shift: SchoolShift | None = None
    modality: StudyModality | None = None
    observations: str | None = None
    enrolled_by_id: str


class WithdrawStudentRequest(BaseModel):
    enrollment_id: str
    reason: str = Field(min_length=1)
    observations: str | None = None
    performed_by_id: str


class TransferStudentRequest(BaseModel):
    enrollment_id: str
    reason: str = Field(min_length=1)
    destination_institution: str | None = None
    observations: str | None = None
    performed_by_id: str


class ChangeGroupRequest(BaseModel):
    enrollment_id: str
    new_group_id: str
    reason: str = Field(min_length=1)
    movement_type: EnrollmentMovementType = EnrollmentMovementType.GROUP_REASSIGNMENT
    observations: str | None = None
    performed_by_id: str


class ReactivateStudentRequest(BaseModel):
    enrollment_id: str
    reason: str = Field(min_length=1)
    observations: str | None = None
    performed_by_id: str


class EnrollmentFilters(BaseModel):
    """Filters for listing enrollments. All are optional and combined."""

    academic_year_id: str | None = None
    grade_id: str | None = None
    group_id: str | None = None
    status: EnrollmentStatus | None = None
    search: str | None = None


class EnrollmentResponse(BaseModel):
    """Enrollment details."""

    id: str
    student_id: str
    student_name: str | None = None
    academic_year_id: str
    year: int | None = None
    group_id: str
    group_name: str | None = None
    grade_id: str | None = None
    grade_name: str | None = None
    enrollment_type: EnrollmentType
    status: EnrollmentStatus
    shift: str | None = None
    modality: str | None = None
    observations: str | None = None
    withdrawal_date: datetime | None = None
    withdrawal_reason: str | None = None
    promoted_from_id: str | None = None
    promoted_to_id: str | None = None
    enrolled_at: datetime | None = None


class EnrollmentEventResponse(BaseModel):
    """One audit event."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    enrollment_id: str
    type: EnrollmentEventType
    movement_type: str | None = None
    previous_value: dict[str, Any] | None = None
    new_value: dict[str, Any] | None = None
    reason: str | None = None
    observations: str | None = None
    academic_act_id: str | None = None
    performed_by_id: str | None = None
    performed_at: datetime


class EnrollmentStats(BaseModel):
    """Aggregate counts of a year's enrollments."""

    total: int
    by_status: dict[str, int] = Field(default_factory=dict)
    by_group: dict[str, int] = Field(default_factory=dict)


class GroupCapacity(BaseModel):
    """Seat usage of a group for one year."""

    group_id: str
    group_name: str
    group_code: str | None = None
    grade_name: str
    campus_name: str | None = None
    shift_name: str | None = None
    max_capacity: int | None = None
    current_enrollments: int
    available_slots: int | None = None
    is_full: bool
