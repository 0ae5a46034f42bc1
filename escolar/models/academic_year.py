# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request and response models for the academic year lifecycle."""

from datetime import date, datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from escolar.models.enums import AcademicYearStatus, EnrollmentStatus


class AcademicYearCreateRequest(BaseModel):
    """Create a DRAFT academic year."""

    institution_id: str
    year: int = Field(ge=1900, le=2200)
    name: str | None = Field(default=None, max_length=100)
    start_date: date | None = None
    end_date: date | None = None


class AcademicYearUpdateRequest(BaseModel):
    """Edit a DRAFT academic year. Unset fields are left untouched."""

    name: str | None = Field(default=None, max_length=100)
    start_date: date | None = None
    end_date: date | None = None


class ActivateYearRequest(BaseModel):
    year_id: str
    user_id: str


class CloseYearRequest(BaseModel):
    year_id: str
    user_id: str
    calculate_promotions: bool = False


class PromoteStudentsRequest(BaseModel):
    """Bulk-advance PROMOTED/REPEATED enrollments into another year."""

    from_year_id: str
    to_year_id: str
    user_id: str

    @model_validator(mode="after")
    def validate_distinct_years(self) -> Self:
        if self.from_year_id == self.to_year_id:
            raise ValueError("from_year_id and to_year_id must differ")
        return self


class AcademicYearResponse(BaseModel):
    """Academic year details."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    institution_id: str
    year: int
    name: str
    start_date: date | None = None
    end_date: date | None = None
    status: AcademicYearStatus
    activated_at: datetime | None = None
    activated_by_id: str | None = None
    closed_at: datetime | None = None
    closed_by_id: str | None = None
    term_count: int = 0
    enrollment_count: int = 0


class CloseYearResult(BaseModel):
    success: bool = True
    year_id: str
    closed_at: datetime
    promoted_count: int = 0
    repeated_count: int = 0
    withdrawn_count: int = 0


class PromotionResult(BaseModel):
    """Outcome of a best-effort bulk promotion; errors are per student."""

    success: bool
    enrollments_created: int = 0
    errors: list[str] = Field(default_factory=list)


class PromotionPreview(BaseModel):
    """What closing the year would do to one ACTIVE enrollment."""

    enrollment_id: str
    student_id: str
    student_name: str
    current_grade_id: str
    current_grade_name: str
    current_group_name: str
    final_average: float | None = None
    suggested_status: EnrollmentStatus
    next_grade_id: str | None = None
    next_grade_name: str | None = None


class YearPermissions(BaseModel):
    """Status-derived capabilities of a year."""

    can_edit_structure: bool
    can_record_grades: bool
    can_enroll_students: bool
    can_modify: bool


class AcademicTermSummary(BaseModel):
    """Term DTO handed to reporting collaborators."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    type: str
    order: int
    weight_percentage: float
    start_date: date | None = None
    end_date: date | None = None


class PerformanceScaleSummary(BaseModel):
    """Performance band DTO handed to reporting collaborators."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    level: str
    min_score: float
    max_score: float
    description: str | None = None


class TeacherAssignmentSummary(BaseModel):
    """Teacher assignment as consumed by report cards."""

    id: str
    subject_id: str
    subject_name: str
    subject_code: str | None = None
    area_id: str
    area_name: str
    area_code: str | None = None
    teacher_name: str
