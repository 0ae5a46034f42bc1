# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request and response models for the grade-change rule engine."""

from pydantic import BaseModel, ConfigDict, Field

from escolar.models.enums import EnrollmentMovementType, GradeChangeType


class ValidateGradeChangeRequest(BaseModel):
    enrollment_id: str
    new_group_id: str


class ChangeGradeRequest(BaseModel):
    """Execute a grade/group change.

    ``academic_act_id`` is mandatory whenever the change is not SAME_GRADE.
    """

    enrollment_id: str
    new_group_id: str
    movement_type: EnrollmentMovementType = EnrollmentMovementType.ACADEMIC
    reason: str = Field(min_length=1)
    observations: str | None = None
    academic_act_id: str | None = None
    performed_by_id: str


class GradeSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    stage: str
    number: int | None = None


class GradeChangeValidation(BaseModel):
    """Classification plus the rule table outcome.

    ``can_change`` is true exactly when ``restrictions`` is empty.
    """

    can_change: bool
    change_type: GradeChangeType
    current_grade: GradeSummary
    new_grade: GradeSummary
    warnings: list[str] = Field(default_factory=list)
    requirements: list[str] = Field(default_factory=list)
    restrictions: list[str] = Field(default_factory=list)


class GradeChangeRule(BaseModel):
    allowed: bool
    description: str
    requirements: list[str] = Field(default_factory=list)
    restrictions: list[str] = Field(default_factory=list)


class StageTransitionRule(BaseModel):
    requirements: list[str] = Field(default_factory=list)
    restrictions: list[str] = Field(default_factory=list)


class GradeChangeRules(BaseModel):
    """Static description of the grade-change rule table."""

    rules: dict[GradeChangeType, GradeChangeRule]
    stage_transitions: dict[str, StageTransitionRule]
    process: list[str]
