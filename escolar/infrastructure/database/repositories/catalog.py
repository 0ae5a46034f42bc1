# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read-only catalog lookups: grades, groups, students, acts, scores and
teacher assignments."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import case, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from escolar.domains.grade_order.ordering import STAGE_WEIGHTS
from escolar.infrastructure.database.models import (
    AcademicAct,
    Grade,
    Group,
    PerformanceScale,
    Student,
    StudentGrade,
    Subject,
    TeacherAssignment,
)

# Stages are stored as text; sort them by pedagogical order, not alphabetically
_STAGE_ORDER = case(STAGE_WEIGHTS, value=Grade.stage, else_=len(STAGE_WEIGHTS) * 100)


class CatalogRepository:
    """Read-only access to the catalogs the lifecycle engines reference.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_grade(
        self,
        institution_id: str,
        stage: str,
        number: int,
    ) -> Grade | None:
        """Find the grade with the given stage and rank within it."""
        query = select(Grade).where(
            Grade.institution_id == str(institution_id),
            Grade.stage == stage,
            Grade.number == number,
        )
        result = await self.db.execute(query)
        return result.scalars().first()

    async def get_group(self, group_id: str) -> Group | None:
        query = (
            select(Group)
            .options(selectinload(Group.grade))
            .where(Group.id == str(group_id))
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def first_group_for_grade(self, grade_id: str) -> Group | None:
        query = (
            select(Group)
            .options(selectinload(Group.grade))
            .where(Group.grade_id == str(grade_id))
            .order_by(Group.name.asc())
        )
        result = await self.db.execute(query)
        return result.scalars().first()

    async def list_groups(self, institution_id: str) -> list[Group]:
        """Groups of an institution in grade order, then by name."""
        query = (
            select(Group)
            .join(Group.grade)
            .options(selectinload(Group.grade))
            .where(Group.institution_id == str(institution_id))
            .order_by(_STAGE_ORDER, Grade.number.asc(), Group.name.asc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_student(self, student_id: str) -> Student | None:
        result = await self.db.execute(select(Student).where(Student.id == str(student_id)))
        return result.scalar_one_or_none()

    async def get_academic_act(self, act_id: str) -> AcademicAct | None:
        result = await self.db.execute(select(AcademicAct).where(AcademicAct.id == str(act_id)))
        return result.scalar_one_or_none()

    async def list_scores(self, enrollment_id: str) -> list[Decimal]:
        """Recorded subject scores of an enrollment."""
        query = select(StudentGrade.score).where(
            StudentGrade.student_enrollment_id == str(enrollment_id)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_performance_scale(self, institution_id: str) -> list[PerformanceScale]:
        query = (
            select(PerformanceScale)
            .where(PerformanceScale.institution_id == str(institution_id))
            .order_by(PerformanceScale.min_score.asc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_scale_level(self, institution_id: str, level: str) -> PerformanceScale | None:
        query = (
            select(PerformanceScale)
            .where(
                PerformanceScale.institution_id == str(institution_id),
                PerformanceScale.level == level,
            )
            .order_by(PerformanceScale.min_score.asc())
        )
        result = await self.db.execute(query)
        return result.scalars().first()

    async def list_teacher_assignments(
        self,
        group_id: str,
        academic_year_id: str,
        subject_ids: list[str] | None = None,
    ) -> list[TeacherAssignment]:
        """Teacher assignments of a group in a year, optionally for some subjects."""
        query = (
            select(TeacherAssignment)
            .options(
                selectinload(TeacherAssignment.subject).selectinload(Subject.area),
                selectinload(TeacherAssignment.teacher),
            )
            .where(
                TeacherAssignment.group_id == str(group_id),
                TeacherAssignment.academic_year_id == str(academic_year_id),
            )
        )
        if subject_ids is not None:
            query = query.where(TeacherAssignment.subject_id.in_([str(s) for s in subject_ids]))

        result = await self.db.execute(query)
        return list(result.scalars().all())
