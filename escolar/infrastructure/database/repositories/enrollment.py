# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment repository adapter over student_enrollments / enrollment_events."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from escolar.infrastructure.database.models import (
    AcademicYear,
    EnrollmentEvent,
    Grade,
    Group,
    Student,
    StudentEnrollment,
)
from escolar.models.enums import EnrollmentEventType, EnrollmentStatus
from escolar.utils.datetime import utc_now
from escolar.utils.logging import get_audit_logger

audit_logger = get_audit_logger()


def _with_relations(query):
    """Eager-load what the engines read from an enrollment."""
    return query.options(
        selectinload(StudentEnrollment.student),
        selectinload(StudentEnrollment.group).selectinload(Group.grade),
        selectinload(StudentEnrollment.academic_year),
    )


class EnrollmentRepository:
    """CRUD, status queries and the append-only audit trail.

    The repository never commits; the calling service owns the unit of work.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_id(self, enrollment_id: str) -> StudentEnrollment | None:
        query = _with_relations(select(StudentEnrollment)).where(
            StudentEnrollment.id == str(enrollment_id)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_student_and_year(
        self,
        student_id: str,
        academic_year_id: str,
    ) -> StudentEnrollment | None:
        query = select(StudentEnrollment).where(
            StudentEnrollment.student_id == str(student_id),
            StudentEnrollment.academic_year_id == str(academic_year_id),
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_by_year_and_statuses(
        self,
        academic_year_id: str,
        statuses: Iterable[EnrollmentStatus],
    ) -> list[StudentEnrollment]:
        query = _with_relations(select(StudentEnrollment)).where(
            StudentEnrollment.academic_year_id == str(academic_year_id),
            StudentEnrollment.status.in_([s.value for s in statuses]),
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_by_year(
        self,
        academic_year_id: str,
        status: EnrollmentStatus | None = None,
    ) -> int:
        query = select(func.count()).select_from(StudentEnrollment).where(
            StudentEnrollment.academic_year_id == str(academic_year_id)
        )
        if status is not None:
            query = query.where(StudentEnrollment.status == status.value)
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def count_active_in_group(self, group_id: str, academic_year_id: str) -> int:
        query = select(func.count()).select_from(StudentEnrollment).where(
            StudentEnrollment.group_id == str(group_id),
            StudentEnrollment.academic_year_id == str(academic_year_id),
            StudentEnrollment.status == EnrollmentStatus.ACTIVE.value,
        )
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def count_active_by_group(self, academic_year_id: str) -> dict[str, int]:
        query = (
            select(StudentEnrollment.group_id, func.count())
            .where(
                StudentEnrollment.academic_year_id == str(academic_year_id),
                StudentEnrollment.status == EnrollmentStatus.ACTIVE.value,
            )
            .group_by(StudentEnrollment.group_id)
        )
        result = await self.db.execute(query)
        return {group_id: count for group_id, count in result.all()}

    async def count_grouped_by_status(self, academic_year_id: str) -> dict[str, int]:
        query = (
            select(StudentEnrollment.status, func.count())
            .where(StudentEnrollment.academic_year_id == str(academic_year_id))
            .group_by(StudentEnrollment.status)
        )
        result = await self.db.execute(query)
        return {status: count for status, count in result.all()}

    async def count_grouped_by_group(self, academic_year_id: str) -> dict[str, int]:
        query = (
            select(StudentEnrollment.group_id, func.count())
            .where(StudentEnrollment.academic_year_id == str(academic_year_id))
            .group_by(StudentEnrollment.group_id)
        )
        result = await self.db.execute(query)
        return {group_id: count for group_id, count in result.all()}

    async def search(
        self,
        academic_year_id: str | None = None,
        grade_id: str | None = None,
        group_id: str | None = None,
        status: EnrollmentStatus | None = None,
        search: str | None = None,
    ) -> list[StudentEnrollment]:
        """List enrollments matching every supplied filter."""
        query = (
            _with_relations(select(StudentEnrollment))
            .join(StudentEnrollment.group)
            .join(Group.grade)
            .join(StudentEnrollment.student)
        )

        if academic_year_id:
            query = query.where(StudentEnrollment.academic_year_id == str(academic_year_id))
        if group_id:
            query = query.where(StudentEnrollment.group_id == str(group_id))
        if grade_id:
            query = query.where(Group.grade_id == str(grade_id))
        if status:
            query = query.where(StudentEnrollment.status == status.value)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    Student.first_name.ilike(pattern),
                    Student.last_name.ilike(pattern),
                    Student.document_number.contains(search),
                )
            )

        query = query.order_by(Grade.name.asc(), Group.name.asc(), Student.last_name.asc())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_by_student(self, student_id: str) -> list[StudentEnrollment]:
        query = (
            _with_relations(select(StudentEnrollment))
            .join(StudentEnrollment.academic_year)
            .where(StudentEnrollment.student_id == str(student_id))
            .order_by(AcademicYear.year.desc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_events(self, enrollment_id: str) -> list[EnrollmentEvent]:
        query = (
            select(EnrollmentEvent)
            .where(EnrollmentEvent.enrollment_id == str(enrollment_id))
            .order_by(EnrollmentEvent.performed_at.desc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    def add(self, enrollment: StudentEnrollment) -> None:
        self.db.add(enrollment)

    async def flush(self) -> None:
        await self.db.flush()

    def add_event(
        self,
        enrollment_id: str,
        type: EnrollmentEventType,
        performed_by_id: str | None,
        previous_value: dict[str, Any] | None = None,
        new_value: dict[str, Any] | None = None,
        reason: str | None = None,
        observations: str | None = None,
        movement_type: str | None = None,
        academic_act_id: str | None = None,
    ) -> EnrollmentEvent:
        """Append an audit event. Events are never updated or deleted.

        Returns:
            The pending EnrollmentEvent.
        """
        event = EnrollmentEvent(
            enrollment_id=enrollment_id,
            type=type.value,
            movement_type=movement_type,
            previous_value=previous_value,
            new_value=new_value,
            reason=reason,
            observations=observations,
            academic_act_id=academic_act_id,
            performed_by_id=performed_by_id,
            performed_at=utc_now(),
        )
        self.db.add(event)

        audit_logger.info(
            "enrollment_event_recorded",
            enrollment_id=enrollment_id,
            event_type=type.value,
            movement_type=movement_type,
            performed_by=performed_by_id,
        )

        return event
