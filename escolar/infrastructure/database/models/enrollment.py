# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student enrollments and their append-only audit trail."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from escolar.infrastructure.database.models.academic import AcademicYear
from escolar.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)
from escolar.infrastructure.database.models.catalog import AcademicAct, Group, Student
from escolar.models.enums import EnrollmentStatus, EnrollmentType, StudyModality
from escolar.utils.datetime import utc_now


class StudentEnrollment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Binding of one student to one group within one academic year.

    ``promoted_from_id`` points at the prior-year enrollment this one was
    created from; ``promoted_to_id`` points forward at the renewal created
    by the promotion engine.
    """

    __tablename__ = "student_enrollments"
    __table_args__ = (
        UniqueConstraint(
            "student_id",
            "academic_year_id",
            name="uq_student_enrollments_student_year",
        ),
        Index("ix_student_enrollments_year_status", "academic_year_id", "status"),
    )

    student_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("students.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    academic_year_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("academic_years.id", ondelete="RESTRICT"),
        nullable=False,
    )
    group_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("groups.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    enrollment_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=EnrollmentType.NEW.value,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=EnrollmentStatus.ACTIVE.value,
    )
    shift: Mapped[str | None] = mapped_column(String(20), nullable=True)
    modality: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=StudyModality.PRESENTIAL.value,
    )
    observations: Mapped[str | None] = mapped_column(Text, nullable=True)
    withdrawal_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    withdrawal_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    promoted_from_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("student_enrollments.id", ondelete="SET NULL"),
        nullable=True,
    )
    promoted_to_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("student_enrollments.id", ondelete="SET NULL"),
        nullable=True,
    )
    enrolled_by_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    student: Mapped[Student] = relationship()
    group: Mapped[Group] = relationship()
    academic_year: Mapped[AcademicYear] = relationship()


class EnrollmentEvent(UUIDPrimaryKeyMixin, Base):
    """Immutable audit record produced by every enrollment mutation."""

    __tablename__ = "enrollment_events"
    __table_args__ = (
        Index("ix_enrollment_events_enrollment_performed", "enrollment_id", "performed_at"),
    )

    enrollment_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("student_enrollments.id", ondelete="RESTRICT"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    movement_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    previous_value: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    new_value: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    observations: Mapped[str | None] = mapped_column(Text, nullable=True)
    academic_act_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("academic_acts.id", ondelete="RESTRICT"),
        nullable=True,
    )
    performed_by_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)
    performed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    enrollment: Mapped[StudentEnrollment] = relationship()
    academic_act: Mapped[AcademicAct | None] = relationship()
