# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Catalog tables referenced by id from the lifecycle engines.

Grades, groups, students, academic acts, recorded subject grades and
teacher assignments are maintained elsewhere; the engines only read them.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from escolar.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)


class Grade(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Pedagogical level: a stage plus a rank within the stage."""

    __tablename__ = "grades"
    __table_args__ = (
        UniqueConstraint("institution_id", "stage", "name", name="uq_grades_institution_stage_name"),
    )

    institution_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    stage: Mapped[str] = mapped_column(String(30), nullable=False)
    number: Mapped[int | None] = mapped_column(Integer, nullable=True, default=0)


class Group(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Concrete class within a grade at a campus and shift."""

    __tablename__ = "groups"

    institution_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    grade_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("grades.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    campus_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    shift_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    max_capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)

    grade: Mapped[Grade] = relationship()


class Student(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Student identity as far as the lifecycle engines need it."""

    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("institution_id", "document_number", name="uq_students_institution_document"),
    )

    institution_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    document_number: Mapped[str] = mapped_column(String(30), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class AcademicAct(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Formal institutional decision backing an exceptional change."""

    __tablename__ = "academic_acts"

    institution_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    number: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    approval_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    @property
    def is_approved(self) -> bool:
        return self.approval_date is not None


class StudentGrade(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Recorded subject score of one enrollment."""

    __tablename__ = "student_grades"

    student_enrollment_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("student_enrollments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    academic_term_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("academic_terms.id", ondelete="SET NULL"),
        nullable=True,
    )
    subject_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False)
    score: Mapped[Decimal] = mapped_column(Numeric(4, 2), nullable=False)


class Area(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Knowledge area grouping related subjects."""

    __tablename__ = "areas"

    institution_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str | None] = mapped_column(String(20), nullable=True)


class Subject(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "subjects"

    area_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("areas.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    area: Mapped[Area] = relationship()


class Teacher(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "teachers"

    institution_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class TeacherAssignment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Teacher in charge of one subject for one group during one year."""

    __tablename__ = "teacher_assignments"
    __table_args__ = (
        UniqueConstraint(
            "academic_year_id",
            "group_id",
            "subject_id",
            name="uq_teacher_assignments_year_group_subject",
        ),
    )

    academic_year_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("academic_years.id", ondelete="CASCADE"),
        nullable=False,
    )
    group_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    subject_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("subjects.id", ondelete="RESTRICT"),
        nullable=False,
    )
    teacher_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("teachers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    subject: Mapped[Subject] = relationship()
    teacher: Mapped[Teacher] = relationship()
