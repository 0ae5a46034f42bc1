# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic calendar tables: years, terms and the performance scale."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from escolar.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)
from escolar.models.enums import AcademicTermType, AcademicYearStatus


class AcademicYear(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """One school year of one institution.

    At most one ACTIVE year per institution, enforced by the partial unique
    index ``uq_academic_years_one_active``.
    """

    __tablename__ = "academic_years"
    __table_args__ = (
        UniqueConstraint("institution_id", "year", name="uq_academic_years_institution_year"),
        Index(
            "uq_academic_years_one_active",
            "institution_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
        ),
        Index("ix_academic_years_status", "status"),
    )

    institution_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AcademicYearStatus.DRAFT.value,
        server_default=AcademicYearStatus.DRAFT.value,
    )
    activated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    activated_by_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_by_id: Mapped[str | None] = mapped_column(UUID(as_uuid=False), nullable=True)

    terms: Mapped[list[AcademicTerm]] = relationship(
        back_populates="academic_year",
        order_by="AcademicTerm.order",
        cascade="all, delete-orphan",
    )

    @property
    def is_draft(self) -> bool:
        return self.status == AcademicYearStatus.DRAFT

    @property
    def is_active(self) -> bool:
        return self.status == AcademicYearStatus.ACTIVE

    @property
    def is_closed(self) -> bool:
        return self.status == AcademicYearStatus.CLOSED


class AcademicTerm(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Ordered, weighted grading period within a year."""

    __tablename__ = "academic_terms"
    __table_args__ = (
        UniqueConstraint("academic_year_id", "order", name="uq_academic_terms_year_order"),
    )

    academic_year_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("academic_years.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AcademicTermType.PERIOD.value,
        server_default=AcademicTermType.PERIOD.value,
    )
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    weight_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    academic_year: Mapped[AcademicYear] = relationship(back_populates="terms")


class PerformanceScale(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Score band of an institution's performance scale (BAJO..SUPERIOR)."""

    __tablename__ = "performance_scales"

    institution_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    level: Mapped[str] = mapped_column(String(20), nullable=False)
    min_score: Mapped[Decimal] = mapped_column(Numeric(4, 2), nullable=False)
    max_score: Mapped[Decimal] = mapped_column(Numeric(4, 2), nullable=False)
