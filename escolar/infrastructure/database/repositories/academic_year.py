# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Year repository adapter over academic_years / academic_terms."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from escolar.infrastructure.database.models import AcademicTerm, AcademicYear
from escolar.models.enums import AcademicYearStatus


class AcademicYearRepository:
    """CRUD and status queries for academic years and their terms.

    The repository never commits; the calling service owns the unit of work.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_id(self, year_id: str) -> AcademicYear | None:
        query = select(AcademicYear).where(AcademicYear.id == str(year_id))
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_institution_and_year(
        self,
        institution_id: str,
        year: int,
    ) -> AcademicYear | None:
        query = select(AcademicYear).where(
            AcademicYear.institution_id == str(institution_id),
            AcademicYear.year == year,
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_active_for_institution(
        self,
        institution_id: str,
        for_update: bool = False,
    ) -> AcademicYear | None:
        """Get the ACTIVE year of an institution.

        Args:
            institution_id: Institution identifier.
            for_update: Lock the row so a concurrent activation blocks
                until this transaction finishes.

        Returns:
            The active year or None.
        """
        query = (
            select(AcademicYear)
            .where(
                AcademicYear.institution_id == str(institution_id),
                AcademicYear.status == AcademicYearStatus.ACTIVE.value,
            )
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalars().first()

    async def list_by_institution(self, institution_id: str) -> list[AcademicYear]:
        query = (
            select(AcademicYear)
            .where(AcademicYear.institution_id == str(institution_id))
            .order_by(AcademicYear.year.desc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_status(self, year_id: str) -> str | None:
        query = select(AcademicYear.status).where(AcademicYear.id == str(year_id))
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def count_terms(self, year_id: str) -> int:
        query = select(func.count()).select_from(AcademicTerm).where(
            AcademicTerm.academic_year_id == str(year_id)
        )
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def get_term(self, term_id: str) -> AcademicTerm | None:
        query = select(AcademicTerm).where(AcademicTerm.id == str(term_id))
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_terms(self, year_id: str) -> list[AcademicTerm]:
        query = (
            select(AcademicTerm)
            .where(AcademicTerm.academic_year_id == str(year_id))
            .order_by(AcademicTerm.order.asc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    def add(self, academic_year: AcademicYear) -> None:
        self.db.add(academic_year)

    async def delete(self, academic_year: AcademicYear) -> None:
        await self.db.delete(academic_year)
