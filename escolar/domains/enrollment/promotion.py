# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Cross-year promotion engine.

Creates next-year RENEWAL enrollments for every PROMOTED or REPEATED
enrollment of a closed year. The batch is best-effort: each student's new
enrollment and its CREATED event commit on their own, and a failing student
is reported in ``errors`` without undoing the students already promoted.
Group capacity is not enforced here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from escolar.domains.academic_year.service import (
    AcademicYearNotFoundError,
    AcademicYearStateError,
)
from escolar.infrastructure.database.models import (
    AcademicYear,
    StudentEnrollment,
    new_uuid,
)
from escolar.infrastructure.database.repositories import (
    AcademicYearRepository,
    CatalogRepository,
    EnrollmentRepository,
)
from escolar.models.academic_year import PromoteStudentsRequest, PromotionResult
from escolar.models.enums import (
    AcademicYearStatus,
    EnrollmentEventType,
    EnrollmentStatus,
    EnrollmentType,
)
from escolar.utils.datetime import utc_now
from escolar.utils.logging import actor_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromotionCandidate:
    """Plain snapshot of a source enrollment.

    A per-student rollback expires every instance in the session, so the
    loop works from these values instead of the ORM objects.
    """

    enrollment_id: str
    student_id: str
    first_name: str
    last_name: str
    status: str
    shift: str | None
    modality: str
    institution_id: str
    grade_id: str
    grade_stage: str
    grade_number: int | None

    @classmethod
    def from_enrollment(cls, enrollment: StudentEnrollment) -> PromotionCandidate:
        grade = enrollment.group.grade
        return cls(
            enrollment_id=enrollment.id,
            student_id=enrollment.student_id,
            first_name=enrollment.student.first_name,
            last_name=enrollment.student.last_name,
            status=enrollment.status,
            shift=enrollment.shift,
            modality=enrollment.modality,
            institution_id=grade.institution_id,
            grade_id=grade.id,
            grade_stage=grade.stage,
            grade_number=grade.number,
        )


class PromotionEngine:
    """Bulk-advance students from a closed year into the next one.

    Attributes:
        db: Async database session.
        years: Academic year repository.
        enrollments: Enrollment repository.
        catalog: Catalog lookups.

    Example:
        engine = PromotionEngine(db)
        result = await engine.promote_students(
            PromoteStudentsRequest(from_year_id=y1, to_year_id=y2, user_id=uid)
        )
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.years = AcademicYearRepository(db)
        self.enrollments = EnrollmentRepository(db)
        self.catalog = CatalogRepository(db)

    async def promote_students(self, request: PromoteStudentsRequest) -> PromotionResult:
        """Create next-year enrollments for promoted and repeating students.

        Students already enrolled in the target year are skipped, so the
        operation can be re-run after fixing the reported errors.

        Args:
            request: Source year, target year and acting user.

        Returns:
            Number of enrollments created and one message per failed student.

        Raises:
            AcademicYearNotFoundError: If either year does not exist.
            AcademicYearStateError: If the source year is not CLOSED or the
                target year is CLOSED.
        """
        from_year = await self._get_year(request.from_year_id)
        to_year = await self._get_year(request.to_year_id)

        if from_year.status != AcademicYearStatus.CLOSED:
            raise AcademicYearStateError(
                "El año de origen debe estar cerrado para promover estudiantes"
            )
        if to_year.status == AcademicYearStatus.CLOSED:
            raise AcademicYearStateError("No se pueden promover estudiantes a un año cerrado")

        from_year_number = from_year.year
        to_year_id = to_year.id

        sources = await self.enrollments.list_by_year_and_statuses(
            from_year.id, [EnrollmentStatus.PROMOTED, EnrollmentStatus.REPEATED]
        )
        candidates = [PromotionCandidate.from_enrollment(source) for source in sources]

        errors: list[str] = []
        enrollments_created = 0

        with actor_context(request.user_id, institution_id=from_year.institution_id):
            for candidate in candidates:
                try:
                    created = await self._promote_one(
                        candidate, to_year_id, from_year_number, request.user_id, errors
                    )
                except Exception as e:
                    await self.db.rollback()
                    logger.warning(
                        "Failed to promote enrollment %s: %s", candidate.enrollment_id, e
                    )
                    errors.append(f"Error al promover {candidate.first_name}: {e}")
                    continue

                if created:
                    enrollments_created += 1

        logger.info(
            "Promoted from year %s to %s: created=%d errors=%d",
            request.from_year_id,
            to_year_id,
            enrollments_created,
            len(errors),
        )

        return PromotionResult(
            success=not errors,
            enrollments_created=enrollments_created,
            errors=errors,
        )

    async def _promote_one(
        self,
        candidate: PromotionCandidate,
        to_year_id: str,
        from_year_number: int,
        user_id: str,
        errors: list[str],
    ) -> bool:
        """Create and commit one renewal enrollment.

        Returns:
            True if an enrollment was created, False if the student was
            skipped or reported in ``errors``.
        """
        existing = await self.enrollments.get_by_student_and_year(
            candidate.student_id, to_year_id
        )
        if existing:
            return False

        target_grade_id = await self._target_grade_id(candidate)
        target_group = await self.catalog.first_group_for_grade(target_grade_id)
        if not target_group:
            errors.append(
                f"No hay grupo disponible para {candidate.first_name} {candidate.last_name}"
            )
            return False

        renewal = StudentEnrollment(
            id=new_uuid(),
            student_id=candidate.student_id,
            academic_year_id=to_year_id,
            group_id=target_group.id,
            enrollment_type=EnrollmentType.RENEWAL.value,
            status=EnrollmentStatus.ACTIVE.value,
            shift=candidate.shift,
            modality=candidate.modality,
            promoted_from_id=candidate.enrollment_id,
            enrolled_by_id=user_id,
            enrolled_at=utc_now(),
        )
        self.enrollments.add(renewal)
        # The renewal row must exist before the source can reference it
        await self.enrollments.flush()

        source = await self.enrollments.get_by_id(candidate.enrollment_id)
        if source is not None:
            source.promoted_to_id = renewal.id

        self.enrollments.add_event(
            enrollment_id=renewal.id,
            type=EnrollmentEventType.CREATED,
            performed_by_id=user_id,
            previous_value={"fromEnrollmentId": candidate.enrollment_id},
            new_value={
                "groupId": target_group.id,
                "enrollmentType": EnrollmentType.RENEWAL.value,
                "status": EnrollmentStatus.ACTIVE.value,
            },
            reason=f"Promoción desde año {from_year_number}",
        )

        await self.db.commit()
        return True

    async def _target_grade_id(self, candidate: PromotionCandidate) -> str:
        """Next grade of the same stage for PROMOTED, the same grade otherwise."""
        if candidate.status != EnrollmentStatus.PROMOTED:
            return candidate.grade_id

        next_grade = await self.catalog.find_grade(
            candidate.institution_id,
            candidate.grade_stage,
            (candidate.grade_number or 0) + 1,
        )
        return next_grade.id if next_grade else candidate.grade_id

    async def _get_year(self, year_id: str) -> AcademicYear:
        academic_year = await self.years.get_by_id(year_id)
        if not academic_year:
            raise AcademicYearNotFoundError()
        return academic_year
