# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic year lifecycle service.

This module provides the AcademicYearLifecycleService class for:
- Academic year CRUD (edits and deletion only while DRAFT)
- The DRAFT -> ACTIVE -> CLOSED state machine
- Activation and closure validation
- Year-closure promotion computation and preview
- Status-derived permissions and reporting lookups
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from escolar.core.config import Settings, get_settings
from escolar.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from escolar.domains.academic_year import permissions
from escolar.domains.academic_year.promotion_policy import (
    AlwaysPromotePolicy,
    PromotionPolicy,
)
from escolar.infrastructure.database import commit_or_conflict
from escolar.infrastructure.database.models import (
    AcademicYear,
    Grade,
    TeacherAssignment,
    new_uuid,
)
from escolar.infrastructure.database.repositories import (
    AcademicYearRepository,
    CatalogRepository,
    EnrollmentRepository,
)
from escolar.models.academic_year import (
    AcademicTermSummary,
    AcademicYearCreateRequest,
    AcademicYearResponse,
    AcademicYearUpdateRequest,
    ActivateYearRequest,
    CloseYearRequest,
    CloseYearResult,
    PerformanceScaleSummary,
    PromotionPreview,
    TeacherAssignmentSummary,
    YearPermissions,
)
from escolar.models.enums import (
    AcademicYearStatus,
    EnrollmentEventType,
    EnrollmentStatus,
    PerformanceLevel,
)
from escolar.utils.datetime import utc_now
from escolar.utils.logging import actor_context

logger = logging.getLogger(__name__)


class AcademicYearNotFoundError(NotFoundError):
    """Raised when academic year is not found."""

    def __init__(self, message: str = "Año lectivo no encontrado") -> None:
        super().__init__(message)


class AcademicYearExistsError(ConflictError):
    """Raised when the institution already has a year with that number."""

    pass


class AcademicYearStateError(InvalidStateError):
    """Raised when the year's status does not allow the transition."""

    pass


class ActiveYearConflictError(ConflictError):
    """Raised when another year of the institution is already ACTIVE."""

    pass


class AcademicYearLockedError(ForbiddenError):
    """Raised when a non-DRAFT year is edited or deleted."""

    pass


class AcademicYearInUseError(ConflictError):
    """Raised when deleting a year that already has enrollments."""

    pass


def _validate_dates(start_date: date | None, end_date: date | None) -> None:
    if start_date and end_date and end_date <= start_date:
        raise ValidationFailedError(
            "Las fechas del año lectivo no son válidas",
            ["La fecha de fin debe ser posterior a la fecha de inicio"],
        )


class AcademicYearLifecycleService:
    """Service owning the academic year state machine.

    A year is created in DRAFT, activated once it has at least one term and
    no other year of its institution is ACTIVE, and closed for good. Closing
    may first settle every ACTIVE enrollment as PROMOTED or REPEATED through
    the configured promotion policy. No event is recorded for the year
    itself; audit events exist only at enrollment granularity.

    Attributes:
        db: Async database session.
        years: Academic year repository.
        enrollments: Enrollment repository.
        catalog: Catalog lookups.
        promotion_policy: Promote-or-repeat decision used at closure.

    Example:
        service = AcademicYearLifecycleService(db)
        year = await service.create_year(AcademicYearCreateRequest(...))
        await service.activate_year(ActivateYearRequest(year_id=year.id, user_id=uid))
    """

    def __init__(
        self,
        db: AsyncSession,
        promotion_policy: PromotionPolicy | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the lifecycle service.

        Args:
            db: Async database session.
            promotion_policy: Policy deciding promotions at closure.
                Defaults to AlwaysPromotePolicy.
            settings: Application settings. Defaults to get_settings().
        """
        self.db = db
        self.settings = settings or get_settings()
        self.promotion_policy = promotion_policy or AlwaysPromotePolicy()
        self.years = AcademicYearRepository(db)
        self.enrollments = EnrollmentRepository(db)
        self.catalog = CatalogRepository(db)

    # =========================================================================
    # CRUD
    # =========================================================================

    async def create_year(self, request: AcademicYearCreateRequest) -> AcademicYearResponse:
        """Create a new academic year in DRAFT.

        Args:
            request: Year creation data.

        Returns:
            Created academic year.

        Raises:
            ValidationFailedError: If end_date is not after start_date.
            AcademicYearExistsError: If the institution already has that year.
        """
        _validate_dates(request.start_date, request.end_date)

        existing = await self.years.get_by_institution_and_year(
            request.institution_id, request.year
        )
        conflict_message = f"Ya existe un año lectivo {request.year} para esta institución"
        if existing:
            raise AcademicYearExistsError(conflict_message)

        academic_year = AcademicYear(
            id=new_uuid(),
            institution_id=request.institution_id,
            year=request.year,
            name=request.name or f"Año Lectivo {request.year}",
            start_date=request.start_date,
            end_date=request.end_date,
            status=AcademicYearStatus.DRAFT.value,
        )
        self.years.add(academic_year)
        await commit_or_conflict(self.db, conflict_message, AcademicYearExistsError)

        logger.info(
            "Created academic year %s (%s) for institution %s",
            academic_year.year,
            academic_year.id,
            academic_year.institution_id,
        )

        return self._to_response(academic_year, term_count=0, enrollment_count=0)

    async def get_year(self, year_id: str) -> AcademicYearResponse:
        """Get academic year by ID.

        Raises:
            AcademicYearNotFoundError: If year not found.
        """
        academic_year = await self._get_year(year_id)
        return await self._build_response(academic_year)

    async def get_current_year(self, institution_id: str) -> AcademicYearResponse | None:
        """Get the ACTIVE year of an institution, if any."""
        academic_year = await self.years.get_active_for_institution(institution_id)
        if not academic_year:
            return None
        return await self._build_response(academic_year)

    async def list_years(self, institution_id: str) -> list[AcademicYearResponse]:
        """List an institution's years, newest first."""
        years = await self.years.list_by_institution(institution_id)
        return [await self._build_response(year) for year in years]

    async def update_year(
        self,
        year_id: str,
        request: AcademicYearUpdateRequest,
    ) -> AcademicYearResponse:
        """Update a DRAFT academic year.

        Args:
            year_id: Academic year identifier.
            request: Fields to change; unset fields are kept.

        Returns:
            Updated academic year.

        Raises:
            AcademicYearNotFoundError: If year not found.
            AcademicYearLockedError: If the year is not DRAFT.
            ValidationFailedError: If the resulting dates are inverted.
        """
        academic_year = await self._get_year(year_id)

        if not academic_year.is_draft:
            raise AcademicYearLockedError("Solo se pueden editar años en estado DRAFT")

        changes = request.model_dump(exclude_unset=True)
        _validate_dates(
            changes.get("start_date", academic_year.start_date),
            changes.get("end_date", academic_year.end_date),
        )

        for field, value in changes.items():
            if field == "name" and not value:
                continue
            setattr(academic_year, field, value)

        await self.db.commit()

        logger.info("Updated academic year %s", academic_year.id)

        return await self._build_response(academic_year)

    async def delete_year(self, year_id: str) -> None:
        """Delete a DRAFT academic year without enrollments.

        Raises:
            AcademicYearNotFoundError: If year not found.
            AcademicYearLockedError: If the year is not DRAFT.
            AcademicYearInUseError: If the year has enrollments.
        """
        academic_year = await self._get_year(year_id)

        if not academic_year.is_draft:
            raise AcademicYearLockedError("Solo se pueden eliminar años en estado DRAFT")

        if await self.enrollments.count_by_year(academic_year.id) > 0:
            raise AcademicYearInUseError(
                "No se puede eliminar un año con matrículas registradas"
            )

        await self.years.delete(academic_year)
        await self.db.commit()

        logger.info("Deleted academic year %s", year_id)

    # =========================================================================
    # State machine
    # =========================================================================

    async def activate_year(self, request: ActivateYearRequest) -> AcademicYearResponse:
        """Activate a DRAFT year (DRAFT -> ACTIVE).

        The institution's active year, if any, is read with a row lock and
        the store's partial unique index rejects a concurrent second
        activation at commit time.

        Args:
            request: Year and acting user.

        Returns:
            Activated academic year.

        Raises:
            AcademicYearNotFoundError: If year not found.
            AcademicYearStateError: If the year is not DRAFT.
            ActiveYearConflictError: If another year is already ACTIVE.
            ValidationFailedError: If the year misses required configuration.
        """
        academic_year = await self._get_year(request.year_id)

        if not academic_year.is_draft:
            raise AcademicYearStateError(
                "El año lectivo no puede ser activado porque está en estado "
                f"{academic_year.status}"
            )

        active_year = await self.years.get_active_for_institution(
            academic_year.institution_id, for_update=True
        )
        if active_year and active_year.id != academic_year.id:
            raise ActiveYearConflictError(
                f"Ya existe un año lectivo activo ({active_year.year}). "
                "Debe cerrarlo antes de activar otro."
            )

        errors = await self.validate_for_activation(academic_year.id)
        if errors:
            raise ValidationFailedError(
                "El año lectivo no cumple con los requisitos mínimos para ser activado",
                errors,
            )

        academic_year.status = AcademicYearStatus.ACTIVE.value
        academic_year.activated_at = utc_now()
        academic_year.activated_by_id = request.user_id

        await commit_or_conflict(
            self.db,
            "Ya existe un año lectivo activo para esta institución",
            ActiveYearConflictError,
        )

        logger.info(
            "Activated academic year %s (%s) by %s",
            academic_year.year,
            academic_year.id,
            request.user_id,
        )

        return await self._build_response(academic_year)

    async def validate_for_activation(self, year_id: str) -> list[str]:
        """Collect every reason the year cannot be activated.

        Returns:
            Violation messages; empty when the year can be activated.
        """
        errors: list[str] = []

        if await self.years.count_terms(year_id) == 0:
            errors.append("Debe configurar al menos un período académico")

        return errors

    async def close_year(self, request: CloseYearRequest) -> CloseYearResult:
        """Close an ACTIVE year (ACTIVE -> CLOSED). Closure is irreversible.

        Args:
            request: Year, acting user and whether to settle promotions.

        Returns:
            Closure timestamp and promoted/repeated/withdrawn counts. The
            counts are zero when promotions were not requested.

        Raises:
            AcademicYearNotFoundError: If year not found.
            AcademicYearStateError: If the year is not ACTIVE.
            ValidationFailedError: If closure validation finds problems.
        """
        academic_year = await self._get_year(request.year_id)

        if not academic_year.is_active:
            raise AcademicYearStateError(
                "El año lectivo no puede ser cerrado porque está en estado "
                f"{academic_year.status}"
            )

        errors = await self.validate_for_closure(academic_year.id)
        if errors:
            raise ValidationFailedError("El año lectivo no puede ser cerrado", errors)

        promoted_count = repeated_count = withdrawn_count = 0
        if request.calculate_promotions:
            with actor_context(request.user_id, institution_id=academic_year.institution_id):
                promoted_count, repeated_count, withdrawn_count = await self._apply_promotions(
                    academic_year, request.user_id
                )

        academic_year.status = AcademicYearStatus.CLOSED.value
        academic_year.closed_at = utc_now()
        academic_year.closed_by_id = request.user_id

        await self.db.commit()

        logger.info(
            "Closed academic year %s (%s): promoted=%d repeated=%d withdrawn=%d",
            academic_year.year,
            academic_year.id,
            promoted_count,
            repeated_count,
            withdrawn_count,
        )

        return CloseYearResult(
            success=True,
            year_id=academic_year.id,
            closed_at=academic_year.closed_at,
            promoted_count=promoted_count,
            repeated_count=repeated_count,
            withdrawn_count=withdrawn_count,
        )

    async def validate_for_closure(self, year_id: str) -> list[str]:
        """Collect every reason the year cannot be closed.

        No closure rule is enforced yet; the list is always empty.
        """
        return []

    async def _apply_promotions(
        self,
        academic_year: AcademicYear,
        user_id: str,
    ) -> tuple[int, int, int]:
        """Settle every ACTIVE enrollment as PROMOTED or REPEATED.

        WITHDRAWN enrollments are counted but left untouched. Next-year
        enrollments are not created here.
        """
        promoted_count = 0
        repeated_count = 0

        enrollments = await self.enrollments.list_by_year_and_statuses(
            academic_year.id, [EnrollmentStatus.ACTIVE]
        )

        for enrollment in enrollments:
            promote = self.promotion_policy.should_promote(enrollment)
            new_status = EnrollmentStatus.PROMOTED if promote else EnrollmentStatus.REPEATED
            previous_status = enrollment.status

            enrollment.status = new_status.value
            self.enrollments.add_event(
                enrollment_id=enrollment.id,
                type=EnrollmentEventType(new_status.value),
                performed_by_id=user_id,
                previous_value={"status": previous_status},
                new_value={"status": new_status.value},
                reason="Cierre de año lectivo",
            )

            if promote:
                promoted_count += 1
            else:
                repeated_count += 1

        withdrawn_count = await self.enrollments.count_by_year(
            academic_year.id, EnrollmentStatus.WITHDRAWN
        )

        return promoted_count, repeated_count, withdrawn_count

    async def preview_promotions(self, year_id: str) -> list[PromotionPreview]:
        """Show what closing the year with promotions would do.

        Read-only: nothing is written. Final averages are not computed yet.

        Raises:
            AcademicYearNotFoundError: If year not found.
        """
        academic_year = await self._get_year(year_id)

        enrollments = await self.enrollments.list_by_year_and_statuses(
            academic_year.id, [EnrollmentStatus.ACTIVE]
        )

        previews: list[PromotionPreview] = []
        for enrollment in enrollments:
            promote = self.promotion_policy.should_promote(enrollment)
            current_grade = enrollment.group.grade
            next_grade = await self._target_grade(current_grade, promote)

            previews.append(
                PromotionPreview(
                    enrollment_id=enrollment.id,
                    student_id=enrollment.student_id,
                    student_name=enrollment.student.full_name,
                    current_grade_id=current_grade.id,
                    current_grade_name=current_grade.name,
                    current_group_name=enrollment.group.name,
                    final_average=None,
                    suggested_status=(
                        EnrollmentStatus.PROMOTED if promote else EnrollmentStatus.REPEATED
                    ),
                    next_grade_id=next_grade.id,
                    next_grade_name=next_grade.name,
                )
            )

        return previews

    async def _target_grade(self, current_grade: Grade, promote: bool) -> Grade:
        """Grade a student continues in: the next one in the stage, or the same."""
        if not promote:
            return current_grade
        next_grade = await self.catalog.find_grade(
            current_grade.institution_id,
            current_grade.stage,
            (current_grade.number or 0) + 1,
        )
        return next_grade or current_grade

    # =========================================================================
    # Status-derived permissions
    # =========================================================================

    async def can_edit_structure(self, year_id: str) -> bool:
        return permissions.can_edit_structure(await self.years.get_status(year_id))

    async def can_record_grades(self, year_id: str) -> bool:
        return permissions.can_record_grades(await self.years.get_status(year_id))

    async def can_enroll_students(self, year_id: str) -> bool:
        return permissions.can_enroll_students(await self.years.get_status(year_id))

    async def can_modify(self, year_id: str) -> bool:
        return permissions.can_modify(await self.years.get_status(year_id))

    async def get_year_permissions(self, year_id: str) -> YearPermissions:
        """Evaluate every status predicate of a year at once.

        Raises:
            AcademicYearNotFoundError: If year not found.
        """
        status = await self.years.get_status(year_id)
        if status is None:
            raise AcademicYearNotFoundError()

        return YearPermissions(
            can_edit_structure=permissions.can_edit_structure(status),
            can_record_grades=permissions.can_record_grades(status),
            can_enroll_students=permissions.can_enroll_students(status),
            can_modify=permissions.can_modify(status),
        )

    # =========================================================================
    # Reporting lookups
    # =========================================================================

    async def get_term(self, term_id: str) -> AcademicTermSummary | None:
        term = await self.years.get_term(term_id)
        if not term:
            return None
        return AcademicTermSummary.model_validate(term)

    async def get_terms(self, year_id: str) -> list[AcademicTermSummary]:
        terms = await self.years.list_terms(year_id)
        return [AcademicTermSummary.model_validate(term) for term in terms]

    async def get_performance_scale(self, institution_id: str) -> list[PerformanceScaleSummary]:
        scales = await self.catalog.list_performance_scale(institution_id)
        return [PerformanceScaleSummary.model_validate(scale) for scale in scales]

    async def get_passing_grade(self, institution_id: str) -> float:
        """Minimum passing score: the BASICO band's lower bound.

        Falls back to the configured default when the institution has no
        BASICO band.
        """
        basic = await self.catalog.get_scale_level(institution_id, PerformanceLevel.BASICO.value)
        if basic is None:
            return self.settings.lifecycle.default_passing_grade
        return float(basic.min_score)

    async def get_teacher_assignments_for_group(
        self,
        group_id: str,
        academic_year_id: str,
    ) -> list[TeacherAssignmentSummary]:
        assignments = await self.catalog.list_teacher_assignments(group_id, academic_year_id)
        return [self._to_assignment_summary(a) for a in assignments]

    async def get_teacher_assignments_for_subjects(
        self,
        group_id: str,
        academic_year_id: str,
        subject_ids: list[str],
    ) -> list[TeacherAssignmentSummary]:
        """Teacher assignments of a group restricted to the given subjects.

        An empty subject list yields no assignments without querying.
        """
        if not subject_ids:
            return []
        assignments = await self.catalog.list_teacher_assignments(
            group_id, academic_year_id, subject_ids=subject_ids
        )
        return [self._to_assignment_summary(a) for a in assignments]

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_year(self, year_id: str) -> AcademicYear:
        academic_year = await self.years.get_by_id(year_id)
        if not academic_year:
            raise AcademicYearNotFoundError()
        return academic_year

    async def _build_response(self, academic_year: AcademicYear) -> AcademicYearResponse:
        return self._to_response(
            academic_year,
            term_count=await self.years.count_terms(academic_year.id),
            enrollment_count=await self.enrollments.count_by_year(academic_year.id),
        )

    def _to_response(
        self,
        academic_year: AcademicYear,
        term_count: int,
        enrollment_count: int,
    ) -> AcademicYearResponse:
        return AcademicYearResponse(
            id=academic_year.id,
            institution_id=academic_year.institution_id,
            year=academic_year.year,
            name=academic_year.name,
            start_date=academic_year.start_date,
            end_date=academic_year.end_date,
            status=AcademicYearStatus(academic_year.status),
            activated_at=academic_year.activated_at,
            activated_by_id=academic_year.activated_by_id,
            closed_at=academic_year.closed_at,
            closed_by_id=academic_year.closed_by_id,
            term_count=term_count,
            enrollment_count=enrollment_count,
        )

    def _to_assignment_summary(self, assignment: TeacherAssignment) -> TeacherAssignmentSummary:
        subject = assignment.subject
        return TeacherAssignmentSummary(
            id=assignment.id,
            subject_id=subject.id,
            subject_name=subject.name,
            subject_code=subject.code,
            area_id=subject.area.id,
            area_name=subject.area.name,
            area_code=subject.area.code,
            teacher_name=assignment.teacher.full_name,
        )
