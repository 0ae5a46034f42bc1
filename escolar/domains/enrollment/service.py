# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment lifecycle service.

This module provides the EnrollmentService class for:
- Enrolling, withdrawing, transferring and reactivating students
- Moving an enrollment to another group (shared with the grade-change engine)
- Enrollment queries, history and statistics
- Group seat capacity

Every successful mutation appends exactly one EnrollmentEvent carrying the
previous and new value snapshots, the reason and the acting user.
"""

from __future__ import annotations

import logging
from typing import Any

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
from escolar.infrastructure.database import commit_or_conflict
from escolar.infrastructure.database.models import (
    EnrollmentEvent,
    Group,
    StudentEnrollment,
    new_uuid,
)
from escolar.infrastructure.database.repositories import (
    AcademicYearRepository,
    CatalogRepository,
    EnrollmentRepository,
)
from escolar.models.enrollment import (
    ChangeGroupRequest,
    EnrollmentEventResponse,
    EnrollmentFilters,
    EnrollmentResponse,
    EnrollmentStats,
    EnrollStudentRequest,
    GroupCapacity,
    ReactivateStudentRequest,
    TransferStudentRequest,
    WithdrawStudentRequest,
)
from escolar.models.enums import (
    EnrollmentEventType,
    EnrollmentStatus,
    EnrollmentType,
)
from escolar.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class EnrollmentNotFoundError(NotFoundError):
    """Raised when enrollment is not found."""

    def __init__(self, message: str = "Matrícula no encontrada") -> None:
        super().__init__(message)


class StudentNotFoundError(NotFoundError):
    """Raised when student is not found."""

    def __init__(self, message: str = "Estudiante no encontrado") -> None:
        super().__init__(message)


class GroupNotFoundError(NotFoundError):
    """Raised when a group is not found."""

    def __init__(self, message: str = "Grupo no encontrado") -> None:
        super().__init__(message)


class EnrollmentExistsError(ConflictError):
    """Raised when the student already has an enrollment in the year."""

    def __init__(
        self,
        message: str = "El estudiante ya está matriculado en este año lectivo",
    ) -> None:
        super().__init__(message)


class GroupFullError(ConflictError):
    """Raised when a group has no seats left."""

    def __init__(self, group: Group) -> None:
        super().__init__(
            f"El grupo {group.name} ha alcanzado su cupo máximo "
            f"({group.max_capacity} estudiantes)"
        )
        self.group_id = group.id


class EnrollmentStateError(InvalidStateError):
    """Raised when the enrollment's status does not allow the operation."""

    pass


class YearNotOpenError(ForbiddenError):
    """Raised when the year's status forbids the operation."""

    pass


def _capacity(group: Group, current: int) -> GroupCapacity:
    max_capacity = group.max_capacity
    return GroupCapacity(
        group_id=group.id,
        group_name=group.name,
        group_code=group.code,
        grade_name=group.grade.name,
        campus_name=group.campus_name,
        shift_name=group.shift_name,
        max_capacity=max_capacity,
        current_enrollments=current,
        available_slots=max(0, max_capacity - current) if max_capacity is not None else None,
        is_full=max_capacity is not None and current >= max_capacity,
    )


class EnrollmentService:
    """Service for the per-student enrollment state machine.

    Transitions:
        enroll       -> ACTIVE       (year accepts enrollments)
        withdraw     ACTIVE -> WITHDRAWN
        transfer     ACTIVE -> TRANSFERRED
        change_group ACTIVE -> ACTIVE (group updated)
        reactivate   WITHDRAWN -> ACTIVE (type forced to REENTRY)

    Withdraw, transfer and change_group require a year that is not CLOSED;
    enroll and reactivate require an ACTIVE year.

    Attributes:
        db: Async database session.
        years: Academic year repository.
        enrollments: Enrollment repository.
        catalog: Catalog lookups.
    """

    def __init__(self, db: AsyncSession, settings: Settings | None = None) -> None:
        """Initialize enrollment service.

        Args:
            db: Async database session.
            settings: Application settings. Defaults to get_settings().
        """
        self.db = db
        self.settings = settings or get_settings()
        self.years = AcademicYearRepository(db)
        self.enrollments = EnrollmentRepository(db)
        self.catalog = CatalogRepository(db)

    # =========================================================================
    # State machine
    # =========================================================================

    async def enroll_student(self, request: EnrollStudentRequest) -> EnrollmentResponse:
        """Enroll a student in a group for an academic year.

        Args:
            request: Enrollment data.

        Returns:
            The new ACTIVE enrollment.

        Raises:
            YearNotOpenError: If the year does not accept enrollments.
            EnrollmentExistsError: If the student is already enrolled that year.
            StudentNotFoundError: If the student does not exist.
            GroupNotFoundError: If the group does not exist.
            GroupFullError: If the group has no seats left.
        """
        academic_year = await self.years.get_by_id(request.academic_year_id)
        status = academic_year.status if academic_year else None
        if not permissions.can_enroll_students(status):
            raise YearNotOpenError("El año lectivo no permite matrículas en su estado actual")

        existing = await self.enrollments.get_by_student_and_year(
            request.student_id, request.academic_year_id
        )
        if existing:
            raise EnrollmentExistsError()

        student = await self.catalog.get_student(request.student_id)
        if not student:
            raise StudentNotFoundError()

        group = await self.catalog.get_group(request.group_id)
        if not group:
            raise GroupNotFoundError()

        await self.ensure_capacity(group, request.academic_year_id)

        modality = request.modality or self.settings.lifecycle.default_modality
        shift = request.shift.value if request.shift else None

        enrollment = StudentEnrollment(
            id=new_uuid(),
            student_id=student.id,
            academic_year_id=request.academic_year_id,
            group_id=group.id,
            enrollment_type=request.enrollment_type.value,
            status=EnrollmentStatus.ACTIVE.value,
            shift=shift,
            modality=str(modality),
            observations=request.observations,
            enrolled_by_id=request.enrolled_by_id,
            enrolled_at=utc_now(),
        )
        enrollment.student = student
        enrollment.group = group
        enrollment.academic_year = academic_year
        self.enrollments.add(enrollment)

        self.enrollments.add_event(
            enrollment_id=enrollment.id,
            type=EnrollmentEventType.CREATED,
            performed_by_id=request.enrolled_by_id,
            new_value={
                "groupId": group.id,
                "enrollmentType": request.enrollment_type.value,
                "shift": shift,
                "modality": str(modality),
            },
            reason="Matrícula inicial",
            observations=request.observations,
        )

        await commit_or_conflict(
            self.db,
            "El estudiante ya está matriculado en este año lectivo",
            EnrollmentExistsError,
        )

        logger.info(
            "Enrolled student %s in group %s for year %s",
            student.id,
            group.id,
            request.academic_year_id,
        )

        return self.to_response(enrollment)

    async def withdraw_student(self, request: WithdrawStudentRequest) -> EnrollmentResponse:
        """Withdraw an ACTIVE enrollment (ACTIVE -> WITHDRAWN).

        Raises:
            EnrollmentNotFoundError: If enrollment not found.
            YearNotOpenError: If the year is CLOSED.
            EnrollmentStateError: If the enrollment is not ACTIVE.
        """
        enrollment = await self._get_enrollment(request.enrollment_id)
        self._require_modifiable(enrollment)

        if enrollment.status != EnrollmentStatus.ACTIVE:
            raise EnrollmentStateError(
                f"No se puede retirar una matrícula en estado {enrollment.status}"
            )

        withdrawn_at = utc_now()
        enrollment.status = EnrollmentStatus.WITHDRAWN.value
        enrollment.withdrawal_date = withdrawn_at
        enrollment.withdrawal_reason = request.reason

        self.enrollments.add_event(
            enrollment_id=enrollment.id,
            type=EnrollmentEventType.WITHDRAWN,
            performed_by_id=request.performed_by_id,
            previous_value={"status": EnrollmentStatus.ACTIVE.value},
            new_value={
                "status": EnrollmentStatus.WITHDRAWN.value,
                "withdrawalDate": withdrawn_at.isoformat(),
            },
            reason=request.reason,
            observations=request.observations,
        )

        await self.db.commit()

        logger.info("Withdrew enrollment %s", enrollment.id)

        return self.to_response(enrollment)

    async def transfer_student(self, request: TransferStudentRequest) -> EnrollmentResponse:
        """Transfer an ACTIVE enrollment out (ACTIVE -> TRANSFERRED).

        TRANSFERRED is terminal for that year.

        Raises:
            EnrollmentNotFoundError: If enrollment not found.
            YearNotOpenError: If the year is CLOSED.
            EnrollmentStateError: If the enrollment is not ACTIVE.
        """
        enrollment = await self._get_enrollment(request.enrollment_id)
        self._require_modifiable(enrollment)

        if enrollment.status != EnrollmentStatus.ACTIVE:
            raise EnrollmentStateError(
                f"No se puede trasladar una matrícula en estado {enrollment.status}"
            )

        transferred_at = utc_now()
        enrollment.status = EnrollmentStatus.TRANSFERRED.value
        enrollment.withdrawal_date = transferred_at
        enrollment.withdrawal_reason = request.reason

        self.enrollments.add_event(
            enrollment_id=enrollment.id,
            type=EnrollmentEventType.TRANSFERRED,
            performed_by_id=request.performed_by_id,
            previous_value={"status": EnrollmentStatus.ACTIVE.value},
            new_value={
                "status": EnrollmentStatus.TRANSFERRED.value,
                "withdrawalDate": transferred_at.isoformat(),
                "destinationInstitution": request.destination_institution,
            },
            reason=request.reason,
            observations=request.observations,
        )

        await self.db.commit()

        logger.info("Transferred enrollment %s", enrollment.id)

        return self.to_response(enrollment)

    async def change_group(self, request: ChangeGroupRequest) -> EnrollmentResponse:
        """Move an ACTIVE enrollment to another group.

        Raises:
            EnrollmentNotFoundError: If enrollment not found.
            YearNotOpenError: If the year is CLOSED.
            EnrollmentStateError: If the enrollment is not ACTIVE.
            GroupNotFoundError: If the target group does not exist.
            GroupFullError: If the target group has no seats left.
        """
        enrollment = await self._get_enrollment(request.enrollment_id)
        self._require_modifiable(enrollment)

        if enrollment.status != EnrollmentStatus.ACTIVE:
            raise EnrollmentStateError(
                "No se puede cambiar el grupo de una matrícula en estado "
                f"{enrollment.status}"
            )

        new_group = await self.catalog.get_group(request.new_group_id)
        if not new_group:
            raise GroupNotFoundError("Grupo destino no encontrado")

        await self.ensure_capacity(new_group, enrollment.academic_year_id)

        self.apply_group_change(
            enrollment,
            new_group,
            event_type=EnrollmentEventType.GROUP_CHANGED,
            performed_by_id=request.performed_by_id,
            reason=request.reason,
            observations=request.observations,
            movement_type=request.movement_type.value,
        )

        await self.db.commit()

        logger.info("Moved enrollment %s to group %s", enrollment.id, new_group.id)

        return self.to_response(enrollment)

    async def reactivate_student(self, request: ReactivateStudentRequest) -> EnrollmentResponse:
        """Readmit a WITHDRAWN enrollment (WITHDRAWN -> ACTIVE, type REENTRY).

        Raises:
            EnrollmentNotFoundError: If enrollment not found.
            YearNotOpenError: If the year does not accept enrollments.
            EnrollmentStateError: If the enrollment is not WITHDRAWN.
        """
        enrollment = await self._get_enrollment(request.enrollment_id)

        if not permissions.can_enroll_students(enrollment.academic_year.status):
            raise YearNotOpenError("El año lectivo no permite matrículas en su estado actual")

        if enrollment.status != EnrollmentStatus.WITHDRAWN:
            raise EnrollmentStateError(
                "Solo se pueden reactivar matrículas en estado WITHDRAWN, "
                f"actual: {enrollment.status}"
            )

        enrollment.status = EnrollmentStatus.ACTIVE.value
        enrollment.withdrawal_date = None
        enrollment.withdrawal_reason = None
        enrollment.enrollment_type = EnrollmentType.REENTRY.value

        self.enrollments.add_event(
            enrollment_id=enrollment.id,
            type=EnrollmentEventType.REACTIVATED,
            performed_by_id=request.performed_by_id,
            previous_value={"status": EnrollmentStatus.WITHDRAWN.value},
            new_value={
                "status": EnrollmentStatus.ACTIVE.value,
                "enrollmentType": EnrollmentType.REENTRY.value,
            },
            reason=request.reason,
            observations=request.observations,
        )

        await self.db.commit()

        logger.info("Reactivated enrollment %s", enrollment.id)

        return self.to_response(enrollment)

    # =========================================================================
    # Shared primitives
    # =========================================================================

    def apply_group_change(
        self,
        enrollment: StudentEnrollment,
        new_group: Group,
        *,
        event_type: EnrollmentEventType,
        performed_by_id: str | None,
        reason: str | None = None,
        observations: str | None = None,
        movement_type: str | None = None,
        academic_act_id: str | None = None,
        previous_value: dict[str, Any] | None = None,
        new_value: dict[str, Any] | None = None,
    ) -> EnrollmentEvent:
        """Point an enrollment at another group and record one event.

        The caller has already checked status, capacity and any rules, and
        owns the commit.

        Args:
            enrollment: Enrollment to move.
            new_group: Target group, with its grade loaded.
            event_type: GROUP_CHANGED or GRADE_CHANGED.
            performed_by_id: Acting user.
            reason: Reason for the move.
            observations: Free-text observations.
            movement_type: Movement classifier.
            academic_act_id: Supporting act, if any.
            previous_value: Snapshot before the move. Defaults to the group id.
            new_value: Snapshot after the move. Defaults to the group id.

        Returns:
            The appended event.
        """
        previous_group_id = enrollment.group_id

        enrollment.group_id = new_group.id
        enrollment.group = new_group

        return self.enrollments.add_event(
            enrollment_id=enrollment.id,
            type=event_type,
            performed_by_id=performed_by_id,
            previous_value=previous_value or {"groupId": previous_group_id},
            new_value=new_value or {"groupId": new_group.id},
            reason=reason,
            observations=observations,
            movement_type=movement_type,
            academic_act_id=academic_act_id,
        )

    async def ensure_capacity(self, group: Group, academic_year_id: str) -> None:
        """Reject a group whose ACTIVE enrollments already fill it.

        Raises:
            GroupFullError: If the group is at or above max_capacity.
        """
        if group.max_capacity is None:
            return

        current = await self.enrollments.count_active_in_group(group.id, academic_year_id)
        if current >= group.max_capacity:
            raise GroupFullError(group)

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_enrollment(self, enrollment_id: str) -> EnrollmentResponse:
        """Get enrollment by ID.

        Raises:
            EnrollmentNotFoundError: If enrollment not found.
        """
        return self.to_response(await self._get_enrollment(enrollment_id))

    async def list_enrollments(self, filters: EnrollmentFilters) -> list[EnrollmentResponse]:
        """List enrollments by grade, group and student name."""
        enrollments = await self.enrollments.search(
            academic_year_id=filters.academic_year_id,
            grade_id=filters.grade_id,
            group_id=filters.group_id,
            status=filters.status,
            search=filters.search,
        )
        return [self.to_response(enrollment) for enrollment in enrollments]

    async def get_enrollment_history(self, enrollment_id: str) -> list[EnrollmentEventResponse]:
        """Audit events of an enrollment, newest first."""
        events = await self.enrollments.list_events(enrollment_id)
        return [EnrollmentEventResponse.model_validate(event) for event in events]

    async def get_student_history(self, student_id: str) -> list[EnrollmentResponse]:
        """Every enrollment of a student, newest year first."""
        enrollments = await self.enrollments.list_by_student(student_id)
        return [self.to_response(enrollment) for enrollment in enrollments]

    async def get_enrollment_stats(self, academic_year_id: str) -> EnrollmentStats:
        """Count a year's enrollments in total, by status and by group."""
        return EnrollmentStats(
            total=await self.enrollments.count_by_year(academic_year_id),
            by_status=await self.enrollments.count_grouped_by_status(academic_year_id),
            by_group=await self.enrollments.count_grouped_by_group(academic_year_id),
        )

    # =========================================================================
    # Capacity
    # =========================================================================

    async def get_group_capacity(self, group_id: str, academic_year_id: str) -> GroupCapacity:
        """Seat usage of one group in a year.

        Raises:
            GroupNotFoundError: If group not found.
        """
        group = await self.catalog.get_group(group_id)
        if not group:
            raise GroupNotFoundError()

        current = await self.enrollments.count_active_in_group(group.id, academic_year_id)
        return _capacity(group, current)

    async def get_capacity_by_year(
        self,
        academic_year_id: str,
        institution_id: str,
    ) -> list[GroupCapacity]:
        """Seat usage of every group of an institution, in grade order."""
        groups = await self.catalog.list_groups(institution_id)
        counts = await self.enrollments.count_active_by_group(academic_year_id)
        return [_capacity(group, counts.get(group.id, 0)) for group in groups]

    async def update_group_capacity(self, group_id: str, max_capacity: int | None) -> None:
        """Set or clear (None) a group's maximum capacity.

        Raises:
            GroupNotFoundError: If group not found.
            ValidationFailedError: If the capacity is negative.
        """
        if max_capacity is not None and max_capacity < 0:
            raise ValidationFailedError(
                "El cupo del grupo no es válido",
                ["El cupo máximo no puede ser negativo"],
            )

        group = await self.catalog.get_group(group_id)
        if not group:
            raise GroupNotFoundError()

        group.max_capacity = max_capacity
        await self.db.commit()

        logger.info("Set capacity of group %s to %s", group.id, max_capacity)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_enrollment(self, enrollment_id: str) -> StudentEnrollment:
        enrollment = await self.enrollments.get_by_id(enrollment_id)
        if not enrollment:
            raise EnrollmentNotFoundError()
        return enrollment

    def _require_modifiable(self, enrollment: StudentEnrollment) -> None:
        if not permissions.can_modify(enrollment.academic_year.status):
            raise YearNotOpenError("El año lectivo no permite modificaciones")

    def to_response(self, enrollment: StudentEnrollment) -> EnrollmentResponse:
        group = enrollment.group
        return EnrollmentResponse(
            id=enrollment.id,
            student_id=enrollment.student_id,
            student_name=enrollment.student.full_name if enrollment.student else None,
            academic_year_id=enrollment.academic_year_id,
            year=enrollment.academic_year.year if enrollment.academic_year else None,
            group_id=enrollment.group_id,
            group_name=group.name if group else None,
            grade_id=group.grade_id if group else None,
            grade_name=group.grade.name if group else None,
            enrollment_type=EnrollmentType(enrollment.enrollment_type),
            status=EnrollmentStatus(enrollment.status),
            shift=enrollment.shift,
            modality=enrollment.modality,
            observations=enrollment.observations,
            withdrawal_date=enrollment.withdrawal_date,
            withdrawal_reason=enrollment.withdrawal_reason,
            promoted_from_id=enrollment.promoted_from_id,
            promoted_to_id=enrollment.promoted_to_id,
            enrolled_at=enrollment.enrolled_at,
        )
