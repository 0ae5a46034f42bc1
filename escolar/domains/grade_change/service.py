# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade-change rule engine.

Classifies a proposed group move as SAME_GRADE, PROMOTION or DEMOTION,
evaluates the additive rule table (warnings, requirements, blocking
restrictions) and executes allowed changes through the enrollment engine's
group-change primitive.

Rule table:
- DEMOTION: always blocked, with the approvals it would need listed.
- PROMOTION: lighter or heavier requirements depending on how far into the
  year the change happens; blocked when the student's recorded subject
  average is below the configured minimum.
- Stage change: extra requirements, with specific ones for
  PREESCOLAR -> BASICA_PRIMARIA and BASICA_SECUNDARIA -> MEDIA.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from escolar.core.config import Settings, get_settings
from escolar.core.errors import InvalidStateError, ValidationFailedError
from escolar.domains.enrollment.service import (
    EnrollmentNotFoundError,
    EnrollmentService,
    EnrollmentStateError,
    GroupNotFoundError,
)
from escolar.domains.grade_order import classify_grade_change
from escolar.infrastructure.database.models import (
    AcademicYear,
    Grade,
    Group,
    StudentEnrollment,
)
from escolar.infrastructure.database.repositories import (
    CatalogRepository,
    EnrollmentRepository,
)
from escolar.models.enrollment import EnrollmentResponse
from escolar.models.enums import (
    EnrollmentEventType,
    EnrollmentStatus,
    GradeChangeType,
    GradeStage,
)
from escolar.models.grade_change import (
    ChangeGradeRequest,
    GradeChangeRule,
    GradeChangeRules,
    GradeChangeValidation,
    GradeSummary,
    StageTransitionRule,
    ValidateGradeChangeRequest,
)
from escolar.utils.datetime import date_to_utc, utc_now

logger = logging.getLogger(__name__)


class GradeChangeNotAllowedError(ValidationFailedError):
    """Raised when executing a change the rule table blocks."""

    def __init__(self, restrictions: list[str]) -> None:
        super().__init__("Cambio no permitido", restrictions)


class AcademicActRequiredError(InvalidStateError):
    """Raised when a grade change has no supporting act."""

    def __init__(self) -> None:
        super().__init__(
            "Para cambios de grado se requiere el ID de un acta académica "
            "que respalde la decisión"
        )


class AcademicActNotApprovedError(InvalidStateError):
    """Raised when the supporting act is missing or not approved."""

    def __init__(self) -> None:
        super().__init__("El acta académica no existe o no está aprobada")


@dataclass
class RuleOutcome:
    """Accumulated result of the rule table."""

    warnings: list[str] = field(default_factory=list)
    requirements: list[str] = field(default_factory=list)
    restrictions: list[str] = field(default_factory=list)

    @property
    def allowed(self) -> bool:
        return not self.restrictions


def calculate_year_progress(
    academic_year: AcademicYear,
    now: datetime,
    without_dates: float = 0.5,
) -> float:
    """Elapsed fraction of the year's date range, clamped to [0, 1].

    Args:
        academic_year: Year whose start/end dates bound the range.
        now: Current time.
        without_dates: Progress assumed when either date is missing or
            the range is empty.

    Returns:
        Progress between 0 and 1.
    """
    if not academic_year.start_date or not academic_year.end_date:
        return without_dates

    start = date_to_utc(academic_year.start_date)
    end = date_to_utc(academic_year.end_date)
    total = (end - start).total_seconds()
    if total <= 0:
        return without_dates

    elapsed = (now - start).total_seconds()
    return max(0.0, min(1.0, elapsed / total))


def _average(scores: list[Decimal]) -> float:
    if not scores:
        return 0.0
    return float(sum(scores, Decimal(0)) / len(scores))


class GradeChangeService:
    """Service validating and executing grade/group changes.

    Attributes:
        db: Async database session.
        enrollment_service: Owner of the group-change primitive.
        settings: Application settings (promotion thresholds).
    """

    def __init__(
        self,
        db: AsyncSession,
        enrollment_service: EnrollmentService | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize grade change service.

        Args:
            db: Async database session.
            enrollment_service: Enrollment engine sharing the session.
            settings: Application settings. Defaults to get_settings().
        """
        self.db = db
        self.settings = settings or get_settings()
        self.enrollment_service = enrollment_service or EnrollmentService(db, self.settings)

    @property
    def enrollments(self) -> EnrollmentRepository:
        return self.enrollment_service.enrollments

    @property
    def catalog(self) -> CatalogRepository:
        return self.enrollment_service.catalog

    def classify(self, current_grade: Grade, new_grade: Grade) -> GradeChangeType:
        """Classify a move between two grades by their order keys."""
        return classify_grade_change(current_grade, new_grade)

    async def validate(self, request: ValidateGradeChangeRequest) -> GradeChangeValidation:
        """Evaluate whether an enrollment can move to another group.

        Args:
            request: Enrollment and target group.

        Returns:
            Change type with warnings, requirements and restrictions.
            ``can_change`` is False whenever a restriction applies.

        Raises:
            EnrollmentNotFoundError: If enrollment not found.
            EnrollmentStateError: If the enrollment is not ACTIVE.
            GroupNotFoundError: If the target group does not exist.
            GroupFullError: If the target group has no seats left.
        """
        _, _, validation = await self._evaluate(request.enrollment_id, request.new_group_id)
        return validation

    async def execute(self, request: ChangeGradeRequest) -> EnrollmentResponse:
        """Validate again and perform the change.

        Args:
            request: Change data, including the acting user and, for any
                change other than SAME_GRADE, the supporting act.

        Returns:
            The updated enrollment.

        Raises:
            GradeChangeNotAllowedError: If the rule table blocks the change.
            AcademicActRequiredError: If a grade change has no act.
            AcademicActNotApprovedError: If the act is missing or unapproved.
        """
        enrollment, new_group, validation = await self._evaluate(
            request.enrollment_id, request.new_group_id
        )

        if not validation.can_change:
            raise GradeChangeNotAllowedError(validation.restrictions)

        if validation.change_type != GradeChangeType.SAME_GRADE and not request.academic_act_id:
            raise AcademicActRequiredError()

        if request.academic_act_id:
            act = await self.catalog.get_academic_act(request.academic_act_id)
            if not act or not act.is_approved:
                raise AcademicActNotApprovedError()

        previous_group = enrollment.group
        self.enrollment_service.apply_group_change(
            enrollment,
            new_group,
            event_type=EnrollmentEventType.GRADE_CHANGED,
            performed_by_id=request.performed_by_id,
            reason=request.reason,
            observations=request.observations,
            movement_type=request.movement_type.value,
            academic_act_id=request.academic_act_id,
            previous_value={
                "groupId": previous_group.id,
                "gradeId": previous_group.grade_id,
                "groupName": previous_group.name,
                "gradeName": previous_group.grade.name,
            },
            new_value={
                "groupId": new_group.id,
                "gradeId": new_group.grade_id,
                "groupName": new_group.name,
                "gradeName": new_group.grade.name,
            },
        )

        await self.db.commit()

        logger.info(
            "Executed %s for enrollment %s: group %s -> %s",
            validation.change_type,
            enrollment.id,
            previous_group.id,
            new_group.id,
        )

        return self.enrollment_service.to_response(enrollment)

    def get_rules(self) -> GradeChangeRules:
        """Describe the rule table for display."""
        threshold = self.settings.lifecycle.promotion_min_average
        return GradeChangeRules(
            rules={
                GradeChangeType.SAME_GRADE: GradeChangeRule(
                    allowed=True,
                    description="Cambio de grupo dentro del mismo grado",
                    requirements=["Cupo disponible en el nuevo grupo"],
                ),
                GradeChangeType.PROMOTION: GradeChangeRule(
                    allowed=True,
                    description="Promoción a grado superior",
                    requirements=[
                        "Evaluación psicoacadémica",
                        "Autorización del consejo académico",
                        "Consentimiento de acudientes",
                        "Acta académica aprobada",
                    ],
                    restrictions=[
                        "No antes de mitad de año lectivo (excepto casos excepcionales)",
                        f"Promedio académico mínimo {threshold:.1f}",
                    ],
                ),
                GradeChangeType.DEMOTION: GradeChangeRule(
                    allowed=False,
                    description="Rebaja a grado inferior",
                    requirements=[
                        "Acta de consejo académico aprobada",
                        "Autorización del rector y coordinador",
                        "Consentimiento firmado de acudientes",
                        "Evaluación psicológica",
                    ],
                    restrictions=[
                        "Solo en casos excepcionales documentados",
                        "Requiere aprobación del Ministerio de Educación",
                    ],
                ),
            },
            stage_transitions={
                f"{GradeStage.PREESCOLAR}->{GradeStage.BASICA_PRIMARIA}": StageTransitionRule(
                    requirements=["Certificado de desarrollo infantil"],
                    restrictions=["Edad mínima 6 años cumplidos"],
                ),
                f"{GradeStage.BASICA_SECUNDARIA}->{GradeStage.MEDIA}": StageTransitionRule(
                    requirements=["Evaluación de vocación y aptitudes"],
                    restrictions=["Aprobación de grado 9°"],
                ),
            },
            process=[
                "1. Validar disponibilidad y reglas aplicables",
                "2. Obtener autorizaciones requeridas",
                "3. Elaborar acta académica (si aplica)",
                "4. Ejecutar cambio con auditoría",
                "5. Notificar a partes interesadas",
            ],
        )

    async def _evaluate(
        self,
        enrollment_id: str,
        new_group_id: str,
    ) -> tuple[StudentEnrollment, Group, GradeChangeValidation]:
        enrollment = await self.enrollments.get_by_id(enrollment_id)
        if not enrollment:
            raise EnrollmentNotFoundError()

        if enrollment.status != EnrollmentStatus.ACTIVE:
            raise EnrollmentStateError(
                f"No se puede modificar una matrícula en estado {enrollment.status}"
            )

        new_group = await self.catalog.get_group(new_group_id)
        if not new_group:
            raise GroupNotFoundError("Grupo destino no encontrado")

        await self.enrollment_service.ensure_capacity(new_group, enrollment.academic_year_id)

        current_grade = enrollment.group.grade
        new_grade = new_group.grade
        change_type = self.classify(current_grade, new_grade)

        outcome = await self._apply_rules(enrollment, current_grade, new_grade, change_type)

        validation = GradeChangeValidation(
            can_change=outcome.allowed,
            change_type=change_type,
            current_grade=GradeSummary.model_validate(current_grade),
            new_grade=GradeSummary.model_validate(new_grade),
            warnings=outcome.warnings,
            requirements=outcome.requirements,
            restrictions=outcome.restrictions,
        )
        return enrollment, new_group, validation

    async def _apply_rules(
        self,
        enrollment: StudentEnrollment,
        current_grade: Grade,
        new_grade: Grade,
        change_type: GradeChangeType,
    ) -> RuleOutcome:
        lifecycle = self.settings.lifecycle
        outcome = RuleOutcome()

        if change_type == GradeChangeType.DEMOTION:
            outcome.restrictions.append(
                "No se permite rebajar de grado sin autorización del consejo académico "
                "y acta firmada"
            )
            outcome.requirements.extend([
                "Requiere acta de consejo académico aprobada",
                "Requiere autorización del rector y coordinador académico",
                "Requiere consentimiento firmado de acudientes",
            ])

        if change_type == GradeChangeType.PROMOTION:
            progress = calculate_year_progress(
                enrollment.academic_year,
                utc_now(),
                lifecycle.year_progress_without_dates,
            )
            if progress < lifecycle.anticipated_promotion_threshold:
                outcome.warnings.append(
                    "Promoción anticipada antes de mitad de año lectivo. Se recomienda esperar."
                )
                outcome.requirements.extend([
                    "Requiere evaluación psicoacadémica",
                    "Requiere autorización del consejo académico",
                    "Requiere consentimiento de acudientes",
                ])
            else:
                outcome.requirements.extend([
                    "Requiere evaluación de desempeño superior",
                    "Requiere autorización del coordinador académico",
                ])

        if current_grade.stage != new_grade.stage:
            outcome.requirements.extend([
                "Requiere validación de competencias mínimas de la nueva etapa",
                "Requiere autorización del rector",
            ])
            transition = (current_grade.stage, new_grade.stage)
            if transition == (GradeStage.PREESCOLAR, GradeStage.BASICA_PRIMARIA):
                outcome.requirements.append("Requiere certificado de desarrollo infantil")
            if transition == (GradeStage.BASICA_SECUNDARIA, GradeStage.MEDIA):
                outcome.requirements.append("Requiere evaluación de vocación y aptitudes")

        if change_type == GradeChangeType.PROMOTION:
            scores = await self.catalog.list_scores(enrollment.id)
            if scores and _average(scores) < lifecycle.promotion_min_average:
                outcome.restrictions.append(
                    "Promedio académico insuficiente para promoción anticipada"
                )

        return outcome
