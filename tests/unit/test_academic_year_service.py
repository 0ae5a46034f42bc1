# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the academic year lifecycle service."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from escolar.core.errors import ForbiddenError, ValidationFailedError
from escolar.domains.academic_year import (
    AcademicYearExistsError,
    AcademicYearInUseError,
    AcademicYearLifecycleService,
    AcademicYearLockedError,
    AcademicYearNotFoundError,
    AcademicYearStateError,
    ActiveYearConflictError,
    AlwaysPromotePolicy,
)
from escolar.infrastructure.database.models import (
    Area,
    PerformanceScale,
    Subject,
    Teacher,
    TeacherAssignment,
)
from escolar.models.academic_year import (
    AcademicYearCreateRequest,
    AcademicYearUpdateRequest,
    ActivateYearRequest,
    CloseYearRequest,
)
from escolar.models.enums import (
    AcademicYearStatus,
    EnrollmentEventType,
    EnrollmentStatus,
    GradeStage,
)

INSTITUTION_ID = "550e8400-e29b-41d4-a716-446655440000"
USER_ID = "550e8400-e29b-41d4-a716-446655440099"


class RepeatEveryonePolicy:
    def should_promote(self, enrollment) -> bool:
        return False


def _assignment() -> TeacherAssignment:
    area = Area(id="area-1", institution_id=INSTITUTION_ID, name="Ciencias Exactas", code="CE")
    subject = Subject(id="sub-1", area_id=area.id, name="Matemáticas", code="MAT")
    subject.area = area
    teacher = Teacher(id="t-1", institution_id=INSTITUTION_ID, first_name="Marta", last_name="Ríos")
    assignment = TeacherAssignment(
        id="ta-1",
        academic_year_id="y1",
        group_id="g1",
        subject_id=subject.id,
        teacher_id=teacher.id,
    )
    assignment.subject = subject
    assignment.teacher = teacher
    return assignment


@pytest.fixture
def service(mock_db, settings, year_repo, enrollment_repo, catalog_repo):
    """Create lifecycle service with mocked repositories."""
    service = AcademicYearLifecycleService(db=mock_db, settings=settings)
    service.years = year_repo
    service.enrollments = enrollment_repo
    service.catalog = catalog_repo
    return service


class TestCreateYear:
    """Tests for academic year creation."""

    @pytest.mark.asyncio
    async def test_create_year_starts_in_draft(self, service, mock_db, year_repo):
        """New years are DRAFT with empty counts."""
        year_repo.get_by_institution_and_year.return_value = None

        result = await service.create_year(
            AcademicYearCreateRequest(
                institution_id=INSTITUTION_ID,
                year=2025,
                start_date=date(2025, 1, 20),
                end_date=date(2025, 11, 28),
            )
        )

        year_repo.add.assert_called_once()
        mock_db.commit.assert_awaited_once()
        assert result.status == AcademicYearStatus.DRAFT
        assert result.name == "Año Lectivo 2025"
        assert result.term_count == 0
        assert result.enrollment_count == 0

    @pytest.mark.asyncio
    async def test_create_year_duplicate(self, service, year_repo, make_year):
        """A second year with the same number is rejected."""
        year_repo.get_by_institution_and_year.return_value = make_year()

        with pytest.raises(AcademicYearExistsError):
            await service.create_year(
                AcademicYearCreateRequest(institution_id=INSTITUTION_ID, year=2025)
            )

    @pytest.mark.asyncio
    async def test_create_year_duplicate_race_becomes_conflict(
        self, service, mock_db, year_repo
    ):
        """A unique violation at commit time is reported as a conflict."""
        year_repo.get_by_institution_and_year.return_value = None
        mock_db.commit.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))

        with pytest.raises(AcademicYearExistsError):
            await service.create_year(
                AcademicYearCreateRequest(institution_id=INSTITUTION_ID, year=2025)
            )

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_year_inverted_dates(self, service, year_repo):
        """End date must come after start date."""
        with pytest.raises(ValidationFailedError) as exc_info:
            await service.create_year(
                AcademicYearCreateRequest(
                    institution_id=INSTITUTION_ID,
                    year=2025,
                    start_date=date(2025, 11, 1),
                    end_date=date(2025, 2, 1),
                )
            )

        assert exc_info.value.errors == [
            "La fecha de fin debe ser posterior a la fecha de inicio"
        ]
        year_repo.add.assert_not_called()


class TestUpdateAndDelete:
    """Tests for editing and deleting years."""

    @pytest.mark.asyncio
    async def test_update_draft_year(self, service, mock_db, year_repo, enrollment_repo, make_year):
        """DRAFT years accept edits; unset fields are kept."""
        academic_year = make_year(start_date=date(2025, 1, 20))
        year_repo.get_by_id.return_value = academic_year
        year_repo.count_terms.return_value = 4
        enrollment_repo.count_by_year.return_value = 0

        result = await service.update_year(
            academic_year.id, AcademicYearUpdateRequest(name="Año 2025")
        )

        mock_db.commit.assert_awaited_once()
        assert result.name == "Año 2025"
        assert result.start_date == date(2025, 1, 20)
        assert result.term_count == 4

    @pytest.mark.asyncio
    async def test_update_active_year_is_locked(self, service, year_repo, make_year):
        """Only DRAFT years can be edited."""
        year_repo.get_by_id.return_value = make_year(AcademicYearStatus.ACTIVE)

        with pytest.raises(AcademicYearLockedError) as exc_info:
            await service.update_year("any", AcademicYearUpdateRequest(name="x"))

        assert isinstance(exc_info.value, ForbiddenError)
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_delete_year_with_enrollments(
        self, service, year_repo, enrollment_repo, make_year
    ):
        """Years with enrollments cannot be deleted."""
        year_repo.get_by_id.return_value = make_year()
        enrollment_repo.count_by_year.return_value = 3

        with pytest.raises(AcademicYearInUseError):
            await service.delete_year("any")

        year_repo.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_draft_year(self, service, mock_db, year_repo, enrollment_repo, make_year):
        """Empty DRAFT years are deleted."""
        academic_year = make_year()
        year_repo.get_by_id.return_value = academic_year
        enrollment_repo.count_by_year.return_value = 0

        await service.delete_year(academic_year.id)

        year_repo.delete.assert_awaited_once_with(academic_year)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_year_not_found(self, service, year_repo):
        """Missing years raise NotFound."""
        year_repo.get_by_id.return_value = None

        with pytest.raises(AcademicYearNotFoundError) as exc_info:
            await service.get_year("missing")

        assert exc_info.value.status_code == 404


class TestActivateYear:
    """Tests for the DRAFT -> ACTIVE transition."""

    @pytest.mark.asyncio
    async def test_activate_year_without_terms(self, service, mock_db, year_repo, make_year):
        """A year without terms fails activation and stays DRAFT."""
        academic_year = make_year()
        year_repo.get_by_id.return_value = academic_year
        year_repo.get_active_for_institution.return_value = None
        year_repo.count_terms.return_value = 0

        with pytest.raises(ValidationFailedError) as exc_info:
            await service.activate_year(
                ActivateYearRequest(year_id=academic_year.id, user_id=USER_ID)
            )

        assert any("al menos un período académico" in e for e in exc_info.value.errors)
        assert academic_year.status == AcademicYearStatus.DRAFT
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_activate_year_success(
        self, service, mock_db, year_repo, enrollment_repo, make_year
    ):
        """Activation stamps the actor and time."""
        academic_year = make_year()
        year_repo.get_by_id.return_value = academic_year
        year_repo.get_active_for_institution.return_value = None
        year_repo.count_terms.return_value = 4
        enrollment_repo.count_by_year.return_value = 0

        result = await service.activate_year(
            ActivateYearRequest(year_id=academic_year.id, user_id=USER_ID)
        )

        assert result.status == AcademicYearStatus.ACTIVE
        assert result.activated_by_id == USER_ID
        assert result.activated_at is not None
        year_repo.get_active_for_institution.assert_awaited_once_with(
            INSTITUTION_ID, for_update=True
        )
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_activate_with_other_active_year(self, service, year_repo, make_year):
        """Only one year per institution may be ACTIVE."""
        year_repo.get_by_id.return_value = make_year(year=2026)
        year_repo.get_active_for_institution.return_value = make_year(
            AcademicYearStatus.ACTIVE, year=2025
        )

        with pytest.raises(ActiveYearConflictError) as exc_info:
            await service.activate_year(ActivateYearRequest(year_id="y", user_id=USER_ID))

        assert exc_info.value.status_code == 409
        assert "2025" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_activate_concurrent_commit_conflict(
        self, service, mock_db, year_repo, make_year
    ):
        """The partial unique index rejecting the commit surfaces as a conflict."""
        year_repo.get_by_id.return_value = make_year()
        year_repo.get_active_for_institution.return_value = None
        year_repo.count_terms.return_value = 1
        mock_db.commit.side_effect = IntegrityError("UPDATE", {}, Exception("one active"))

        with pytest.raises(ActiveYearConflictError):
            await service.activate_year(ActivateYearRequest(year_id="y", user_id=USER_ID))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [AcademicYearStatus.ACTIVE, AcademicYearStatus.CLOSED])
    async def test_activate_non_draft(self, service, year_repo, make_year, status):
        """Only DRAFT years can be activated."""
        year_repo.get_by_id.return_value = make_year(status)

        with pytest.raises(AcademicYearStateError):
            await service.activate_year(ActivateYearRequest(year_id="y", user_id=USER_ID))


class TestCloseYear:
    """Tests for the ACTIVE -> CLOSED transition."""

    @pytest.mark.asyncio
    async def test_close_with_promotions(
        self, service, mock_db, year_repo, enrollment_repo, make_year, make_enrollment
    ):
        """Every ACTIVE enrollment is settled; WITHDRAWN ones are only counted."""
        academic_year = make_year(AcademicYearStatus.ACTIVE)
        active = [make_enrollment(academic_year=academic_year) for _ in range(3)]
        year_repo.get_by_id.return_value = academic_year
        enrollment_repo.list_by_year_and_statuses.return_value = active
        enrollment_repo.count_by_year.return_value = 1

        result = await service.close_year(
            CloseYearRequest(year_id=academic_year.id, user_id=USER_ID, calculate_promotions=True)
        )

        assert (result.promoted_count, result.repeated_count, result.withdrawn_count) == (3, 0, 1)
        assert all(e.status == EnrollmentStatus.PROMOTED for e in active)
        assert enrollment_repo.add_event.call_count == 3
        first_event = enrollment_repo.add_event.call_args_list[0].kwargs
        assert first_event["type"] == EnrollmentEventType.PROMOTED
        assert first_event["previous_value"] == {"status": "ACTIVE"}
        assert first_event["new_value"] == {"status": "PROMOTED"}
        enrollment_repo.count_by_year.assert_awaited_once_with(
            academic_year.id, EnrollmentStatus.WITHDRAWN
        )
        assert academic_year.status == AcademicYearStatus.CLOSED
        assert academic_year.closed_by_id == USER_ID
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_with_custom_policy(
        self, mock_db, settings, year_repo, enrollment_repo, make_year, make_enrollment
    ):
        """A pluggable policy decides promote or repeat."""
        service = AcademicYearLifecycleService(
            db=mock_db, promotion_policy=RepeatEveryonePolicy(), settings=settings
        )
        service.years = year_repo
        service.enrollments = enrollment_repo
        academic_year = make_year(AcademicYearStatus.ACTIVE)
        year_repo.get_by_id.return_value = academic_year
        enrollment_repo.list_by_year_and_statuses.return_value = [
            make_enrollment(academic_year=academic_year) for _ in range(2)
        ]
        enrollment_repo.count_by_year.return_value = 0

        result = await service.close_year(
            CloseYearRequest(year_id=academic_year.id, user_id=USER_ID, calculate_promotions=True)
        )

        assert (result.promoted_count, result.repeated_count) == (0, 2)
        assert enrollment_repo.add_event.call_args.kwargs["type"] == EnrollmentEventType.REPEATED

    @pytest.mark.asyncio
    async def test_close_without_promotions(self, service, year_repo, enrollment_repo, make_year):
        """Without promotions nothing is written besides the year itself."""
        academic_year = make_year(AcademicYearStatus.ACTIVE)
        year_repo.get_by_id.return_value = academic_year

        result = await service.close_year(
            CloseYearRequest(year_id=academic_year.id, user_id=USER_ID)
        )

        assert result.success is True
        assert result.promoted_count == result.repeated_count == result.withdrawn_count == 0
        enrollment_repo.add_event.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [AcademicYearStatus.DRAFT, AcademicYearStatus.CLOSED])
    async def test_close_non_active(self, service, year_repo, make_year, status):
        """Closure is irreversible and only valid from ACTIVE."""
        year_repo.get_by_id.return_value = make_year(status)

        with pytest.raises(AcademicYearStateError):
            await service.close_year(CloseYearRequest(year_id="y", user_id=USER_ID))


class TestPreviewAndPermissions:
    """Tests for promotion preview and status predicates."""

    @pytest.mark.asyncio
    async def test_preview_promotions(
        self, service, mock_db, year_repo, enrollment_repo, catalog_repo,
        make_year, make_grade, make_group, make_enrollment,
    ):
        """Preview suggests the next grade of the same stage without writing."""
        academic_year = make_year(AcademicYearStatus.ACTIVE)
        current = make_grade(GradeStage.BASICA_PRIMARIA, 4)
        following = make_grade(GradeStage.BASICA_PRIMARIA, 5)
        enrollment = make_enrollment(academic_year=academic_year, group=make_group(current))
        year_repo.get_by_id.return_value = academic_year
        enrollment_repo.list_by_year_and_statuses.return_value = [enrollment]
        catalog_repo.find_grade.return_value = following

        previews = await service.preview_promotions(academic_year.id)

        assert len(previews) == 1
        assert previews[0].suggested_status == EnrollmentStatus.PROMOTED
        assert previews[0].next_grade_id == following.id
        assert previews[0].student_name == "Ana Gómez"
        catalog_repo.find_grade.assert_awaited_once_with(INSTITUTION_ID, current.stage, 5)
        mock_db.commit.assert_not_awaited()
        enrollment_repo.add_event.assert_not_called()

    @pytest.mark.asyncio
    async def test_year_permissions_active(self, service, year_repo):
        """ACTIVE years take enrollments and grades but not structure edits."""
        year_repo.get_status.return_value = AcademicYearStatus.ACTIVE.value

        permissions = await service.get_year_permissions("y")

        assert permissions.can_edit_structure is False
        assert permissions.can_record_grades is True
        assert permissions.can_enroll_students is True
        assert permissions.can_modify is True

    @pytest.mark.asyncio
    async def test_missing_year_cannot_be_modified(self, service, year_repo):
        """Predicates are False for unknown years."""
        year_repo.get_status.return_value = None

        assert await service.can_modify("missing") is False
        with pytest.raises(AcademicYearNotFoundError):
            await service.get_year_permissions("missing")


class TestReportingLookups:
    """Tests for passing grade, scale and teacher assignment lookups."""

    @pytest.mark.asyncio
    async def test_passing_grade_from_basic_level(self, service, catalog_repo):
        """The BASICO band's lower bound is the passing grade."""
        catalog_repo.get_scale_level.return_value = PerformanceScale(
            institution_id=INSTITUTION_ID,
            level="BASICO",
            min_score=Decimal("3.50"),
            max_score=Decimal("3.99"),
        )

        assert await service.get_passing_grade(INSTITUTION_ID) == 3.5

    @pytest.mark.asyncio
    async def test_passing_grade_default(self, service, catalog_repo, settings):
        """Without a BASICO band the configured default applies."""
        catalog_repo.get_scale_level.return_value = None

        passing = await service.get_passing_grade(INSTITUTION_ID)

        assert passing == settings.lifecycle.default_passing_grade

    @pytest.mark.asyncio
    async def test_get_term_missing(self, service, year_repo):
        """Unknown terms yield None."""
        year_repo.get_term.return_value = None

        assert await service.get_term("missing") is None

    @pytest.mark.asyncio
    async def test_teacher_assignments_for_group(self, service, catalog_repo):
        """Assignments are flattened into subject, area and teacher names."""
        catalog_repo.list_teacher_assignments.return_value = [_assignment()]

        summaries = await service.get_teacher_assignments_for_group("g1", "y1")

        catalog_repo.list_teacher_assignments.assert_awaited_once_with("g1", "y1")
        assert len(summaries) == 1
        summary = summaries[0]
        assert summary.subject_name == "Matemáticas"
        assert summary.subject_code == "MAT"
        assert summary.area_name == "Ciencias Exactas"
        assert summary.area_code == "CE"
        assert summary.teacher_name == "Marta Ríos"

    @pytest.mark.asyncio
    async def test_teacher_assignments_for_subjects(self, service, catalog_repo):
        catalog_repo.list_teacher_assignments.return_value = [_assignment()]

        summaries = await service.get_teacher_assignments_for_subjects("g1", "y1", ["sub-1"])

        catalog_repo.list_teacher_assignments.assert_awaited_once_with(
            "g1", "y1", subject_ids=["sub-1"]
        )
        assert [s.subject_id for s in summaries] == ["sub-1"]

    @pytest.mark.asyncio
    async def test_teacher_assignments_without_subjects(self, service, catalog_repo):
        """An empty subject list does not touch the store."""
        assert await service.get_teacher_assignments_for_subjects("g1", "y1", []) == []
        catalog_repo.list_teacher_assignments.assert_not_awaited()


def test_repositories_are_wired(mock_db, settings):
    """The service builds its repositories on the given session."""
    service = AcademicYearLifecycleService(db=mock_db, settings=settings)

    assert service.years.db is mock_db
    assert service.enrollments.db is mock_db
    assert service.catalog.db is mock_db
    assert isinstance(service.promotion_policy, AlwaysPromotePolicy)
