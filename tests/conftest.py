# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

Unit tests run the services against a mocked AsyncSession and mocked
repositories. ORM entities are real, transient instances with their
relationships set explicitly, so nothing ever lazy-loads.
"""

from collections.abc import Callable
from datetime import date
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from escolar.core.config.settings import LifecycleSettings, Settings
from escolar.infrastructure.database.models import (
    AcademicYear,
    Grade,
    Group,
    Student,
    StudentEnrollment,
)
from escolar.infrastructure.database.repositories import (
    AcademicYearRepository,
    CatalogRepository,
    EnrollmentRepository,
)
from escolar.models.enums import (
    AcademicYearStatus,
    EnrollmentStatus,
    EnrollmentType,
    GradeStage,
)
from escolar.utils.datetime import utc_now

INSTITUTION_ID = "550e8400-e29b-41d4-a716-446655440000"
USER_ID = "550e8400-e29b-41d4-a716-446655440099"


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )


# =============================================================================
# Session and Repository Fixtures
# =============================================================================


@pytest.fixture
def mock_db() -> AsyncMock:
    """Create mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.delete = AsyncMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.execute = AsyncMock()
    return db


@pytest.fixture
def settings() -> Settings:
    """Provide settings with the default lifecycle thresholds."""
    return Settings(lifecycle=LifecycleSettings())


@pytest.fixture
def year_repo() -> MagicMock:
    """Academic year repository mock (async methods become AsyncMock)."""
    return MagicMock(spec=AcademicYearRepository)


@pytest.fixture
def enrollment_repo() -> MagicMock:
    """Enrollment repository mock; add/add_event stay synchronous."""
    return MagicMock(spec=EnrollmentRepository)


@pytest.fixture
def catalog_repo() -> MagicMock:
    """Catalog repository mock."""
    return MagicMock(spec=CatalogRepository)


# =============================================================================
# Entity Factories
# =============================================================================


@pytest.fixture
def make_year() -> Callable[..., AcademicYear]:
    """Build a transient AcademicYear."""

    def _make(
        status: AcademicYearStatus = AcademicYearStatus.DRAFT,
        year: int = 2025,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> AcademicYear:
        return AcademicYear(
            id=str(uuid4()),
            institution_id=INSTITUTION_ID,
            year=year,
            name=f"Año Lectivo {year}",
            start_date=start_date,
            end_date=end_date,
            status=status.value,
        )

    return _make


@pytest.fixture
def make_grade() -> Callable[..., Grade]:
    """Build a transient Grade."""

    def _make(stage: GradeStage = GradeStage.BASICA_PRIMARIA, number: int = 5) -> Grade:
        return Grade(
            id=str(uuid4()),
            institution_id=INSTITUTION_ID,
            name=f"Grado {number}",
            stage=stage.value,
            number=number,
        )

    return _make


@pytest.fixture
def make_group(make_grade) -> Callable[..., Group]:
    """Build a transient Group with its grade attached."""

    def _make(
        grade: Grade | None = None,
        name: str = "5A",
        max_capacity: int | None = None,
    ) -> Group:
        grade = grade or make_grade()
        group = Group(
            id=str(uuid4()),
            institution_id=INSTITUTION_ID,
            grade_id=grade.id,
            name=name,
            code=name,
            max_capacity=max_capacity,
        )
        group.grade = grade
        return group

    return _make


@pytest.fixture
def make_student() -> Callable[..., Student]:
    """Build a transient Student."""

    def _make(first_name: str = "Ana", last_name: str = "Gómez") -> Student:
        return Student(
            id=str(uuid4()),
            institution_id=INSTITUTION_ID,
            document_number=str(uuid4().int)[:10],
            first_name=first_name,
            last_name=last_name,
        )

    return _make


@pytest.fixture
def make_enrollment(make_year, make_group, make_student) -> Callable[..., StudentEnrollment]:
    """Build a transient StudentEnrollment with student, group and year set."""

    def _make(
        status: EnrollmentStatus = EnrollmentStatus.ACTIVE,
        academic_year: AcademicYear | None = None,
        group: Group | None = None,
        student: Student | None = None,
    ) -> StudentEnrollment:
        academic_year = academic_year or make_year(AcademicYearStatus.ACTIVE)
        group = group or make_group()
        student = student or make_student()
        enrollment = StudentEnrollment(
            id=str(uuid4()),
            student_id=student.id,
            academic_year_id=academic_year.id,
            group_id=group.id,
            enrollment_type=EnrollmentType.NEW.value,
            status=status.value,
            modality="PRESENTIAL",
            enrolled_at=utc_now(),
        )
        enrollment.student = student
        enrollment.group = group
        enrollment.academic_year = academic_year
        return enrollment

    return _make
