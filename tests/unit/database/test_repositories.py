# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for repository adapters and the commit helper."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError

from escolar.core.errors import ConflictError
from escolar.infrastructure.database import commit_or_conflict
from escolar.infrastructure.database.models import EnrollmentEvent
from escolar.infrastructure.database.repositories import (
    AcademicYearRepository,
    CatalogRepository,
    EnrollmentRepository,
)
from escolar.infrastructure.database.repositories.catalog import _STAGE_ORDER
from escolar.models.enums import EnrollmentEventType, EnrollmentStatus


def _compiled(statement, literal: bool = False) -> str:
    compile_kwargs = {"literal_binds": True} if literal else {}
    return str(statement.compile(dialect=postgresql.dialect(), compile_kwargs=compile_kwargs))


class TestCommitOrConflict:
    """Tests for translating unique violations."""

    @pytest.mark.asyncio
    async def test_commit(self, mock_db):
        await commit_or_conflict(mock_db, "conflict")

        mock_db.commit.assert_awaited_once()
        mock_db.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_integrity_error_becomes_conflict(self, mock_db):
        mock_db.commit.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))

        with pytest.raises(ConflictError) as exc_info:
            await commit_or_conflict(mock_db, "Ya existe")

        assert exc_info.value.message == "Ya existe"
        assert isinstance(exc_info.value.__cause__, IntegrityError)
        mock_db.rollback.assert_awaited_once()


class TestEnrollmentRepository:
    """Tests for the enrollment repository."""

    def test_add_event_appends_pending_event(self, mock_db):
        """Events are added to the session, never committed by the repository."""
        repo = EnrollmentRepository(mock_db)

        event = repo.add_event(
            enrollment_id="e1",
            type=EnrollmentEventType.WITHDRAWN,
            performed_by_id="u1",
            previous_value={"status": "ACTIVE"},
            new_value={"status": "WITHDRAWN"},
            reason="Cambio de ciudad",
        )

        assert isinstance(event, EnrollmentEvent)
        assert event.type == "WITHDRAWN"
        assert event.performed_at is not None
        mock_db.add.assert_called_once_with(event)
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_count_by_year_with_status(self, mock_db):
        result = MagicMock()
        result.scalar.return_value = 7
        mock_db.execute.return_value = result
        repo = EnrollmentRepository(mock_db)

        count = await repo.count_by_year("y1", EnrollmentStatus.WITHDRAWN)

        assert count == 7
        sql = _compiled(mock_db.execute.call_args.args[0])
        assert "student_enrollments.status" in sql

    @pytest.mark.asyncio
    async def test_count_active_by_group(self, mock_db):
        result = MagicMock()
        result.all.return_value = [("g1", 3), ("g2", 1)]
        mock_db.execute.return_value = result
        repo = EnrollmentRepository(mock_db)

        assert await repo.count_active_by_group("y1") == {"g1": 3, "g2": 1}


class TestAcademicYearRepository:
    """Tests for the academic year repository."""

    @pytest.mark.asyncio
    async def test_active_year_locked_for_update(self, mock_db):
        mock_db.execute.return_value = MagicMock()
        repo = AcademicYearRepository(mock_db)

        await repo.get_active_for_institution("i1", for_update=True)

        assert "FOR UPDATE" in _compiled(mock_db.execute.call_args.args[0])

    @pytest.mark.asyncio
    async def test_active_year_without_lock(self, mock_db):
        mock_db.execute.return_value = MagicMock()
        repo = AcademicYearRepository(mock_db)

        await repo.get_active_for_institution("i1")

        assert "FOR UPDATE" not in _compiled(mock_db.execute.call_args.args[0])

    @pytest.mark.asyncio
    async def test_count_terms_defaults_to_zero(self, mock_db):
        result = MagicMock()
        result.scalar.return_value = None
        mock_db.execute.return_value = result

        assert await AcademicYearRepository(mock_db).count_terms("y1") == 0


class TestCatalogRepository:
    """Tests for catalog queries."""

    @pytest.mark.asyncio
    async def test_groups_sorted_by_stage_weight(self, mock_db):
        """Stages are text columns; ordering must follow the pedagogical order."""
        mock_db.execute.return_value = MagicMock()

        await CatalogRepository(mock_db).list_groups("i1")

        order_by = _compiled(mock_db.execute.call_args.args[0]).split("ORDER BY", 1)[1]
        assert order_by.lstrip().startswith("CASE grades.stage")
        assert order_by.index("grades.number") < order_by.index("groups.name")

        stage_order = _compiled(_STAGE_ORDER, literal=True)
        assert "WHEN 'PREESCOLAR' THEN 0" in stage_order
        assert "WHEN 'BASICA_PRIMARIA' THEN 100" in stage_order
        assert "WHEN 'BASICA_SECUNDARIA' THEN 200" in stage_order
        assert "WHEN 'MEDIA' THEN 300" in stage_order

    @pytest.mark.asyncio
    async def test_teacher_assignments_for_group(self, mock_db):
        mock_db.execute.return_value = MagicMock()

        await CatalogRepository(mock_db).list_teacher_assignments("g1", "y1")

        sql = _compiled(mock_db.execute.call_args.args[0])
        assert "teacher_assignments.group_id" in sql
        assert "teacher_assignments.academic_year_id" in sql
        assert "teacher_assignments.subject_id IN" not in sql

    @pytest.mark.asyncio
    async def test_teacher_assignments_for_subjects(self, mock_db):
        mock_db.execute.return_value = MagicMock()

        await CatalogRepository(mock_db).list_teacher_assignments(
            "g1", "y1", subject_ids=["s1", "s2"]
        )

        statement = mock_db.execute.call_args.args[0]
        assert "teacher_assignments.subject_id IN" in _compiled(statement)
        assert "s2" in str(statement.compile().params.values())
