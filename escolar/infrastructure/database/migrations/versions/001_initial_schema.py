# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial schema: academic calendar, catalogs and enrollments.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2025-02-03
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=False),
        server_default=sa.text("gen_random_uuid()"),
        primary_key=True,
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def upgrade() -> None:
    """Create lifecycle tables."""
    # =========================================================================
    # ACADEMIC CALENDAR
    # =========================================================================

    op.create_table(
        "academic_years",
        _id(),
        sa.Column("institution_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="DRAFT"),
        sa.Column("activated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("activated_by_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_by_id", postgresql.UUID(as_uuid=False), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "institution_id", "year", name="uq_academic_years_institution_year"
        ),
    )
    op.create_index("ix_academic_years_institution_id", "academic_years", ["institution_id"])
    op.create_index("ix_academic_years_status", "academic_years", ["status"])
    # At most one ACTIVE year per institution
    op.create_index(
        "uq_academic_years_one_active",
        "academic_years",
        ["institution_id"],
        unique=True,
        postgresql_where=sa.text("status = 'ACTIVE'"),
    )

    op.create_table(
        "academic_terms",
        _id(),
        sa.Column(
            "academic_year_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("academic_years.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="PERIOD"),
        sa.Column("order", sa.Integer, nullable=False),
        sa.Column("weight_percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("academic_year_id", "order", name="uq_academic_terms_year_order"),
    )
    op.create_index("ix_academic_terms_academic_year_id", "academic_terms", ["academic_year_id"])

    op.create_table(
        "performance_scales",
        _id(),
        sa.Column("institution_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("level", sa.String(20), nullable=False),
        sa.Column("min_score", sa.Numeric(4, 2), nullable=False),
        sa.Column("max_score", sa.Numeric(4, 2), nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_performance_scales_institution_id", "performance_scales", ["institution_id"]
    )

    # =========================================================================
    # CATALOGS
    # =========================================================================

    op.create_table(
        "grades",
        _id(),
        sa.Column("institution_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("stage", sa.String(30), nullable=False),
        sa.Column("number", sa.Integer, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "institution_id", "stage", "name", name="uq_grades_institution_stage_name"
        ),
    )
    op.create_index("ix_grades_institution_id", "grades", ["institution_id"])

    op.create_table(
        "groups",
        _id(),
        sa.Column("institution_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "grade_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("grades.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("code", sa.String(20), nullable=True),
        sa.Column("campus_name", sa.String(100), nullable=True),
        sa.Column("shift_name", sa.String(50), nullable=True),
        sa.Column("max_capacity", sa.Integer, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_groups_institution_id", "groups", ["institution_id"])
    op.create_index("ix_groups_grade_id", "groups", ["grade_id"])

    op.create_table(
        "students",
        _id(),
        sa.Column("institution_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("document_number", sa.String(30), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "institution_id", "document_number", name="uq_students_institution_document"
        ),
    )
    op.create_index("ix_students_institution_id", "students", ["institution_id"])

    op.create_table(
        "academic_acts",
        _id(),
        sa.Column("institution_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("number", sa.String(30), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("approval_date", sa.Date, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_academic_acts_institution_id", "academic_acts", ["institution_id"])

    # =========================================================================
    # ENROLLMENTS
    # =========================================================================

    op.create_table(
        "student_enrollments",
        _id(),
        sa.Column(
            "student_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("students.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "academic_year_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("academic_years.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "group_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("groups.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("enrollment_type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("shift", sa.String(20), nullable=True),
        sa.Column("modality", sa.String(20), nullable=False),
        sa.Column("observations", sa.Text, nullable=True),
        sa.Column("withdrawal_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("withdrawal_reason", sa.Text, nullable=True),
        sa.Column(
            "promoted_from_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("student_enrollments.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "promoted_to_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("student_enrollments.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("enrolled_by_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "student_id", "academic_year_id", name="uq_student_enrollments_student_year"
        ),
    )
    op.create_index("ix_student_enrollments_student_id", "student_enrollments", ["student_id"])
    op.create_index("ix_student_enrollments_group_id", "student_enrollments", ["group_id"])
    op.create_index(
        "ix_student_enrollments_year_status",
        "student_enrollments",
        ["academic_year_id", "status"],
    )

    op.create_table(
        "student_grades",
        _id(),
        sa.Column(
            "student_enrollment_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("student_enrollments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "academic_term_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("academic_terms.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("subject_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("score", sa.Numeric(4, 2), nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_student_grades_student_enrollment_id", "student_grades", ["student_enrollment_id"]
    )

    op.create_table(
        "areas",
        _id(),
        sa.Column("institution_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("code", sa.String(20), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_areas_institution_id", "areas", ["institution_id"])

    op.create_table(
        "subjects",
        _id(),
        sa.Column(
            "area_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("areas.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("code", sa.String(20), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_subjects_area_id", "subjects", ["area_id"])

    op.create_table(
        "teachers",
        _id(),
        sa.Column("institution_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_teachers_institution_id", "teachers", ["institution_id"])

    op.create_table(
        "teacher_assignments",
        _id(),
        sa.Column(
            "academic_year_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("academic_years.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "group_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("groups.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "subject_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("subjects.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column(
            "teacher_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("teachers.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        *_timestamps(),
        sa.UniqueConstraint(
            "academic_year_id",
            "group_id",
            "subject_id",
            name="uq_teacher_assignments_year_group_subject",
        ),
    )
    op.create_index("ix_teacher_assignments_group_id", "teacher_assignments", ["group_id"])
    op.create_index("ix_teacher_assignments_teacher_id", "teacher_assignments", ["teacher_id"])

    # Append-only audit trail
    op.create_table(
        "enrollment_events",
        _id(),
        sa.Column(
            "enrollment_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("student_enrollments.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("movement_type", sa.String(30), nullable=True),
        sa.Column("previous_value", postgresql.JSONB, nullable=True),
        sa.Column("new_value", postgresql.JSONB, nullable=True),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("observations", sa.Text, nullable=True),
        sa.Column(
            "academic_act_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("academic_acts.id", ondelete="RESTRICT"),
            nullable=True,
        ),
        sa.Column("performed_by_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column(
            "performed_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index(
        "ix_enrollment_events_enrollment_performed",
        "enrollment_events",
        ["enrollment_id", "performed_at"],
    )


def downgrade() -> None:
    """Drop lifecycle tables."""
    # Drop in reverse order to handle foreign keys
    op.drop_table("enrollment_events")
    op.drop_table("teacher_assignments")
    op.drop_table("teachers")
    op.drop_table("subjects")
    op.drop_table("areas")
    op.drop_table("student_grades")
    op.drop_table("student_enrollments")
    op.drop_table("academic_acts")
    op.drop_table("students")
    op.drop_table("groups")
    op.drop_table("grades")
    op.drop_table("performance_scales")
    op.drop_table("academic_terms")
    op.drop_table("academic_years")
