# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Repository adapters used by the lifecycle engines."""

from escolar.infrastructure.database.repositories.academic_year import AcademicYearRepository
from escolar.infrastructure.database.repositories.catalog import CatalogRepository
from escolar.infrastructure.database.repositories.enrollment import EnrollmentRepository

__all__ = [
    "AcademicYearRepository",
    "CatalogRepository",
    "EnrollmentRepository",
]
