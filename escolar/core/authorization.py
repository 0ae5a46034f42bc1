# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authorization port consulted by callers before dispatching a mutation.

The lifecycle engines are authorization-agnostic: they never call the port
themselves. Controllers, CLIs or jobs resolve the acting user, ask the port
whether the permission is granted and only then invoke the engine.

Example:
    >>> await require_permission(port, actor_id, Permission.ACADEMIC_YEAR_CLOSE)
    >>> await lifecycle.close_year(CloseYearRequest(...))
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable
from enum import StrEnum
from typing import Protocol, runtime_checkable

from escolar.core.errors import ForbiddenError


class Permission(StrEnum):
    """Permission codes guarding the mutating operations."""

    ACADEMIC_YEAR_MANAGE = "ACADEMIC_YEAR_MANAGE"
    ACADEMIC_YEAR_ACTIVATE = "ACADEMIC_YEAR_ACTIVATE"
    ACADEMIC_YEAR_CLOSE = "ACADEMIC_YEAR_CLOSE"
    STUDENTS_ENROLL = "STUDENTS_ENROLL"
    STUDENTS_WITHDRAW = "STUDENTS_WITHDRAW"
    STUDENTS_TRANSFER = "STUDENTS_TRANSFER"
    STUDENTS_CHANGE_GROUP = "STUDENTS_CHANGE_GROUP"
    STUDENTS_PROMOTE = "STUDENTS_PROMOTE"
    GRADE_CHANGE_EXECUTE = "GRADE_CHANGE_EXECUTE"


@runtime_checkable
class AuthorizationPort(Protocol):
    """Yes/no authorization oracle.

    Implementations may be synchronous or return an awaitable.
    """

    def can(self, actor_id: str, permission_code: str) -> bool | Awaitable[bool]:
        """Return whether the actor holds the permission."""
        ...


async def require_permission(
    port: AuthorizationPort,
    actor_id: str,
    permission_code: str,
) -> None:
    """Ensure the actor holds a permission.

    Args:
        port: Authorization oracle.
        actor_id: Acting user identifier.
        permission_code: Permission to check.

    Raises:
        ForbiddenError: If the oracle denies the permission.
    """
    allowed = port.can(actor_id, str(permission_code))
    if inspect.isawaitable(allowed):
        allowed = await allowed

    if not allowed:
        raise ForbiddenError(f"No tiene permiso para realizar esta acción ({permission_code})")
