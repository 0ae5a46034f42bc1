# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Error taxonomy shared by the lifecycle engines.

Every precondition violation raised by a service is one of five kinds.
Callers (HTTP controllers, CLIs) map the kind onto a status code through
``status_code`` without inspecting the concrete subclass:

- NotFoundError: a referenced year/enrollment/grade/group/act does not exist
- InvalidStateError: operation not valid for the entity's current status
- ConflictError: uniqueness or capacity violation
- ValidationFailedError: aggregated list of rule violations
- ForbiddenError: structural rule forbids the operation outright

Domain services derive their own named errors from these kinds.
"""

from __future__ import annotations


class LifecycleError(Exception):
    """Base exception for lifecycle engine errors.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP-style status hint for callers.
    """

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(LifecycleError):
    """Raised when a referenced record does not exist."""

    status_code = 404


class InvalidStateError(LifecycleError):
    """Raised when an operation is not valid for the current status."""

    status_code = 400


class ConflictError(LifecycleError):
    """Raised on uniqueness or capacity violations."""

    status_code = 409


class ForbiddenError(LifecycleError):
    """Raised when a structural rule forbids the operation."""

    status_code = 403


class ValidationFailedError(LifecycleError):
    """Raised with the full list of rule violations.

    Attributes:
        errors: Every violation found, in evaluation order.
    """

    status_code = 400

    def __init__(self, message: str, errors: list[str]) -> None:
        super().__init__(message)
        self.errors = list(errors)

    def __str__(self) -> str:
        """Return the message followed by each violation."""
        if not self.errors:
            return self.message
        return f"{self.message}: {'; '.join(self.errors)}"
