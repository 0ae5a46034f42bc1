# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Total order over grades.

A grade's position is ``stage_weight(stage) + number``. Stage weights are
spaced by 100 so that every grade of a later stage sorts after every grade
of an earlier one, whatever their numbers.

Example:
    >>> grade_order_key(GradeStage.BASICA_PRIMARIA, 5)
    105
    >>> grade_order_key(GradeStage.BASICA_SECUNDARIA, 1)
    201
"""

from __future__ import annotations

from typing import Protocol

from escolar.models.enums import GradeChangeType, GradeStage

STAGE_WEIGHTS: dict[str, int] = {
    GradeStage.PREESCOLAR.value: 0,
    GradeStage.BASICA_PRIMARIA.value: 100,
    GradeStage.BASICA_SECUNDARIA.value: 200,
    GradeStage.MEDIA.value: 300,
}


class GradeLike(Protocol):
    """Anything carrying a grade identity, stage and rank."""

    id: str
    stage: str
    number: int | None


def stage_weight(stage: str) -> int:
    """Weight of a stage.

    Raises:
        ValueError: If the stage is unknown.
    """
    try:
        return STAGE_WEIGHTS[str(stage)]
    except KeyError:
        raise ValueError(f"Unknown grade stage: {stage}") from None


def grade_order_key(stage: str, number: int | None) -> int:
    """Order key of a grade; a missing number counts as 0."""
    return stage_weight(stage) + (number or 0)


def classify_grade_change(current: GradeLike, new: GradeLike) -> GradeChangeType:
    """Classify moving a student from one grade to another.

    Args:
        current: Grade the student is in.
        new: Grade of the target group.

    Returns:
        SAME_GRADE when both are the same grade record, otherwise PROMOTION
        or DEMOTION by order key.
    """
    if str(current.id) == str(new.id):
        return GradeChangeType.SAME_GRADE

    current_key = grade_order_key(current.stage, current.number)
    new_key = grade_order_key(new.stage, new.number)

    # Distinct grades sharing a key are treated as a lateral move
    if new_key > current_key:
        return GradeChangeType.PROMOTION
    if new_key < current_key:
        return GradeChangeType.DEMOTION
    return GradeChangeType.SAME_GRADE
