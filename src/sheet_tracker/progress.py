from __future__ import annotations

"""Pure helpers for the day -> game -> metric grade matrix."""

import copy
from decimal import ROUND_HALF_UP, Decimal
from typing import Any


DAY_COUNT = 7
GAMES_PER_DAY = 5
GRADES = (1, 2, 3, 4, 5)
UNGRADED = 0
NO_AVERAGE = "–"

DAY_LABELS = [f"Day {idx + 1}" for idx in range(DAY_COUNT)]

ProgressMatrix = list[list[list[int]]]


def build_empty(metric_count: int) -> ProgressMatrix:
    """Return a 7 x 5 x `metric_count` matrix of zero grades."""

    return [[[UNGRADED] * metric_count for _ in range(GAMES_PER_DAY)] for _ in range(DAY_COUNT)]


def _resize(grades: list[int], metric_count: int) -> list[int]:
    diff = metric_count - len(grades)
    if diff > 0:
        return [*grades, *([UNGRADED] * diff)]
    if diff < 0:
        return grades[:metric_count]
    return list(grades)


def reconcile(metric_count: int, matrix: ProgressMatrix) -> ProgressMatrix:
    """Pad or truncate every game's grades to `metric_count`, keeping values by index.

    The input is left untouched and calling it twice with the same count is a no-op.
    """

    return [[_resize(game, metric_count) for game in day] for day in matrix]


def drop_column(matrix: ProgressMatrix, metric_idx: int) -> ProgressMatrix:
    """Remove one metric's grades from every game; later columns shift left."""

    return [[[grade for pos, grade in enumerate(game) if pos != metric_idx] for game in day] for day in matrix]


def set_cell(matrix: ProgressMatrix, day_idx: int, game_idx: int, metric_idx: int, grade: int) -> ProgressMatrix:
    updated = copy.deepcopy(matrix)
    updated[day_idx][game_idx][metric_idx] = grade
    return updated


def average(matrix: ProgressMatrix) -> str:
    """Mean of all graded cells formatted to two decimals, or the placeholder."""

    total = 0
    count = 0
    for day in matrix:
        for game in day:
            for grade in game:
                if grade > 0:
                    total += grade
                    count += 1
    if not count:
        return NO_AVERAGE
    # Half-up on the binary value of the mean, so 9/8 gives "1.13".
    return str(Decimal(total / count).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def is_matrix(value: Any) -> bool:
    """True when `value` has the 7 x 5 x n list shape of a progress matrix."""

    if not isinstance(value, list) or len(value) != DAY_COUNT:
        return False
    for day in value:
        if not isinstance(day, list) or len(day) != GAMES_PER_DAY:
            return False
        for game in day:
            if not isinstance(game, list):
                return False
            if not all(isinstance(grade, int) and not isinstance(grade, bool) for grade in game):
                return False
    return True
