from __future__ import annotations

from sheet_tracker.progress import (
    DAY_COUNT,
    GAMES_PER_DAY,
    NO_AVERAGE,
    average,
    build_empty,
    drop_column,
    is_matrix,
    reconcile,
    set_cell,
)


def _cells(matrix: list) -> list[int]:
    return [grade for day in matrix for game in day for grade in game]


def test_build_empty_has_fixed_shape_of_zeros() -> None:
    for metric_count in (0, 1, 4, 9):
        matrix = build_empty(metric_count)
        assert len(matrix) == DAY_COUNT
        assert all(len(day) == GAMES_PER_DAY for day in matrix)
        assert all(len(game) == metric_count for day in matrix for game in day)
        cells = _cells(matrix)
        assert len(cells) == DAY_COUNT * GAMES_PER_DAY * metric_count
        assert set(cells) <= {0}


def test_build_empty_rows_are_independent() -> None:
    matrix = build_empty(2)
    matrix[0][0][0] = 5
    assert matrix[0][1][0] == 0
    assert matrix[1][0][0] == 0


def test_average_counts_only_positive_grades() -> None:
    matrix = build_empty(3)
    assert average(matrix) == NO_AVERAGE == "–"
    matrix[0][0][0] = 3
    matrix[6][4][2] = 5
    assert average(matrix) == "4.00"
    matrix[2][1][1] = 1
    assert average(matrix) == "3.00"


def test_average_formats_two_decimals() -> None:
    matrix = build_empty(3)
    matrix[0][0] = [1, 2, 2]
    assert average(matrix) == "1.67"


def test_average_rounds_exact_ties_up() -> None:
    matrix = build_empty(1)
    for day_idx in range(7):
        matrix[day_idx][0] = [1]
    matrix[0][1] = [2]
    assert average(matrix) == "1.13"
    matrix[1][0] = [3]
    matrix[2][0] = [3]
    assert average(matrix) == "1.63"


def test_reconcile_pads_with_zeros_and_keeps_values() -> None:
    matrix = build_empty(2)
    matrix[3][2] = [4, 1]
    grown = reconcile(4, matrix)
    assert grown[3][2] == [4, 1, 0, 0]
    assert all(len(game) == 4 for day in grown for game in day)


def test_reconcile_truncates_only_trailing_grades() -> None:
    matrix = build_empty(4)
    matrix[0][0] = [5, 4, 3, 2]
    shrunk = reconcile(2, matrix)
    assert shrunk[0][0] == [5, 4]
    assert all(len(game) == 2 for day in shrunk for game in day)


def test_reconcile_is_pure_and_idempotent() -> None:
    matrix = build_empty(3)
    matrix[1][1] = [2, 0, 5]
    once = reconcile(1, matrix)
    assert reconcile(1, once) == once
    assert matrix[1][1] == [2, 0, 5]
    assert reconcile(3, matrix) == matrix
    assert reconcile(3, matrix) is not matrix


def test_drop_column_shifts_later_grades_left() -> None:
    matrix = build_empty(4)
    matrix[2][3] = [1, 2, 3, 4]
    dropped = drop_column(matrix, 1)
    assert dropped[2][3] == [1, 3, 4]
    assert all(len(game) == 3 for day in dropped for game in day)
    assert matrix[2][3] == [1, 2, 3, 4]
    assert reconcile(3, dropped) == dropped


def test_set_cell_copies_the_matrix() -> None:
    matrix = build_empty(2)
    updated = set_cell(matrix, 2, 3, 1, 4)
    assert updated[2][3][1] == 4
    assert matrix[2][3][1] == 0


def test_is_matrix_rejects_wrong_shapes() -> None:
    assert is_matrix(build_empty(0))
    assert is_matrix(build_empty(3))
    assert not is_matrix({"days": []})
    assert not is_matrix(build_empty(2)[:6])
    broken = build_empty(2)
    broken[0][0] = [1, "2"]
    assert not is_matrix(broken)
