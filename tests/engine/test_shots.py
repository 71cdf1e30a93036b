"""Tests for shot resolution, sinking and auto-reveal."""

import pytest
from navalduel.engine.board import Board, CellState
from navalduel.engine.placement import build_board
from navalduel.engine.ship import Coordinate
from navalduel.engine.shots import resolve_shot
from navalduel.errors import AlreadyTargetedError, OutOfBoundsError


def _board() -> Board:
    return Board.from_layout(
        {
            "battleship": [Coordinate(x, 2) for x in range(2, 6)],
            "dinghy1": [Coordinate(9, 9)],
        }
    )


def test_miss_marks_water() -> None:
    board = _board()
    outcome = resolve_shot(board, Coordinate(0, 0))
    assert outcome.miss and not outcome.hit
    assert board.get_cell_state(Coordinate(0, 0)) is CellState.MISS
    assert outcome.sunk_ship_id is None


def test_sinking_reveals_surrounding_water() -> None:
    board = _board()
    board.mark_miss(Coordinate(1, 1))

    for x in (2, 3, 4):
        outcome = resolve_shot(board, Coordinate(x, 2))
        assert outcome.hit and outcome.sunk_ship_id is None
        assert outcome.auto_revealed_water == ()

    outcome = resolve_shot(board, Coordinate(5, 2))
    assert outcome.sunk_ship_id == "battleship"
    assert outcome.sunk_ship_cells == tuple(Coordinate(x, 2) for x in range(2, 6))

    expected = {
        Coordinate(x, y)
        for y in (1, 2, 3)
        for x in range(1, 7)
        if not (y == 2 and 2 <= x <= 5)
    } - {Coordinate(1, 1)}
    assert set(outcome.auto_revealed_water) == expected
    assert len(outcome.auto_revealed_water) == 13
    for cell in expected:
        assert board.get_cell_state(cell) is CellState.MISS
    assert board.get_cell_state(Coordinate(0, 2)) is CellState.EMPTY
    assert not outcome.fleet_destroyed


def test_last_ship_destroys_fleet() -> None:
    board = _board()
    for x in range(2, 6):
        resolve_shot(board, Coordinate(x, 2))
    outcome = resolve_shot(board, Coordinate(9, 9))
    assert outcome.sunk_ship_id == "dinghy1"
    assert set(outcome.auto_revealed_water) == {Coordinate(8, 8), Coordinate(9, 8), Coordinate(8, 9)}
    assert outcome.fleet_destroyed


def test_corner_sink_reveal_is_clipped() -> None:
    board = Board.from_layout({"dinghy1": [Coordinate(0, 0)], "dinghy2": [Coordinate(9, 9)]})
    outcome = resolve_shot(board, Coordinate(0, 0))
    assert outcome.auto_revealed_water == (Coordinate(1, 0), Coordinate(0, 1), Coordinate(1, 1))


@pytest.mark.parametrize("coord", [Coordinate(-1, 0), Coordinate(10, 3), Coordinate(4, 10)])
def test_out_of_bounds_shot_is_rejected(coord: Coordinate) -> None:
    board = _board()
    with pytest.raises(OutOfBoundsError):
        resolve_shot(board, coord)
    assert board.marks() == {}


def test_repeat_shot_is_rejected_without_mutation() -> None:
    board = _board()
    resolve_shot(board, Coordinate(2, 2))
    before = board.marks()
    with pytest.raises(AlreadyTargetedError):
        resolve_shot(board, Coordinate(2, 2))
    assert board.marks() == before
    assert board.hits["battleship"] == 1


def test_auto_revealed_cells_cannot_be_fired_at() -> None:
    board = Board.from_layout({"dinghy1": [Coordinate(4, 4)], "dinghy2": [Coordinate(0, 0)]})
    resolve_shot(board, Coordinate(4, 4))
    with pytest.raises(AlreadyTargetedError):
        resolve_shot(board, Coordinate(5, 5))


@pytest.mark.parametrize("x, y", [(3.5, 2), ("3", 2), (None, 2), (True, 0), (2, 2.0)])
def test_non_integer_shot_is_out_of_bounds(x, y) -> None:
    board = _board()
    with pytest.raises(OutOfBoundsError):
        resolve_shot(board, Coordinate(x, y))
    assert board.marks() == {}


def test_ships_sink_on_their_last_hit_in_any_order(standard_fleet) -> None:
    board = build_board(standard_fleet, owner="bob")
    shots = [
        (Coordinate(6, 0), None),
        (Coordinate(5, 0), None),
        (Coordinate(9, 9), None),
        (Coordinate(5, 7), None),
        (Coordinate(3, 0), None),
        (Coordinate(8, 8), None),
        (Coordinate(6, 6), None),
        (Coordinate(4, 0), "battleship"),
        (Coordinate(2, 8), None),
        (Coordinate(5, 6), "lship"),
    ]

    for coord, sunk in shots:
        outcome = resolve_shot(board, coord)
        assert outcome.sunk_ship_id == sunk, coord
        assert outcome.hit == (board.ship_at(coord) is not None)

    assert board.is_sunk("battleship") and board.is_sunk("lship")
    assert not board.is_sunk("cruiser")
    assert board.get_cell_state(Coordinate(9, 9)) is CellState.MISS
    assert not board.all_ships_sunk()
