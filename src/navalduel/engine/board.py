"""Single-player board state for the naval duel engine."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from enum import Enum

from .ship import BOARD_SIZE, Coordinate

logger = logging.getLogger(__name__)

NEIGHBOUR_DELTAS: tuple[tuple[int, int], ...] = tuple(
    (dx, dy) for dy in (-1, 0, 1) for dx in (-1, 0, 1) if (dx, dy) != (0, 0)
)


class CellState(Enum):
    """State of a single board cell."""

    EMPTY = "empty"
    SHIP = "ship"
    HIT = "hit"
    MISS = "miss"


def pack(coord: Coordinate, size: int = BOARD_SIZE) -> int:
    """Pack a coordinate into a single integer index."""
    return coord.y * size + coord.x


def unpack(index: int, size: int = BOARD_SIZE) -> Coordinate:
    return Coordinate(index % size, index // size)


def in_bounds(coord: Coordinate, size: int = BOARD_SIZE) -> bool:
    return 0 <= coord.x < size and 0 <= coord.y < size


def buffer_around(cells: Iterable[Coordinate], size: int = BOARD_SIZE) -> set[int]:
    """Return the packed 8-neighbourhood of ``cells``, clipped to the grid.

    The cells themselves are included when they neighbour one another.
    """
    buffer: set[int] = set()
    for cell in cells:
        for dx, dy in NEIGHBOUR_DELTAS:
            neighbour = Coordinate(cell.x + dx, cell.y + dy)
            if in_bounds(neighbour, size):
                buffer.add(pack(neighbour, size))
    return buffer


class Board:
    """A 10×10 grid of cells plus the fleet occupying it.

    Built once from a full, already-validated fleet layout and afterwards only
    mutated through :meth:`mark_hit` and :meth:`mark_miss`.
    """

    def __init__(self, owner: str = "unknown", size: int = BOARD_SIZE) -> None:
        self.owner = owner
        self.size = size
        self._cells: list[CellState] = [CellState.EMPTY] * (size * size)
        self._ship_at: dict[int, str] = {}
        self.ship_cells: dict[str, tuple[Coordinate, ...]] = {}
        self.hits: dict[str, int] = {}

    @classmethod
    def from_layout(
        cls, layout: Mapping[str, Sequence[Coordinate]], owner: str = "unknown"
    ) -> Board:
        """Populate a fresh board from resolved per-ship cell lists."""
        board = cls(owner=owner)
        for ship_id, cells in layout.items():
            board.ship_cells[ship_id] = tuple(cells)
            board.hits[ship_id] = 0
            for cell in cells:
                index = pack(cell, board.size)
                board._cells[index] = CellState.SHIP
                board._ship_at[index] = ship_id
        logger.debug(
            "board_populated",
            extra={"owner": owner, "ships": len(layout), "cells": len(board._ship_at)},
        )
        return board

    def is_valid_coordinate(self, coord: Coordinate) -> bool:
        return in_bounds(coord, self.size)

    def get_cell_state(self, coord: Coordinate) -> CellState:
        return self._cells[pack(coord, self.size)]

    def is_targeted(self, coord: Coordinate) -> bool:
        """Whether a shot (or auto-reveal) has already marked this cell."""
        return self.get_cell_state(coord) in (CellState.HIT, CellState.MISS)

    def ship_at(self, coord: Coordinate) -> str | None:
        return self._ship_at.get(pack(coord, self.size))

    def mark_hit(self, coord: Coordinate) -> str:
        """Mark an occupied cell as hit and bump its ship's counter."""
        index = pack(coord, self.size)
        ship_id = self._ship_at[index]
        self._cells[index] = CellState.HIT
        self.hits[ship_id] += 1
        return ship_id

    def mark_miss(self, coord: Coordinate) -> None:
        self._cells[pack(coord, self.size)] = CellState.MISS

    def ship_size(self, ship_id: str) -> int:
        return len(self.ship_cells[ship_id])

    def is_sunk(self, ship_id: str) -> bool:
        return self.hits[ship_id] >= self.ship_size(ship_id)

    def all_ships_sunk(self) -> bool:
        return bool(self.ship_cells) and all(self.is_sunk(ship_id) for ship_id in self.ship_cells)

    def occupied_count(self) -> int:
        return len(self._ship_at)

    def marks(self) -> dict[Coordinate, CellState]:
        """Return every hit/miss mark on the board."""
        return {
            unpack(index, self.size): state
            for index, state in enumerate(self._cells)
            if state in (CellState.HIT, CellState.MISS)
        }
