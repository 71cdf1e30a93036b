"""Shot resolution against a defending board."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from navalduel.errors import AlreadyTargetedError, OutOfBoundsError
from navalduel.telemetry import get_meter, get_tracer

from .board import Board, CellState, buffer_around, unpack
from .ship import Coordinate

logger = logging.getLogger(__name__)
tracer = get_tracer("navalduel.engine.shots")
meter = get_meter("navalduel.engine.shots")

SHOT_COUNTER = meter.create_counter(
    "navalduel_engine_shots",
    unit="1",
    description="Shots received by a board",
)


@dataclass(frozen=True)
class ShotOutcome:
    """Board-level outcome of a single shot."""

    target: Coordinate
    hit: bool
    sunk_ship_id: str | None = None
    sunk_ship_cells: tuple[Coordinate, ...] = field(default_factory=tuple)
    auto_revealed_water: tuple[Coordinate, ...] = field(default_factory=tuple)
    fleet_destroyed: bool = False

    @property
    def miss(self) -> bool:
        return not self.hit


def _is_index(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def check_target(board: Board, coord: Coordinate) -> None:
    """Raise if ``coord`` cannot be fired at on ``board``."""
    if not _is_index(coord.x) or not _is_index(coord.y) or not board.is_valid_coordinate(coord):
        raise OutOfBoundsError(f"Shot out of bounds: ({coord.x}, {coord.y})")
    if board.is_targeted(coord):
        raise AlreadyTargetedError(f"Cell already targeted: ({coord.x}, {coord.y})")


def _reveal_water(board: Board, cells: tuple[Coordinate, ...]) -> tuple[Coordinate, ...]:
    revealed: list[Coordinate] = []
    for index in sorted(buffer_around(cells, board.size)):
        neighbour = unpack(index, board.size)
        if board.get_cell_state(neighbour) is CellState.EMPTY:
            board.mark_miss(neighbour)
            revealed.append(neighbour)
    return tuple(revealed)


def resolve_shot(board: Board, coord: Coordinate) -> ShotOutcome:
    """Fire at ``coord`` and mutate ``board`` accordingly.

    A hit that completes a ship sinks it; every still-unmarked water cell
    around the sunk ship is then marked as a miss. Validation happens before
    any mutation, so a rejected shot leaves the board untouched.
    """
    with tracer.start_as_current_span("shots.resolve_shot") as span:
        span.set_attribute("shot.x", coord.x)
        span.set_attribute("shot.y", coord.y)
        span.set_attribute("board.owner", board.owner)
        try:
            check_target(board, coord)
        except (OutOfBoundsError, AlreadyTargetedError) as exc:
            logger.warning(
                "shot_rejected",
                extra={"x": coord.x, "y": coord.y, "owner": board.owner, "reason": exc.code},
            )
            raise

        if board.ship_at(coord) is None:
            board.mark_miss(coord)
            span.set_attribute("shot.outcome", "miss")
            SHOT_COUNTER.add(1, attributes={"outcome": "miss"})
            logger.info("shot_miss", extra={"x": coord.x, "y": coord.y, "owner": board.owner})
            return ShotOutcome(target=coord, hit=False)

        ship_id = board.mark_hit(coord)
        if not board.is_sunk(ship_id):
            span.set_attribute("shot.outcome", "hit")
            SHOT_COUNTER.add(1, attributes={"outcome": "hit"})
            logger.info(
                "shot_hit",
                extra={"x": coord.x, "y": coord.y, "ship_id": ship_id, "owner": board.owner},
            )
            return ShotOutcome(target=coord, hit=True)

        sunk_cells = tuple(sorted(board.ship_cells[ship_id], key=lambda cell: (cell.y, cell.x)))
        revealed = _reveal_water(board, sunk_cells)
        destroyed = board.all_ships_sunk()
        span.set_attribute("shot.outcome", "sunk")
        span.set_attribute("shot.revealed", len(revealed))
        SHOT_COUNTER.add(1, attributes={"outcome": "sunk"})
        logger.info(
            "ship_sunk",
            extra={
                "x": coord.x,
                "y": coord.y,
                "ship_id": ship_id,
                "revealed": len(revealed),
                "fleet_destroyed": destroyed,
                "owner": board.owner,
            },
        )
        return ShotOutcome(
            target=coord,
            hit=True,
            sunk_ship_id=ship_id,
            sunk_ship_cells=sunk_cells,
            auto_revealed_water=revealed,
            fleet_destroyed=destroyed,
        )
