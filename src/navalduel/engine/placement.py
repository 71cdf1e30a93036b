"""Fleet placement validation."""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from navalduel.errors import InvalidPlacementError
from navalduel.telemetry import get_meter, get_tracer

from .board import Board, buffer_around, in_bounds, pack
from .ship import BOARD_SIZE, FLEET, FLEET_BY_ID, Coordinate, Orientation, ShipPlacement, ShipShape

logger = logging.getLogger(__name__)
tracer = get_tracer("navalduel.engine.placement")
meter = get_meter("navalduel.engine.placement")

FLEET_VALIDATION_COUNTER = meter.create_counter(
    "navalduel_engine_fleet_validations",
    unit="1",
    description="Number of full fleet layouts validated",
)

Layout = dict[str, list[Coordinate]]


def _index_placements(placements: Iterable[ShipPlacement]) -> dict[str, ShipPlacement]:
    by_id: dict[str, ShipPlacement] = {}
    for placement in placements:
        if placement.ship_id not in FLEET_BY_ID:
            raise InvalidPlacementError(f"Unknown ship: {placement.ship_id}")
        if placement.ship_id in by_id:
            raise InvalidPlacementError(f"Duplicate ship: {placement.ship_id}")
        by_id[placement.ship_id] = placement
    return by_id


def _resolve(placements: Iterable[ShipPlacement]) -> Layout:
    by_id = _index_placements(placements)
    occupied: set[int] = set()
    forbidden: set[int] = set()
    layout: Layout = {}

    for definition in FLEET:
        placement = by_id.get(definition.ship_id)
        if placement is None:
            raise InvalidPlacementError(f"Missing ship: {definition.ship_id}")
        try:
            cells = placement.cells(definition)
        except ValueError as exc:
            raise InvalidPlacementError(str(exc)) from exc

        for cell in cells:
            if not in_bounds(cell):
                raise InvalidPlacementError(f"Ship out of bounds: {definition.ship_id}")
            index = pack(cell)
            if index in occupied:
                raise InvalidPlacementError(f"Ships cannot overlap: {definition.ship_id}")
            if index in forbidden:
                raise InvalidPlacementError(
                    f"Ships must have a one-cell water buffer between them: {definition.ship_id}"
                )

        for cell in cells:
            occupied.add(pack(cell))
        forbidden |= occupied | buffer_around(cells)
        layout[definition.ship_id] = cells

    return layout


def validate_fleet(placements: Iterable[ShipPlacement], owner: str = "unknown") -> Layout:
    """Resolve a full candidate fleet into per-ship cells.

    Ships are checked in catalog order; each accepted ship adds its cells and
    their 8-neighbour buffer to the set later ships must avoid. Any violation
    rejects the whole layout with :class:`InvalidPlacementError`.
    """
    with tracer.start_as_current_span("placement.validate_fleet") as span:
        span.set_attribute("board.owner", owner)
        try:
            layout = _resolve(placements)
        except InvalidPlacementError as exc:
            span.set_attribute("placement.result", "rejected")
            FLEET_VALIDATION_COUNTER.add(1, attributes={"result": "rejected"})
            logger.warning("fleet_rejected", extra={"owner": owner, "reason": exc.message})
            raise
        span.set_attribute("placement.result", "accepted")
        FLEET_VALIDATION_COUNTER.add(1, attributes={"result": "accepted"})
        logger.info("fleet_accepted", extra={"owner": owner, "ships": len(layout)})
        return layout


def build_board(placements: Iterable[ShipPlacement], owner: str = "unknown") -> Board:
    """Validate ``placements`` and burn the accepted layout into a new board."""
    return Board.from_layout(validate_fleet(placements, owner=owner), owner=owner)


def _parse_orientation(ship_id: str, raw: Any) -> Orientation | int:
    definition = FLEET_BY_ID.get(ship_id)
    if definition is None:
        raise InvalidPlacementError(f"Unknown ship: {ship_id}")
    if definition.shape is ShipShape.L:
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise InvalidPlacementError(f"{ship_id} orientation must be a rotation index 0-3")
        return raw
    try:
        return Orientation(raw)
    except ValueError as exc:
        raise InvalidPlacementError(
            f"{ship_id} orientation must be 'horizontal' or 'vertical'"
        ) from exc


def parse_fleet(payload: Sequence[Mapping[str, Any]]) -> list[ShipPlacement]:
    """Convert wire objects ``{"id", "x", "y", "orientation"}`` into placements."""
    if not isinstance(payload, Sequence) or isinstance(payload, (str, bytes)):
        raise InvalidPlacementError("Fleet must be a list of ship placements")
    placements: list[ShipPlacement] = []
    for entry in payload:
        if not isinstance(entry, Mapping):
            raise InvalidPlacementError("Ship placement must be an object")
        try:
            ship_id = str(entry["id"])
            x, y = entry["x"], entry["y"]
            raw_orientation = entry.get("orientation", 0)
        except KeyError as exc:
            raise InvalidPlacementError(f"Ship placement is missing {exc.args[0]!r}") from exc
        if isinstance(x, bool) or isinstance(y, bool) or not isinstance(x, int) or not isinstance(y, int):
            raise InvalidPlacementError(f"{ship_id} anchor must be integer coordinates")
        placements.append(
            ShipPlacement(ship_id, Coordinate(x, y), _parse_orientation(ship_id, raw_orientation))
        )
    return placements


def random_layout(rng: random.Random, max_attempts: int = 200) -> list[ShipPlacement]:
    """Generate a valid full fleet layout from ``rng``."""
    with tracer.start_as_current_span("placement.random_layout"):
        restarts = 0
        while True:
            placements = _try_random_layout(rng, max_attempts)
            if placements is not None:
                logger.debug("random_layout_generated", extra={"restarts": restarts})
                return placements
            restarts += 1


def _try_random_layout(rng: random.Random, max_attempts: int) -> list[ShipPlacement] | None:
    forbidden: set[int] = set()
    placements: list[ShipPlacement] = []
    for definition in FLEET:
        for _ in range(max_attempts):
            orientation: Orientation | int
            if definition.shape is ShipShape.L:
                orientation = rng.randrange(4)
            else:
                orientation = rng.choice(list(Orientation))
            anchor = Coordinate(rng.randrange(BOARD_SIZE), rng.randrange(BOARD_SIZE))
            candidate = ShipPlacement(definition.ship_id, anchor, orientation)
            cells = candidate.cells(definition)
            if all(in_bounds(cell) and pack(cell) not in forbidden for cell in cells):
                forbidden |= {pack(cell) for cell in cells} | buffer_around(cells)
                placements.append(candidate)
                break
        else:
            return None
    return placements
