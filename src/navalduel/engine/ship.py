"""Fleet catalog and ship shapes for the naval duel engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

BOARD_SIZE = 10


@dataclass(frozen=True, order=True)
class Coordinate:
    """Immutable board coordinate; ``x`` is the column, ``y`` the row."""

    x: int
    y: int

    def as_tuple(self) -> tuple[int, int]:
        return (self.x, self.y)


class Orientation(Enum):
    """Axis of a straight ship."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class ShipShape(Enum):
    STRAIGHT = "straight"
    L = "L"


# Offsets are (dx, dy) from the anchor, the top-left of the 2x2 bounding box.
L_ROTATIONS: tuple[tuple[tuple[int, int], ...], ...] = (
    ((0, 0), (1, 0), (0, 1)),
    ((0, 0), (0, 1), (1, 1)),
    ((0, 1), (1, 0), (1, 1)),
    ((0, 0), (1, 0), (1, 1)),
)


@dataclass(frozen=True)
class ShipDefinition:
    """Catalog entry: identity, size and shape of one ship."""

    ship_id: str
    size: int
    shape: ShipShape = ShipShape.STRAIGHT

    def offsets(self, orientation: Orientation | int) -> tuple[tuple[int, int], ...]:
        """Return the (dx, dy) offsets for the given orientation.

        Straight ships expect an :class:`Orientation`; the L ship expects a
        rotation index between 0 and 3.
        """
        if self.shape is ShipShape.L:
            if isinstance(orientation, bool) or not isinstance(orientation, int):
                raise ValueError(f"{self.ship_id} needs a rotation index 0-3.")
            if not 0 <= orientation < len(L_ROTATIONS):
                raise ValueError(f"Rotation {orientation} is not between 0 and 3.")
            return L_ROTATIONS[orientation]
        if not isinstance(orientation, Orientation):
            raise ValueError(f"{self.ship_id} needs a horizontal or vertical orientation.")
        if orientation is Orientation.HORIZONTAL:
            return tuple((offset, 0) for offset in range(self.size))
        return tuple((0, offset) for offset in range(self.size))


FLEET: tuple[ShipDefinition, ...] = (
    ShipDefinition("battleship", 4),
    ShipDefinition("cruiser", 3),
    ShipDefinition("submarine", 3),
    ShipDefinition("destroyer", 2),
    ShipDefinition("patrol", 2),
    ShipDefinition("dinghy1", 1),
    ShipDefinition("dinghy2", 1),
    ShipDefinition("lship", 3, ShipShape.L),
)

FLEET_BY_ID: dict[str, ShipDefinition] = {definition.ship_id: definition for definition in FLEET}

FLEET_CELLS = sum(definition.size for definition in FLEET)


@dataclass(frozen=True)
class ShipPlacement:
    """A ship identity bound to an anchor and an orientation."""

    ship_id: str
    anchor: Coordinate
    orientation: Orientation | int

    def cells(self, definition: ShipDefinition | None = None) -> list[Coordinate]:
        """Resolve the cells this placement covers (bounds are not checked)."""
        definition = definition or FLEET_BY_ID[self.ship_id]
        return [
            Coordinate(self.anchor.x + dx, self.anchor.y + dy)
            for dx, dy in definition.offsets(self.orientation)
        ]
