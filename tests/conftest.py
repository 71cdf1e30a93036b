"""Shared fixtures: a known-good fleet layout and a recording message channel."""

from __future__ import annotations

import random
from typing import Any, Mapping

import pytest
from navalduel.config import LobbyConfig
from navalduel.engine.game import GameSession
from navalduel.engine.ship import Coordinate, Orientation, ShipPlacement
from navalduel.lobby.rooms import RoomRegistry
from navalduel.service import GameService

# Columns are x, rows are y. Every ship sits at least one empty cell away
# from every other, and the cell (1, 1) is still free.
STANDARD_LAYOUT: dict[str, tuple[tuple[int, int], Orientation | int]] = {
    "battleship": ((3, 0), Orientation.HORIZONTAL),
    "cruiser": ((9, 0), Orientation.VERTICAL),
    "submarine": ((0, 4), Orientation.VERTICAL),
    "destroyer": ((3, 3), Orientation.HORIZONTAL),
    "patrol": ((6, 3), Orientation.HORIZONTAL),
    "dinghy1": ((0, 0), Orientation.HORIZONTAL),
    "dinghy2": ((0, 2), Orientation.HORIZONTAL),
    "lship": ((5, 6), 0),
}


def make_fleet(**overrides: tuple[tuple[int, int], Orientation | int]) -> list[ShipPlacement]:
    layout = {**STANDARD_LAYOUT, **overrides}
    return [
        ShipPlacement(ship_id, Coordinate(*anchor), orientation)
        for ship_id, (anchor, orientation) in layout.items()
    ]


def fleet_cells(placements: list[ShipPlacement]) -> list[Coordinate]:
    return [cell for placement in placements for cell in placement.cells()]


class RecordingChannel:
    """In-memory channel capturing every outbound event."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, dict[str, Any]]] = []
        self.broadcasts: list[tuple[str, str, dict[str, Any]]] = []
        self.members: dict[str, set[str]] = {}

    def send(self, participant_id: str, event: str, payload: Mapping[str, Any]) -> None:
        self.sent.append((participant_id, event, dict(payload)))

    def broadcast(self, room_code: str, event: str, payload: Mapping[str, Any]) -> None:
        self.broadcasts.append((room_code, event, dict(payload)))

    def join(self, participant_id: str, room_code: str) -> None:
        self.members.setdefault(room_code, set()).add(participant_id)

    def leave(self, participant_id: str, room_code: str) -> None:
        self.members.get(room_code, set()).discard(participant_id)

    def events(self, room_code: str | None = None) -> list[str]:
        return [event for code, event, _ in self.broadcasts if room_code in (None, code)]


@pytest.fixture
def standard_fleet() -> list[ShipPlacement]:
    return make_fleet()


@pytest.fixture
def active_session() -> GameSession:
    """A session with both fleets in; ``alice`` always fires first."""
    session = GameSession("alice", "bob", rng=random.Random(0))
    session.submit_fleet("alice", make_fleet())
    session.submit_fleet("bob", make_fleet())
    session.current_turn = "alice"
    return session


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def service(channel: RecordingChannel) -> GameService:
    config = LobbyConfig(rng_seed=7)
    return GameService(channel=channel, registry=RoomRegistry(config), config=config)


@pytest.fixture
def fleet_factory():
    """Build the standard layout with some ships moved: ``fleet_factory(dinghy2=((1, 1), ...))``."""
    return make_fleet
