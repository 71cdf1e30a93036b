"""Two-player naval duel session state machine."""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from navalduel.errors import (
    GameNotActiveError,
    InvalidPlacementError,
    NotFoundError,
    OutOfTurnError,
)
from navalduel.telemetry import get_meter, get_tracer

from .board import Board, CellState
from .placement import build_board
from .ship import Coordinate, ShipPlacement
from .shots import resolve_shot

logger = logging.getLogger(__name__)
tracer = get_tracer("navalduel.engine.game")
meter = get_meter("navalduel.engine.game")

MOVE_COUNTER = meter.create_counter(
    "navalduel_engine_moves",
    unit="1",
    description="Number of shots resolved by GameSession",
)


class GamePhase(Enum):
    """Lifecycle of a session."""

    AWAITING_FLEETS = "awaiting_fleets"
    ACTIVE = "active"
    FINISHED = "finished"


class Seat(Enum):
    """The two fixed participant slots of a session."""

    A = "a"
    B = "b"

    def opponent(self) -> Seat:
        return Seat.B if self is Seat.A else Seat.A


@dataclass(frozen=True)
class ShotResult:
    """Outcome of a resolved shot as reported back to the participants."""

    attacker_id: str
    target: Coordinate
    hit: bool
    miss: bool
    sunk_ship_id: str | None
    sunk_ship_cells: tuple[Coordinate, ...]
    auto_revealed_water: tuple[Coordinate, ...]
    game_over: bool
    winner_id: str | None
    next_turn: str | None

    def to_payload(self) -> dict[str, Any]:
        return {
            "attacker_id": self.attacker_id,
            "x": self.target.x,
            "y": self.target.y,
            "hit": self.hit,
            "miss": self.miss,
            "sunk_ship_id": self.sunk_ship_id,
            "sunk_ship_cells": [cell.as_tuple() for cell in self.sunk_ship_cells],
            "auto_revealed_water": [cell.as_tuple() for cell in self.auto_revealed_water],
            "game_over": self.game_over,
            "winner_id": self.winner_id,
            "current_turn": self.next_turn,
        }


@dataclass(frozen=True)
class BoardSnapshot:
    """Public view of one participant's board: readiness and shot marks only."""

    owner: str
    ready: bool
    marks: dict[Coordinate, CellState] = field(default_factory=dict)


@dataclass(frozen=True)
class SessionState:
    """Immutable snapshot of a session."""

    phase: GamePhase
    participants: tuple[str, str]
    current_turn: str | None
    winner: str | None
    boards: dict[str, BoardSnapshot]


class GameSession:
    """Owns both boards, the turn pointer and the lifecycle of one match.

    The session is not thread-safe on its own; callers serialise access to
    it (see :class:`navalduel.lobby.rooms.Room`).
    """

    def __init__(self, player_a: str, player_b: str, rng: random.Random | None = None) -> None:
        if player_a == player_b:
            raise ValueError("A session needs two distinct participants.")
        self.participants: dict[Seat, str] = {Seat.A: player_a, Seat.B: player_b}
        self.boards: dict[Seat, Board | None] = {Seat.A: None, Seat.B: None}
        self.phase: GamePhase = GamePhase.AWAITING_FLEETS
        self.current_turn: str | None = None
        self.winner: str | None = None
        self._rng = rng or random.Random()

    def seat_of(self, participant_id: str) -> Seat:
        for seat, bound in self.participants.items():
            if bound == participant_id:
                return seat
        raise NotFoundError(f"Participant {participant_id} is not part of this game")

    def ready_flags(self) -> dict[str, bool]:
        return {pid: self.boards[seat] is not None for seat, pid in self.participants.items()}

    def submit_fleet(self, participant_id: str, placements: Iterable[ShipPlacement]) -> bool:
        """Validate and store a participant's fleet.

        Returns True when this submission moved the session to ACTIVE. A
        participant may replace their own fleet until both are in; after that the
        submission is refused, as :class:`GameNotActiveError` once the match is over.
        """
        with tracer.start_as_current_span("game.submit_fleet") as span:
            span.set_attribute("participant", participant_id)
            seat = self.seat_of(participant_id)
            if self.phase is not GamePhase.AWAITING_FLEETS:
                logger.warning(
                    "fleet_rejected_placement_closed",
                    extra={"participant": participant_id, "phase": self.phase.value},
                )
                if self.phase is GamePhase.FINISHED:
                    raise GameNotActiveError("Game is already finished")
                raise InvalidPlacementError("Fleet placement is closed")

            self.boards[seat] = build_board(placements, owner=participant_id)

            if all(board is not None for board in self.boards.values()):
                self.phase = GamePhase.ACTIVE
                self.current_turn = self._rng.choice(
                    (self.participants[Seat.A], self.participants[Seat.B])
                )
                span.set_attribute("game.first_turn", self.current_turn)
                logger.info(
                    "game_started",
                    extra={"phase": self.phase.value, "current_turn": self.current_turn},
                )
                return True
            logger.info("fleet_submitted", extra={"participant": participant_id})
            return False

    def fire(self, attacker_id: str, coord: Coordinate) -> ShotResult:
        """Resolve one shot, enforcing phase, turn order and the win condition."""
        with tracer.start_as_current_span("game.fire") as span:
            span.set_attribute("attacker", attacker_id)
            span.set_attribute("x", coord.x)
            span.set_attribute("y", coord.y)
            if self.phase is not GamePhase.ACTIVE or self.winner is not None:
                logger.warning(
                    "shot_rejected_game_not_active",
                    extra={"attacker": attacker_id, "phase": self.phase.value},
                )
                raise GameNotActiveError("Game is not active")
            if attacker_id != self.current_turn:
                logger.warning(
                    "shot_rejected_out_of_turn",
                    extra={"attacker": attacker_id, "current_turn": self.current_turn},
                )
                raise OutOfTurnError("Not your turn")

            defender = self.seat_of(attacker_id).opponent()
            target_board = self.boards[defender]
            assert target_board is not None
            outcome = resolve_shot(target_board, coord)

            if outcome.fleet_destroyed:
                self.winner = attacker_id
                self.phase = GamePhase.FINISHED
                span.set_attribute("game.winner", attacker_id)
                logger.info("game_finished", extra={"winner": attacker_id})
            elif outcome.miss:
                self.current_turn = self.participants[defender]
                span.set_attribute("next_turn", self.current_turn)

            MOVE_COUNTER.add(1, attributes={"result": "hit" if outcome.hit else "miss"})
            return ShotResult(
                attacker_id=attacker_id,
                target=coord,
                hit=outcome.hit,
                miss=outcome.miss,
                sunk_ship_id=outcome.sunk_ship_id,
                sunk_ship_cells=outcome.sunk_ship_cells,
                auto_revealed_water=outcome.auto_revealed_water,
                game_over=outcome.fleet_destroyed,
                winner_id=self.winner,
                next_turn=self.current_turn,
            )

    def get_state(self) -> SessionState:
        """Return an immutable view of the match."""
        boards = {
            pid: BoardSnapshot(
                owner=pid,
                ready=self.boards[seat] is not None,
                marks=self.boards[seat].marks() if self.boards[seat] is not None else {},
            )
            for seat, pid in self.participants.items()
        }
        return SessionState(
            phase=self.phase,
            participants=(self.participants[Seat.A], self.participants[Seat.B]),
            current_turn=self.current_turn,
            winner=self.winner,
            boards=boards,
        )

    def valid_targets(self, participant_id: str) -> list[Coordinate]:
        """Return every cell the participant could still fire at."""
        if self.phase is not GamePhase.ACTIVE:
            return []
        target_board = self.boards[self.seat_of(participant_id).opponent()]
        if target_board is None:
            return []
        return [
            Coordinate(x, y)
            for y in range(target_board.size)
            for x in range(target_board.size)
            if not target_board.is_targeted(Coordinate(x, y))
        ]

    def close(self) -> None:
        """Release anything held for the match; the session is discarded after this."""
        logger.debug("session_closed", extra={"phase": self.phase.value})
