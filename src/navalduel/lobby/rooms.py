"""Room registry: short shareable codes mapped to game sessions."""

from __future__ import annotations

import logging
import random
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from navalduel.config import LobbyConfig
from navalduel.engine.game import GamePhase, GameSession
from navalduel.engine.instrumented_game import InstrumentedGameSession
from navalduel.errors import NotFoundError, RoomFullError
from navalduel.telemetry import get_meter, get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer("navalduel.lobby.rooms")
meter = get_meter("navalduel.lobby.rooms")

ROOM_COUNTER = meter.create_up_down_counter(
    "navalduel_lobby_live_rooms",
    unit="1",
    description="Rooms currently registered",
)

SessionFactory = Callable[..., GameSession]


@dataclass(frozen=True)
class Participant:
    participant_id: str
    display_name: str


@dataclass(frozen=True)
class RoomSnapshot:
    """Read-only view of a room handed back to the transport."""

    code: str
    players: tuple[Participant, ...]
    phase: GamePhase | None
    ready: dict[str, bool]
    current_turn: str | None
    winner: str | None

    @property
    def full(self) -> bool:
        return len(self.players) == 2

    def to_payload(self) -> dict[str, Any]:
        return {
            "room_code": self.code,
            "players": {p.participant_id: p.display_name for p in self.players},
            "phase": self.phase.value if self.phase else None,
            "ready": dict(self.ready),
            "current_turn": self.current_turn,
            "winner": self.winner,
        }


@dataclass(eq=False)
class Room:
    """A code, up to two participants and the session they play.

    ``lock`` serialises every mutation of the room and its session.
    """

    code: str
    host: Participant
    guest: Participant | None = None
    session: GameSession | None = None
    closed: bool = False
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @property
    def is_full(self) -> bool:
        return self.guest is not None

    def participants(self) -> tuple[Participant, ...]:
        return (self.host,) if self.guest is None else (self.host, self.guest)

    def has(self, participant_id: str) -> bool:
        return any(p.participant_id == participant_id for p in self.participants())

    def snapshot(self) -> RoomSnapshot:
        session = self.session
        return RoomSnapshot(
            code=self.code,
            players=self.participants(),
            phase=session.phase if session else None,
            ready=session.ready_flags() if session else {},
            current_turn=session.current_turn if session else None,
            winner=session.winner if session else None,
        )


class RoomRegistry:
    """Process-wide table of live rooms.

    The registry lock only guards the code table. Room state is mutated under
    the room's own lock, and the registry never takes a room lock while it
    holds its own.
    """

    def __init__(
        self,
        config: LobbyConfig | None = None,
        rng: random.Random | None = None,
        session_factory: SessionFactory = InstrumentedGameSession,
    ) -> None:
        self.config = config if config is not None else LobbyConfig()
        self._rng = rng or random.Random(self.config.rng_seed)
        self._session_factory = session_factory
        self._rooms: dict[str, Room] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def __contains__(self, code: str) -> bool:
        with self._lock:
            return self._normalise(code) in self._rooms

    @staticmethod
    def _normalise(code: str) -> str:
        return code.strip().upper()

    def _generate_code(self) -> str:
        # Caller holds self._lock.
        alphabet = self.config.room_code_alphabet
        while True:
            code = "".join(
                self._rng.choice(alphabet) for _ in range(self.config.room_code_length)
            )
            if code not in self._rooms:
                return code
            logger.debug("room_code_collision", extra={"room_code": code})

    def _new_session(self, first: str, second: str) -> GameSession:
        with self._lock:
            seed = self._rng.getrandbits(64)
        return self._session_factory(first, second, rng=random.Random(seed))

    def _register(self, room_factory: Callable[[str], Room]) -> Room:
        with self._lock:
            room = room_factory(self._generate_code())
            self._rooms[room.code] = room
        ROOM_COUNTER.add(1)
        return room

    def create_room(self, creator_id: str, display_name: str) -> Room:
        """Open a room with a fresh code and bind its creator."""
        with tracer.start_as_current_span("rooms.create_room") as span:
            room = self._register(lambda code: Room(code, Participant(creator_id, display_name)))
            span.set_attribute("room.code", room.code)
            logger.info("room_created", extra={"room_code": room.code, "host": creator_id})
            return room

    def join_room(self, code: str, participant_id: str, display_name: str) -> Room:
        """Bind a second participant and start the room's session.

        Joining a room one is already bound to returns it unchanged.
        """
        with tracer.start_as_current_span("rooms.join_room") as span:
            room = self.get_room(code)
            span.set_attribute("room.code", room.code)
            with room.lock:
                if room.closed:
                    raise NotFoundError(f"Room not found: {room.code}")
                if room.has(participant_id):
                    return room
                if room.is_full:
                    logger.warning(
                        "room_join_rejected_full",
                        extra={"room_code": room.code, "participant": participant_id},
                    )
                    raise RoomFullError(f"Room is full: {room.code}")
                room.guest = Participant(participant_id, display_name)
                room.session = self._new_session(room.host.participant_id, participant_id)
            logger.info(
                "room_joined", extra={"room_code": room.code, "participant": participant_id}
            )
            return room

    def attach_match(self, first: Participant, second: Participant) -> Room:
        """Open a room for an already-paired couple, bypassing code entry."""
        with tracer.start_as_current_span("rooms.attach_match") as span:
            session = self._new_session(first.participant_id, second.participant_id)
            room = self._register(lambda code: Room(code, first, second, session))
            span.set_attribute("room.code", room.code)
            logger.info(
                "match_room_created",
                extra={
                    "room_code": room.code,
                    "host": first.participant_id,
                    "guest": second.participant_id,
                },
            )
            return room

    def find_room(self, code: str) -> Room | None:
        with self._lock:
            return self._rooms.get(self._normalise(code))

    def get_room(self, code: str) -> Room:
        room = self.find_room(code)
        if room is None:
            logger.warning("room_not_found", extra={"room_code": code})
            raise NotFoundError(f"Room not found: {code}")
        return room

    def remove_room(self, code: str) -> Room | None:
        """Drop a room and close its session; unknown codes are ignored."""
        with self._lock:
            room = self._rooms.pop(self._normalise(code), None)
        if room is None:
            return None
        ROOM_COUNTER.add(-1)
        with room.lock:
            room.closed = True
            if room.session is not None:
                room.session.close()
        logger.info("room_removed", extra={"room_code": room.code})
        return room

    def rooms_for(self, participant_id: str) -> list[str]:
        """Codes of the live rooms ``participant_id`` is bound to."""
        with self._lock:
            rooms = list(self._rooms.values())
        return [room.code for room in rooms if room.has(participant_id)]
