"""Game service: the operation set the transport layer calls into."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from navalduel import channel as events
from navalduel.channel import MessageChannel, NullChannel
from navalduel.config import LobbyConfig, load_lobby_config
from navalduel.engine.game import ShotResult
from navalduel.engine.placement import parse_fleet
from navalduel.engine.ship import Coordinate, ShipPlacement
from navalduel.errors import NotFoundError
from navalduel.lobby.matchmaking import MatchmakingQueue
from navalduel.lobby.rooms import Participant, Room, RoomRegistry, RoomSnapshot
from navalduel.telemetry import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer("navalduel.service")

FleetInput = Sequence[ShipPlacement] | Sequence[Mapping[str, Any]]


class GameService:
    """Routes participant actions to rooms, sessions and the matchmaking queue.

    Results are returned to the caller and fanned out to the room through the
    injected :class:`~navalduel.channel.MessageChannel`. Every session
    mutation and every teardown runs under the room's lock.
    """

    def __init__(
        self,
        channel: MessageChannel | None = None,
        registry: RoomRegistry | None = None,
        queue: MatchmakingQueue | None = None,
        config: LobbyConfig | None = None,
    ) -> None:
        if config is None:
            config = registry.config if registry is not None else load_lobby_config()
        self.config = config
        self.channel: MessageChannel = channel if channel is not None else NullChannel()
        self.registry = registry if registry is not None else RoomRegistry(self.config)
        self.queue = queue if queue is not None else MatchmakingQueue()

    def _name(self, display_name: str | None) -> str:
        return display_name or self.config.default_display_name

    def _session_room(self, code: str) -> Room:
        room = self.registry.get_room(code)
        if room.session is None:
            raise NotFoundError(f"Room or game not found: {room.code}")
        return room

    def create_room(self, creator_id: str, display_name: str | None = None) -> str:
        room = self.registry.create_room(creator_id, self._name(display_name))
        self.channel.join(creator_id, room.code)
        return room.code

    def join_room(
        self, code: str, participant_id: str, display_name: str | None = None
    ) -> RoomSnapshot:
        room = self.registry.join_room(code, participant_id, self._name(display_name))
        with room.lock:
            snapshot = room.snapshot()
        self.channel.join(participant_id, room.code)
        payload = snapshot.to_payload()
        self.channel.broadcast(room.code, events.ROOM_PLAYERS_UPDATE, payload)
        if snapshot.full:
            self.channel.broadcast(room.code, events.ROOM_READY, payload)
        return snapshot

    def enqueue_for_match(self, participant_id: str, display_name: str | None = None) -> None:
        """Queue a participant; with ``auto_match`` the queue is drained at once."""
        self.queue.enqueue(participant_id, self._name(display_name))
        if self.config.auto_match:
            self.try_match()

    def cancel_queue(self, participant_id: str) -> None:
        self.queue.remove(participant_id)

    def try_match(self) -> tuple[Participant, Participant] | None:
        """Pair the two longest-waiting participants and open their room."""
        with tracer.start_as_current_span("service.try_match") as span:
            pair = self.queue.try_match()
            if pair is None:
                return None
            first, second = (Participant(e.participant_id, e.display_name) for e in pair)
            room = self.registry.attach_match(first, second)
            span.set_attribute("room.code", room.code)
            for participant in (first, second):
                self.channel.join(participant.participant_id, room.code)
            with room.lock:
                payload = room.snapshot().to_payload()
            self.channel.broadcast(room.code, events.MATCH_FOUND, payload)
            logger.info(
                "match_found",
                extra={
                    "room_code": room.code,
                    "first": first.participant_id,
                    "second": second.participant_id,
                },
            )
            return first, second

    def submit_fleet(self, code: str, participant_id: str, placements: FleetInput) -> bool:
        """Submit a full fleet; returns True when this started the game."""
        fleet = _coerce_fleet(placements)
        room = self._session_room(code)
        with room.lock:
            if room.closed or room.session is None:
                raise NotFoundError(f"Room or game not found: {room.code}")
            session = room.session
            started = session.submit_fleet(participant_id, fleet)
            ready = session.ready_flags()
            first_turn = session.current_turn
        self.channel.broadcast(room.code, events.GAME_PLACEMENT_UPDATE, {"players_ready": ready})
        if started:
            self.channel.broadcast(room.code, events.GAME_STARTED, {"current_turn": first_turn})
        return started

    def fire(self, code: str, attacker_id: str, x: int, y: int) -> ShotResult:
        room = self._session_room(code)
        with room.lock:
            if room.closed or room.session is None:
                raise NotFoundError(f"Room or game not found: {room.code}")
            result = room.session.fire(attacker_id, Coordinate(x, y))
        self.channel.broadcast(room.code, events.GAME_SHOT_RESULT, result.to_payload())
        if result.game_over:
            self.channel.broadcast(room.code, events.GAME_OVER, {"winner_id": result.winner_id})
        return result

    def leave_room(self, code: str, participant_id: str) -> None:
        """Tear the room down and tell whoever is left; a no-op for strangers."""
        room = self.registry.find_room(code)
        if room is None:
            return
        with room.lock:
            if room.closed or not room.has(participant_id):
                return
            self.registry.remove_room(room.code)
        self.channel.leave(participant_id, room.code)
        self.channel.broadcast(room.code, events.ROOM_OPPONENT_LEFT, {"participant_id": participant_id})
        logger.info("room_left", extra={"room_code": room.code, "participant": participant_id})

    def disconnect(self, participant_id: str) -> None:
        """Forget a participant entirely: queue slot and every room it is in."""
        self.cancel_queue(participant_id)
        for code in self.registry.rooms_for(participant_id):
            self.leave_room(code, participant_id)

    def room_snapshot(self, code: str) -> RoomSnapshot:
        room = self.registry.get_room(code)
        with room.lock:
            return room.snapshot()


def _coerce_fleet(placements: FleetInput) -> list[ShipPlacement]:
    items = list(placements)
    if all(isinstance(item, ShipPlacement) for item in items):
        return items  # type: ignore[return-value]
    return parse_fleet(items)  # type: ignore[arg-type]

