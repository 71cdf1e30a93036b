"""Outbound message channel consumed by the game service."""

from __future__ import annotations

from typing import Any, Mapping, Protocol

ROOM_PLAYERS_UPDATE = "room:players_update"
ROOM_READY = "room:ready"
ROOM_OPPONENT_LEFT = "room:opponent_left"
MATCH_FOUND = "match:found"
GAME_PLACEMENT_UPDATE = "game:placement_update"
GAME_STARTED = "game:started"
GAME_SHOT_RESULT = "game:shot_result"
GAME_OVER = "game:over"


class MessageChannel(Protocol):
    """Transport seam: deliver an event to one participant or to a whole room.

    Implementations must not call back into the game service synchronously.
    """

    def send(self, participant_id: str, event: str, payload: Mapping[str, Any]) -> None:
        ...

    def broadcast(self, room_code: str, event: str, payload: Mapping[str, Any]) -> None:
        ...

    def join(self, participant_id: str, room_code: str) -> None:
        ...

    def leave(self, participant_id: str, room_code: str) -> None:
        ...


class NullChannel:
    """Channel that drops every message."""

    def send(self, participant_id: str, event: str, payload: Mapping[str, Any]) -> None:
        pass

    def broadcast(self, room_code: str, event: str, payload: Mapping[str, Any]) -> None:
        pass

    def join(self, participant_id: str, room_code: str) -> None:
        pass

    def leave(self, participant_id: str, room_code: str) -> None:
        pass
