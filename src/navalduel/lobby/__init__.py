"""Room and matchmaking exports."""

from .matchmaking import MatchmakingEntry, MatchmakingQueue
from .rooms import Participant, Room, RoomRegistry, RoomSnapshot

__all__ = [
    "MatchmakingEntry",
    "MatchmakingQueue",
    "Participant",
    "Room",
    "RoomRegistry",
    "RoomSnapshot",
]
