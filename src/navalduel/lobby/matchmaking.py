"""First-come first-served matchmaking queue."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field

from navalduel.telemetry import get_meter

logger = logging.getLogger(__name__)
meter = get_meter("navalduel.lobby.matchmaking")

QUEUE_COUNTER = meter.create_counter(
    "navalduel_lobby_queue_events",
    unit="1",
    description="Matchmaking queue enqueues, removals and matches",
)


@dataclass(frozen=True)
class MatchmakingEntry:
    participant_id: str
    display_name: str
    enqueued_at: float = field(default_factory=time.monotonic, compare=False)


class MatchmakingQueue:
    """Strict FIFO of waiting participants, safe for concurrent callers."""

    def __init__(self) -> None:
        self._entries: deque[MatchmakingEntry] = deque()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, participant_id: str) -> bool:
        with self._lock:
            return self._position(participant_id) is not None

    def _position(self, participant_id: str) -> int | None:
        for index, entry in enumerate(self._entries):
            if entry.participant_id == participant_id:
                return index
        return None

    def waiting(self) -> list[str]:
        """Participant ids in arrival order."""
        with self._lock:
            return [entry.participant_id for entry in self._entries]

    def enqueue(self, participant_id: str, display_name: str) -> bool:
        """Append a participant; returns False if it was already waiting."""
        with self._lock:
            if self._position(participant_id) is not None:
                return False
            self._entries.append(MatchmakingEntry(participant_id, display_name))
            depth = len(self._entries)
        QUEUE_COUNTER.add(1, attributes={"event": "enqueue"})
        logger.info("queue_enqueued", extra={"participant": participant_id, "depth": depth})
        return True

    def remove(self, participant_id: str) -> bool:
        with self._lock:
            index = self._position(participant_id)
            if index is None:
                return False
            del self._entries[index]
        QUEUE_COUNTER.add(1, attributes={"event": "remove"})
        logger.info("queue_removed", extra={"participant": participant_id})
        return True

    def try_match(self) -> tuple[MatchmakingEntry, MatchmakingEntry] | None:
        """Pop the two longest-waiting entries, or return None if fewer wait."""
        with self._lock:
            if len(self._entries) < 2:
                return None
            pair = (self._entries.popleft(), self._entries.popleft())
        QUEUE_COUNTER.add(1, attributes={"event": "match"})
        logger.info(
            "queue_matched",
            extra={"first": pair[0].participant_id, "second": pair[1].participant_id},
        )
        return pair
