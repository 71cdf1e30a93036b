"""Rejection types raised by the game engine and lobby."""

from __future__ import annotations


class GameError(Exception):
    """Base class for rejected player actions.

    Each subclass carries a stable ``code`` the transport layer can forward
    to the client without parsing the message text.
    """

    code = "game_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(GameError, LookupError):
    code = "not_found"


class RoomFullError(GameError):
    code = "full"


class InvalidPlacementError(GameError, ValueError):
    code = "invalid_placement"


class OutOfTurnError(GameError, RuntimeError):
    code = "out_of_turn"


class GameNotActiveError(GameError, RuntimeError):
    code = "game_not_active"


class OutOfBoundsError(GameError, ValueError):
    code = "out_of_bounds"


class AlreadyTargetedError(GameError, ValueError):
    code = "already_targeted"
