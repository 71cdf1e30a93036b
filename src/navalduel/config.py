"""Lobby and room configuration."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator

UNAMBIGUOUS_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


class LobbyConfig(BaseModel):
    """Settings for room codes, matchmaking and randomness."""

    room_code_length: int = Field(default=6, ge=4, le=12)
    room_code_alphabet: str = UNAMBIGUOUS_ALPHABET
    rng_seed: int | None = None
    auto_match: bool = True
    default_display_name: str = "Player"

    @field_validator("room_code_alphabet")
    @classmethod
    def _no_ambiguous_characters(cls, value: str) -> str:
        if not value or set(value) & set("0O1I"):
            raise ValueError("room code alphabet must be non-empty and exclude 0, O, 1 and I")
        return value

    @classmethod
    def from_env(cls, **overrides: Any) -> "LobbyConfig":
        """Construct config from `NAVALDUEL_*` env vars."""

        data: Dict[str, Any] = {}
        if os.getenv("NAVALDUEL_ROOM_CODE_LENGTH"):
            data["room_code_length"] = int(os.environ["NAVALDUEL_ROOM_CODE_LENGTH"])
        if os.getenv("NAVALDUEL_RNG_SEED"):
            data["rng_seed"] = int(os.environ["NAVALDUEL_RNG_SEED"])
        auto_match = os.getenv("NAVALDUEL_AUTO_MATCH")
        if auto_match is not None:
            data["auto_match"] = auto_match.strip().lower() in {"1", "true", "yes", "on"}
        if os.getenv("NAVALDUEL_DEFAULT_NAME"):
            data["default_display_name"] = os.environ["NAVALDUEL_DEFAULT_NAME"]
        data.update(overrides)
        return cls(**data)


@lru_cache(maxsize=1)
def load_lobby_config() -> LobbyConfig:
    """Load and cache lobby config from the environment."""

    return LobbyConfig.from_env()
