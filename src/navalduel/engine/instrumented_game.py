"""Game session with per-match telemetry hooks."""

from __future__ import annotations

import time
from collections.abc import Iterable

from navalduel.engine.game import GamePhase, GameSession, ShotResult
from navalduel.engine.ship import Coordinate, ShipPlacement
from navalduel.errors import GameError
from navalduel.telemetry import get_logger, get_tracer, record_game_metric


class InstrumentedGameSession(GameSession):
    """Wraps GameSession with a match-long span, metrics and logging."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._logger = get_logger("navalduel.engine")
        self._tracer = get_tracer("navalduel.engine")
        self._match_span = None
        self._match_start_time: float | None = None
        self._shots_fired = 0

    def submit_fleet(self, participant_id: str, placements: Iterable[ShipPlacement]) -> bool:
        with self._tracer.start_as_current_span("navalduel.engine.submit_fleet") as span:
            span.set_attribute("participant", participant_id)
            try:
                started = super().submit_fleet(participant_id, placements)
            except GameError as exc:
                record_game_metric(
                    "navalduel_fleet_rejections_total", 1, {"reason": exc.code}
                )
                span.record_exception(exc)
                span.set_attribute("error", True)
                self._logger.warning("Fleet from %s rejected: %s", participant_id, exc)
                raise
            record_game_metric("navalduel_fleets_accepted_total", 1)
            if started:
                self._start_match_span()
                span.set_attribute("first_turn", self.current_turn or "")
                self._logger.info("Match started, first turn=%s", self.current_turn)
            return started

    def fire(self, attacker_id: str, coord: Coordinate) -> ShotResult:
        with self._tracer.start_as_current_span("navalduel.engine.fire") as span:
            span.set_attribute("attacker", attacker_id)
            span.set_attribute("coord.x", coord.x)
            span.set_attribute("coord.y", coord.y)

            try:
                result = super().fire(attacker_id, coord)
            except GameError as exc:
                record_game_metric(
                    "navalduel_invalid_shots_total", 1, {"reason": exc.code}
                )
                span.record_exception(exc)
                span.set_attribute("error", True)
                self._logger.warning(
                    "Invalid shot from %s at (%s,%s): %s", attacker_id, coord.x, coord.y, exc
                )
                raise

            self._shots_fired += 1
            outcome = "sunk" if result.sunk_ship_id else ("hit" if result.hit else "miss")
            span.set_attribute("shot_outcome", outcome)
            span.set_attribute("revealed", len(result.auto_revealed_water))
            record_game_metric("navalduel_shots_total", 1, {"result": outcome})

            self._logger.info(
                "fire attacker=%s coord=(%d,%d) outcome=%s", attacker_id, coord.x, coord.y, outcome
            )

            if self.phase is GamePhase.FINISHED and self.winner:
                span.set_attribute("winner", self.winner)
                self._finish_match()

            return result

    def _start_match_span(self) -> None:
        self._close_match_span()
        self._match_start_time = time.perf_counter()
        self._match_span = self._tracer.start_span("navalduel.engine.match")
        self._match_span.set_attribute("participants", ",".join(self.participants.values()))

    def _finish_match(self) -> None:
        duration = (time.perf_counter() - self._match_start_time) if self._match_start_time else 0.0

        record_game_metric("navalduel_matches_completed_total", 1)
        record_game_metric("navalduel_match_duration_seconds", duration)

        with self._tracer.start_as_current_span("navalduel.engine.match_complete") as span:
            span.set_attribute("winner", self.winner or "unknown")
            span.set_attribute("shots", self._shots_fired)
            span.set_attribute("duration_ms", duration * 1000)

        if self._match_span is not None:
            self._match_span.set_attribute("winner", self.winner or "unknown")
            self._match_span.set_attribute("shots", self._shots_fired)

        self._logger.info(
            "Match finished. Winner=%s shots=%d duration_s=%.3f",
            self.winner,
            self._shots_fired,
            duration,
        )
        self._close_match_span()

    def _close_match_span(self) -> None:
        if self._match_span is not None:
            self._match_span.end()
            self._match_span = None

    def close(self) -> None:
        if self._match_span is not None:
            self._match_span.set_attribute("abandoned", True)
        self._close_match_span()
        super().close()
