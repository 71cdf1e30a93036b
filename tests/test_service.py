"""End-to-end tests of the game service over a recording channel."""

import threading

import pytest
from navalduel import channel as events
from navalduel.config import LobbyConfig
from navalduel.engine.game import GamePhase
from navalduel.engine.ship import FLEET_CELLS, Coordinate
from navalduel.errors import (
    GameError,
    NotFoundError,
    OutOfBoundsError,
    OutOfTurnError,
    RoomFullError,
)
from navalduel.lobby.matchmaking import MatchmakingQueue
from navalduel.lobby.rooms import RoomRegistry
from navalduel.service import GameService


def _payload(placements) -> list[dict]:
    return [
        {
            "id": p.ship_id,
            "x": p.anchor.x,
            "y": p.anchor.y,
            "orientation": p.orientation if isinstance(p.orientation, int) else p.orientation.value,
        }
        for p in placements
    ]


def _started_room(service: GameService, fleet) -> str:
    code = service.create_room("alice", "Alice")
    service.join_room(code, "bob", "Bob")
    service.submit_fleet(code, "alice", fleet)
    service.submit_fleet(code, "bob", _payload(fleet))
    return code


def test_create_and_join_broadcast_room_updates(service, channel) -> None:
    code = service.create_room("alice", "Alice")
    snapshot = service.join_room(code, "bob", None)

    assert snapshot.full
    assert {p.display_name for p in snapshot.players} == {"Alice", "Player"}
    assert channel.events(code) == [events.ROOM_PLAYERS_UPDATE, events.ROOM_READY]
    assert channel.members[code] == {"alice", "bob"}


def test_join_full_room_is_rejected_without_side_effects(service, channel) -> None:
    code = service.create_room("alice", "Alice")
    service.join_room(code, "bob", "Bob")
    session = service.registry.get_room(code).session
    sent_before = list(channel.broadcasts)

    with pytest.raises(RoomFullError):
        service.join_room(code, "carol", "Carol")
    assert service.registry.get_room(code).session is session
    assert channel.broadcasts == sent_before


def test_join_unknown_room(service) -> None:
    with pytest.raises(NotFoundError):
        service.join_room("NOPE22", "bob", "Bob")


def test_queue_pairs_and_opens_a_room(service, channel) -> None:
    service.enqueue_for_match("alice", "Alice")
    service.enqueue_for_match("alice", "Alice")
    assert service.registry.rooms_for("alice") == []
    assert service.queue.waiting() == ["alice"]

    service.enqueue_for_match("bob", "Bob")
    assert len(service.queue) == 0
    (code,) = service.registry.rooms_for("alice")
    assert service.registry.rooms_for("bob") == [code]
    assert channel.events(code) == [events.MATCH_FOUND]
    assert service.room_snapshot(code).phase is GamePhase.AWAITING_FLEETS


def test_manual_try_match_without_auto_match(channel) -> None:
    config = LobbyConfig(rng_seed=5, auto_match=False)
    service = GameService(channel=channel, config=config)
    service.enqueue_for_match("alice", "Alice")
    assert service.try_match() is None
    service.enqueue_for_match("bob", "Bob")
    first, second = service.try_match()
    assert (first.participant_id, second.participant_id) == ("alice", "bob")
    assert service.try_match() is None


def test_cancel_queue(service) -> None:
    service.enqueue_for_match("alice", "Alice")
    service.cancel_queue("alice")
    service.cancel_queue("alice")
    service.enqueue_for_match("bob", "Bob")
    assert service.queue.waiting() == ["bob"]


def test_fleet_submission_starts_game(service, channel, standard_fleet) -> None:
    code = service.create_room("alice", "Alice")
    service.join_room(code, "bob", "Bob")

    assert service.submit_fleet(code, "alice", standard_fleet) is False
    assert service.submit_fleet(code, "bob", _payload(standard_fleet)) is True

    placement_updates = [p for c, e, p in channel.broadcasts if e == events.GAME_PLACEMENT_UPDATE]
    assert placement_updates[-1] == {"players_ready": {"alice": True, "bob": True}}
    (started,) = [p for c, e, p in channel.broadcasts if e == events.GAME_STARTED]
    assert started["current_turn"] in {"alice", "bob"}
    assert service.room_snapshot(code).phase is GamePhase.ACTIVE


def test_submit_before_opponent_joins_is_not_found(service, standard_fleet) -> None:
    code = service.create_room("alice", "Alice")
    with pytest.raises(NotFoundError):
        service.submit_fleet(code, "alice", standard_fleet)


def test_full_game_through_the_service(service, channel, standard_fleet) -> None:
    code = _started_room(service, standard_fleet)
    attacker = service.room_snapshot(code).current_turn
    defender = "bob" if attacker == "alice" else "alice"

    targets = [cell for p in standard_fleet for cell in p.cells()]
    for cell in targets:
        result = service.fire(code, attacker, cell.x, cell.y)
    assert result.game_over and result.winner_id == attacker

    shot_events = [p for c, e, p in channel.broadcasts if e == events.GAME_SHOT_RESULT]
    assert len(shot_events) == FLEET_CELLS
    assert all(p["current_turn"] == attacker for p in shot_events)
    assert channel.events(code)[-1] == events.GAME_OVER
    assert channel.broadcasts[-1][2] == {"winner_id": attacker}

    with pytest.raises(GameError) as excinfo:
        service.fire(code, defender, 9, 9)
    assert excinfo.value.code == "game_not_active"


def test_near_simultaneous_shots_are_serialised(service, standard_fleet) -> None:
    code = _started_room(service, standard_fleet)
    attacker = service.room_snapshot(code).current_turn
    outcomes: list[str] = []
    barrier = threading.Barrier(2)

    def shoot(cell: Coordinate) -> None:
        barrier.wait()
        try:
            service.fire(code, attacker, cell.x, cell.y)
            outcomes.append("ok")
        except OutOfTurnError:
            outcomes.append("out_of_turn")

    threads = [
        threading.Thread(target=shoot, args=(cell,))
        for cell in (Coordinate(9, 9), Coordinate(9, 7))
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["ok", "out_of_turn"]


def test_leave_room_notifies_and_tears_down(service, channel) -> None:
    code = service.create_room("alice", "Alice")
    service.join_room(code, "bob", "Bob")

    service.leave_room(code, "carol")
    assert code in service.registry

    service.leave_room(code, "bob")
    assert code not in service.registry
    assert channel.broadcasts[-1] == (code, events.ROOM_OPPONENT_LEFT, {"participant_id": "bob"})
    assert channel.members[code] == {"alice"}

    service.leave_room(code, "bob")
    service.leave_room("GONE22", "bob")
    with pytest.raises(NotFoundError):
        service.fire(code, "alice", 0, 0)


def test_disconnect_clears_queue_and_rooms(service, channel) -> None:
    code = service.create_room("alice", "Alice")
    service.join_room(code, "bob", "Bob")
    other = service.create_room("bob", "Bob")
    service.enqueue_for_match("bob", "Bob")

    service.disconnect("bob")

    assert "bob" not in service.queue
    assert service.registry.rooms_for("bob") == []
    assert len(service.registry) == 0
    left = [c for c, e, _ in channel.broadcasts if e == events.ROOM_OPPONENT_LEFT]
    assert sorted(left) == sorted([code, other])


def test_service_uses_registry_config_by_default(channel) -> None:
    registry = RoomRegistry(LobbyConfig(default_display_name="Sailor", rng_seed=2))
    service = GameService(channel=channel, registry=registry)
    code = service.create_room("alice")
    assert service.room_snapshot(code).players[0].display_name == "Sailor"


def test_injected_empty_registry_and_queue_are_kept(channel) -> None:
    registry = RoomRegistry(LobbyConfig(rng_seed=1, auto_match=False))
    queue = MatchmakingQueue()
    service = GameService(channel=channel, registry=registry, queue=queue)

    assert service.registry is registry
    assert service.queue is queue
    assert service.config is registry.config

    code = service.create_room("alice", "Alice")
    service.enqueue_for_match("bob", "Bob")
    assert code in registry
    assert queue.waiting() == ["bob"]


@pytest.mark.parametrize("x, y", [(3.5, 2), ("3", 2), (None, 2), (False, 1)])
def test_fire_rejects_non_integer_coordinates(service, standard_fleet, x, y) -> None:
    code = _started_room(service, standard_fleet)
    attacker = service.room_snapshot(code).current_turn

    with pytest.raises(OutOfBoundsError) as excinfo:
        service.fire(code, attacker, x, y)
    assert excinfo.value.code == "out_of_bounds"
    assert service.room_snapshot(code).current_turn == attacker
