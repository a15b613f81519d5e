"""Unit tests for src/db/sql_repository.py"""

from dataclasses import replace
from datetime import datetime, timezone
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from src.core.exceptions import ConcurrencyConflictError
from src.core.models import GameModel, PlayerModel
from src.core.shared_types import RoomStatus
from src.db.sql_repository import SQLGameRepository, SQLRoomRepository

FIXED_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
HOST = PlayerModel(player_id="host-id", name="Hostie McHostface", player_number=1)
GUEST = PlayerModel(player_id="guest-id", name="Guest", player_number=2)


def make_game(**changes) -> GameModel:
    """Mock game data: first half-round, nothing happened yet."""
    model = GameModel(
        boxes=[{"id": i, "removed": False, "trapped": False} for i in range(1, 13)],
        score_a=0,
        score_b=0,
        penalty_a=0,
        penalty_b=0,
        round=1,
        front_half=True,
        phase="setting_trap",
        player_a_id=HOST.player_id,
        player_b_id=GUEST.player_id,
        sitter_id=HOST.player_id,
        switcher_id=GUEST.player_id,
        armed_box=None,
        selected_box=None,
        winner_id=None,
        win_reason=None,
        updated_at=FIXED_TIME,
    )
    return replace(model, **changes)


# --- ROOMS ---
def test_create_room(db_session_repo: Session) -> None:
    repo = SQLRoomRepository(db_session_repo)
    room = repo.create_room("ABC234", HOST)

    assert isinstance(room.room_id, UUID)
    assert room.room_code == "ABC234"
    assert room.status == RoomStatus.WAITING
    assert room.host_id == HOST.player_id
    assert room.players == [HOST]


def test_get_room_by_id_and_code(db_session_repo: Session) -> None:
    repo = SQLRoomRepository(db_session_repo)
    room = repo.create_room("ABC234", HOST)

    assert repo.get_room(room.room_id) == room
    assert repo.get_room_by_code("ABC234") == room
    assert repo.room_code_exists("ABC234")


def test_get_unknown_room(db_session_repo: Session) -> None:
    """NOTE with an empty database, any id is a valid test case."""
    repo = SQLRoomRepository(db_session_repo)
    assert repo.get_room(uuid4()) is None
    assert repo.get_room_by_code("ZZZZZZ") is None
    assert not repo.room_code_exists("ZZZZZZ")


def test_add_and_remove_player(db_session_repo: Session) -> None:
    repo = SQLRoomRepository(db_session_repo)
    room = repo.create_room("ABC234", HOST)

    with_guest = repo.add_player(room.room_id, GUEST)
    assert with_guest is not None
    assert with_guest.players == [HOST, GUEST]

    without_guest = repo.remove_player(room.room_id, GUEST.player_id)
    assert without_guest is not None
    assert without_guest.players == [HOST]


def test_update_room_status(db_session_repo: Session) -> None:
    repo = SQLRoomRepository(db_session_repo)
    room = repo.create_room("ABC234", HOST)
    updated = repo.update_room_status(room.room_id, RoomStatus.PLAYING.value)
    assert updated is not None
    assert updated.status == RoomStatus.PLAYING


def test_changes_to_unknown_room(db_session_repo: Session) -> None:
    """Every mutating method should break early and return None."""
    repo = SQLRoomRepository(db_session_repo)
    unknown_id = uuid4()
    assert repo.add_player(unknown_id, GUEST) is None
    assert repo.remove_player(unknown_id, GUEST.player_id) is None
    assert repo.update_room_status(unknown_id, RoomStatus.FINISHED.value) is None
    assert repo.delete_room(unknown_id) is None


def test_delete_room_takes_players_and_game_along(db_session_repo: Session) -> None:
    rooms = SQLRoomRepository(db_session_repo)
    games = SQLGameRepository(db_session_repo)
    room = rooms.create_room("ABC234", HOST)
    rooms.add_player(room.room_id, GUEST)
    games.create_game(room.room_id, make_game())

    deleted = rooms.delete_room(room.room_id)
    assert deleted is not None
    assert deleted.room_code == "ABC234"
    assert rooms.get_room(room.room_id) is None
    assert games.get_game(room.room_id) is None
    assert not rooms.room_code_exists("ABC234")


# --- GAMES ---
def test_create_game(db_session_repo: Session) -> None:
    """Conversion from a GameModel to DBGameState for a new entry to the database."""
    model = make_game()
    repo = SQLGameRepository(db_session_repo)
    record_in_db = repo.create_game(uuid4(), model)

    assert isinstance(record_in_db, GameModel)
    assert record_in_db == replace(model, version=1)


def test_get_game_keeps_nulls_and_flags(db_session_repo: Session) -> None:
    """Optional fields must come back exactly (None stays None, numbers stay numbers)."""
    boxes = [{"id": i, "removed": i < 4, "trapped": i == 9} for i in range(1, 13)]
    model = make_game(
        boxes=boxes,
        score_a=6,
        penalty_b=2,
        phase="confirming",
        armed_box=9,
        selected_box=5,
    )
    room_id = uuid4()
    repo = SQLGameRepository(db_session_repo)
    repo.create_game(room_id, model)

    found = repo.get_game(room_id)
    assert found == replace(model, version=1)
    assert found is not None
    assert found.winner_id is None
    assert found.win_reason is None
    assert found.updated_at.tzinfo is not None


def test_get_unknown_game(db_session_repo: Session) -> None:
    repo = SQLGameRepository(db_session_repo)
    repo.create_game(uuid4(), make_game())
    assert repo.get_game(uuid4()) is None


def test_update_game_bumps_version(db_session_repo: Session) -> None:
    room_id = uuid4()
    repo = SQLGameRepository(db_session_repo)
    created = repo.create_game(room_id, make_game())

    after = make_game(phase="selecting_box", armed_box=4)
    updated = repo.update_game(room_id, after, expected_version=created.version)
    assert updated == replace(after, version=2)


def test_consecutive_game_updates(db_session_repo: Session) -> None:
    """Loosely simulate a half-round: every write builds on the version of the previous one."""
    room_id = uuid4()
    repo = SQLGameRepository(db_session_repo)
    current = repo.create_game(room_id, make_game())

    updates = [
        make_game(phase="selecting_box", armed_box=4),
        make_game(phase="selecting_box", armed_box=4, selected_box=6),
        make_game(phase="revealing", armed_box=4, selected_box=6, score_a=6),
    ]
    for update in updates:
        result = repo.update_game(room_id, update, expected_version=current.version)
        assert result is not None
        current = result

    after_all_updates = repo.get_game(room_id)
    assert after_all_updates == replace(updates[-1], version=4)


def test_stale_update_is_rejected(db_session_repo: Session) -> None:
    room_id = uuid4()
    repo = SQLGameRepository(db_session_repo)
    created = repo.create_game(room_id, make_game())

    repo.update_game(room_id, make_game(armed_box=2), expected_version=created.version)
    with pytest.raises(ConcurrencyConflictError):
        repo.update_game(room_id, make_game(armed_box=7), expected_version=created.version)

    # the first write is what stuck
    stored = repo.get_game(room_id)
    assert stored is not None
    assert stored.armed_box == 2
    assert stored.version == 2


def test_racing_clients_on_separate_sessions(
    db_session_repo: Session, db_session_shared: Session
) -> None:
    """Both players read the same snapshot, only the first write wins."""
    room_id = uuid4()
    first = SQLGameRepository(db_session_repo)
    second = SQLGameRepository(db_session_shared)
    first.create_game(room_id, make_game())

    seen_by_first = first.get_game(room_id)
    seen_by_second = second.get_game(room_id)
    assert seen_by_first is not None and seen_by_second is not None

    first.update_game(
        room_id, make_game(armed_box=3), expected_version=seen_by_first.version
    )
    with pytest.raises(ConcurrencyConflictError):
        second.update_game(
            room_id, make_game(armed_box=8), expected_version=seen_by_second.version
        )


def test_attempt_updating_unknown_game(db_session_repo: Session) -> None:
    """the update_game() method should break early and return None"""
    repo = SQLGameRepository(db_session_repo)
    assert repo.update_game(uuid4(), make_game(), expected_version=1) is None


def test_delete_game(db_session_repo: Session) -> None:
    """Record of the game should no longer exist after deletion"""
    room_id = uuid4()
    repo = SQLGameRepository(db_session_repo)
    created = repo.create_game(room_id, make_game())

    assert repo.delete_game(room_id) == created
    assert repo.get_game(room_id) is None


def test_attempt_deleting_unknown_game(db_session_repo: Session) -> None:
    repo = SQLGameRepository(db_session_repo)
    assert repo.delete_game(uuid4()) is None
