"""Implementation of the Room/Game repositories using SQLAlchemy"""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from src.core.exceptions import ConcurrencyConflictError
from src.core.models import GameModel, PlayerModel, RoomModel
from src.core.shared_types import RoomStatus
from src.db.schema import DBGameState, DBPlayer, DBRoom

logger = logging.getLogger(__name__)


class SQLRoomRepository:
    """Rooms stored using SQL / methods implemented using SQLAlchemy"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def create_room(self, room_code: str, host: PlayerModel) -> RoomModel:
        """Store a new waiting room with its host as first player."""
        room_db = DBRoom(
            id=uuid4(),
            room_code=room_code,
            status=RoomStatus.WAITING.value,
            host_id=host.player_id,
            players=[self._to_db_player(host)],
        )
        self.db.add(room_db)
        self.db.commit()
        self.db.refresh(room_db)
        logger.info("Created room %s (%s)", room_db.room_code, room_db.id)
        return self._to_model(room_db)

    def get_room(self, room_id: UUID) -> RoomModel | None:
        room_db = self._fetch_room(room_id)
        if room_db:
            return self._to_model(room_db)
        return None

    def get_room_by_code(self, room_code: str) -> RoomModel | None:
        room_db = self.db.scalar(select(DBRoom).where(DBRoom.room_code == room_code))
        if room_db:
            return self._to_model(room_db)
        return None

    def room_code_exists(self, room_code: str) -> bool:
        query = select(DBRoom.id).where(DBRoom.room_code == room_code)
        return self.db.scalar(query) is not None

    def add_player(self, room_id: UUID, player: PlayerModel) -> RoomModel | None:
        room_db = self._fetch_room(room_id)
        if not room_db:
            return None
        room_db.players.append(self._to_db_player(player))
        self.db.commit()
        self.db.refresh(room_db)
        logger.info("Player %s joined room %s", player.player_id, room_db.room_code)
        return self._to_model(room_db)

    def remove_player(self, room_id: UUID, player_id: str) -> RoomModel | None:
        room_db = self._fetch_room(room_id)
        if not room_db:
            return None
        room_db.players = [p for p in room_db.players if p.id != player_id]
        self.db.commit()
        self.db.refresh(room_db)
        logger.info("Player %s left room %s", player_id, room_db.room_code)
        return self._to_model(room_db)

    def update_room_status(self, room_id: UUID, status: str) -> RoomModel | None:
        room_db = self._fetch_room(room_id)
        if not room_db:
            return None
        room_db.status = status
        self.db.commit()
        self.db.refresh(room_db)
        return self._to_model(room_db)

    def delete_room(self, room_id: UUID) -> RoomModel | None:
        """Remove the room. Players and game go with it (cascade)."""
        room_db = self._fetch_room(room_id)
        if not room_db:
            return None
        room_model = self._to_model(room_db)
        self.db.delete(room_db)
        self.db.commit()
        logger.info("Deleted room %s", room_model.room_code)
        return room_model

    def _fetch_room(self, room_id: UUID) -> DBRoom | None:
        query = select(DBRoom).where(DBRoom.id == room_id)
        return self.db.scalar(query)

    def _to_db_player(self, player: PlayerModel) -> DBPlayer:
        return DBPlayer(
            id=player.player_id, name=player.name, player_number=player.player_number
        )

    def _to_model(self, room_db: DBRoom) -> RoomModel:
        """Convert SQLAlchemy model to data transfer model."""
        return RoomModel(
            room_id=room_db.id,
            room_code=room_db.room_code,
            status=room_db.status,
            host_id=room_db.host_id,
            players=[
                PlayerModel(
                    player_id=p.id, name=p.name, player_number=p.player_number
                )
                for p in room_db.players
            ],
        )


class SQLGameRepository:
    """Match snapshots stored using SQL / methods implemented using SQLAlchemy"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_game(self, room_id: UUID) -> GameModel | None:
        game_db = self._fetch_game(room_id)
        if game_db:
            return self._to_model(game_db)
        return None

    def create_game(self, room_id: UUID, game: GameModel) -> GameModel:
        game_db = DBGameState(room_id=room_id, version=1, **self._to_columns(game))
        self.db.add(game_db)
        self.db.commit()
        self.db.refresh(game_db)
        logger.info("Started game in room %s", room_id)
        return self._to_model(game_db)

    def update_game(
        self, room_id: UUID, game: GameModel, expected_version: int
    ) -> GameModel | None:
        """Conditional write: UPDATE ... WHERE version = expected_version."""
        if not self._fetch_game(room_id):
            return None

        query = (
            update(DBGameState)
            .where(
                DBGameState.room_id == room_id,
                DBGameState.version == expected_version,
            )
            .values(**self._to_columns(game), version=expected_version + 1)
        )
        result = self.db.execute(query)
        if result.rowcount == 0:
            self.db.rollback()
            logger.warning(
                "Stale write to room %s rejected (expected version %d)",
                room_id,
                expected_version,
            )
            raise ConcurrencyConflictError(
                f"Game in room {room_id} changed since version {expected_version}. Refetch and retry."
            )
        self.db.commit()

        game_db = self._fetch_game(room_id)
        if not game_db:
            return None
        self.db.refresh(game_db)
        logger.debug(
            "Room %s now at version %d (phase %s)", room_id, game_db.version, game.phase
        )
        return self._to_model(game_db)

    def delete_game(self, room_id: UUID) -> GameModel | None:
        game_db = self._fetch_game(room_id)
        if not game_db:
            return None
        game_model = self._to_model(game_db)
        self.db.delete(game_db)
        self.db.commit()
        return game_model

    def _fetch_game(self, room_id: UUID) -> DBGameState | None:
        query = select(DBGameState).where(DBGameState.room_id == room_id)
        return self.db.scalar(query)

    def _to_columns(self, game: GameModel) -> dict[str, Any]:
        """Everything but the version, which the repository owns."""
        return dict(
            boxes=[dict(box) for box in game.boxes],
            score_a=game.score_a,
            score_b=game.score_b,
            penalty_a=game.penalty_a,
            penalty_b=game.penalty_b,
            round=game.round,
            front_half=game.front_half,
            phase=game.phase,
            player_a_id=game.player_a_id,
            player_b_id=game.player_b_id,
            sitter_id=game.sitter_id,
            switcher_id=game.switcher_id,
            armed_box=game.armed_box,
            selected_box=game.selected_box,
            winner_id=game.winner_id,
            win_reason=game.win_reason,
            updated_at=game.updated_at,
        )

    def _to_model(self, game_db: DBGameState) -> GameModel:
        """Convert SQLAlchemy model to data transfer model."""
        return GameModel(
            boxes=[dict(box) for box in game_db.boxes],
            score_a=game_db.score_a,
            score_b=game_db.score_b,
            penalty_a=game_db.penalty_a,
            penalty_b=game_db.penalty_b,
            round=game_db.round,
            front_half=game_db.front_half,
            phase=game_db.phase,
            player_a_id=game_db.player_a_id,
            player_b_id=game_db.player_b_id,
            sitter_id=game_db.sitter_id,
            switcher_id=game_db.switcher_id,
            armed_box=game_db.armed_box,
            selected_box=game_db.selected_box,
            winner_id=game_db.winner_id,
            win_reason=game_db.win_reason,
            updated_at=_as_utc(game_db.updated_at),
            version=game_db.version,
        )


def _as_utc(moment: datetime) -> datetime:
    """SQLite hands back naive datetimes. Everything is written in UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment
