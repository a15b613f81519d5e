"""Protocol repositories (persistence layer contract used by the Service)."""

from typing import Protocol
from uuid import UUID

from src.core.models import GameModel, PlayerModel, RoomModel


class RoomRepository(Protocol):
    """Rooms and the players sitting in them."""

    def create_room(self, room_code: str, host: PlayerModel) -> RoomModel:
        """Store a new waiting room with its host as first player."""
        ...

    def get_room(self, room_id: UUID) -> RoomModel | None:
        """Get room by ID, if record exists."""
        ...

    def get_room_by_code(self, room_code: str) -> RoomModel | None:
        """Get room by its (human friendly) code, if record exists."""
        ...

    def room_code_exists(self, room_code: str) -> bool: ...

    def add_player(self, room_id: UUID, player: PlayerModel) -> RoomModel | None:
        """Register another player in an existing room."""
        ...

    def remove_player(self, room_id: UUID, player_id: str) -> RoomModel | None:
        """Remove a player from a room."""
        ...

    def update_room_status(self, room_id: UUID, status: str) -> RoomModel | None: ...

    def delete_room(self, room_id: UUID) -> RoomModel | None:
        """Remove the room together with its players and game."""
        ...


class GameRepository(Protocol):
    """The authoritative match snapshot, one per room."""

    def get_game(self, room_id: UUID) -> GameModel | None:
        """Get the game played in this room, if record exists."""
        ...

    def create_game(self, room_id: UUID, game: GameModel) -> GameModel:
        """Store the first snapshot of a match."""
        ...

    def update_game(
        self, room_id: UUID, game: GameModel, expected_version: int
    ) -> GameModel | None:
        """
        Replace the snapshot, only if it is still at `expected_version`.
        Returns None for an unknown room, raises ConcurrencyConflictError if somebody else wrote first.
        """
        ...

    def delete_game(self, room_id: UUID) -> GameModel | None:
        """Remove a game's record."""
        ...
