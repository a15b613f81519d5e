"""Requests and Response models"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from src.core.exceptions import InvalidRequestError
from src.core.shared_types import Phase, Role, RoomStatus, WinReason
from src.game.board import BOARD_SIZE

ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH = 6
MAX_NAME_LENGTH = 32

PlayerId = str


def _validate_player_name(value: str) -> str:
    name = value.strip()
    if not name:
        raise InvalidRequestError("Player name is required.")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidRequestError(
            f"Player name can have at most {MAX_NAME_LENGTH} characters."
        )
    return name


# --- REQUEST MODELS ---
class CreateRoomRequest(BaseModel):
    player_name: str

    @field_validator("player_name")
    @classmethod
    def validate_player_name(cls, value: str) -> str:
        return _validate_player_name(value)


class JoinRoomRequest(BaseModel):
    room_code: str
    player_name: str

    @field_validator("player_name")
    @classmethod
    def validate_player_name(cls, value: str) -> str:
        return _validate_player_name(value)

    @field_validator("room_code")
    @classmethod
    def validate_room_code(cls, value: str) -> str:
        """Codes are typed in by people: accept lower case and surrounding spaces."""
        code = value.strip().upper()
        if len(code) != ROOM_CODE_LENGTH or any(
            c not in ROOM_CODE_ALPHABET for c in code
        ):
            raise InvalidRequestError(f"Cannot interpret {value!r} as a room code.")
        return code


class RoomActionRequest(BaseModel):
    """Anything a player does inside a room they already joined."""

    room_id: UUID
    player_id: PlayerId


class StartGameRequest(RoomActionRequest):
    pass


class ArmTrapRequest(RoomActionRequest):
    box_id: int
    confirm: bool = False

    @field_validator("box_id")
    @classmethod
    def validate_box_id(cls, value: int) -> int:
        return _validate_box_id(value)


class SelectBoxRequest(RoomActionRequest):
    box_id: int

    @field_validator("box_id")
    @classmethod
    def validate_box_id(cls, value: int) -> int:
        return _validate_box_id(value)


class ConfirmSelectionRequest(RoomActionRequest):
    pass


class RevealRequest(RoomActionRequest):
    pass


class NextRoundRequest(RoomActionRequest):
    pass


class GetGameRequest(RoomActionRequest):
    pass


class LeaveRoomRequest(RoomActionRequest):
    pass


def _validate_box_id(value: int) -> int:
    if not 1 <= value <= BOARD_SIZE:
        raise InvalidRequestError(f"Box id must be between 1 and {BOARD_SIZE}.")
    return value


# --- RESPONSE MODELS ---
class PlayerInfo(BaseModel):
    player_id: PlayerId
    name: str
    player_number: int


class RoomResponse(BaseModel):
    room_id: UUID
    room_code: str
    player_id: PlayerId
    status: RoomStatus
    players: list[PlayerInfo]


class BoxView(BaseModel):
    id: int
    removed: bool
    trapped: bool


class GameResponse(BaseModel):
    room_id: UUID
    boxes: list[BoxView]
    scores: dict[PlayerId, int]
    penalties: dict[PlayerId, int]
    round: int
    front_half: bool
    phase: Phase
    sitter_id: PlayerId
    switcher_id: PlayerId
    your_role: Optional[Role]
    armed_box: Optional[int]
    selected_box: Optional[int]
    winner_id: Optional[PlayerId]
    win_reason: Optional[WinReason]
    updated_at: datetime
    version: int
