"""
Boundary layer data model(s).

These objects can be used to communicate with the Service.
The API layer (higher) and domain/db layers (lower) all use these to send to/receive from the Service.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

# Type aliases to make the models easier to read
PlayerId = str
BoxData = dict[str, Any]


@dataclass
class GameModel:
    """Transport-safe snapshot of one match. `None` is meaningful for the optional fields and must survive a round trip."""

    boxes: list[BoxData]
    score_a: int
    score_b: int
    penalty_a: int
    penalty_b: int
    round: int
    front_half: bool
    phase: str
    player_a_id: PlayerId
    player_b_id: PlayerId
    sitter_id: PlayerId
    switcher_id: PlayerId
    armed_box: Optional[int]
    selected_box: Optional[int]
    winner_id: Optional[PlayerId]
    win_reason: Optional[str]
    updated_at: datetime
    version: int = 0  # owned by the repository (optimistic concurrency)


@dataclass
class PlayerModel:
    player_id: PlayerId
    name: str
    player_number: int


@dataclass
class RoomModel:
    room_id: UUID
    room_code: str
    status: str
    host_id: PlayerId
    players: list[PlayerModel] = field(default_factory=list)
