"""Database tables / schema"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import JSON, ForeignKey
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class DBRoom(Base):
    __tablename__ = "rooms"
    id: Mapped[UUID] = mapped_column(primary_key=True)
    room_code: Mapped[str] = mapped_column(unique=True, index=True)
    status: Mapped[str]
    host_id: Mapped[str]
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    players: Mapped[list["DBPlayer"]] = relationship(
        back_populates="room",
        cascade="all, delete-orphan",
        order_by="DBPlayer.player_number",
    )
    game_state: Mapped[Optional["DBGameState"]] = relationship(
        back_populates="room", cascade="all, delete-orphan"
    )


class DBPlayer(Base):
    __tablename__ = "players"
    id: Mapped[str] = mapped_column(primary_key=True)
    room_id: Mapped[UUID] = mapped_column(ForeignKey("rooms.id"))
    name: Mapped[str]
    player_number: Mapped[int]
    joined_at: Mapped[datetime] = mapped_column(default=utc_now)
    room: Mapped[DBRoom] = relationship(back_populates="players")


class DBGameState(Base):
    """One authoritative snapshot per room. `version` is bumped on every write (optimistic concurrency)."""

    __tablename__ = "game_states"
    room_id: Mapped[UUID] = mapped_column(ForeignKey("rooms.id"), primary_key=True)
    boxes: Mapped[list[dict[str, Any]]] = mapped_column(JSON)
    score_a: Mapped[int] = mapped_column(default=0)
    score_b: Mapped[int] = mapped_column(default=0)
    penalty_a: Mapped[int] = mapped_column(default=0)
    penalty_b: Mapped[int] = mapped_column(default=0)
    round: Mapped[int] = mapped_column(default=1)
    front_half: Mapped[bool] = mapped_column(default=True)
    phase: Mapped[str]
    player_a_id: Mapped[str]
    player_b_id: Mapped[str]
    sitter_id: Mapped[str]
    switcher_id: Mapped[str]
    armed_box: Mapped[Optional[int]]
    selected_box: Mapped[Optional[int]]
    winner_id: Mapped[Optional[str]]
    win_reason: Mapped[Optional[str]]
    updated_at: Mapped[datetime] = mapped_column(default=utc_now)
    version: Mapped[int] = mapped_column(default=1)
    room: Mapped[DBRoom] = relationship(back_populates="game_state")
