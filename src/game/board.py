"""The board: a fixed row of numbered boxes. A box's number is also the amount of points it is worth."""

from dataclasses import dataclass, replace
from typing import Any, Iterable, Optional, Self

BOARD_SIZE = 12


@dataclass(frozen=True)
class Box:
    id: int
    removed: bool = False
    trapped: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=int(data["id"]),
            removed=bool(data.get("removed", False)),
            trapped=bool(data.get("trapped", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "removed": self.removed, "trapped": self.trapped}

    def with_trap(self, trapped: bool) -> Self:
        return replace(self, trapped=trapped)

    def take(self) -> Self:
        """Opened safely: out of play for the rest of the match."""
        return replace(self, removed=True, trapped=False)


def create_board(n: int = BOARD_SIZE) -> tuple[Box, ...]:
    """Boxes 1..n, all in play, none trapped."""
    return tuple(Box(id=box_id) for box_id in range(1, n + 1))


def remaining_boxes(boxes: Iterable[Box]) -> tuple[Box, ...]:
    return tuple(box for box in boxes if not box.removed)


def remaining_count(boxes: Iterable[Box]) -> int:
    return len(remaining_boxes(boxes))


def find_box(boxes: Iterable[Box], box_id: int) -> Optional[Box]:
    return next((box for box in boxes if box.id == box_id), None)
