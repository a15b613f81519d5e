"""
Type definitions used across layers
"""

from enum import StrEnum


class Phase(StrEnum):
    SETTING_TRAP = "setting_trap"
    SELECTING_BOX = "selecting_box"
    CONFIRMING = "confirming"
    REVEALING = "revealing"
    ROUND_END = "round_end"  # --- NOTE kept for stored snapshots, no transition produces it
    GAME_OVER = "game_over"


class WinReason(StrEnum):
    SCORE = "score"
    PENALTY = "penalty"
    LAST_BOX = "last_box"


class Role(StrEnum):
    SITTER = "sitter"
    SWITCHER = "switcher"


class RoomStatus(StrEnum):
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"
