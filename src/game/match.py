"""
The match state machine is the entrypoint into the domain layer for the service layer.

Every transition takes a MatchState and returns a new one: nothing is mutated in place and nothing here touches I/O.
One half-round runs:

    setting_trap --arm_trap(confirm=True)--> selecting_box --select_box/confirm_selection--> confirming
    --reveal--> revealing --advance_round--> setting_trap (roles swapped) or game_over

`confirming` is optional: reveal also accepts `selecting_box` once a box has been selected.
"""

import random
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional, Self

from src.core.exceptions import (
    InvalidPhaseError,
    InvalidRequestError,
    InvalidStateError,
    InvalidTargetError,
)
from src.core.models import GameModel
from src.core.shared_types import Phase, Role, WinReason
from src.game.board import BOARD_SIZE, Box, create_board, find_box, remaining_count

WINNING_SCORE = 40
PENALTY_LIMIT = 3


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class WinOutcome:
    winner_id: Optional[str] = None
    win_reason: Optional[WinReason] = None

    @property
    def is_terminal(self) -> bool:
        """A winner, or the last-box draw (winner stays None)."""
        return self.winner_id is not None or self.win_reason == WinReason.LAST_BOX


@dataclass(frozen=True)
class MatchState:
    # --- DOMAIN LAYER SNAPSHOT USED BY SERVICE ---

    boxes: tuple[Box, ...]
    player_a_id: str
    player_b_id: str
    sitter_id: str
    switcher_id: str
    score_a: int = 0
    score_b: int = 0
    penalty_a: int = 0
    penalty_b: int = 0
    round: int = 1
    front_half: bool = True
    phase: Phase = Phase.SETTING_TRAP
    armed_box: Optional[int] = None
    selected_box: Optional[int] = None
    winner_id: Optional[str] = None
    win_reason: Optional[WinReason] = None
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if self.player_a_id == self.player_b_id:
            raise InvalidStateError("Both participants have the same id.")
        if {self.sitter_id, self.switcher_id} != {self.player_a_id, self.player_b_id}:
            raise InvalidStateError(
                f"Roles must be split between {self.player_a_id!r} and {self.player_b_id!r}. "
                f"Got sitter={self.sitter_id!r}, switcher={self.switcher_id!r}."
            )
        if min(self.score_a, self.score_b, self.penalty_a, self.penalty_b) < 0:
            raise InvalidStateError("Scores and penalties can never be negative.")

    @classmethod
    def from_model(cls, model: GameModel) -> Self:
        """Construct a MatchState from the information the Service layer actually has."""

        # Validation
        if model.phase not in {phase.value for phase in Phase}:
            raise InvalidStateError(
                f"Invalid phase: {model.phase!r}. \nPick one from {','.join(Phase)}"
            )
        if model.win_reason is not None and model.win_reason not in {
            reason.value for reason in WinReason
        }:
            raise InvalidStateError(
                f"Invalid win reason: {model.win_reason!r}. \nPick one from {','.join(WinReason)}"
            )
        boxes = tuple(Box.from_dict(data) for data in model.boxes)
        if len({box.id for box in boxes}) != len(boxes):
            raise InvalidStateError("Box ids on the board must be unique.")

        return cls(
            boxes=boxes,
            player_a_id=model.player_a_id,
            player_b_id=model.player_b_id,
            sitter_id=model.sitter_id,
            switcher_id=model.switcher_id,
            score_a=model.score_a,
            score_b=model.score_b,
            penalty_a=model.penalty_a,
            penalty_b=model.penalty_b,
            round=model.round,
            front_half=model.front_half,
            phase=Phase(model.phase),
            armed_box=model.armed_box,
            selected_box=model.selected_box,
            winner_id=model.winner_id,
            win_reason=WinReason(model.win_reason) if model.win_reason else None,
            updated_at=model.updated_at,
        )

    def to_model(self) -> GameModel:
        """Encode back into a format the Service layer uses"""

        return GameModel(
            boxes=[box.to_dict() for box in self.boxes],
            score_a=self.score_a,
            score_b=self.score_b,
            penalty_a=self.penalty_a,
            penalty_b=self.penalty_b,
            round=self.round,
            front_half=self.front_half,
            phase=str(self.phase),
            player_a_id=self.player_a_id,
            player_b_id=self.player_b_id,
            sitter_id=self.sitter_id,
            switcher_id=self.switcher_id,
            armed_box=self.armed_box,
            selected_box=self.selected_box,
            winner_id=self.winner_id,
            win_reason=str(self.win_reason) if self.win_reason else None,
            updated_at=self.updated_at,
        )

    @property
    def remaining(self) -> int:
        return remaining_count(self.boxes)

    def score_of(self, player_id: str) -> int:
        return self.score_a if self._is_player_a(player_id) else self.score_b

    def penalty_of(self, player_id: str) -> int:
        return self.penalty_a if self._is_player_a(player_id) else self.penalty_b

    def _is_player_a(self, player_id: str) -> bool:
        if player_id not in (self.player_a_id, self.player_b_id):
            raise InvalidStateError(f"{player_id!r} does not take part in this match.")
        return player_id == self.player_a_id


# --- TRANSITIONS ---
def initialize(
    player_a_id: str,
    player_b_id: str,
    n: int = BOARD_SIZE,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> MatchState:
    """
    Fresh match for two players.
    ----
    Who sits first is decided by a fair coin. Pass a seeded `rng` to make it reproducible.
    """
    if player_a_id == player_b_id:
        raise InvalidRequestError("A match needs two different players.")
    if n < 2:
        raise InvalidRequestError(f"Board needs at least 2 boxes, got {n}.")

    rng = rng or random.Random()
    a_sits_first = rng.random() < 0.5
    return MatchState(
        boxes=create_board(n),
        player_a_id=player_a_id,
        player_b_id=player_b_id,
        sitter_id=player_a_id if a_sits_first else player_b_id,
        switcher_id=player_b_id if a_sits_first else player_a_id,
        updated_at=now or utc_now(),
    )


def arm_trap(
    state: MatchState, box_id: int, confirm: bool, now: Optional[datetime] = None
) -> MatchState:
    """
    Switcher places the trap.
    ----
    Can be called repeatedly with confirm=False (only the last box stays trapped). confirm=True locks it in.
    """
    _require_phase(state, "arm a trap", Phase.SETTING_TRAP)
    target = _require_target(state, box_id)

    boxes = tuple(box.with_trap(box.id == target.id) for box in state.boxes)
    return replace(
        state,
        boxes=boxes,
        armed_box=target.id,
        phase=Phase.SELECTING_BOX if confirm else state.phase,
        updated_at=now or utc_now(),
    )


def select_box(
    state: MatchState, box_id: int, now: Optional[datetime] = None
) -> MatchState:
    """Sitter points at a box. Overwrites an earlier choice, does not change the phase."""
    _require_phase(state, "select a box", Phase.SELECTING_BOX, Phase.CONFIRMING)
    target = _require_target(state, box_id)
    return replace(state, selected_box=target.id, updated_at=now or utc_now())


def confirm_selection(state: MatchState, now: Optional[datetime] = None) -> MatchState:
    """Sitter declares the choice final."""
    _require_phase(state, "confirm a selection", Phase.SELECTING_BOX)
    if state.selected_box is None:
        raise InvalidPhaseError("Select a box before confirming.")
    return replace(state, phase=Phase.CONFIRMING, updated_at=now or utc_now())


def reveal(state: MatchState, now: Optional[datetime] = None) -> MatchState:
    """
    Open the selected box.
    ----
    * trapped: the sitter loses all points and collects a penalty, the box stays on the board.
    * safe: the sitter scores the box number and the box is removed.

    Win conditions are NOT checked here (see advance_round), so the caller can show the result first.
    """
    _require_phase(state, "reveal", Phase.SELECTING_BOX, Phase.CONFIRMING)
    if state.selected_box is None:
        if state.phase == Phase.SELECTING_BOX:
            raise InvalidPhaseError("Nothing has been selected yet.")
        raise InvalidStateError("Phase is 'confirming' but no box is selected.")

    selected = find_box(state.boxes, state.selected_box)
    if selected is None or selected.removed:
        raise InvalidStateError(
            f"Selected box {state.selected_box} is not on the board (anymore)."
        )
    if state.armed_box is None:
        raise InvalidStateError("No trap was armed this half-round.")
    trapped_ids = [box.id for box in state.boxes if box.trapped]
    armed = find_box(state.boxes, state.armed_box)
    if trapped_ids != [state.armed_box] or armed is None or armed.removed:
        raise InvalidStateError(
            f"Armed box {state.armed_box} does not match the trapped boxes {trapped_ids}."
        )

    sitter_is_a = state.sitter_id == state.player_a_id
    score_field = "score_a" if sitter_is_a else "score_b"
    penalty_field = "penalty_a" if sitter_is_a else "penalty_b"

    if selected.trapped:
        boxes = state.boxes
        changes = {score_field: 0, penalty_field: getattr(state, penalty_field) + 1}
    else:
        boxes = tuple(box.take() if box.id == selected.id else box for box in state.boxes)
        changes = {score_field: getattr(state, score_field) + selected.id}

    return replace(
        state,
        boxes=boxes,
        phase=Phase.REVEALING,
        updated_at=now or utc_now(),
        **changes,
    )


def evaluate_win_condition(
    state: MatchState, player_a_id: str, player_b_id: str
) -> WinOutcome:
    """
    Who (if anyone) won?
    ----
    Checked in this order, first hit wins:
    1. score of A, then B, reaching WINNING_SCORE
    2. penalties of A, then B, reaching PENALTY_LIMIT (the opponent wins)
    3. at most one box left: higher score wins, equal scores is a draw (winner None, reason LAST_BOX)
    """
    if state.score_a >= WINNING_SCORE:
        return WinOutcome(player_a_id, WinReason.SCORE)
    if state.score_b >= WINNING_SCORE:
        return WinOutcome(player_b_id, WinReason.SCORE)

    if state.penalty_a >= PENALTY_LIMIT:
        return WinOutcome(player_b_id, WinReason.PENALTY)
    if state.penalty_b >= PENALTY_LIMIT:
        return WinOutcome(player_a_id, WinReason.PENALTY)

    if state.remaining <= 1:
        if state.score_a > state.score_b:
            return WinOutcome(player_a_id, WinReason.LAST_BOX)
        if state.score_b > state.score_a:
            return WinOutcome(player_b_id, WinReason.LAST_BOX)
        return WinOutcome(None, WinReason.LAST_BOX)

    return WinOutcome()


def advance_round(state: MatchState, now: Optional[datetime] = None) -> MatchState:
    """
    Close the half-round after a reveal.
    ----
    Ends the match if a win condition holds. Otherwise swap roles, clear the trap and selection
    and move on to the next half (the round counter goes up when the front half starts again).
    """
    _require_phase(state, "advance the round", Phase.REVEALING)
    stamp = now or utc_now()

    outcome = evaluate_win_condition(state, state.player_a_id, state.player_b_id)
    if outcome.is_terminal:
        return replace(
            state,
            phase=Phase.GAME_OVER,
            winner_id=outcome.winner_id,
            win_reason=outcome.win_reason,
            updated_at=stamp,
        )

    front_half = not state.front_half
    return replace(
        state,
        boxes=tuple(box.with_trap(False) for box in state.boxes),
        round=state.round + 1 if front_half else state.round,
        front_half=front_half,
        sitter_id=state.switcher_id,
        switcher_id=state.sitter_id,
        armed_box=None,
        selected_box=None,
        phase=Phase.SETTING_TRAP,
        updated_at=stamp,
    )


def role_of(state: MatchState, player_id: str) -> Optional[Role]:
    if player_id == state.sitter_id:
        return Role.SITTER
    if player_id == state.switcher_id:
        return Role.SWITCHER
    return None


# -- PRIVATE HELPERS ---
def _require_phase(state: MatchState, action: str, *allowed: Phase) -> None:
    if state.phase not in allowed:
        raise InvalidPhaseError(
            f"Cannot {action} during phase {state.phase.value!r}. Allowed: {', '.join(allowed)}."
        )


def _require_target(state: MatchState, box_id: int) -> Box:
    box = find_box(state.boxes, box_id)
    if box is None:
        raise InvalidTargetError(f"There is no box with id {box_id}.")
    if box.removed:
        raise InvalidTargetError(f"Box {box_id} has already been taken.")
    return box
