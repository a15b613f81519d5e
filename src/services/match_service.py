"""Orchestration of communication from API router to business logic and persistence layers (and the reverse direction)."""

import logging
import random
from typing import Callable, Optional
from uuid import UUID, uuid4

from src.api.models import (
    ROOM_CODE_ALPHABET,
    ROOM_CODE_LENGTH,
    ArmTrapRequest,
    BoxView,
    ConfirmSelectionRequest,
    CreateRoomRequest,
    GameResponse,
    GetGameRequest,
    JoinRoomRequest,
    LeaveRoomRequest,
    NextRoundRequest,
    PlayerInfo,
    RevealRequest,
    RoomActionRequest,
    RoomResponse,
    SelectBoxRequest,
    StartGameRequest,
)
from src.core.config import Settings, load_settings
from src.core.exceptions import NotYourTurnError, RepositoryError, RoomError
from src.core.models import GameModel, PlayerModel, RoomModel
from src.core.shared_types import Phase, Role, RoomStatus
from src.db.repository import GameRepository, RoomRepository
from src.game.match import (
    MatchState,
    advance_round,
    arm_trap,
    confirm_selection,
    initialize,
    reveal,
    role_of,
    select_box,
)

logger = logging.getLogger(__name__)

PLAYERS_PER_ROOM = 2

# while in these phases only the switcher may know where the trap is
TRAP_HIDDEN_PHASES = {Phase.SETTING_TRAP, Phase.SELECTING_BOX, Phase.CONFIRMING}


class MatchService:
    """Orchestration of layers for the trap box game."""

    def __init__(
        self,
        rooms: RoomRepository,
        games: GameRepository,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.rooms = rooms
        self.games = games
        self.settings = settings or load_settings()
        self.rng = rng or random.Random()

    # -- Room lifecycle ---
    def create_room(self, request: CreateRoomRequest) -> RoomResponse:
        """First player opens a room and becomes its host."""
        room_code = self._generate_unique_room_code()
        host = PlayerModel(
            player_id=str(uuid4()), name=request.player_name, player_number=1
        )
        room = self.rooms.create_room(room_code, host)
        return self._create_room_response(room, host.player_id)

    def join_room(self, request: JoinRoomRequest) -> RoomResponse:
        """Second player joins using the room code."""
        room = self.rooms.get_room_by_code(request.room_code)
        if room is None:
            raise RepositoryError(f"Room with code {request.room_code!r} not found.")
        if room.status != RoomStatus.WAITING:
            raise RoomError(
                f"Room {room.room_code} is not accepting players. status: {room.status}"
            )
        if len(room.players) >= PLAYERS_PER_ROOM:
            raise RoomError(f"Room {room.room_code} is full.")

        taken = {p.player_number for p in room.players}
        player = PlayerModel(
            player_id=str(uuid4()),
            name=request.player_name,
            player_number=min(set(range(1, PLAYERS_PER_ROOM + 1)) - taken),
        )
        updated_room = self.rooms.add_player(room.room_id, player)
        if updated_room is None:
            raise RepositoryError(f"Room with id {room.room_id} not found.")
        return self._create_room_response(updated_room, player.player_id)

    def leave_room(self, request: LeaveRoomRequest) -> None:
        """
        A player walks away.
        ----
        The host leaving closes the room (and drops the game). Anybody else leaving a running game ends it.
        """
        room = self._fetch_room(request.room_id)
        self._assert_in_room(room, request.player_id)

        if request.player_id == room.host_id:
            self.games.delete_game(room.room_id)
            self.rooms.delete_room(room.room_id)
            return

        self.rooms.remove_player(room.room_id, request.player_id)
        if room.status == RoomStatus.PLAYING:
            self.rooms.update_room_status(room.room_id, RoomStatus.FINISHED.value)

    def start_game(self, request: StartGameRequest) -> GameResponse:
        """Host starts the match once both players are in. Who sits first is a coin flip."""
        room = self._fetch_room(request.room_id)
        self._assert_in_room(room, request.player_id)
        if request.player_id != room.host_id:
            raise RoomError("Only the host can start the game.")
        if room.status != RoomStatus.WAITING:
            raise RoomError(f"Game cannot be started. status: {room.status}")
        if len(room.players) != PLAYERS_PER_ROOM:
            raise RoomError("Waiting for a second player.")

        player_a, player_b = sorted(room.players, key=lambda p: p.player_number)
        state = initialize(player_a.player_id, player_b.player_id, rng=self.rng)
        stored = self.games.create_game(room.room_id, state.to_model())
        self.rooms.update_room_status(room.room_id, RoomStatus.PLAYING.value)
        logger.info(
            "Room %s: game started, %s sits first", room.room_code, state.sitter_id
        )
        return self._create_game_response(room.room_id, stored, request.player_id)

    # -- Game actions ---
    def arm_trap(self, request: ArmTrapRequest) -> GameResponse:
        """Switcher (re)places the trap, optionally locking it in."""
        return self._play(
            request,
            Role.SWITCHER,
            lambda state: arm_trap(state, request.box_id, request.confirm),
        )

    def select_box(self, request: SelectBoxRequest) -> GameResponse:
        return self._play(
            request, Role.SITTER, lambda state: select_box(state, request.box_id)
        )

    def confirm_selection(self, request: ConfirmSelectionRequest) -> GameResponse:
        return self._play(request, Role.SITTER, confirm_selection)

    def reveal(self, request: RevealRequest) -> GameResponse:
        return self._play(request, Role.SITTER, reveal)

    def next_round(self, request: NextRoundRequest) -> GameResponse:
        """Either player may close the half-round once the result has been shown."""
        return self._play(request, None, advance_round)

    def get_game_state(self, request: GetGameRequest) -> GameResponse:
        """
        Retrieve current game state, as seen by the requesting player.
        ----
        Used in "polling" loop by frontend to check when it is the player's turn for instance.
        """
        stored = self._fetch_game(request.room_id)
        state = MatchState.from_model(stored)
        if role_of(state, request.player_id) is None:
            raise RoomError(f"Player {request.player_id} does not play in this room.")
        return self._create_game_response(request.room_id, stored, request.player_id)

    # -- Internal helpers --
    def _play(
        self,
        request: RoomActionRequest,
        required_role: Optional[Role],
        transition: Callable[[MatchState], MatchState],
    ) -> GameResponse:
        """Load the authoritative snapshot, apply one transition and write it back (only if nobody wrote in between)."""
        room = self._fetch_room(request.room_id)
        self._assert_in_room(room, request.player_id)
        if room.status != RoomStatus.PLAYING:
            raise RoomError(f"No game running in room {room.room_code}. status: {room.status}")

        stored = self._fetch_game(request.room_id)
        state = MatchState.from_model(stored)

        role = role_of(state, request.player_id)
        if role is None:
            raise RoomError(f"Player {request.player_id} does not play in this room.")
        if required_role is not None and role != required_role:
            raise NotYourTurnError(
                f"Only the {required_role} can do this. You are the {role} this half-round."
            )

        new_state = transition(state)
        updated = self.games.update_game(
            request.room_id, new_state.to_model(), expected_version=stored.version
        )
        if updated is None:
            raise RepositoryError(f"Game in room {request.room_id} not found.")

        logger.info(
            "Room %s: %s -> %s (round %d)",
            request.room_id,
            state.phase.value,
            new_state.phase.value,
            new_state.round,
        )
        if new_state.phase == Phase.GAME_OVER:
            self.rooms.update_room_status(request.room_id, RoomStatus.FINISHED.value)
            logger.info(
                "Room %s: game over, winner=%s reason=%s",
                request.room_id,
                new_state.winner_id,
                new_state.win_reason,
            )
        return self._create_game_response(request.room_id, updated, request.player_id)

    def _generate_unique_room_code(self) -> str:
        for _ in range(self.settings.room_code_attempts):
            code = "".join(
                self.rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH)
            )
            if not self.rooms.room_code_exists(code):
                return code
        raise RoomError("Could not find a free room code. Try again later.")

    def _create_room_response(self, room: RoomModel, player_id: str) -> RoomResponse:
        return RoomResponse(
            room_id=room.room_id,
            room_code=room.room_code,
            player_id=player_id,
            status=RoomStatus(room.status),
            players=[
                PlayerInfo(
                    player_id=p.player_id, name=p.name, player_number=p.player_number
                )
                for p in room.players
            ],
        )

    def _create_game_response(
        self, room_id: UUID, model: GameModel, viewer_id: str
    ) -> GameResponse:
        """Convert info in GameModel to a GameResponse, hiding the trap from anyone but the switcher."""
        state = MatchState.from_model(model)
        hidden = (
            state.phase in TRAP_HIDDEN_PHASES and viewer_id != state.switcher_id
        )
        return GameResponse(
            room_id=room_id,
            boxes=[
                BoxView(id=box.id, removed=box.removed, trapped=box.trapped and not hidden)
                for box in state.boxes
            ],
            scores={
                state.player_a_id: state.score_a,
                state.player_b_id: state.score_b,
            },
            penalties={
                state.player_a_id: state.penalty_a,
                state.player_b_id: state.penalty_b,
            },
            round=state.round,
            front_half=state.front_half,
            phase=state.phase,
            sitter_id=state.sitter_id,
            switcher_id=state.switcher_id,
            your_role=role_of(state, viewer_id),
            armed_box=None if hidden else state.armed_box,
            selected_box=state.selected_box,
            winner_id=state.winner_id,
            win_reason=state.win_reason,
            updated_at=state.updated_at,
            version=model.version,
        )

    def _fetch_room(self, room_id: UUID) -> RoomModel:
        room = self.rooms.get_room(room_id)
        if room is None:
            raise RepositoryError(f"Room with {room_id=} not found.")
        return room

    def _fetch_game(self, room_id: UUID) -> GameModel:
        """Attempt to find the game in the repository and raise error if it fails."""
        game_model = self.games.get_game(room_id)
        if game_model is None:
            raise RepositoryError(f"Game in room {room_id} not found.")
        return game_model

    def _assert_in_room(self, room: RoomModel, player_id: str) -> None:
        if player_id not in {p.player_id for p in room.players}:
            raise RoomError(f"Player {player_id} is not in room {room.room_code}.")
