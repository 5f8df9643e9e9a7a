"""
Typed state of one match.

`MatchModel` is the plain, serializable form of the state (`Match.to_model`). Whenever that form is turned back
into domain objects, it goes through `MatchState.from_model`, which validates it.
"""

from dataclasses import dataclass, field
from typing import Optional, Self

from src.core.exceptions import GameStateError
from src.core.models import Identity, MatchModel
from src.core.shared_types import Seat
from src.tictactoe.board import BOARD_SIZE, VALID_CELL_VALUES, Board, detect_winner

MAX_PLAYERS = 2


@dataclass
class MatchState:
    board: Board = field(default_factory=Board.empty)
    current_player: Seat = Seat.PLAYER_1
    players: dict[Identity, Seat] = field(default_factory=dict)
    winner: Optional[Seat] = None
    game_over: bool = False
    start_time: int = 0  # epoch milliseconds

    @classmethod
    def from_model(cls, model: MatchModel) -> Self:
        """Define how to construct a MatchState from the information the host actually stores."""

        # Validation
        if len(model.board) != BOARD_SIZE:
            raise GameStateError(f"Board must have {BOARD_SIZE} cells, got {len(model.board)}.")
        if any(cell not in VALID_CELL_VALUES for cell in model.board):
            raise GameStateError(f"Board contains unknown cell values: {model.board!r}")
        if len(model.players) > MAX_PLAYERS:
            raise GameStateError(f"At most {MAX_PLAYERS} players, got {len(model.players)}.")
        seats = [_to_seat(seat) for seat in model.players.values()]
        if len(set(seats)) != len(seats):
            raise GameStateError(f"Seats must be unique: {model.players!r}")
        if model.winner is not None and not model.game_over:
            raise GameStateError("A winner can only be set once the game is over.")

        board = Board.from_list(list(model.board))
        winner = _to_seat(model.winner) if model.winner is not None else None
        if winner is not None and detect_winner(board) != winner:
            raise GameStateError(f"Winner {winner} does not match the board {model.board!r}")

        return cls(
            board=board,
            current_player=_to_seat(model.current_player),
            players=dict(zip(model.players.keys(), seats)),
            winner=winner,
            game_over=bool(model.game_over),
            start_time=int(model.start_time),
        )

    def to_model(self) -> MatchModel:
        """Encode back into the format the host uses"""
        return MatchModel(
            board=self.board.to_list(),
            current_player=int(self.current_player),
            players={identity: int(seat) for identity, seat in self.players.items()},
            winner=int(self.winner) if self.winner is not None else None,
            game_over=self.game_over,
            start_time=self.start_time,
        )

    def seat_of(self, identity: Identity) -> Optional[Seat]:
        return self.players.get(identity)

    def next_free_seat(self) -> Optional[Seat]:
        taken = set(self.players.values())
        return next((seat for seat in Seat if seat not in taken), None)

    def players_payload(self) -> dict[Identity, int]:
        return {identity: int(seat) for identity, seat in self.players.items()}


def _to_seat(value: object) -> Seat:
    try:
        return Seat(value)
    except ValueError as e:
        raise GameStateError(f"Invalid seat: {value!r}") from e
