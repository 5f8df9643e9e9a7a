"""
The Match class is the authoritative state machine of a single tic-tac-toe match.
It is the entrypoint into the domain layer for the host: every join, leave and move of one match goes through it,
always from inside that match's own (serialized) tick.

AWAITING_PLAYERS --(2nd player joins)--> PLAYING --(host terminates)--> TERMINATED
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from pydantic import ValidationError

from src.core.exceptions import (
    GameError,
    GameStateError,
    MatchEndedError,
    MatchFullError,
    NotYourTurnError,
)
from src.core.models import Identity, MatchLabel, MatchModel
from src.core.shared_types import EndReason, LabelStatus, MatchStatus, OpCode, Seat
from src.tictactoe.board import apply_move, detect_winner, is_draw
from src.tictactoe.match_state import MAX_PLAYERS, MatchState
from src.tictactoe.messages import (
    MatchMessage,
    PlayerMoveMessage,
    game_end_payload,
    game_start_payload,
    move_payload,
)

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class MatchDispatcher(Protocol):
    """Outbound side of the transport, as seen from inside a match."""

    def broadcast(self, op_code: OpCode, payload: dict) -> None:
        """Send a message to every player currently in the match."""
        ...

    def update_label(self, label: MatchLabel) -> None:
        """Publish new discovery metadata for this match."""
        ...


class RatingUpdater(Protocol):
    def update_ratings(self, players: dict[Identity, Seat], winner: Optional[Seat]) -> list[Identity]:
        """Apply a finished game's result to the profiles of all participants."""
        ...


@dataclass
class JoinDecision:
    accept: bool
    reason: Optional[str] = None


class Match:
    TICK_RATE = 10  # ticks per second

    def __init__(
        self,
        match_id: str,
        dispatcher: MatchDispatcher,
        ratings: RatingUpdater,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.match_id = match_id
        self.dispatcher = dispatcher
        self.ratings = ratings
        self._clock = clock
        self.state = MatchState(start_time=clock())
        self.status = MatchStatus.AWAITING_PLAYERS
        self.label = MatchLabel(status=LabelStatus.OPEN)
        logger.info("Match %s initialized", match_id)

    def to_model(self) -> MatchModel:
        return self.state.to_model()

    # --- PRESENCE ---
    def join_attempt(self, identity: Identity) -> JoinDecision:
        """Decide if the identity may join. The seat itself is only handed out by `join`."""
        try:
            self._assert_can_join(identity)
        except (MatchFullError, MatchEndedError) as e:
            logger.info("Match %s rejected %s: %s", self.match_id, identity, e)
            return JoinDecision(accept=False, reason=str(e))
        return JoinDecision(accept=True)

    def join(self, identity: Identity) -> Optional[Seat]:
        """Seat an admitted identity. The game starts as soon as the second seat is filled."""
        if self.status == MatchStatus.TERMINATED:
            return None
        if identity in self.state.players:
            return self.state.players[identity]
        seat = self.state.next_free_seat()
        if seat is None:
            logger.warning("Match %s has no free seat for %s", self.match_id, identity)
            return None

        self.state.players[identity] = seat
        logger.info("Match %s: player %d joined: %s", self.match_id, seat, identity)

        if len(self.state.players) == MAX_PLAYERS:
            self._start_game()
        return seat

    def leave(self, identity: Identity) -> None:
        """A player left. An unfinished game ends without a result (and without touching ratings)."""
        if self.status == MatchStatus.TERMINATED:
            return
        if self.state.players.pop(identity, None) is None:
            return
        logger.info("Match %s: player left: %s", self.match_id, identity)

        if len(self.state.players) < MAX_PLAYERS and not self.state.game_over:
            self.state.game_over = True
            self.dispatcher.broadcast(
                OpCode.GAME_END,
                game_end_payload(self.state, reason=EndReason.PLAYER_LEFT),
            )
            logger.info("Match %s ended: player left", self.match_id)

    # --- TICK ---
    def loop(self, tick: int, messages: list[MatchMessage]) -> None:
        """Process one tick's batch of messages, strictly in delivery order."""
        for message in messages:
            if message.op_code != OpCode.PLAYER_MOVE:
                logger.debug("Match %s tick %d: ignoring op code %s", self.match_id, tick, message.op_code)
                continue
            try:
                move = PlayerMoveMessage.model_validate_json(message.data)
            except ValidationError as e:
                logger.warning(
                    "Match %s tick %d: dropping malformed move from %s: %s",
                    self.match_id,
                    tick,
                    message.sender,
                    e.errors(include_url=False),
                )
                continue
            self.process_move(message.sender, move.position)

    def process_move(self, identity: Identity, cell: int) -> bool:
        """
        Attempt a move. Returns False (and changes nothing) if the move is rejected.
        ----

        1. validate: game running, cell on the board and empty, identity seated and on turn
        2. place the mark
        3. win? --> update ratings, broadcast game_end
        4. draw? --> update ratings, broadcast game_end with draw flag
        5. otherwise hand the turn to the opponent and broadcast the move
        """
        try:
            seat = self._validate_move(identity)
            board = apply_move(self.state.board, cell, seat)
        except GameError as e:
            logger.debug("Match %s: move %r by %s ignored: %s", self.match_id, cell, identity, e)
            return False

        self.state.board = board

        winner = detect_winner(board)
        if winner is not None:
            self.state.winner = winner
            self._finish_game()
            self.dispatcher.broadcast(OpCode.GAME_END, game_end_payload(self.state))
            logger.info("Match %s ended, winner: player %d", self.match_id, winner)
        elif is_draw(board):
            self._finish_game()
            self.dispatcher.broadcast(OpCode.GAME_END, game_end_payload(self.state, draw=True))
            logger.info("Match %s ended in a draw", self.match_id)
        else:
            self.state.current_player = seat.opponent
            self.dispatcher.broadcast(OpCode.MOVE, move_payload(self.state, cell, seat))
        return True

    # --- HOST CALLBACKS ---
    def signal(self, data: str) -> Optional[str]:
        """Signals from the host do not change the game. They are acknowledged by echoing the data."""
        logger.info("Match %s signal received: %s", self.match_id, data)
        return data

    def terminate(self, grace_seconds: float = 0) -> None:
        if self.status == MatchStatus.TERMINATED:
            return
        self.status = MatchStatus.TERMINATED
        logger.info("Match %s terminated (grace %.1fs)", self.match_id, grace_seconds)

    # -- PRIVATE HELPERS ---
    def _assert_can_join(self, identity: Identity) -> None:
        if self.status == MatchStatus.TERMINATED:
            raise MatchEndedError("Game has ended")
        if identity in self.state.players:
            return
        if len(self.state.players) >= MAX_PLAYERS:
            raise MatchFullError("Match is full")
        if self.state.game_over:
            raise MatchEndedError("Game has ended")

    def _start_game(self) -> None:
        self.status = MatchStatus.PLAYING
        self.state.start_time = self._clock()
        self.label = MatchLabel(mode=self.label.mode, status=LabelStatus.PLAYING)
        self.dispatcher.update_label(self.label)
        self.dispatcher.broadcast(OpCode.GAME_START, game_start_payload(self.state))
        logger.info("Match %s started with 2 players", self.match_id)

    def _validate_move(self, identity: Identity) -> Seat:
        """Returns the seat of the moving identity, if it is allowed to move at all."""
        if self.state.game_over:
            raise GameStateError("Game is over.")
        if self.status != MatchStatus.PLAYING:
            raise GameStateError(f"Match is not in progress. status: {self.status}")
        seat = self.state.seat_of(identity)
        if seat is None:
            raise NotYourTurnError(f"{identity} has no seat in this match.")
        if seat != self.state.current_player:
            raise NotYourTurnError(f"It is not your turn. Waiting for player {self.state.current_player}.")
        return seat

    def _finish_game(self) -> None:
        """Game over is final. Ratings are updated before anybody hears about the result."""
        self.state.game_over = True
        try:
            self.ratings.update_ratings(dict(self.state.players), self.state.winner)
        except Exception:
            logger.exception("Match %s: rating update failed, result stands", self.match_id)
