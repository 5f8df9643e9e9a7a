"""Unit tests for src/host/match_runner.py"""

import asyncio
import json
from typing import Any, Optional

import pytest

from src.core.models import Identity, MatchLabel
from src.core.shared_types import LabelStatus, MatchStatus, OpCode, Seat
from src.host.match_runner import BufferedDispatcher, MatchRunner
from src.tictactoe.match import JoinDecision, Match


# --- MOCK DEPENDENCIES ----
class RecordingSender:
    """Stands in for the session manager: remembers every payload per user."""

    def __init__(self) -> None:
        self.sent: list[tuple[Identity, dict[str, Any]]] = []

    async def __call__(self, identity: Identity, payload: dict[str, Any]) -> bool:
        self.sent.append((identity, payload))
        return True

    def to(self, identity: Identity) -> list[dict[str, Any]]:
        return [payload for user, payload in self.sent if user == identity]

    def match_data(self, identity: Identity) -> list[tuple[int, dict]]:
        return [
            (payload["op_code"], json.loads(payload["data"]))
            for payload in self.to(identity)
            if payload["type"] == "match_data"
        ]


class CountingRatings:
    def __init__(self) -> None:
        self.calls = 0

    def update_ratings(self, players: dict[Identity, Seat], winner: Optional[Seat]) -> list[Identity]:
        self.calls += 1
        return list(players)


def make_runner(grace_seconds: float = 0.5, tick_rate: int = 10) -> tuple[MatchRunner, RecordingSender, CountingRatings]:
    sender = RecordingSender()
    ratings = CountingRatings()
    dispatcher = BufferedDispatcher()
    match = Match("match-1", dispatcher, ratings)
    runner = MatchRunner(match, dispatcher, sender, tick_rate=tick_rate, grace_seconds=grace_seconds)
    return runner, sender, ratings


def move(position) -> str:
    return json.dumps({"position": position})


# -- DISPATCHER --
def test_buffered_dispatcher_collects_until_drained() -> None:
    dispatcher = BufferedDispatcher()
    dispatcher.broadcast(OpCode.MOVE, {"a": 1})
    dispatcher.update_label(MatchLabel(status=LabelStatus.PLAYING))
    assert dispatcher.drain() == [(OpCode.MOVE, {"a": 1})]
    assert dispatcher.drain() == []
    assert dispatcher.label.status == LabelStatus.PLAYING


# -- JOINING --
def test_join_is_decided_in_next_tick() -> None:
    async def scenario() -> None:
        runner, sender, _ = make_runner()
        reply = runner.request_join("alice")
        assert not reply.done()

        await runner.run_tick()
        assert reply.result() == JoinDecision(accept=True)
        assert runner.presences == {"alice"}
        assert sender.to("alice") == [{"type": "match_joined", "match_id": "match-1"}]

    asyncio.run(scenario())


def test_game_start_goes_to_both_players() -> None:
    async def scenario() -> None:
        runner, sender, _ = make_runner()
        runner.request_join("alice")
        runner.request_join("bob")
        await runner.run_tick()

        for identity in ("alice", "bob"):
            assert sender.to(identity)[0]["type"] == "match_joined"
            assert sender.match_data(identity) == [
                (1, {"type": "game_start", "players": {"alice": 1, "bob": 2}, "currentPlayer": 1, "board": [0] * 9})
            ]
        assert runner.label.status == LabelStatus.PLAYING

    asyncio.run(scenario())


def test_third_join_in_same_tick_is_rejected() -> None:
    async def scenario() -> None:
        runner, sender, _ = make_runner()
        replies = [runner.request_join(identity) for identity in ("alice", "bob", "carol")]
        await runner.run_tick()

        assert [reply.result().accept for reply in replies] == [True, True, False]
        assert replies[2].result().reason == "Match is full"
        assert sender.to("carol") == [
            {"type": "match_join_rejected", "match_id": "match-1", "reason": "Match is full"}
        ]
        assert "carol" not in runner.presences

    asyncio.run(scenario())


# -- MOVES --
def test_full_game_through_the_inbox() -> None:
    async def scenario() -> None:
        runner, sender, ratings = make_runner()
        runner.request_join("alice")
        runner.request_join("bob")
        await runner.run_tick()

        for identity, cell in [("alice", 0), ("bob", 4), ("alice", 1), ("bob", 8), ("alice", 2)]:
            runner.send_data(identity, OpCode.PLAYER_MOVE, move(cell))
            await runner.run_tick()

        op_code, payload = sender.match_data("bob")[-1]
        assert op_code == OpCode.GAME_END
        assert payload["winner"] == 1
        assert payload["board"] == [1, 1, 1, 0, 2, 0, 0, 0, 2]
        assert ratings.calls == 1

    asyncio.run(scenario())


def test_messages_in_one_tick_keep_their_order() -> None:
    """Join, join, move, duplicate move: all in one tick, handled in arrival order."""

    async def scenario() -> None:
        runner, sender, _ = make_runner()
        runner.request_join("alice")
        runner.request_join("bob")
        runner.send_data("alice", OpCode.PLAYER_MOVE, move(0))
        runner.send_data("alice", OpCode.PLAYER_MOVE, move(1))
        await runner.run_tick()

        assert runner.match.state.board.to_list() == [1, 0, 0, 0, 0, 0, 0, 0, 0]
        assert [op_code for op_code, _ in sender.match_data("alice")] == [OpCode.GAME_START, OpCode.MOVE]

    asyncio.run(scenario())


def test_move_sent_before_opponent_joined_is_ignored() -> None:
    async def scenario() -> None:
        runner, _, _ = make_runner()
        runner.request_join("alice")
        runner.send_data("alice", OpCode.PLAYER_MOVE, move(0))
        runner.request_join("bob")
        await runner.run_tick()

        assert runner.match.state.board.to_list() == [0] * 9
        assert runner.match.status == MatchStatus.PLAYING

    asyncio.run(scenario())


# -- LEAVING --
def test_leave_notifies_remaining_player_only() -> None:
    async def scenario() -> None:
        runner, sender, ratings = make_runner()
        runner.request_join("alice")
        runner.request_join("bob")
        await runner.run_tick()

        runner.leave("bob")
        await runner.run_tick()

        op_code, payload = sender.match_data("alice")[-1]
        assert op_code == OpCode.GAME_END
        assert payload["reason"] == "player_left"
        assert [op for op, _ in sender.match_data("bob")] == [OpCode.GAME_START]
        assert ratings.calls == 0

    asyncio.run(scenario())


def test_leave_queued_behind_own_join() -> None:
    """Bob disconnects before his join is processed: he does not stay seated and the match can wind down."""

    async def scenario() -> None:
        runner, sender, ratings = make_runner(grace_seconds=0.2, tick_rate=10)
        runner.request_join("alice")
        await runner.run_tick()

        runner.request_join("bob")
        assert runner.involves("bob")
        runner.leave("bob")
        await runner.run_tick()

        assert "bob" not in runner.match.state.players
        assert "bob" not in runner.presences
        assert not runner.involves("bob")
        op_code, payload = sender.match_data("alice")[-1]
        assert op_code == OpCode.GAME_END
        assert payload["reason"] == "player_left"
        assert ratings.calls == 0

        await runner.run_tick()
        assert runner._should_terminate()

    asyncio.run(scenario())


# -- TERMINATION --
def test_terminates_after_grace_period() -> None:
    async def scenario() -> None:
        closed: list[str] = []
        runner, _, _ = make_runner(grace_seconds=0.2, tick_rate=50)
        runner.on_closed = closed.append
        runner.request_join("alice")
        runner.request_join("bob")
        runner.send_data("alice", OpCode.PLAYER_MOVE, move(0))
        runner.leave("bob")

        await asyncio.wait_for(runner.run(), timeout=5)

        assert runner.is_terminated
        assert closed == ["match-1"]

    asyncio.run(scenario())


def test_empty_match_is_terminated() -> None:
    """Nobody ever joined: the match does not live forever."""

    async def scenario() -> None:
        runner, _, _ = make_runner(grace_seconds=0.1, tick_rate=50)
        await asyncio.wait_for(runner.run(), timeout=5)
        assert runner.match.status == MatchStatus.TERMINATED

    asyncio.run(scenario())


def test_pending_joins_are_rejected_on_terminate() -> None:
    async def scenario() -> None:
        runner, _, _ = make_runner()
        reply = runner.request_join("alice")
        await runner.terminate()
        assert reply.result() == JoinDecision(accept=False, reason="Game has ended")

        late = runner.request_join("bob")
        assert late.result().reason == "Game has ended"

    asyncio.run(scenario())


@pytest.mark.parametrize("grace_seconds, tick_rate, ticks", [(5.0, 10, 50), (0.5, 10, 5)])
def test_grace_period_in_ticks(grace_seconds: float, tick_rate: int, ticks: int) -> None:
    async def scenario() -> None:
        runner, _, _ = make_runner(grace_seconds=grace_seconds, tick_rate=tick_rate)
        for _ in range(ticks - 1):
            await runner.run_tick()
        assert not runner._should_terminate()
        await runner.run_tick()
        assert runner._should_terminate()

    asyncio.run(scenario())
