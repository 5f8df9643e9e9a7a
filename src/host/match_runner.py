"""
Per-match tick loop.

Everything that happens to a match (joins, leaves, client messages) is queued in the runner's inbox and handed to
the Match in arrival order, one batch per tick. Ticks of one match never overlap; different matches run independently.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from src.core.models import Identity, MatchLabel
from src.core.shared_types import MatchStatus, OpCode
from src.tictactoe.match import JoinDecision, Match
from src.tictactoe.messages import MatchMessage

logger = logging.getLogger(__name__)

SendFn = Callable[[Identity, dict[str, Any]], Awaitable[bool]]


class BufferedDispatcher:
    """Collects what a match broadcasts during a tick. The runner delivers it once the tick is done."""

    def __init__(self) -> None:
        self.label = MatchLabel()
        self.outbox: list[tuple[OpCode, dict]] = []

    def broadcast(self, op_code: OpCode, payload: dict) -> None:
        self.outbox.append((op_code, payload))

    def update_label(self, label: MatchLabel) -> None:
        self.label = label

    def drain(self) -> list[tuple[OpCode, dict]]:
        messages, self.outbox = self.outbox, []
        return messages


@dataclass
class JoinRequest:
    identity: Identity
    reply: Optional[asyncio.Future] = None


@dataclass
class LeaveRequest:
    identity: Identity


@dataclass
class DataMessage:
    identity: Identity
    op_code: int
    data: str | bytes


Envelope = JoinRequest | LeaveRequest | DataMessage


@dataclass
class TickResult:
    """What a tick produced that has to go back out through the event loop."""

    replies: list[tuple[Identity, dict[str, Any]]] = field(default_factory=list)
    decisions: list[tuple[asyncio.Future, JoinDecision]] = field(default_factory=list)


class MatchRunner:
    def __init__(
        self,
        match: Match,
        dispatcher: BufferedDispatcher,
        send: SendFn,
        tick_rate: int = Match.TICK_RATE,
        grace_seconds: float = 5.0,
        on_closed: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.match = match
        self.dispatcher = dispatcher
        self.send = send
        self.tick_rate = tick_rate
        self.grace_seconds = grace_seconds
        self.on_closed = on_closed
        self.inbox: asyncio.Queue[Envelope] = asyncio.Queue()
        self.presences: set[Identity] = set()
        self.joining: set[Identity] = set()  # joins queued or in the current tick, not yet decided
        self.tick = 0
        self._task: Optional[asyncio.Task] = None
        self._idle_ticks = 0

    @property
    def match_id(self) -> str:
        return self.match.match_id

    @property
    def label(self) -> MatchLabel:
        return self.dispatcher.label

    @property
    def is_terminated(self) -> bool:
        return self.match.status == MatchStatus.TERMINATED

    # --- INBOX (called from the event loop, never blocks) ---
    def request_join(self, identity: Identity) -> asyncio.Future:
        """Queue a join. The returned future resolves with the match's decision during the next tick."""
        reply = asyncio.get_running_loop().create_future()
        if self.is_terminated:
            reply.set_result(JoinDecision(accept=False, reason="Game has ended"))
            return reply
        self.joining.add(identity)
        self.inbox.put_nowait(JoinRequest(identity, reply))
        return reply

    def involves(self, identity: Identity) -> bool:
        """True if the identity is present in the match, or has asked to join it."""
        return identity in self.presences or identity in self.joining

    def leave(self, identity: Identity) -> None:
        self.inbox.put_nowait(LeaveRequest(identity))

    def send_data(self, identity: Identity, op_code: int, data: str | bytes) -> None:
        self.inbox.put_nowait(DataMessage(identity, op_code, data))

    # --- LOOP ---
    def start(self) -> None:
        self._task = asyncio.get_running_loop().create_task(self.run(), name=f"match-{self.match_id}")

    async def run(self) -> None:
        interval = 1 / self.tick_rate
        try:
            while not self.is_terminated:
                await asyncio.sleep(interval)
                try:
                    await self.run_tick()
                except Exception:
                    logger.exception("Match %s: tick %d failed", self.match_id, self.tick)
                if self._should_terminate():
                    await self.terminate()
        except asyncio.CancelledError:
            await self.terminate()
            raise

    async def run_tick(self) -> None:
        """Drain the inbox, let the match process the batch (in a worker thread), deliver the results."""
        batch = self._drain_inbox()
        self.tick += 1
        if batch:
            result = await asyncio.to_thread(self._process, batch)
            self.joining.difference_update(
                envelope.identity for envelope in batch if isinstance(envelope, JoinRequest)
            )
            for reply, decision in result.decisions:
                if not reply.done():
                    reply.set_result(decision)
            for identity, payload in result.replies:
                await self.send(identity, payload)
            await self._flush()
        self._track_idle()

    async def terminate(self) -> None:
        if self.is_terminated:
            return
        self.match.terminate(self.grace_seconds)
        self.joining.clear()
        # Joins still waiting in the inbox will never be processed
        while not self.inbox.empty():
            envelope = self.inbox.get_nowait()
            if isinstance(envelope, JoinRequest) and envelope.reply and not envelope.reply.done():
                envelope.reply.set_result(JoinDecision(accept=False, reason="Game has ended"))
        if self.on_closed:
            self.on_closed(self.match_id)

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    # -- PRIVATE HELPERS ---
    def _drain_inbox(self) -> list[Envelope]:
        batch: list[Envelope] = []
        while not self.inbox.empty():
            batch.append(self.inbox.get_nowait())
        return batch

    def _process(self, batch: list[Envelope]) -> TickResult:
        """Runs in a worker thread. Consecutive data messages are handed to the match as one loop batch."""
        result = TickResult()
        pending: list[MatchMessage] = []

        def flush_messages() -> None:
            if pending:
                self.match.loop(self.tick, list(pending))
                pending.clear()

        for envelope in batch:
            if isinstance(envelope, DataMessage):
                pending.append(MatchMessage(envelope.identity, envelope.op_code, envelope.data))
                continue
            flush_messages()
            if isinstance(envelope, JoinRequest):
                decision = self._join(envelope.identity)
                if envelope.reply is not None:
                    result.decisions.append((envelope.reply, decision))
                result.replies.append((envelope.identity, self._join_reply(decision)))
            else:
                self.presences.discard(envelope.identity)
                self.match.leave(envelope.identity)
        flush_messages()
        return result

    def _join(self, identity: Identity) -> JoinDecision:
        decision = self.match.join_attempt(identity)
        if decision.accept:
            self.presences.add(identity)
            self.match.join(identity)
        return decision

    def _join_reply(self, decision: JoinDecision) -> dict[str, Any]:
        if decision.accept:
            return {"type": "match_joined", "match_id": self.match_id}
        return {"type": "match_join_rejected", "match_id": self.match_id, "reason": decision.reason}

    async def _flush(self) -> None:
        for op_code, payload in self.dispatcher.drain():
            envelope = {
                "type": "match_data",
                "match_id": self.match_id,
                "op_code": int(op_code),
                "data": json.dumps(payload),
            }
            for identity in sorted(self.presences):
                await self.send(identity, envelope)

    def _track_idle(self) -> None:
        """Count ticks spent finished or empty, for the grace period before termination."""
        if self.match.state.game_over or not self.presences:
            self._idle_ticks += 1
        else:
            self._idle_ticks = 0

    def _should_terminate(self) -> bool:
        return self._idle_ticks >= self.grace_seconds * self.tick_rate
