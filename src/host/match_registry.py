"""In-memory registry of live matches. Implements the MatchDirectory used by matchmaking."""

import logging
from typing import Callable, Optional
from uuid import uuid4

from src.core.exceptions import GameStateError
from src.core.models import Identity, MatchListing, MatchQuery
from src.core.shared_types import MATCH_MODE
from src.host.match_runner import BufferedDispatcher, MatchRunner, SendFn
from src.tictactoe.match import Match, MatchDispatcher

logger = logging.getLogger(__name__)

MatchFactory = Callable[[str, MatchDispatcher], Match]


class MatchRegistry:
    """Every match is addressable by its ID and owns its own runner."""

    def __init__(
        self,
        match_factory: MatchFactory,
        send: SendFn,
        tick_rate: int = Match.TICK_RATE,
        grace_seconds: float = 5.0,
        autostart: bool = True,
    ) -> None:
        self.match_factory = match_factory
        self.send = send
        self.tick_rate = tick_rate
        self.grace_seconds = grace_seconds
        self.autostart = autostart
        self._runners: dict[str, MatchRunner] = {}

    def list_matches(self, query: MatchQuery) -> list[MatchListing]:
        """Matches in creation order whose label satisfies the query. Every match hosted here is authoritative."""
        listings = [
            MatchListing(
                match_id=match_id,
                label=runner.label,
                authoritative=True,
                size=len(runner.presences),
            )
            for match_id, runner in self._runners.items()
            if not runner.is_terminated and runner.label.matches(query.label)
        ]
        return listings[: query.limit]

    def create_match(self, kind: str) -> str:
        if kind != MATCH_MODE:
            raise GameStateError(f"Unknown match kind: {kind!r}. Only {MATCH_MODE!r} is hosted.")

        match_id = str(uuid4())
        dispatcher = BufferedDispatcher()
        runner = MatchRunner(
            match=self.match_factory(match_id, dispatcher),
            dispatcher=dispatcher,
            send=self.send,
            tick_rate=self.tick_rate,
            grace_seconds=self.grace_seconds,
            on_closed=self.remove,
        )
        self._runners[match_id] = runner
        if self.autostart:
            runner.start()
        return match_id

    def get(self, match_id: str) -> Optional[MatchRunner]:
        return self._runners.get(match_id)

    def remove(self, match_id: str) -> None:
        if self._runners.pop(match_id, None) is not None:
            logger.info("Match %s removed from registry", match_id)

    def matches_of(self, identity: Identity) -> list[MatchRunner]:
        """Runners in which the identity has a presence or a join that is not decided yet."""
        return [runner for runner in self._runners.values() if runner.involves(identity)]

    async def shutdown(self) -> None:
        """Stop every match (application shutdown)."""
        runners = list(self._runners.values())
        for runner in runners:
            runner.cancel()
        for runner in runners:
            await runner.terminate()
