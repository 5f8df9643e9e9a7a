"""Matchmaking Directory: find an open match, or create one."""

import logging

from src.core.models import Identity, MatchQuery
from src.core.shared_types import MATCH_MODE, LabelStatus
from src.db.repository import MatchDirectory

logger = logging.getLogger(__name__)


class MatchmakingService:
    def __init__(self, directory: MatchDirectory, limit: int = 10) -> None:
        self.directory = directory
        self.limit = limit

    def find_or_create_match(self, requester: Identity) -> str:
        """First open match found wins. Only one opponent is needed, so there is no ranking between candidates."""
        logger.info("Finding match for user: %s", requester)

        query = MatchQuery(
            label={"mode": MATCH_MODE, "status": str(LabelStatus.OPEN)},
            limit=self.limit,
            authoritative=True,
        )
        matches = self.directory.list_matches(query)
        if matches:
            match_id = matches[0].match_id
            logger.info("Joining existing match: %s", match_id)
            return match_id

        match_id = self.directory.create_match(MATCH_MODE)
        logger.info("Created new match: %s", match_id)
        return match_id
