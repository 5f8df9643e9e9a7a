"""HTTP routes: RPCs, the post-authentication hook, health."""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from src.api.dependencies import (
    get_identity,
    get_matchmaking_service,
    get_profile_service,
    get_settings_from_app,
)
from src.api.models import (
    AuthResponse,
    ErrorResponse,
    FindMatchResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    PlayerStatsResponse,
)
from src.config import Settings
from src.core.exceptions import StorageError
from src.services.matchmaking_service import MatchmakingService
from src.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/auth/device", response_model=AuthResponse)
def after_authenticate(
    identity: str = Depends(get_identity),
    profiles: ProfileService = Depends(get_profile_service),
) -> AuthResponse:
    """Called once a device authenticated: make sure the player has stats."""
    logger.info("User authenticated: %s", identity)
    created = profiles.ensure_profile(identity)
    return AuthResponse(user_id=identity, created=created)


# async: creating a match starts its tick loop on the running event loop
@router.post("/rpc/find_match", response_model=FindMatchResponse)
async def find_match(
    identity: str = Depends(get_identity),
    matchmaking: MatchmakingService = Depends(get_matchmaking_service),
) -> FindMatchResponse:
    match_id = matchmaking.find_or_create_match(identity)
    return FindMatchResponse(match_ids=[match_id])


@router.post("/rpc/get_leaderboard", response_model=LeaderboardResponse)
def get_leaderboard(
    identity: str = Depends(get_identity),
    profiles: ProfileService = Depends(get_profile_service),
    settings: Settings = Depends(get_settings_from_app),
):
    try:
        records = profiles.get_leaderboard(settings.leaderboard_limit)
    except StorageError as e:
        logger.error("Error fetching leaderboard: %s", e)
        return _error("Failed to fetch leaderboard")
    return LeaderboardResponse(leaderboard=[LeaderboardEntry.from_record(record) for record in records])


@router.post("/rpc/get_player_stats", response_model=PlayerStatsResponse)
def get_player_stats(
    identity: str = Depends(get_identity),
    profiles: ProfileService = Depends(get_profile_service),
):
    try:
        profile = profiles.get_stats(identity)
    except StorageError as e:
        logger.error("Error fetching player stats: %s", e)
        return _error("Failed to fetch player stats")
    return PlayerStatsResponse.from_profile(profile)


def _error(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error=message).model_dump(),
    )
