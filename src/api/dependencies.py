"""FastAPI dependencies: database session, identity, services and host objects stored on the app."""

from typing import Generator

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from src.config import Settings
from src.db.sql_repository import SQLLeaderboardRepository, SQLProfileRepository
from src.host.match_registry import MatchRegistry
from src.host.sessions import SessionManager
from src.services.matchmaking_service import MatchmakingService
from src.services.profile_service import ProfileService


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_identity(x_user_id: str = Header(..., min_length=1)) -> str:
    """The authenticated player. Authentication happens in front of this service."""
    return x_user_id


def get_settings_from_app(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> MatchRegistry:
    return request.app.state.registry


def get_sessions(request: Request) -> SessionManager:
    return request.app.state.sessions


def get_profile_service(db: Session = Depends(get_db)) -> ProfileService:
    return ProfileService(SQLProfileRepository(db), SQLLeaderboardRepository(db))


def get_matchmaking_service(
    registry: MatchRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings_from_app),
) -> MatchmakingService:
    return MatchmakingService(registry, limit=settings.matchmaking_limit)
