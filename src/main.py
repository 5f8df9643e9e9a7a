"""
Tic-tac-toe match server: API, WebSocket sessions and the match host.

Run with: uvicorn --factory src.main:create_app
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from src.api import routes, ws
from src.config import Settings, get_settings
from src.core.models import Identity
from src.core.shared_types import Seat
from src.db import database
from src.db.schema import Base
from src.db.sql_repository import SQLLeaderboardRepository, SQLProfileRepository
from src.host.match_registry import MatchRegistry
from src.host.sessions import SessionManager
from src.services.rating_service import RatingService
from src.tictactoe.match import Match, MatchDispatcher

logger = logging.getLogger(__name__)


class SessionRatingService:
    """RatingService on a fresh database session per finished game (a match outlives any request session)."""

    def __init__(self, session_factory: sessionmaker, write_attempts: int) -> None:
        self.session_factory = session_factory
        self.write_attempts = write_attempts

    def update_ratings(self, players: dict[Identity, Seat], winner: Optional[Seat]) -> list[Identity]:
        with self.session_factory() as db:
            service = RatingService(
                SQLProfileRepository(db),
                SQLLeaderboardRepository(db),
                write_attempts=self.write_attempts,
            )
            return service.update_ratings(players, winner)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    engine = engine or database.engine
    session_factory = sessionmaker(bind=engine)
    ratings = SessionRatingService(session_factory, settings.profile_write_attempts)
    sessions = SessionManager()

    def build_match(match_id: str, dispatcher: MatchDispatcher) -> Match:
        return Match(match_id, dispatcher, ratings)

    registry = MatchRegistry(
        build_match,
        send=sessions.send_to_user,
        tick_rate=settings.tick_rate,
        grace_seconds=settings.match_grace_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        Base.metadata.create_all(bind=engine)
        logger.info("Server runtime initialization complete")
        yield
        await registry.shutdown()

    app = FastAPI(title="Tic-Tac-Toe Match Server", lifespan=lifespan)
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.sessions = sessions
    app.state.registry = registry

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(routes.router)
    app.include_router(ws.router)
    return app
