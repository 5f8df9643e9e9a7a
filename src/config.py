"""Application settings, read from the environment once."""

import os
from dataclasses import dataclass, field
from functools import lru_cache


def _env_flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./tictactoe.db"
    debug: bool = False
    log_level: str = "INFO"
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    # Match host
    tick_rate: int = 10
    match_grace_seconds: float = 5.0
    # Matchmaking / leaderboard
    matchmaking_limit: int = 10
    leaderboard_limit: int = 20
    # Optimistic profile writes are retried this many times before giving up
    profile_write_attempts: int = 3


@lru_cache
def get_settings() -> Settings:
    return Settings(
        database_url=os.environ.get("DATABASE_URL", Settings.database_url),
        debug=_env_flag("DEBUG"),
        log_level=os.environ.get("LOG_LEVEL", Settings.log_level).upper(),
        allowed_origins=os.environ.get("ALLOWED_ORIGINS", "*").split(","),
        tick_rate=int(os.environ.get("TICK_RATE", Settings.tick_rate)),
        match_grace_seconds=float(os.environ.get("MATCH_GRACE_SECONDS", Settings.match_grace_seconds)),
        matchmaking_limit=int(os.environ.get("MATCHMAKING_LIMIT", Settings.matchmaking_limit)),
        leaderboard_limit=int(os.environ.get("LEADERBOARD_LIMIT", Settings.leaderboard_limit)),
        profile_write_attempts=int(os.environ.get("PROFILE_WRITE_ATTEMPTS", Settings.profile_write_attempts)),
    )
