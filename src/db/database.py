"""Database engine"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from src.config import get_settings


def build_engine(database_url: str, echo: bool = False) -> Engine:
    # Sessions are used from the match runners' worker threads
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, echo=echo, connect_args=connect_args)


engine = build_engine(get_settings().database_url, echo=get_settings().debug)
