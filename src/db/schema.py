"""Database tables / schema"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class DBStorageObject(Base):
    """Generic per-user key-value record (collection + key + user_id). Player stats are stored in here."""

    __tablename__ = "storage_objects"
    __table_args__ = (UniqueConstraint("collection", "key", "user_id"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    collection: Mapped[str]
    key: Mapped[str]
    user_id: Mapped[str] = mapped_column(index=True)
    value: Mapped[dict[str, Any]] = mapped_column(JSON)
    version: Mapped[int] = mapped_column(default=1)
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)


class DBLeaderboardRecord(Base):
    __tablename__ = "leaderboard_records"
    __table_args__ = (UniqueConstraint("leaderboard_id", "owner_id"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    leaderboard_id: Mapped[str] = mapped_column(index=True)
    owner_id: Mapped[str]
    score: Mapped[int]
    subscore: Mapped[int] = mapped_column(default=0)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)
