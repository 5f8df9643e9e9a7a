"""Implementation of the Profile- and LeaderboardRepository using SQLAlchemy"""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.exceptions import ConcurrentWriteError, StorageError
from src.core.models import Identity, LeaderboardRecord, PlayerProfile
from src.db.schema import DBLeaderboardRecord, DBStorageObject

STATS_COLLECTION = "player_stats"
STATS_KEY = "stats"
LEADERBOARD_ID = "global_leaderboard"


class SQLProfileRepository:
    """Profiles stored as JSON storage objects in collection 'player_stats', key 'stats', one per user."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_profile(self, identity: Identity) -> tuple[PlayerProfile, int] | None:
        """Stored profile and its version, if a record exists."""
        with self._storage_errors("read", identity):
            record = self._fetch_record(identity)
        if record is None:
            return None
        try:
            return PlayerProfile.from_dict(record.value), record.version
        except (AttributeError, TypeError, ValueError) as e:
            raise StorageError(f"Stored stats of {identity=} cannot be decoded: {record.value!r}") from e

    def create_profile(self, identity: Identity, profile: PlayerProfile) -> int:
        """Store a new profile and return its version."""
        record = DBStorageObject(
            collection=STATS_COLLECTION,
            key=STATS_KEY,
            user_id=identity,
            value=profile.to_dict(),
            version=1,
        )
        with self._storage_errors("create", identity):
            self.db.add(record)
            try:
                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                raise ConcurrentWriteError(f"Stats for {identity=} already exist.") from e
            self.db.refresh(record)
            return record.version

    def update_profile(self, identity: Identity, profile: PlayerProfile, expected_version: int) -> int:
        """Conditional write: only succeeds if nobody wrote the record since it was read."""
        query = (
            update(DBStorageObject)
            .where(
                DBStorageObject.collection == STATS_COLLECTION,
                DBStorageObject.key == STATS_KEY,
                DBStorageObject.user_id == identity,
                DBStorageObject.version == expected_version,
            )
            .values(value=profile.to_dict(), version=expected_version + 1)
            .execution_options(synchronize_session=False)
        )
        with self._storage_errors("update", identity):
            result = self.db.execute(query)
            self.db.commit()
            if result.rowcount == 0:
                raise ConcurrentWriteError(
                    f"Stats for {identity=} are no longer at version {expected_version}."
                )
            self.db.expire_all()
            return expected_version + 1

    def _fetch_record(self, identity: Identity) -> DBStorageObject | None:
        query = select(DBStorageObject).where(
            DBStorageObject.collection == STATS_COLLECTION,
            DBStorageObject.key == STATS_KEY,
            DBStorageObject.user_id == identity,
        )
        return self.db.scalar(query)

    @contextmanager
    def _storage_errors(self, action: str, identity: Identity) -> Iterator[None]:
        """Translate database errors into StorageError, leaving the session usable."""
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Could not {action} stats for {identity=}: {e}") from e


class SQLLeaderboardRepository:
    """A single leaderboard, sorted by score (then subscore) descending."""

    def __init__(self, db_session: Session, leaderboard_id: str = LEADERBOARD_ID) -> None:
        self.db = db_session
        self.leaderboard_id = leaderboard_id

    def write_record(self, owner_id: Identity, score: int, subscore: int) -> LeaderboardRecord:
        """Set the owner's score. Last writer wins."""
        try:
            record = self._fetch_record(owner_id)
            if record is None:
                record = DBLeaderboardRecord(
                    leaderboard_id=self.leaderboard_id,
                    owner_id=owner_id,
                    score=score,
                    subscore=subscore,
                )
                self.db.add(record)
            else:
                record.score = score
                record.subscore = subscore
            self.db.commit()
            self.db.refresh(record)
            return self._to_model(record, self._rank_of(record))
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Could not write leaderboard record for {owner_id=}: {e}") from e

    def list_records(self, limit: int) -> list[LeaderboardRecord]:
        """Top records, highest score first."""
        query = (
            select(DBLeaderboardRecord)
            .where(DBLeaderboardRecord.leaderboard_id == self.leaderboard_id)
            .order_by(
                DBLeaderboardRecord.score.desc(),
                DBLeaderboardRecord.subscore.desc(),
                DBLeaderboardRecord.updated_at.asc(),
            )
            .limit(limit)
        )
        try:
            records = self.db.scalars(query).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Could not list leaderboard {self.leaderboard_id!r}: {e}") from e
        return [self._to_model(record, rank) for rank, record in enumerate(records, start=1)]

    def _fetch_record(self, owner_id: Identity) -> DBLeaderboardRecord | None:
        query = select(DBLeaderboardRecord).where(
            DBLeaderboardRecord.leaderboard_id == self.leaderboard_id,
            DBLeaderboardRecord.owner_id == owner_id,
        )
        return self.db.scalar(query)

    def _rank_of(self, record: DBLeaderboardRecord) -> int:
        """1 + number of records placed strictly above this one."""
        above = select(DBLeaderboardRecord).where(
            DBLeaderboardRecord.leaderboard_id == self.leaderboard_id,
            (DBLeaderboardRecord.score > record.score)
            | (
                (DBLeaderboardRecord.score == record.score)
                & (DBLeaderboardRecord.subscore > record.subscore)
            ),
        )
        return len(self.db.scalars(above).all()) + 1

    def _to_model(self, record: DBLeaderboardRecord, rank: int) -> LeaderboardRecord:
        """Convert SQLAlchemy model to data transfer model."""
        return LeaderboardRecord(
            owner_id=record.owner_id,
            score=record.score,
            subscore=record.subscore,
            rank=rank,
            update_time=_to_epoch_ms(record.updated_at),
        )


def _to_epoch_ms(moment: datetime) -> int:
    # SQLite hands back naive datetimes; they were written as UTC
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)
