"""
Ritual Store

SQLAlchemy-backed persistence for ritual snapshots, generation status,
the advisory generation lock and the progress event log.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from uuid import uuid4

from sqlalchemy import create_engine, delete, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.rituals.models import Base, ProgressEventRow, RitualLockRow, RitualRow, RitualStatusRow
from src.schemas.base import RitualStatus
from src.schemas.progress import ProgressEvent
from src.schemas.ritual import RitualRecord, RitualStatusRecord
from src.utils import settings

logger = logging.getLogger(__name__)


def create_store_engine(database_url: str) -> Engine:
    """Engine for a database URL; in-memory SQLite shares one connection."""
    if database_url.startswith("sqlite"):
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            return create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url)


class RitualStore:
    def __init__(
        self,
        database_url: Optional[str] = None,
        engine: Optional[Engine] = None,
        lock_ttl_seconds: int | None = None,
    ):
        self.engine = engine or create_store_engine(database_url or settings.DATABASE_URL)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)
        self.lock_ttl_seconds = lock_ttl_seconds or settings.RITUAL_LOCK_TTL_SECONDS
        Base.metadata.create_all(self.engine)

    # =========================================================================
    # RITUALS
    # =========================================================================

    def save_ritual(self, record: RitualRecord) -> RitualRecord:
        with self.Session() as session:
            session.merge(
                RitualRow(
                    ritual_id=record.ritual_id,
                    hidden=record.hidden,
                    snapshot=record.model_dump(mode="json"),
                    created_at=record.created_at,
                    updated_at=record.updated_at,
                )
            )
            session.commit()
        return record

    def load_ritual(self, ritual_id: str) -> RitualRecord | None:
        with self.Session() as session:
            row = session.get(RitualRow, ritual_id)
            if row is None:
                return None
            return RitualRecord.model_validate(row.snapshot)

    # =========================================================================
    # STATUS
    # =========================================================================

    def write_status(self, ritual_id: str, status: RitualStatus, last_error: str | None = None) -> None:
        with self.Session() as session:
            session.merge(
                RitualStatusRow(
                    ritual_id=ritual_id,
                    status=status.value,
                    last_error=last_error,
                    updated_at=datetime.utcnow(),
                )
            )
            session.commit()
        logger.info(f"Ritual {ritual_id} status → {status.value}")

    def read_status(self, ritual_id: str) -> RitualStatusRecord | None:
        with self.Session() as session:
            row = session.get(RitualStatusRow, ritual_id)
            if row is None:
                return None
            return RitualStatusRecord(
                status=RitualStatus(row.status),
                last_error=row.last_error,
                updated_at=row.updated_at,
            )

    # =========================================================================
    # ADVISORY LOCK
    # =========================================================================

    def _is_stale(self, acquired_at: datetime, now: datetime) -> bool:
        return now - acquired_at >= timedelta(seconds=self.lock_ttl_seconds)

    def acquire_lock(self, ritual_id: str, owner: str | None = None, now: Optional[datetime] = None) -> str | None:
        """
        Try to take the generation lock.

        Returns the owner token, or None when a live lock is held by
        someone else. A lock older than the TTL is reclaimed.
        """
        owner = owner or uuid4().hex
        now = now or datetime.utcnow()
        with self.Session() as session:
            try:
                session.add(RitualLockRow(ritual_id=ritual_id, owner=owner, acquired_at=now))
                session.commit()
                logger.info(f"Lock acquired for ritual {ritual_id}")
                return owner
            except IntegrityError:
                session.rollback()

            row = session.get(RitualLockRow, ritual_id)
            if row is None or not self._is_stale(row.acquired_at, now):
                logger.info(f"Lock for ritual {ritual_id} is held")
                return None

            result = session.execute(
                update(RitualLockRow)
                .where(
                    RitualLockRow.ritual_id == ritual_id,
                    RitualLockRow.owner == row.owner,
                    RitualLockRow.acquired_at == row.acquired_at,
                )
                .values(owner=owner, acquired_at=now)
            )
            session.commit()
            if result.rowcount == 1:
                logger.warning(f"Reclaimed stale lock for ritual {ritual_id} (held since {row.acquired_at})")
                return owner
            return None

    def release_lock(self, ritual_id: str, owner: str | None = None) -> bool:
        with self.Session() as session:
            statement = delete(RitualLockRow).where(RitualLockRow.ritual_id == ritual_id)
            if owner is not None:
                statement = statement.where(RitualLockRow.owner == owner)
            result = session.execute(statement)
            session.commit()
        released = result.rowcount > 0
        if released:
            logger.info(f"Lock released for ritual {ritual_id}")
        return released

    def is_locked(self, ritual_id: str, now: Optional[datetime] = None) -> bool:
        with self.Session() as session:
            row = session.get(RitualLockRow, ritual_id)
            if row is None:
                return False
            return not self._is_stale(row.acquired_at, now or datetime.utcnow())

    # =========================================================================
    # PROGRESS EVENTS
    # =========================================================================

    def append_event(self, event: ProgressEvent) -> ProgressEvent:
        with self.Session() as session:
            session.add(
                ProgressEventRow(
                    event_id=event.id,
                    ritual_id=event.ritual_id,
                    mission_id=event.mission_id,
                    step_id=event.step_id,
                    outcome=event.outcome.value,
                    payload=event.model_dump(mode="json"),
                    created_at=event.created_at,
                )
            )
            session.commit()
        return event

    def list_events(self, ritual_id: str) -> list[ProgressEvent]:
        """Events in append order."""
        with self.Session() as session:
            rows = session.scalars(
                select(ProgressEventRow)
                .where(ProgressEventRow.ritual_id == ritual_id)
                .order_by(ProgressEventRow.seq)
            ).all()
            return [ProgressEvent.model_validate(row.payload) for row in rows]
