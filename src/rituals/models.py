"""
Ritual Persistence Models

SQLAlchemy declarative tables backing the ritual store:

- rituals:         one JSON snapshot of the RitualRecord aggregate per ritual
- ritual_status:   generation status seen by polling clients
- ritual_locks:    advisory generation lock; the primary key makes
                   acquisition atomic
- progress_events: append-only learner progress log
"""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class RitualRow(Base):
    __tablename__ = "rituals"

    ritual_id = Column(String(64), primary_key=True)
    hidden = Column(Boolean, default=False, nullable=False)
    snapshot = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)


class RitualStatusRow(Base):
    __tablename__ = "ritual_status"

    ritual_id = Column(String(64), primary_key=True)
    status = Column(String(16), nullable=False)
    last_error = Column(Text)
    updated_at = Column(DateTime, default=datetime.utcnow)


class RitualLockRow(Base):
    __tablename__ = "ritual_locks"

    ritual_id = Column(String(64), primary_key=True)
    owner = Column(String(64), nullable=False)
    acquired_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ProgressEventRow(Base):
    __tablename__ = "progress_events"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(String(64), unique=True, nullable=False)
    ritual_id = Column(String(64), index=True, nullable=False)
    mission_id = Column(String(64), nullable=False)
    step_id = Column(String(64), nullable=False)
    outcome = Column(String(16), nullable=False)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
