"""
SQLAlchemy models for OrbitWatch.

One generic append-only table holds the history of every source:
(source_id, observed_at, payload). Rows are never updated or deleted here.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Index,
    Integer,
    JSON,
    String,
)
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class SpaceRecord(Base):
    """
    One normalized observation from one upstream source.
    Queried by (source_id, observed_at) range for history and trends.
    """
    __tablename__ = "space_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_id = Column(String(16), nullable=False)  # iss, osdr, apod, neo, donki, spacex
    observed_at = Column(DateTime(timezone=True), nullable=False)
    fetched_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    payload = Column(JSON, nullable=False)

    # Composite index for efficient time-range queries
    __table_args__ = (
        Index("ix_space_records_source_observed", "source_id", "observed_at"),
    )
