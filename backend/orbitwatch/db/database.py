"""
Database connection, session management and history queries.

Works with any SQLAlchemy async URL; PostgreSQL (asyncpg) in deployment,
SQLite (aiosqlite) for local runs and tests.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from orbitwatch.db.models import Base, SpaceRecord
from orbitwatch.schemas.space import HistoryEntry, Record, SourceId, utcnow
from orbitwatch.services.base import PersistenceError

logger = logging.getLogger(__name__)

# Global engine and session factory, set by init_engine()
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def init_engine(database_url: str) -> AsyncEngine:
    """
    Create the async engine and session factory.
    Called once on application startup.
    """
    global _engine, _session_factory

    if _engine is not None:
        return _engine

    if database_url.startswith("sqlite"):
        # Note: SQLite requires check_same_thread=False for async
        _engine = create_async_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        _engine = create_async_engine(database_url, echo=False, pool_size=5, pool_pre_ping=True)

    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return _engine


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call init_engine() first.")
    return _engine


async def init_db() -> None:
    """
    Create all tables. Idempotent - safe on every startup.
    Must run before the scheduler starts.
    """
    engine = get_engine()
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ready")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def close_db() -> None:
    """
    Close database connections.
    Called on application shutdown.
    """
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("Database connections closed")
    _engine = None
    _session_factory = None


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions.
    Use when not in a FastAPI route.
    """
    if _session_factory is None:
        raise RuntimeError("Database engine not initialized. Call init_engine() first.")

    async with _session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# CRUD helper functions

async def append_record(session: AsyncSession, record: Record) -> SpaceRecord:
    """
    Append one history row for a record.
    Raises PersistenceError if the insert fails.
    """
    row = SpaceRecord(
        source_id=record.source.value,
        observed_at=_to_utc(record.observed_at),
        fetched_at=utcnow(),
        payload=record.payload,
    )
    try:
        session.add(row)
        await session.flush()
    except SQLAlchemyError as e:
        raise PersistenceError(
            "store", f"Failed to append {record.source.value} record: {e}"
        ) from e
    return row


async def query_range(
    session: AsyncSession,
    source: SourceId,
    start: datetime,
    end: datetime,
    limit: Optional[int] = None,
) -> List[HistoryEntry]:
    """
    History entries for a source with start <= observed_at <= end,
    oldest first.
    """
    stmt = (
        select(SpaceRecord)
        .where(SpaceRecord.source_id == source.value)
        .where(SpaceRecord.observed_at >= _to_utc(start))
        .where(SpaceRecord.observed_at <= _to_utc(end))
        .order_by(SpaceRecord.observed_at.asc(), SpaceRecord.id.asc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)

    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as e:
        raise PersistenceError("store", f"History query for {source.value} failed: {e}") from e
    return [_to_entry(row) for row in result.scalars().all()]


async def latest_record(session: AsyncSession, source: SourceId) -> Optional[HistoryEntry]:
    """Most recently observed history entry for a source."""
    stmt = (
        select(SpaceRecord)
        .where(SpaceRecord.source_id == source.value)
        .order_by(SpaceRecord.observed_at.desc(), SpaceRecord.id.desc())
        .limit(1)
    )
    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as e:
        raise PersistenceError("store", f"Latest query for {source.value} failed: {e}") from e
    row = result.scalar_one_or_none()
    return _to_entry(row) if row is not None else None


async def count_records(session: AsyncSession, source: SourceId) -> int:
    """Number of history entries stored for a source."""
    stmt = select(func.count(SpaceRecord.id)).where(SpaceRecord.source_id == source.value)
    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as e:
        raise PersistenceError("store", f"Count query for {source.value} failed: {e}") from e
    return int(result.scalar_one())


def _to_entry(row: SpaceRecord) -> HistoryEntry:
    return HistoryEntry(
        id=row.id,
        source=SourceId(row.source_id),
        observed_at=row.observed_at,
        fetched_at=row.fetched_at,
        payload=row.payload,
    )
