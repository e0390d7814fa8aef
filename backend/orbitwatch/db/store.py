"""
History store

Session-per-call wrapper over the CRUD helpers, so services and routes can
depend on one object (and tests can hand them a fake).
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from orbitwatch.db.database import (
    append_record,
    count_records,
    get_db_context,
    latest_record,
    query_range,
)
from orbitwatch.schemas.space import HistoryEntry, Record, SourceId
from orbitwatch.services.base import PersistenceError


class HistoryStore:
    """Append-only history of records, one transaction per call."""

    async def append(self, record: Record) -> None:
        """Durably append one record. Raises PersistenceError on failure."""
        try:
            async with get_db_context() as session:
                await append_record(session, record)
        except SQLAlchemyError as e:
            # Commit-time failures surface here rather than at flush
            raise PersistenceError(
                "store", f"Failed to commit {record.source.value} record: {e}"
            ) from e

    async def latest(self, source: SourceId) -> Optional[HistoryEntry]:
        async with get_db_context() as session:
            return await latest_record(session, source)

    async def count(self, source: SourceId) -> int:
        async with get_db_context() as session:
            return await count_records(session, source)

    async def query_range(
        self,
        source: SourceId,
        start: datetime,
        end: datetime,
        limit: Optional[int] = None,
    ) -> List[HistoryEntry]:
        async with get_db_context() as session:
            return await query_range(session, source, start, end, limit)


# Singleton instance
_history_store: Optional[HistoryStore] = None


def get_history_store() -> HistoryStore:
    """Get the history store singleton."""
    global _history_store
    if _history_store is None:
        _history_store = HistoryStore()
    return _history_store
