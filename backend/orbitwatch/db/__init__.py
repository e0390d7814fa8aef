"""
Database module for OrbitWatch.

Append-only history of every source, queryable by time range.
"""

from orbitwatch.db.database import (
    init_engine,
    init_db,
    close_db,
    get_db_context,
    append_record,
    query_range,
    latest_record,
    count_records,
)
from orbitwatch.db.models import Base, SpaceRecord
from orbitwatch.db.store import HistoryStore, get_history_store

__all__ = [
    "init_engine",
    "init_db",
    "close_db",
    "get_db_context",
    "append_record",
    "query_range",
    "latest_record",
    "count_records",
    "Base",
    "SpaceRecord",
    "HistoryStore",
    "get_history_store",
]
