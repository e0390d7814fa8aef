"""
Cache module for OrbitWatch.

Keeps the latest record per source in memory, with single-flight refresh.
"""

from orbitwatch.services.cache.record_cache import (
    RecordCache,
    MemoryRecordCache,
    get_record_cache,
    reset_record_cache,
)

__all__ = [
    "RecordCache",
    "MemoryRecordCache",
    "get_record_cache",
    "reset_record_cache",
]
