"""
OrbitWatch Services

Ingestion, caching, scheduling and trend calculations.
"""

from orbitwatch.services.base import ServiceError

__all__ = ["ServiceError"]
