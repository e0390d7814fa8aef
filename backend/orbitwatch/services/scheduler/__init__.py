"""
Scheduler module for OrbitWatch.

Periodic background refresh of every source.
"""

from orbitwatch.services.scheduler.scheduler import (
    Scheduler,
    get_scheduler,
    start_scheduler,
    stop_scheduler,
)

__all__ = [
    "Scheduler",
    "get_scheduler",
    "start_scheduler",
    "stop_scheduler",
]
