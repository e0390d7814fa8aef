"""
Polling scheduler.

One asyncio task per source. Each task refreshes its source, then waits for
the source's interval or for the stop signal, whichever comes first. A
failed tick is logged and the next one fires on the normal cadence: the next
tick is the retry, so there is no backoff.

Tasks are independent: a slow or failing source only delays itself.
"""

import asyncio
import logging
from datetime import datetime
from typing import Dict, Optional

from orbitwatch.schemas.space import SourceId, utcnow
from orbitwatch.services.base import UpstreamFetchError
from orbitwatch.services.ingestion.service import IngestionService

logger = logging.getLogger(__name__)


class Scheduler:
    """
    Usage:
        scheduler = Scheduler(service, settings.schedule_config())
        scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(self, service: IngestionService, intervals: Dict[SourceId, int]):
        for source, interval in intervals.items():
            if interval < 1:
                raise ValueError(f"Interval for {source.value} must be >= 1s, got {interval}")

        self._service = service
        self._intervals = dict(intervals)
        self._tasks: Dict[SourceId, asyncio.Task] = {}
        self._stop = asyncio.Event()
        self._ticks: Dict[SourceId, int] = {s: 0 for s in intervals}
        self._last_tick: Dict[SourceId, Optional[datetime]] = {s: None for s in intervals}

    @property
    def is_running(self) -> bool:
        return any(not t.done() for t in self._tasks.values())

    def start(self) -> None:
        """Spawn one polling task per source."""
        if self.is_running:
            logger.warning("Scheduler already running")
            return

        self._stop.clear()
        for source, interval in self._intervals.items():
            self._tasks[source] = asyncio.create_task(
                self.run(source, interval), name=f"poll-{source.value}"
            )
        logger.info(
            "Scheduler started: "
            + ", ".join(f"{s.value}={i}s" for s, i in self._intervals.items())
        )

    async def stop(self) -> None:
        """Stop every task. An in-flight fetch is abandoned."""
        self._stop.set()
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("Scheduler stopped")

    async def run(self, source: SourceId, interval: int) -> None:
        """Poll one source until stopped."""
        while not self._stop.is_set():
            await self.tick(source)

            try:
                await asyncio.wait_for(self._stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue

    async def tick(self, source: SourceId) -> bool:
        """
        One refresh of one source. Never raises except on cancellation.
        Returns True if a new record was cached.
        """
        self._ticks[source] = self._ticks.get(source, 0) + 1
        self._last_tick[source] = utcnow()

        try:
            await self._service.refresh(source)
            return True
        except asyncio.CancelledError:
            raise
        except UpstreamFetchError as e:
            logger.info(
                f"Tick for {source.value} failed, retrying in {self._intervals.get(source)}s: {e.message}"
            )
        except Exception as e:
            logger.exception(f"Unexpected error polling {source.value}: {e}")
        return False

    def status(self) -> Dict[str, dict]:
        """Per-source task state, for diagnostics."""
        out = {}
        for source, interval in self._intervals.items():
            task = self._tasks.get(source)
            last_tick = self._last_tick.get(source)
            outcome = self._service.status(source)
            out[source.value] = {
                "interval_seconds": interval,
                "running": task is not None and not task.done(),
                "ticks": self._ticks.get(source, 0),
                "last_tick": last_tick.isoformat() if last_tick else None,
                "last_success": outcome.last_success.isoformat() if outcome.last_success else None,
                "last_error": outcome.last_error,
                "consecutive_failures": outcome.consecutive_failures,
            }
        return out


# Singleton instance
_scheduler: Optional[Scheduler] = None


def start_scheduler(service: IngestionService, intervals: Dict[SourceId, int]) -> Scheduler:
    """Create and start the scheduler."""
    global _scheduler
    _scheduler = Scheduler(service, intervals)
    _scheduler.start()
    return _scheduler


def get_scheduler() -> Optional[Scheduler]:
    """The running scheduler, or None when background polling is disabled."""
    return _scheduler


async def stop_scheduler() -> None:
    """Stop the scheduler."""
    global _scheduler
    if _scheduler:
        await _scheduler.stop()
        _scheduler = None
