"""
Source Fetcher Interface

Defines the contract every upstream adapter implements.
"""

from abc import ABC, abstractmethod

from orbitwatch.schemas.space import Record, SourceId


class SourceFetcher(ABC):
    """
    Source Fetcher Contract.

    INPUT: SourceId
    OUTPUT: Record
        - normalized payload, observed_at in UTC

    RAISES: UpstreamFetchError
        - source unreachable, non-2xx status, or payload not parsable
    """

    source: SourceId

    @property
    def name(self) -> str:
        return f"{self.source.value}-fetcher"

    @abstractmethod
    async def fetch(self, source: SourceId) -> Record:
        """Fetch and normalize the current state of the source."""
        pass
