"""
SpaceX Launch Schedule Adapter

Next scheduled launch from the public SpaceX v4 API.
"""

import logging

from orbitwatch.schemas.space import Record, SourceId, utcnow
from orbitwatch.services.base import UpstreamFetchError
from orbitwatch.services.ingestion.http import UpstreamClient
from orbitwatch.services.ingestion.interface import SourceFetcher
from orbitwatch.services.ingestion.pick import pick_str, pick_time

logger = logging.getLogger(__name__)


class SpacexNextLaunchFetcher(SourceFetcher):
    """
    Upstream: GET {spacex_api_url}
    Payload: id, name, date_utc, flight_number, rocket, launchpad, upcoming
    """

    source = SourceId.SPACEX

    def __init__(self, client: UpstreamClient, url: str):
        self._client = client
        self._url = url

    async def fetch(self, source: SourceId = SourceId.SPACEX) -> Record:
        data = await self._client.get_json(self._url, service=self.name)
        if not isinstance(data, dict):
            raise UpstreamFetchError(self.name, "Expected a JSON object")

        launch_at = pick_time(data, ["date_utc", "net", "date_unix"])
        payload = {
            "id": pick_str(data, ["id"]),
            "name": pick_str(data, ["name", "mission_name"]),
            "date_utc": launch_at.isoformat() if launch_at else None,
            "flight_number": pick_str(data, ["flight_number"]),
            "rocket": pick_str(data, ["rocket"]),
            "launchpad": pick_str(data, ["launchpad"]),
            "upcoming": bool(data.get("upcoming", True)),
            "details": pick_str(data, ["details"]),
        }
        if payload["name"] is None:
            raise UpstreamFetchError(self.name, "Launch payload has no name")

        logger.info(f"Next launch: {payload['name']} at {payload['date_utc']}")
        return Record(source=SourceId.SPACEX, observed_at=utcnow(), payload=payload)
