"""
ISS Position Adapter

Current position of the International Space Station from wheretheiss.at.
"""

import logging

from orbitwatch.schemas.space import Record, SourceId, utcnow
from orbitwatch.services.base import UpstreamFetchError
from orbitwatch.services.ingestion.http import UpstreamClient
from orbitwatch.services.ingestion.interface import SourceFetcher
from orbitwatch.services.ingestion.pick import pick_float, pick_str, pick_time

logger = logging.getLogger(__name__)


class IssPositionFetcher(SourceFetcher):
    """
    Upstream: GET {where_iss_url}
    Payload: latitude, longitude, altitude (km), velocity (km/h), visibility
    """

    source = SourceId.ISS

    def __init__(self, client: UpstreamClient, url: str):
        self._client = client
        self._url = url

    async def fetch(self, source: SourceId = SourceId.ISS) -> Record:
        data = await self._client.get_json(self._url, service=self.name)
        if not isinstance(data, dict):
            raise UpstreamFetchError(self.name, "Expected a JSON object")

        lat = pick_float(data, ["latitude", "lat"])
        lon = pick_float(data, ["longitude", "lon"])
        if lat is None or lon is None:
            raise UpstreamFetchError(self.name, "Position payload has no latitude/longitude")

        payload = {
            "latitude": lat,
            "longitude": lon,
            "altitude": pick_float(data, ["altitude", "alt"]),
            "velocity": pick_float(data, ["velocity", "speed"]),
            "visibility": pick_str(data, ["visibility"]),
            "name": pick_str(data, ["name"]) or "iss",
        }
        observed_at = pick_time(data, ["timestamp", "time", "observed_at"]) or utcnow()

        logger.debug(f"ISS at ({lat:.2f}, {lon:.2f})")
        return Record(source=SourceId.ISS, observed_at=observed_at, payload=payload)
