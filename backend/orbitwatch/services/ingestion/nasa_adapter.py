"""
NASA Open API Adapters

- APOD: astronomy picture of the day
- NeoWs: near-Earth objects approaching over the next days
- DONKI: solar flares (FLR) and coronal mass ejections (CME)

All three share api.nasa.gov and the same api_key parameter.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List

from orbitwatch.schemas.space import Record, SourceId, utcnow
from orbitwatch.services.base import UpstreamFetchError
from orbitwatch.services.ingestion.http import UpstreamClient
from orbitwatch.services.ingestion.interface import SourceFetcher
from orbitwatch.services.ingestion.pick import pick_float, pick_str, pick_time

logger = logging.getLogger(__name__)

NEO_WINDOW_DAYS = 2
DONKI_LOOKBACK_DAYS = 5


class _NasaFetcher(SourceFetcher):
    """Common base: client, base URL, key and an injectable clock."""

    def __init__(
        self,
        client: UpstreamClient,
        base_url: str,
        api_key: str,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._clock = clock

    async def _get(self, path: str, **params: Any) -> Any:
        params["api_key"] = self._api_key
        return await self._client.get_json(
            f"{self._base_url}{path}", params=params, service=self.name
        )


# =============================================================================
# APOD
# =============================================================================


class ApodFetcher(_NasaFetcher):
    """
    Upstream: GET /planetary/apod
    Payload: date, title, explanation, url, hdurl, media_type, copyright
    """

    source = SourceId.APOD

    async def fetch(self, source: SourceId = SourceId.APOD) -> Record:
        data = await self._get("/planetary/apod", thumbs="true")
        if not isinstance(data, dict):
            raise UpstreamFetchError(self.name, "Expected a JSON object")

        payload = {
            "date": pick_str(data, ["date"]),
            "title": pick_str(data, ["title"]),
            "explanation": pick_str(data, ["explanation"]),
            "url": pick_str(data, ["url", "thumbnail_url"]),
            "hdurl": pick_str(data, ["hdurl"]),
            "media_type": pick_str(data, ["media_type"]),
            "copyright": pick_str(data, ["copyright"]),
        }
        if payload["title"] is None and payload["url"] is None:
            raise UpstreamFetchError(self.name, "APOD payload has neither title nor url")

        return Record(source=SourceId.APOD, observed_at=self._clock(), payload=payload)


# =============================================================================
# NEO FEED
# =============================================================================


def _neo_object(obj: Dict[str, Any]) -> Dict[str, Any]:
    diameter = (
        obj.get("estimated_diameter", {}).get("kilometers", {})
        if isinstance(obj.get("estimated_diameter"), dict)
        else {}
    )
    approaches = obj.get("close_approach_data") or [{}]
    approach = approaches[0] if isinstance(approaches[0], dict) else {}

    return {
        "id": pick_str(obj, ["id", "neo_reference_id"]),
        "name": pick_str(obj, ["name"]),
        "hazardous": bool(obj.get("is_potentially_hazardous_asteroid", False)),
        "diameter_km_max": pick_float(diameter, ["estimated_diameter_max"]),
        "close_approach_date": pick_str(approach, ["close_approach_date_full", "close_approach_date"]),
        "miss_distance_km": pick_float(approach.get("miss_distance") or {}, ["kilometers"]),
        "velocity_kph": pick_float(approach.get("relative_velocity") or {}, ["kilometers_per_hour"]),
    }


class NeoFeedFetcher(_NasaFetcher):
    """
    Upstream: GET /neo/rest/v1/feed?start_date=today&end_date=today+2
    Payload: start_date, end_date, element_count, hazardous_count, objects[]
    """

    source = SourceId.NEO

    async def fetch(self, source: SourceId = SourceId.NEO) -> Record:
        now = self._clock()
        start: date = now.date()
        end: date = start + timedelta(days=NEO_WINDOW_DAYS)

        data = await self._get(
            "/neo/rest/v1/feed",
            start_date=start.isoformat(),
            end_date=end.isoformat(),
        )
        if not isinstance(data, dict) or not isinstance(data.get("near_earth_objects"), dict):
            raise UpstreamFetchError(self.name, "NEO feed has no near_earth_objects mapping")

        objects: List[Dict[str, Any]] = []
        for day in sorted(data["near_earth_objects"]):
            for obj in data["near_earth_objects"][day] or []:
                if isinstance(obj, dict):
                    objects.append(_neo_object(obj))

        payload = {
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "element_count": int(data.get("element_count") or len(objects)),
            "hazardous_count": sum(1 for o in objects if o["hazardous"]),
            "objects": objects,
        }
        return Record(source=SourceId.NEO, observed_at=now, payload=payload)


# =============================================================================
# DONKI
# =============================================================================


def _flare(event: Dict[str, Any]) -> Dict[str, Any]:
    peak = pick_time(event, ["peakTime", "beginTime"])
    return {
        "id": pick_str(event, ["flrID", "activityID"]),
        "class": pick_str(event, ["classType"]),
        "peak_time": peak.isoformat() if peak else None,
        "source_location": pick_str(event, ["sourceLocation"]),
    }


def _cme(event: Dict[str, Any]) -> Dict[str, Any]:
    start = pick_time(event, ["startTime"])
    analyses = event.get("cmeAnalyses") or []
    analysis = analyses[0] if analyses and isinstance(analyses[0], dict) else {}
    return {
        "id": pick_str(event, ["activityID"]),
        "start_time": start.isoformat() if start else None,
        "speed_kms": pick_float(analysis, ["speed"]),
        "type": pick_str(analysis, ["type"]),
        "note": pick_str(event, ["note"]),
    }


class DonkiFetcher(_NasaFetcher):
    """
    Upstream: GET /DONKI/FLR and /DONKI/CME over the last few days
    Payload: start_date, end_date, flr[], cme[]
    """

    source = SourceId.DONKI

    async def fetch(self, source: SourceId = SourceId.DONKI) -> Record:
        now = self._clock()
        end: date = now.date()
        start: date = end - timedelta(days=DONKI_LOOKBACK_DAYS)
        window = {"startDate": start.isoformat(), "endDate": end.isoformat()}

        flr = await self._get("/DONKI/FLR", **window)
        cme = await self._get("/DONKI/CME", **window)

        # DONKI answers an empty window with an empty body, which decodes to None
        flr = flr or []
        cme = cme or []
        if not isinstance(flr, list) or not isinstance(cme, list):
            raise UpstreamFetchError(self.name, "DONKI returned a non-list payload")

        payload = {
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "flr": [_flare(e) for e in flr if isinstance(e, dict)],
            "cme": [_cme(e) for e in cme if isinstance(e, dict)],
        }
        return Record(source=SourceId.DONKI, observed_at=now, payload=payload)
