"""
NASA OSDR Dataset Catalog Adapter

Snapshot of the Open Science Data Repository biodata dataset listing.
The listing comes back either as a list of datasets or as a mapping of
dataset id -> dataset metadata, depending on the endpoint version.
"""

import logging
from typing import Any, Dict, List

from orbitwatch.schemas.space import Record, SourceId, utcnow
from orbitwatch.services.base import UpstreamFetchError
from orbitwatch.services.ingestion.http import UpstreamClient
from orbitwatch.services.ingestion.interface import SourceFetcher
from orbitwatch.services.ingestion.pick import pick_str, pick_time

logger = logging.getLogger(__name__)

ID_KEYS = ["dataset_id", "id", "uuid", "studyId", "accession", "osdr_id"]
TITLE_KEYS = ["title", "name", "label"]
URL_KEYS = ["REST_URL", "rest_url", "url", "link"]
UPDATED_KEYS = ["updated", "updated_at", "modified", "lastUpdated", "timestamp"]


def _normalize_item(key: str, item: Any) -> Dict[str, Any]:
    if not isinstance(item, dict):
        return {"dataset_id": key, "title": None, "url": None, "updated_at": None}

    updated = pick_time(item, UPDATED_KEYS)
    return {
        "dataset_id": pick_str(item, ID_KEYS) or key,
        "title": pick_str(item, TITLE_KEYS),
        "url": pick_str(item, URL_KEYS),
        "updated_at": updated.isoformat() if updated else None,
    }


def normalize_datasets(data: Any) -> List[Dict[str, Any]]:
    """Flatten either listing shape into a list of dataset dicts."""
    if isinstance(data, list):
        return [_normalize_item(str(i), item) for i, item in enumerate(data)]
    if isinstance(data, dict):
        for wrapper in ("items", "results", "datasets"):
            if isinstance(data.get(wrapper), list):
                return normalize_datasets(data[wrapper])
        return [_normalize_item(str(key), item) for key, item in data.items()]
    raise UpstreamFetchError("osdr-fetcher", f"Unexpected listing type {type(data).__name__}")


class OsdrCatalogFetcher(SourceFetcher):
    """
    Upstream: GET {nasa_api_url}
    Payload: count, items[{dataset_id, title, url, updated_at}]
    """

    source = SourceId.OSDR

    def __init__(self, client: UpstreamClient, url: str):
        self._client = client
        self._url = url

    async def fetch(self, source: SourceId = SourceId.OSDR) -> Record:
        data = await self._client.get_json(self._url, service=self.name)
        items = normalize_datasets(data)
        logger.info(f"OSDR listing: {len(items)} datasets")
        return Record(
            source=SourceId.OSDR,
            observed_at=utcnow(),
            payload={"count": len(items), "items": items},
        )
