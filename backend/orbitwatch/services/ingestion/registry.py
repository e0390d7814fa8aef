"""
Fetcher registry

Builds one SourceFetcher per SourceId from settings.
"""

from typing import Dict

from orbitwatch.core.config import Settings
from orbitwatch.schemas.space import SourceId
from orbitwatch.services.ingestion.http import UpstreamClient
from orbitwatch.services.ingestion.interface import SourceFetcher
from orbitwatch.services.ingestion.iss_adapter import IssPositionFetcher
from orbitwatch.services.ingestion.nasa_adapter import ApodFetcher, DonkiFetcher, NeoFeedFetcher
from orbitwatch.services.ingestion.osdr_adapter import OsdrCatalogFetcher
from orbitwatch.services.ingestion.spacex_adapter import SpacexNextLaunchFetcher


def build_fetchers(settings: Settings, client: UpstreamClient) -> Dict[SourceId, SourceFetcher]:
    """Every source must have exactly one fetcher."""
    fetchers: Dict[SourceId, SourceFetcher] = {
        SourceId.ISS: IssPositionFetcher(client, settings.where_iss_url),
        SourceId.OSDR: OsdrCatalogFetcher(client, settings.nasa_api_url),
        SourceId.APOD: ApodFetcher(client, settings.nasa_api_base, settings.nasa_api_key),
        SourceId.NEO: NeoFeedFetcher(client, settings.nasa_api_base, settings.nasa_api_key),
        SourceId.DONKI: DonkiFetcher(client, settings.nasa_api_base, settings.nasa_api_key),
        SourceId.SPACEX: SpacexNextLaunchFetcher(client, settings.spacex_api_url),
    }
    missing = set(SourceId) - set(fetchers)
    if missing:
        raise RuntimeError(f"No fetcher registered for: {sorted(s.value for s in missing)}")
    return fetchers
