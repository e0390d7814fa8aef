"""
Shared aiohttp client for upstream APIs.

One session for all fetchers; every failure mode is turned into
UpstreamFetchError so callers only handle one exception type.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from orbitwatch.core.config import Settings, get_settings
from orbitwatch.services.base import UpstreamFetchError

logger = logging.getLogger(__name__)


class UpstreamClient:
    """
    Thin JSON GET client over a lazily created aiohttp session.
    """

    def __init__(self, timeout_seconds: float = 20.0, user_agent: str = "orbitwatch"):
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._user_agent = user_agent
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an active HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={
                    "User-Agent": self._user_agent,
                    "Accept": "application/json",
                },
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        service: str = "upstream",
    ) -> Any:
        """GET a URL and decode its JSON body."""
        session = await self._ensure_session()

        try:
            async with session.get(url, params=params) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise UpstreamFetchError(
                        service,
                        f"HTTP {resp.status} from {url}",
                        {"status": resp.status, "body": body[:200]},
                    )
                return await resp.json(content_type=None)
        except UpstreamFetchError:
            raise
        except asyncio.TimeoutError as e:
            raise UpstreamFetchError(service, f"Timed out fetching {url}") from e
        except aiohttp.ClientError as e:
            raise UpstreamFetchError(service, f"Network error fetching {url}: {e}") from e
        except (json.JSONDecodeError, ValueError) as e:
            raise UpstreamFetchError(service, f"Invalid JSON from {url}: {e}") from e


# Singleton instance
_upstream_client: Optional[UpstreamClient] = None


def get_upstream_client(settings: Optional[Settings] = None) -> UpstreamClient:
    """Get the upstream client singleton."""
    global _upstream_client
    if _upstream_client is None:
        settings = settings or get_settings()
        _upstream_client = UpstreamClient(
            timeout_seconds=settings.http_timeout_seconds,
            user_agent=f"{settings.app_name}/{settings.app_version}",
        )
    return _upstream_client


async def close_upstream_client() -> None:
    global _upstream_client
    if _upstream_client is not None:
        await _upstream_client.close()
        _upstream_client = None
