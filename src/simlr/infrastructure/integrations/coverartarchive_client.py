"""CoverArtArchive HTTP client.

Hey future me - CoverArtArchive (CAA) hosts artwork for MusicBrainz release
groups. We never download images; we only probe whether a 500px front cover
exists and hand the stable CAA URL to the client.

- HEAD /release-group/{mbid}/front-500 → 307 to archive.org → 200 when art exists
- 404 means "no art for this release group", which is normal for indie releases
- anything else is a real failure and propagates as ExternalServiceError
"""

import asyncio
import logging
from typing import Any

import httpx

from simlr.config.settings import CoverArtSettings
from simlr.domain.exceptions import ExternalServiceError
from simlr.domain.ports import ICoverArtClient
from simlr.infrastructure.rate_limiter import backoff_delay

logger = logging.getLogger(__name__)


class CoverArtArchiveClient(ICoverArtClient):
    """HTTP client for CoverArtArchive front cover probes.

    Usage:
        async with CoverArtArchiveClient(settings.coverart) as client:
            url = await client.get_release_group_front_url(rg_mbid)
    """

    API_BASE_URL = "https://coverartarchive.org"
    FRONT_SIZE = "front-500"

    def __init__(self, settings: CoverArtSettings, user_agent: str = "simlr-fm/1.0") -> None:
        self.settings = settings
        self._user_agent = user_agent
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client. CAA answers with redirects, so follow them."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.API_BASE_URL,
                headers={"User-Agent": self._user_agent},
                timeout=self.settings.timeout,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def front_url(self, mbid: str) -> str:
        return f"{self.API_BASE_URL}/release-group/{mbid}/{self.FRONT_SIZE}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        client = await self._get_client()
        max_retries = self.settings.max_retries
        for attempt in range(max_retries + 1):
            try:
                return await client.request(method, url, **kwargs)
            except httpx.TransportError as e:
                if attempt >= max_retries:
                    raise ExternalServiceError("Cover Art Archive", str(e)) from e
                delay = backoff_delay(self.settings.initial_retry_delay, attempt)
                logger.warning(
                    "Cover Art Archive transport error (attempt %d/%d): %s",
                    attempt + 1,
                    max_retries,
                    e,
                )
                await asyncio.sleep(delay)
        raise ExternalServiceError("Cover Art Archive", "no request attempted")

    async def get_release_group_front_url(self, mbid: str) -> str | None:
        """
        Probe the release group's 500px front cover.

        Args:
            mbid: MusicBrainz release group ID

        Returns:
            The CAA front-500 URL, or None if CAA has no artwork

        Raises:
            ExternalServiceError: On any non-404 error response
        """
        url = self.front_url(mbid)
        response = await self._request("HEAD", f"/release-group/{mbid}/{self.FRONT_SIZE}")

        if response.is_success:
            return url
        if response.status_code == 404:
            return None
        raise ExternalServiceError(
            "Cover Art Archive",
            f"{response.status_code} {response.reason_phrase}",
            status_code=response.status_code,
        )

    async def __aenter__(self) -> "CoverArtArchiveClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
