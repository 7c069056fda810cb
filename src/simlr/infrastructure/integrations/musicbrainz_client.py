"""MusicBrainz HTTP client with rate limiting and retry."""

import asyncio
import logging
from typing import Any

import httpx

from simlr.config.settings import MusicBrainzSettings
from simlr.domain.dtos import AlbumDTO, ArtistCreditDTO
from simlr.domain.exceptions import ExternalServiceError
from simlr.domain.ports import IMusicBrainzClient
from simlr.infrastructure.rate_limiter import TokenBucket, backoff_delay, limiter_for

logger = logging.getLogger(__name__)


def extract_release_year(date_string: str | None) -> int | None:
    """Year from a MusicBrainz date ("YYYY", "YYYY-MM" or "YYYY-MM-DD")."""
    if not date_string:
        return None
    try:
        return int(date_string[:4])
    except ValueError:
        return None


def _artist_credits(release_group: dict[str, Any]) -> list[ArtistCreditDTO]:
    return [
        ArtistCreditDTO(
            id=(credit.get("artist") or {}).get("id", ""),
            name=credit.get("name") or (credit.get("artist") or {}).get("name", ""),
        )
        for credit in release_group.get("artist-credit") or []
    ]


def map_release_group(release_group: dict[str, Any]) -> AlbumDTO:
    """Full release group (lookup with inc=artist-credits) → AlbumDTO."""
    return AlbumDTO(
        mbid=release_group["id"],
        title=release_group["title"],
        source_service="musicbrainz",
        artists=_artist_credits(release_group),
        release_year=extract_release_year(release_group.get("first-release-date")),
        primary_type=release_group.get("primary-type") or "Album",
    )


def map_search_result(release_group: dict[str, Any]) -> AlbumDTO:
    """Search hit → AlbumDTO with the primary artist only."""
    credits = _artist_credits(release_group)
    primary = credits[0] if credits else ArtistCreditDTO(id="", name="Unknown Artist")
    return AlbumDTO(
        mbid=release_group["id"],
        title=release_group["title"],
        source_service="musicbrainz",
        artists=[primary],
        release_year=extract_release_year(release_group.get("first-release-date")),
        primary_type=release_group.get("primary-type"),
    )


class MusicBrainzClient(IMusicBrainzClient):
    """Release-group search and lookup against the MusicBrainz web service."""

    API_BASE_URL = "https://musicbrainz.org/ws/2"

    def __init__(self, settings: MusicBrainzSettings, rate_limiter: TokenBucket | None = None) -> None:
        self.settings = settings
        # MusicBrainz counts requests per client IP, so every instance shares one bucket
        self._limiter = rate_limiter or limiter_for("musicbrainz")
        self._client: httpx.AsyncClient | None = None

    @property
    def user_agent(self) -> str:
        # Requests without "AppName/Version ( contact )" get throttled or refused
        s = self.settings
        return f"{s.app_name}/{s.app_version} ( {s.contact} )"

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.API_BASE_URL,
                headers={"User-Agent": self.user_agent, "Accept": "application/json"},
                timeout=self.settings.timeout,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str, params: dict[str, Any]) -> httpx.Response:
        """GET ``path`` with ``fmt=json``; one limiter token per attempt.

        503 responses and transport errors are retried up to ``max_retries``
        times, sleeping ``initial_retry_delay * 2**attempt`` in between. A 503
        on the final attempt is returned to the caller like any other status.

        Raises:
            ExternalServiceError: Transport errors persisted through every retry
        """
        retries = self.settings.max_retries
        attempt = 0
        while True:
            try:
                async with self._limiter:
                    response = await self._http().get(path, params={**params, "fmt": "json"})
            except httpx.TransportError as e:
                if attempt >= retries:
                    raise ExternalServiceError(
                        "MusicBrainz", f"request failed after {retries} retries: {e}"
                    ) from e
                reason = type(e).__name__
            else:
                if response.status_code != 503 or attempt >= retries:
                    return response
                reason = "503 Service Unavailable"

            delay = backoff_delay(self.settings.initial_retry_delay, attempt)
            attempt += 1
            logger.warning(
                "MusicBrainz %s on %s, retry %d/%d in %.1fs", reason, path, attempt, retries, delay
            )
            await asyncio.sleep(delay)

    @staticmethod
    def _check(response: httpx.Response) -> dict[str, Any]:
        if response.is_error:
            raise ExternalServiceError(
                "MusicBrainz",
                f"{response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        payload: dict[str, Any] = response.json()
        return payload

    async def search_release_groups(self, query: str, limit: int = 25) -> list[AlbumDTO]:
        """Lucene search over release groups; hits keep only their primary artist.

        Raises:
            ExternalServiceError: Non-2xx answer or retries exhausted
        """
        payload = self._check(await self._get("/release-group", {"query": query, "limit": limit}))
        return [map_search_result(rg) for rg in payload.get("release-groups", [])]

    async def lookup_release_group(self, mbid: str) -> AlbumDTO | None:
        """Release group with full artist credits, or None when MusicBrainz answers 404.

        A 404 also covers MBIDs that were merged away.
        """
        response = await self._get(f"/release-group/{mbid}", {"inc": "artist-credits"})
        if response.status_code == 404:
            logger.debug("MusicBrainz has no release group %s", mbid)
            return None
        return map_release_group(self._check(response))

    async def __aenter__(self) -> "MusicBrainzClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
