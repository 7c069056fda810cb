"""Spotify Web API client (client-credentials flow, albums only)."""

import logging
import time
from typing import Any

import httpx

from simlr.config.settings import SpotifySettings
from simlr.domain.dtos import AlbumDTO, ArtistCreditDTO
from simlr.domain.exceptions import ConfigurationError, ExternalServiceError
from simlr.domain.ports import ILegacyCatalogClient
from simlr.infrastructure.rate_limiter import limiter_for

logger = logging.getLogger(__name__)


def map_album(album: dict[str, Any]) -> AlbumDTO:
    """Spotify simplified/full album object → AlbumDTO."""
    images = album.get("images") or []
    release_date = album.get("release_date") or ""
    year = int(release_date[:4]) if release_date[:4].isdigit() else None
    return AlbumDTO(
        spotify_id=album["id"],
        title=album["name"],
        source_service="spotify",
        artists=[
            ArtistCreditDTO(id=a.get("id", ""), name=a.get("name", ""))
            for a in album.get("artists") or []
        ],
        cover_url=images[0]["url"] if images else None,
        release_year=year,
    )


class SpotifyClient(ILegacyCatalogClient):
    """HTTP client for the Spotify catalog using app (client-credentials) tokens.

    No user authorization involved: the token only grants catalog reads.
    """

    TOKEN_URL = "https://accounts.spotify.com/api/token"  # nosec B105 - public endpoint URL
    API_BASE_URL = "https://api.spotify.com/v1"
    # Refresh the app token this many seconds before Spotify says it expires
    TOKEN_EXPIRY_MARGIN = 60

    def __init__(self, settings: SpotifySettings) -> None:
        """
        Initialize Spotify client.

        Args:
            settings: Spotify configuration settings

        Raises:
            ConfigurationError: If client id/secret are missing
        """
        if not settings.has_credentials:
            raise ConfigurationError(
                "Missing Spotify credentials. Set SPOTIFY__CLIENT_ID and SPOTIFY__CLIENT_SECRET."
            )
        self.settings = settings
        self._client: httpx.AsyncClient | None = None
        self._access_token: str | None = None
        self._token_expires_at: float = 0.0

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _get_app_token(self) -> str:
        """Get a cached client-credentials token, requesting a new one when stale."""
        if self._access_token and time.monotonic() < self._token_expires_at:
            return self._access_token

        client = await self._get_client()
        response = await client.post(
            self.TOKEN_URL,
            data={"grant_type": "client_credentials"},
            auth=(self.settings.client_id, self.settings.client_secret),
        )
        if response.is_error:
            raise ExternalServiceError(
                "Spotify",
                f"token request failed: {response.status_code}",
                status_code=response.status_code,
            )
        payload = response.json()
        self._access_token = payload["access_token"]
        expires_in = int(payload.get("expires_in", 3600))
        self._token_expires_at = time.monotonic() + expires_in - self.TOKEN_EXPIRY_MARGIN
        logger.debug("Obtained Spotify app token (expires in %ds)", expires_in)
        return self._access_token

    async def _api_request(
        self, method: str, path: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        """Make a rate-limited catalog request with the app token."""
        client = await self._get_client()
        token = await self._get_app_token()
        async with limiter_for("spotify"):
            try:
                return await client.request(
                    method,
                    f"{self.API_BASE_URL}{path}",
                    params=params,
                    headers={"Authorization": f"Bearer {token}"},
                )
            except httpx.TransportError as e:
                raise ExternalServiceError("Spotify", str(e)) from e

    async def get_album(self, album_id: str) -> AlbumDTO | None:
        """
        Fetch one album.

        Returns:
            AlbumDTO, or None if Spotify doesn't know the ID

        Raises:
            ExternalServiceError: On other error responses
        """
        response = await self._api_request("GET", f"/albums/{album_id}")
        if response.status_code in (400, 404):
            return None
        if response.is_error:
            raise ExternalServiceError(
                "Spotify", f"album lookup failed: {response.status_code}",
                status_code=response.status_code,
            )
        return map_album(response.json())

    async def search_albums(self, query: str, limit: int = 12) -> list[AlbumDTO]:
        """Search the catalog for albums."""
        response = await self._api_request(
            "GET", "/search", params={"q": query, "type": "album", "limit": limit}
        )
        if response.is_error:
            raise ExternalServiceError(
                "Spotify", f"search failed: {response.status_code}",
                status_code=response.status_code,
            )
        items = (response.json().get("albums") or {}).get("items") or []
        return [map_album(item) for item in items if item]

    async def __aenter__(self) -> "SpotifyClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
