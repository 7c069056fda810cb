"""Tests for the Spotify catalog client and the offline mock catalog."""

import re

import pytest
from pytest_httpx import HTTPXMock

from simlr.config.settings import SpotifySettings
from simlr.domain.exceptions import ConfigurationError, ExternalServiceError
from simlr.infrastructure.integrations import MockCatalogClient, SpotifyClient
from simlr.infrastructure.integrations.spotify_client import map_album

TOKEN_URL = "https://accounts.spotify.com/api/token"
ALBUM_ID = "6dVIqQ8qmQ5GBnJ9shOYGE"
ALBUM_URL = f"https://api.spotify.com/v1/albums/{ALBUM_ID}"
SEARCH_URL = re.compile(r"https://api\.spotify\.com/v1/search\?.*")

ALBUM = {
    "id": ALBUM_ID,
    "name": "Blonde",
    "release_date": "2016-08-20",
    "artists": [{"id": "2h93pZq0e7k5yf4dywlkpM", "name": "Frank Ocean"}],
    "images": [{"url": "https://i.scdn.co/image/large", "height": 640}],
}


@pytest.fixture
async def spotify_client():
    client = SpotifyClient(SpotifySettings(client_id="id", client_secret="secret"))
    yield client
    await client.close()


class TestMapAlbum:
    def test_full_album(self) -> None:
        dto = map_album(ALBUM)
        assert dto.spotify_id == ALBUM_ID
        assert dto.mbid is None
        assert dto.release_year == 2016
        assert dto.cover_url == "https://i.scdn.co/image/large"

    def test_sparse_album(self) -> None:
        dto = map_album({"id": ALBUM_ID, "name": "Blonde", "release_date": ""})
        assert dto.release_year is None
        assert dto.cover_url is None
        assert dto.artists == []


class TestSpotifyClient:
    """Tests for SpotifyClient."""

    def test_requires_credentials(self) -> None:
        with pytest.raises(ConfigurationError):
            SpotifyClient(SpotifySettings())

    async def test_get_album_fetches_app_token_once(
        self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock
    ) -> None:
        """Test that the client-credentials token is cached across calls."""
        httpx_mock.add_response(
            method="POST", url=TOKEN_URL, json={"access_token": "app-token", "expires_in": 3600}
        )
        httpx_mock.add_response(method="GET", url=ALBUM_URL, json=ALBUM)
        httpx_mock.add_response(method="GET", url=ALBUM_URL, json=ALBUM)

        first = await spotify_client.get_album(ALBUM_ID)
        second = await spotify_client.get_album(ALBUM_ID)

        assert first is not None and second is not None
        assert first.title == "Blonde"
        token_requests = httpx_mock.get_requests(method="POST", url=TOKEN_URL)
        assert len(token_requests) == 1
        album_request = httpx_mock.get_requests(method="GET", url=ALBUM_URL)[0]
        assert album_request.headers["Authorization"] == "Bearer app-token"

    async def test_unknown_album(self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(method="POST", url=TOKEN_URL, json={"access_token": "t"})
        httpx_mock.add_response(method="GET", url=ALBUM_URL, status_code=404)
        assert await spotify_client.get_album(ALBUM_ID) is None

    async def test_token_failure(self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(method="POST", url=TOKEN_URL, status_code=401)
        with pytest.raises(ExternalServiceError):
            await spotify_client.get_album(ALBUM_ID)

    async def test_search(self, spotify_client: SpotifyClient, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(method="POST", url=TOKEN_URL, json={"access_token": "t"})
        httpx_mock.add_response(method="GET", url=SEARCH_URL, json={"albums": {"items": [ALBUM, None]}})

        results = await spotify_client.search_albums("blonde", limit=5)

        assert [r.title for r in results] == ["Blonde"]
        request = httpx_mock.get_requests(method="GET")[0]
        assert request.url.params["type"] == "album"
        assert request.url.params["limit"] == "5"


class TestMockCatalogClient:
    """The offline catalog answers the same questions from MOCK_ALBUMS."""

    async def test_get_album(self) -> None:
        album = await MockCatalogClient().get_album("MockBlonde000000000001")
        assert album is not None
        assert album.title == "Blonde"

    async def test_get_unknown_album(self) -> None:
        assert await MockCatalogClient().get_album(ALBUM_ID) is None

    @pytest.mark.parametrize(("query", "titles"), [("RADIOHEAD", ["In Rainbows"]), ("ocean", ["Blonde"])])
    async def test_search_matches_title_and_artist(self, query: str, titles: list[str]) -> None:
        results = await MockCatalogClient().search_albums(query)
        assert [r.title for r in results] == titles
