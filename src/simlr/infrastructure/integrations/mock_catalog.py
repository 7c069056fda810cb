"""Offline stand-in for the legacy catalog, used when no Spotify credentials are set.

The IDs follow the legacy 22-character format so they resolve through the
same code path as real Spotify albums.
"""

from simlr.domain.dtos import AlbumDTO, ArtistCreditDTO
from simlr.domain.ports import ILegacyCatalogClient

MOCK_COVER_URL = "/mock/cover.svg"

MOCK_ALBUMS: list[AlbumDTO] = [
    AlbumDTO(
        spotify_id="MockInRainbows00000001",
        title="In Rainbows",
        source_service="mock",
        artists=[ArtistCreditDTO(id="mock-radiohead", name="Radiohead")],
        cover_url=MOCK_COVER_URL,
        release_year=2007,
    ),
    AlbumDTO(
        spotify_id="MockToPimpAButterfly01",
        title="To Pimp a Butterfly",
        source_service="mock",
        artists=[ArtistCreditDTO(id="mock-kdot", name="Kendrick Lamar")],
        cover_url=MOCK_COVER_URL,
        release_year=2015,
    ),
    AlbumDTO(
        spotify_id="MockBlonde000000000001",
        title="Blonde",
        source_service="mock",
        artists=[ArtistCreditDTO(id="mock-frank", name="Frank Ocean")],
        cover_url=MOCK_COVER_URL,
        release_year=2016,
    ),
    AlbumDTO(
        spotify_id="MockFlowersForVibes001",
        title="Flowers for Vibes",
        source_service="mock",
        artists=[ArtistCreditDTO(id="mock-simlr", name="Simlr Ensemble")],
        cover_url=MOCK_COVER_URL,
        release_year=2020,
    ),
]


def mock_search(query: str) -> list[AlbumDTO]:
    """Case-insensitive substring match over title and artist names."""
    needle = query.lower()
    return [
        album
        for album in MOCK_ALBUMS
        if needle in f"{album.title} {' '.join(a.name for a in album.artists)}".lower()
    ]


def get_mock_album(album_id: str) -> AlbumDTO | None:
    return next((a for a in MOCK_ALBUMS if a.spotify_id == album_id), None)


class MockCatalogClient(ILegacyCatalogClient):
    """ILegacyCatalogClient backed by MOCK_ALBUMS."""

    async def get_album(self, album_id: str) -> AlbumDTO | None:
        return get_mock_album(album_id)

    async def search_albums(self, query: str, limit: int = 12) -> list[AlbumDTO]:
        return mock_search(query)[:limit]

    async def close(self) -> None:
        return None
