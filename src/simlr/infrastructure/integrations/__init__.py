"""External service integrations."""

from .coverartarchive_client import CoverArtArchiveClient
from .mock_catalog import MOCK_ALBUMS, MockCatalogClient
from .musicbrainz_client import MusicBrainzClient
from .spotify_client import SpotifyClient

__all__ = [
    "MOCK_ALBUMS",
    "CoverArtArchiveClient",
    "MockCatalogClient",
    "MusicBrainzClient",
    "SpotifyClient",
]
