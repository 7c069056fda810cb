"""Album identifier value objects.

Hey future me - albums are addressed by two external ID schemes while we migrate
from the Spotify catalog to MusicBrainz:

- RegistryId → MusicBrainz release-group MBID, 8-4-4-4-12 hex groups
- LegacyId   → Spotify album ID, exactly 22 alphanumeric characters

Everything that accepts an album identifier from a caller goes through
``classify_album_identifier`` and then ONE resolution function
(``AlbumService.resolve_album_id``). Don't add per-scheme route handlers!
"""

import re
from dataclasses import dataclass
from typing import ClassVar

from simlr.domain.exceptions import AlbumIdentifierNotRecognized

MBID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
SPOTIFY_ID_PATTERN = re.compile(r"^[0-9A-Za-z]{22}$")


@dataclass(frozen=True)
class RegistryId:
    """MusicBrainz release-group ID (canonical, free to look up)."""

    value: str
    column: ClassVar[str] = "mbid"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class LegacyId:
    """Spotify album ID (needs app credentials to look up)."""

    value: str
    column: ClassVar[str] = "spotify_album_id"

    def __str__(self) -> str:
        return self.value


AlbumIdentifier = RegistryId | LegacyId


def is_mbid(value: str) -> bool:
    """Check if value looks like a MusicBrainz ID."""
    return bool(MBID_PATTERN.match(value))


def is_spotify_id(value: str) -> bool:
    """Check if value looks like a Spotify album ID."""
    return bool(SPOTIFY_ID_PATTERN.match(value))


def classify_album_identifier(raw: str) -> AlbumIdentifier:
    """Classify a caller-supplied album identifier.

    MBIDs are normalised to lowercase; MusicBrainz itself only emits lowercase.

    Raises:
        AlbumIdentifierNotRecognized: if the string matches neither format.
    """
    value = (raw or "").strip()
    if is_mbid(value):
        return RegistryId(value.lower())
    if is_spotify_id(value):
        return LegacyId(value)
    raise AlbumIdentifierNotRecognized(value)
