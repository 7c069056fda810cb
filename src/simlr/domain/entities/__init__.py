"""Domain entities."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from simlr.domain.value_objects import LegacyId, RegistryId


@dataclass
class Album:
    """Album entity.

    ``id`` is our own immutable key and the join key for every other table.
    ``mbid`` / ``spotify_album_id`` are the external identities; at least one is set.
    """

    id: str
    title: str
    artists: list[dict[str, Any]] = field(default_factory=list)
    mbid: str | None = None
    spotify_album_id: str | None = None
    cover_url: str | None = None
    release_year: int | None = None
    mb_artist_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if not self.mbid and not self.spotify_album_id:
            raise ValueError("Album needs at least one external identifier")

    @property
    def external_identifier(self) -> RegistryId | LegacyId:
        """The preferred public identifier (MBID wins during the migration)."""
        if self.mbid:
            return RegistryId(self.mbid)
        return LegacyId(self.spotify_album_id or "")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "mbid": self.mbid,
            "spotifyAlbumId": self.spotify_album_id,
            "title": self.title,
            "artists": self.artists,
            "coverUrl": self.cover_url,
            "releaseYear": self.release_year,
        }


@dataclass
class User:
    """User entity. Email/password are optional for seed and OAuth-only accounts."""

    id: str
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    email: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def public_dict(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "displayName": self.display_name,
            "avatarUrl": self.avatar_url,
        }


@dataclass
class Rating:
    """A user's single, mutable score for an album."""

    user_id: str
    album_id: str
    score: int
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if not 1 <= self.score <= 10:
            raise ValueError(f"Invalid score {self.score}: must be between 1 and 10")


__all__ = ["Album", "Rating", "User"]
