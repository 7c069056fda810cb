"""Data transfer objects between metadata providers and application services.

Hey future me - MusicBrainz, Spotify and the mock catalog all convert their
payloads into these DTOs. Services never parse provider JSON themselves.

Flow: provider response → AlbumDTO → AlbumService → AlbumRepository.upsert_*
"""

from dataclasses import dataclass, field

from simlr.domain.exceptions import ValidationException


@dataclass
class ArtistCreditDTO:
    """One credited artist, in credit order."""

    id: str
    name: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name}


@dataclass
class AlbumDTO:
    """Album metadata from any provider.

    Exactly one of ``mbid`` / ``spotify_id`` is set by the provider that
    produced the DTO; the other is left alone on upsert.
    """

    title: str
    source_service: str  # "musicbrainz", "spotify", "mock"
    artists: list[ArtistCreditDTO] = field(default_factory=list)
    mbid: str | None = None
    spotify_id: str | None = None
    cover_url: str | None = None
    release_year: int | None = None
    primary_type: str | None = None

    def __post_init__(self) -> None:
        if not self.title or not self.title.strip():
            raise ValidationException("Album title cannot be empty")
        if not self.mbid and not self.spotify_id:
            raise ValidationException("Album needs a MusicBrainz or Spotify ID")

    @property
    def primary_artist(self) -> ArtistCreditDTO | None:
        return self.artists[0] if self.artists else None

    def artists_json(self) -> list[dict[str, str]]:
        return [a.to_dict() for a in self.artists]


__all__ = ["AlbumDTO", "ArtistCreditDTO"]
