"""Shared API schemas: camelCase base model, albums and public user info."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from simlr.domain.dtos import AlbumDTO
from simlr.domain.entities import Album, User


class CamelModel(BaseModel):
    """Base model whose JSON field names are camelCase.

    Python code keeps snake_case attribute names; ``populate_by_name`` lets
    tests and services build instances with either spelling.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ArtistOut(CamelModel):
    id: str
    name: str


class AlbumOut(CamelModel):
    """An album row as clients see it."""

    id: str
    mbid: str | None = None
    spotify_album_id: str | None = None
    title: str
    artists: list[ArtistOut] = Field(default_factory=list)
    cover_url: str | None = None
    release_year: int | None = None

    @classmethod
    def from_entity(cls, album: Album) -> "AlbumOut":
        return cls(
            id=album.id,
            mbid=album.mbid,
            spotify_album_id=album.spotify_album_id,
            title=album.title,
            artists=[ArtistOut(**a) for a in album.artists],
            cover_url=album.cover_url,
            release_year=album.release_year,
        )


class AlbumResponse(CamelModel):
    album: AlbumOut


class CatalogAlbumOut(CamelModel):
    """A provider search hit that may not be stored yet."""

    mbid: str | None = None
    spotify_album_id: str | None = None
    title: str
    artist: str
    artists: list[ArtistOut] = Field(default_factory=list)
    release_year: int | None = None
    cover_url: str | None = None
    primary_type: str | None = None

    @classmethod
    def from_dto(cls, dto: AlbumDTO) -> "CatalogAlbumOut":
        primary = dto.primary_artist
        return cls(
            mbid=dto.mbid,
            spotify_album_id=dto.spotify_id,
            title=dto.title,
            artist=primary.name if primary else "Unknown Artist",
            artists=[ArtistOut(id=a.id, name=a.name) for a in dto.artists],
            release_year=dto.release_year,
            cover_url=dto.cover_url,
            primary_type=dto.primary_type,
        )


class UserPublic(CamelModel):
    """What other users get to see about an author."""

    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None

    @classmethod
    def from_entity(cls, user: User) -> "UserPublic":
        return cls(
            username=user.username,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
        )


class IdOut(CamelModel):
    id: str


class OkResponse(CamelModel):
    ok: bool = True
