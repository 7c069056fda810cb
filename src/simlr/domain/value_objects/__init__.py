"""Domain value objects."""

from .album_identifier import (
    AlbumIdentifier,
    LegacyId,
    RegistryId,
    classify_album_identifier,
    is_mbid,
    is_spotify_id,
)
from .vote_target import VoteEntityType, VoteTarget, VoteValue

__all__ = [
    "AlbumIdentifier",
    "LegacyId",
    "RegistryId",
    "VoteEntityType",
    "VoteTarget",
    "VoteValue",
    "classify_album_identifier",
    "is_mbid",
    "is_spotify_id",
]
