"""Domain ports (interfaces) for dependency inversion.

Application services depend on these, not on the httpx/SQLAlchemy classes, so
tests can swap in fakes without patching module globals.
"""

from abc import ABC, abstractmethod

from simlr.domain.dtos import AlbumDTO
from simlr.domain.entities import Album, Rating
from simlr.domain.value_objects import AlbumIdentifier, VoteTarget, VoteValue


class IMusicBrainzClient(ABC):
    """Port for the canonical album registry."""

    @abstractmethod
    async def search_release_groups(self, query: str, limit: int = 25) -> list[AlbumDTO]:
        """Search release groups; each result carries its primary artist only."""
        pass

    @abstractmethod
    async def lookup_release_group(self, mbid: str) -> AlbumDTO | None:
        """Fetch one release group with artist credits, or None if unknown."""
        pass


class ICoverArtClient(ABC):
    """Port for the cover art provider."""

    @abstractmethod
    async def get_release_group_front_url(self, mbid: str) -> str | None:
        """Return a front cover URL, or None when the release group has no art."""
        pass


class ILegacyCatalogClient(ABC):
    """Port for the legacy streaming catalog (needs app credentials)."""

    @abstractmethod
    async def get_album(self, album_id: str) -> AlbumDTO | None:
        pass

    @abstractmethod
    async def search_albums(self, query: str, limit: int = 12) -> list[AlbumDTO]:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass


class IAlbumRepository(ABC):
    """Port for album persistence."""

    @abstractmethod
    async def get_by_id(self, album_id: str) -> Album | None:
        pass

    @abstractmethod
    async def get_by_identifier(self, identifier: AlbumIdentifier) -> Album | None:
        pass

    @abstractmethod
    async def upsert(self, album: AlbumDTO) -> str:
        """Insert or update by the DTO's external ID; returns our album id."""
        pass


class IRatingRepository(ABC):
    """Port for rating persistence."""

    @abstractmethod
    async def upsert(self, user_id: str, album_id: str, score: int) -> Rating:
        """Insert or overwrite the user's score; returns the stored rating."""
        pass

    @abstractmethod
    async def scores_for_album(self, album_id: str) -> list[int]:
        pass

    @abstractmethod
    async def get_score(self, user_id: str, album_id: str) -> int | None:
        pass


class IVoteRepository(ABC):
    """Port for vote persistence."""

    @abstractmethod
    async def delete_matching(
        self, user_id: str, target: VoteTarget, value: VoteValue
    ) -> bool:
        """Delete the caller's vote only if it has ``value``; True if a row went away."""
        pass

    @abstractmethod
    async def upsert(self, user_id: str, target: VoteTarget, value: VoteValue) -> None:
        pass

    @abstractmethod
    async def score(self, target: VoteTarget) -> int:
        pass

    @abstractmethod
    async def get_value(self, user_id: str, target: VoteTarget) -> int:
        pass


__all__ = [
    "IAlbumRepository",
    "ICoverArtClient",
    "ILegacyCatalogClient",
    "IMusicBrainzClient",
    "IRatingRepository",
    "IVoteRepository",
]
