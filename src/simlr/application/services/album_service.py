"""Album Service - identifier resolution, upsert and search.

Hey future me - this is the ONE place that turns a caller-supplied album identifier
into our internal album id. Ratings, Simlrs, posts and Rushmore slots all call
``resolve_album_id``; none of them look at MBID vs Spotify formats themselves.

Resolution rules:
- MBID already stored            → its id
- MBID not stored                → fetch MusicBrainz + Cover Art Archive concurrently,
                                   upsert, return the new id (None if MB says 404)
- Spotify ID stored              → its id
- Spotify ID not stored          → None. Legacy lookups need app credentials, so
                                   they only happen through an explicit upsert.
- anything else                  → AlbumIdentifierNotRecognized (404), before any I/O
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from simlr.config.settings import Settings
from simlr.domain.dtos import AlbumDTO
from simlr.domain.entities import Album
from simlr.domain.exceptions import EntityNotFoundException
from simlr.domain.ports import ICoverArtClient, ILegacyCatalogClient, IMusicBrainzClient
from simlr.domain.value_objects import RegistryId, classify_album_identifier
from simlr.infrastructure.persistence.repositories import AlbumRepository

logger = logging.getLogger(__name__)

SEARCH_DEFAULT_LIMIT = 12
SEARCH_MAX_LIMIT = 50
LEGACY_SEARCH_LIMIT = 12


def clamp_search_limit(limit: int | None) -> int:
    if limit is None:
        return SEARCH_DEFAULT_LIMIT
    return min(max(limit, 1), SEARCH_MAX_LIMIT)


class AlbumService:
    """Resolves, refreshes and searches albums."""

    def __init__(
        self,
        session: AsyncSession,
        musicbrainz: IMusicBrainzClient,
        cover_art: ICoverArtClient,
        legacy_catalog: ILegacyCatalogClient,
        settings: Settings,
    ) -> None:
        self.session = session
        self.albums = AlbumRepository(session)
        self.musicbrainz = musicbrainz
        self.cover_art = cover_art
        self.legacy_catalog = legacy_catalog
        self.settings = settings

    async def _fetch_registry_album(self, mbid: str) -> AlbumDTO | None:
        """Release group metadata and cover URL, fetched concurrently."""
        metadata, cover_url = await asyncio.gather(
            self.musicbrainz.lookup_release_group(mbid),
            self.cover_art.get_release_group_front_url(mbid),
        )
        if metadata is None:
            return None
        metadata.cover_url = cover_url
        return metadata

    async def resolve_album_ids(self, raw_ids: list[str]) -> list[str | None]:
        """Resolve several identifiers, fetching unknown MBIDs concurrently.

        Every identifier is classified first, so one unrecognized string fails
        the whole call before any database or network access. The session is
        only touched sequentially; just the outbound fetches overlap.

        Returns:
            Internal album ids in input order (None where unresolvable)
        """
        identifiers = [classify_album_identifier(raw) for raw in raw_ids]

        resolved: dict[str, str | None] = {}
        missing_mbids: list[str] = []
        for identifier in identifiers:
            key = f"{identifier.column}:{identifier.value}"
            if key in resolved:
                continue
            album = await self.albums.get_by_identifier(identifier)
            resolved[key] = album.id if album else None
            if album is None and isinstance(identifier, RegistryId):
                missing_mbids.append(identifier.value)

        if missing_mbids:
            fetched = await asyncio.gather(
                *(self._fetch_registry_album(mbid) for mbid in missing_mbids)
            )
            for mbid, dto in zip(missing_mbids, fetched, strict=True):
                if dto is None:
                    logger.info("MusicBrainz has no release group %s", mbid)
                    continue
                resolved[f"mbid:{mbid}"] = await self.albums.upsert(dto)
                logger.info("Resolved new album %s (%s)", dto.title, mbid)

        return [resolved[f"{i.column}:{i.value}"] for i in identifiers]

    async def resolve_album_id(self, raw_id: str) -> str | None:
        """Resolve one caller-supplied identifier to our album id (see module docs)."""
        (album_id,) = await self.resolve_album_ids([raw_id])
        return album_id

    async def get_album(self, raw_id: str) -> Album:
        """Resolve and load an album.

        Raises:
            EntityNotFoundException: If the identifier can't be resolved
        """
        album_id = await self.resolve_album_id(raw_id)
        album = await self.albums.get_by_id(album_id) if album_id else None
        if album is None:
            raise EntityNotFoundException("Album", raw_id, message="Album not found")
        return album

    async def upsert_album(self, raw_id: str) -> Album:
        """Fetch fresh metadata for either identifier kind and upsert it.

        MBIDs always go to MusicBrainz. Spotify IDs go to the legacy catalog
        client (the mock catalog when no credentials are configured).

        Raises:
            AlbumIdentifierNotRecognized: Unknown identifier format
            EntityNotFoundException: The provider doesn't know the album
        """
        identifier = classify_album_identifier(raw_id)
        if isinstance(identifier, RegistryId):
            dto = await self._fetch_registry_album(identifier.value)
            provider = "MusicBrainz"
        else:
            dto = await self.legacy_catalog.get_album(identifier.value)
            provider = "the legacy catalog"

        if dto is None:
            raise EntityNotFoundException(
                "Album", raw_id, message=f"Album not found in {provider}"
            )

        album_id = await self.albums.upsert(dto)
        album = await self.albums.get_by_id(album_id)
        if album is None:
            raise EntityNotFoundException("Album", album_id)
        logger.info("Upserted album %s (%s)", album.title, identifier)
        return album

    async def search(self, query: str, limit: int | None = None) -> list[AlbumDTO]:
        """MusicBrainz release-group search with cover URLs probed concurrently."""
        results = await self.musicbrainz.search_release_groups(
            query, clamp_search_limit(limit)
        )
        covers = await asyncio.gather(
            *(self.cover_art.get_release_group_front_url(r.mbid or "") for r in results)
        )
        for result, cover_url in zip(results, covers, strict=True):
            result.cover_url = cover_url
        return results

    async def search_legacy(self, query: str) -> list[AlbumDTO]:
        """Legacy catalog search; seeds the mock catalog first in offline mode."""
        if not self.settings.spotify.has_credentials:
            from simlr.application.services.seed_service import SeedService

            await SeedService(self.session).ensure_mock_seeded()
        results = await self.legacy_catalog.search_albums(query, LEGACY_SEARCH_LIMIT)
        return results[:LEGACY_SEARCH_LIMIT]
