"""Album endpoints: resolve/refresh, detail, rating stats and catalog search.

Every ``{album_id}`` path parameter accepts either a MusicBrainz release-group
MBID or a legacy 22-character Spotify album ID.
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from simlr.api.dependencies import (
    get_album_service,
    get_current_user_optional,
    get_db_session,
    get_rating_service,
)
from simlr.api.schemas.albums import (
    AlbumDetailResponse,
    AlbumSearchResponse,
    AlbumStatsResponse,
    LegacySearchResponse,
    RatingStatsOut,
)
from simlr.api.schemas.common import AlbumOut, AlbumResponse, CatalogAlbumOut
from simlr.application.services import AlbumService, RatingService
from simlr.domain.entities import User

logger = logging.getLogger(__name__)

router = APIRouter()
legacy_router = APIRouter()


# Declared before "/{album_id}" so "search" is never taken for an album id.
@router.get("/search")
async def search_albums(
    q: str = Query(..., min_length=1, description="Free-text album query"),
    limit: int | None = Query(None, description="1-50, default 12 (out of range is clamped)"),
    album_service: AlbumService = Depends(get_album_service),
) -> AlbumSearchResponse:
    """Search MusicBrainz release groups; covers are probed concurrently."""
    results = await album_service.search(q, limit)
    return AlbumSearchResponse(results=[CatalogAlbumOut.from_dto(r) for r in results])


@router.post("/{album_id}/upsert")
async def upsert_album(
    album_id: str,
    session: AsyncSession = Depends(get_db_session),
    album_service: AlbumService = Depends(get_album_service),
) -> AlbumResponse:
    """Fetch fresh metadata from the identifier's provider and store it."""
    album = await album_service.upsert_album(album_id)
    await session.commit()
    return AlbumResponse(album=AlbumOut.from_entity(album))


@router.get("/{album_id}/stats")
async def get_album_stats(
    album_id: str,
    rating_service: RatingService = Depends(get_rating_service),
    user: User | None = Depends(get_current_user_optional),
) -> AlbumStatsResponse:
    """Rating aggregate; ``mine`` is the caller's own score when signed in."""
    stats, mine = await rating_service.stats_for(album_id, user.id if user else None)
    return AlbumStatsResponse(**RatingStatsOut.from_stats(stats).model_dump(), mine=mine)


@router.get("/{album_id}")
async def get_album(
    album_id: str,
    album_service: AlbumService = Depends(get_album_service),
    rating_service: RatingService = Depends(get_rating_service),
    user: User | None = Depends(get_current_user_optional),
) -> AlbumDetailResponse:
    """Album plus its rating aggregate."""
    album = await album_service.get_album(album_id)
    stats, mine = await rating_service.stats_for_album_id(album.id, user.id if user else None)
    return AlbumDetailResponse(
        album=AlbumOut.from_entity(album),
        stats=AlbumStatsResponse(**RatingStatsOut.from_stats(stats).model_dump(), mine=mine),
    )


@legacy_router.get("/search")
async def search_legacy_catalog(
    q: str = Query(..., min_length=1),
    session: AsyncSession = Depends(get_db_session),
    album_service: AlbumService = Depends(get_album_service),
) -> LegacySearchResponse:
    """Spotify album search, or the seeded mock catalog without credentials."""
    results = await album_service.search_legacy(q)
    # Offline mode may have just seeded the mock catalog
    await session.commit()
    return LegacySearchResponse(items=[CatalogAlbumOut.from_dto(r) for r in results])
