"""Rating submission and the top-rated albums list."""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from simlr.api.dependencies import get_current_user, get_db_session, get_rating_service
from simlr.api.schemas.albums import (
    RatingOut,
    RatingRequest,
    RatingResponse,
    RatingStatsOut,
    TopAlbumOut,
    TopAlbumsResponse,
)
from simlr.api.schemas.common import AlbumOut
from simlr.application.services import RatingService
from simlr.application.services.rating_service import (
    TOP_DEFAULT_LIMIT,
    TOP_DEFAULT_MIN_COUNT,
)
from simlr.domain.entities import User

logger = logging.getLogger(__name__)

router = APIRouter()
top_router = APIRouter()


@router.post("")
async def submit_rating(
    payload: RatingRequest,
    session: AsyncSession = Depends(get_db_session),
    rating_service: RatingService = Depends(get_rating_service),
    user: User = Depends(get_current_user),
) -> RatingResponse:
    """Create or overwrite the caller's 1-10 rating; returns the fresh aggregate."""
    rating, stats = await rating_service.rate(user.id, payload.album_id, payload.score)
    await session.commit()
    return RatingResponse(
        rating=RatingOut.from_entity(rating),
        aggregate=RatingStatsOut.from_stats(stats),
    )


@top_router.get("")
async def top_albums(
    min_count: int = Query(TOP_DEFAULT_MIN_COUNT, alias="min", description="1-500"),
    limit: int = Query(TOP_DEFAULT_LIMIT, description="1-100"),
    rating_service: RatingService = Depends(get_rating_service),
) -> TopAlbumsResponse:
    """Albums with at least ``min`` ratings, best average first (ties: more ratings)."""
    top = await rating_service.top_albums(min_count, limit)
    return TopAlbumsResponse(
        items=[
            TopAlbumOut(album=AlbumOut.from_entity(t.album), avg=t.average, count=t.count)
            for t in top
        ]
    )
