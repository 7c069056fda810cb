"""Rating workflow: submit a rating, read album stats, top albums, rating gate."""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from simlr.application.services.album_service import AlbumService
from simlr.application.services.rating_stats import (
    MAX_SCORE,
    MIN_SCORE,
    RatingStats,
    compute_rating_stats,
    round_one_decimal,
)
from simlr.domain.entities import Album, Rating
from simlr.domain.exceptions import (
    AuthorizationError,
    BusinessRuleViolation,
    EntityNotFoundException,
    ValidationException,
)
from simlr.infrastructure.persistence.repositories import AlbumRepository, RatingRepository

logger = logging.getLogger(__name__)

TOP_DEFAULT_MIN_COUNT = 5
TOP_MAX_MIN_COUNT = 500
TOP_DEFAULT_LIMIT = 50
TOP_MAX_LIMIT = 100

RATING_GATE_MESSAGE = "You must rate the source album before adding Simlrs."


@dataclass(frozen=True)
class TopAlbum:
    album: Album
    average: float
    count: int


class RatingService:
    """Ratings and their aggregates."""

    def __init__(self, session: AsyncSession, album_service: AlbumService) -> None:
        self.session = session
        self.album_service = album_service
        self.ratings = RatingRepository(session)
        self.albums = AlbumRepository(session)

    async def rate(self, user_id: str, raw_album_id: str, score: int) -> tuple[Rating, RatingStats]:
        """Create or overwrite the user's rating and return the fresh aggregate.

        Raises:
            ValidationException: Score outside 1-10
            AlbumIdentifierNotRecognized: Unknown identifier format
            BusinessRuleViolation: Identifier can't be resolved to an album
        """
        if not MIN_SCORE <= score <= MAX_SCORE:
            raise ValidationException(f"Score must be between {MIN_SCORE} and {MAX_SCORE}")

        album_id = await self.album_service.resolve_album_id(raw_album_id)
        if album_id is None:
            raise BusinessRuleViolation("Album not found (upsert it first)")

        rating = await self.ratings.upsert(user_id, album_id, score)
        stats = compute_rating_stats(await self.ratings.scores_for_album(album_id))
        logger.info(
            "User %s rated album %s: %d (now %d ratings)", user_id, album_id, score, stats.count
        )
        return rating, stats

    async def require_rated(self, user_id: str, album_id: str) -> None:
        """Gate: the user must have rated ``album_id``.

        Raises:
            AuthorizationError: No rating row exists
        """
        if await self.ratings.get_score(user_id, album_id) is None:
            raise AuthorizationError(RATING_GATE_MESSAGE)

    async def stats_for_album_id(
        self, album_id: str, viewer_id: str | None = None
    ) -> tuple[RatingStats, int | None]:
        stats = compute_rating_stats(await self.ratings.scores_for_album(album_id))
        mine = await self.ratings.get_score(viewer_id, album_id) if viewer_id else None
        return stats, mine

    async def stats_for(
        self, raw_album_id: str, viewer_id: str | None = None
    ) -> tuple[RatingStats, int | None]:
        """Aggregate for an album plus the viewer's own score (None when anonymous).

        Raises:
            EntityNotFoundException: Identifier can't be resolved
        """
        album_id = await self.album_service.resolve_album_id(raw_album_id)
        if album_id is None:
            raise EntityNotFoundException("Album", raw_album_id, message="Album not found")
        return await self.stats_for_album_id(album_id, viewer_id)

    async def top_albums(
        self, min_count: int = TOP_DEFAULT_MIN_COUNT, limit: int = TOP_DEFAULT_LIMIT
    ) -> list[TopAlbum]:
        """Albums with at least ``min_count`` ratings, best average first.

        Ties on average go to the album with more ratings.
        """
        if not 1 <= min_count <= TOP_MAX_MIN_COUNT:
            raise ValidationException(f"min must be between 1 and {TOP_MAX_MIN_COUNT}")
        if not 1 <= limit <= TOP_MAX_LIMIT:
            raise ValidationException(f"limit must be between 1 and {TOP_MAX_LIMIT}")

        rows = await self.ratings.top_albums(min_count, limit)
        albums = await self.albums.get_many([album_id for album_id, _, _ in rows])
        return [
            TopAlbum(album=albums[album_id], average=round_one_decimal(avg), count=count)
            for album_id, avg, count in rows
            if album_id in albums
        ]
