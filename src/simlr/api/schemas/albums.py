"""API schemas for albums, ratings and the top list."""

from datetime import datetime

from pydantic import Field

from simlr.api.schemas.common import AlbumOut, CamelModel, CatalogAlbumOut
from simlr.application.services.rating_stats import RatingStats
from simlr.domain.entities import Rating


class RatingStatsOut(CamelModel):
    """Aggregate of one album's ratings. ``histogram[i]`` counts score ``i + 1``."""

    avg: float | None = None
    median: float | None = None
    count: int = 0
    histogram: list[int] = Field(default_factory=lambda: [0] * 10)

    @classmethod
    def from_stats(cls, stats: RatingStats) -> "RatingStatsOut":
        return cls(
            avg=stats.average,
            median=stats.median,
            count=stats.count,
            histogram=list(stats.histogram),
        )


class AlbumStatsResponse(RatingStatsOut):
    mine: int | None = None


class AlbumDetailResponse(CamelModel):
    album: AlbumOut
    stats: AlbumStatsResponse


class AlbumSearchResponse(CamelModel):
    results: list[CatalogAlbumOut]


class LegacySearchResponse(CamelModel):
    items: list[CatalogAlbumOut]


class RatingRequest(CamelModel):
    """Body of POST /ratings. ``albumId`` may be an MBID or a Spotify ID."""

    album_id: str = Field(..., min_length=1)
    score: int = Field(..., ge=1, le=10)


class RatingOut(CamelModel):
    user_id: str
    album_id: str
    score: int
    updated_at: datetime

    @classmethod
    def from_entity(cls, rating: Rating) -> "RatingOut":
        return cls(
            user_id=rating.user_id,
            album_id=rating.album_id,
            score=rating.score,
            updated_at=rating.updated_at,
        )


class RatingResponse(CamelModel):
    rating: RatingOut
    aggregate: RatingStatsOut


class TopAlbumOut(CamelModel):
    album: AlbumOut
    avg: float
    count: int


class TopAlbumsResponse(CamelModel):
    items: list[TopAlbumOut]
