"""API router initialization."""

# Hey future me, this is the main API router aggregator. main.py mounts it under /api,
# so the prefixes below become /api/albums/..., /api/simlrs/... and so on. The tags
# group endpoints in the OpenAPI docs.

from fastapi import APIRouter

from simlr.api.routers import (
    albums,
    auth,
    discussions,
    health,
    me,
    ratings,
    simlrs,
    votes,
)

api_router = APIRouter()

api_router.include_router(albums.router, prefix="/albums", tags=["Albums"])
api_router.include_router(albums.legacy_router, prefix="/spotify", tags=["Albums"])
api_router.include_router(ratings.router, prefix="/ratings", tags=["Ratings"])
api_router.include_router(ratings.top_router, prefix="/top", tags=["Ratings"])
api_router.include_router(simlrs.router, prefix="/simlrs", tags=["Simlrs"])
api_router.include_router(votes.router, prefix="/votes", tags=["Votes"])
api_router.include_router(discussions.posts_router, prefix="/posts", tags=["Discussions"])
api_router.include_router(discussions.comments_router, prefix="/comments", tags=["Discussions"])
api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])
api_router.include_router(me.router, prefix="/me", tags=["Me"])
api_router.include_router(health.router, prefix="/health", tags=["Health"])

__all__ = [
    "albums",
    "api_router",
    "auth",
    "discussions",
    "health",
    "me",
    "ratings",
    "simlrs",
    "votes",
]
