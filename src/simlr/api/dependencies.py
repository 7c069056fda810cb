"""Dependency injection for API endpoints."""

import logging
from collections.abc import AsyncGenerator
from typing import cast

from fastapi import Cookie, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from simlr.application.services import (
    AlbumService,
    AuthService,
    DiscussionService,
    ProfileService,
    RatingService,
    SimlrService,
    VoteService,
)
from simlr.config import Settings
from simlr.domain.entities import User
from simlr.domain.exceptions import AuthenticationError
from simlr.domain.ports import ICoverArtClient, ILegacyCatalogClient, IMusicBrainzClient
from simlr.infrastructure.persistence.database import Database
from simlr.infrastructure.security import TokenService

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "access_token"
REFRESH_TOKEN_COOKIE = "refresh_token"


# Hey future me - settings come from app.state, NOT from the cached get_settings().
# The lifespan parks whatever create_app() was given there, which is how tests
# run against a throwaway database without touching the environment.
def get_app_settings(request: Request) -> Settings:
    """Get the settings the running app was started with."""
    return cast(Settings, request.app.state.settings)


# One session per request. session_scope() commits when the endpoint returns cleanly
# and rolls back if anything raised, so every write of a request lands together.
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session from app state."""
    db: Database = request.app.state.db
    async with db.session_scope() as session:
        yield session


def get_musicbrainz_client(request: Request) -> IMusicBrainzClient:
    return cast(IMusicBrainzClient, request.app.state.musicbrainz_client)


def get_cover_art_client(request: Request) -> ICoverArtClient:
    return cast(ICoverArtClient, request.app.state.cover_art_client)


def get_legacy_catalog_client(request: Request) -> ILegacyCatalogClient:
    """Spotify client when credentials are configured, the mock catalog otherwise."""
    return cast(ILegacyCatalogClient, request.app.state.legacy_catalog_client)


def get_token_service(request: Request) -> TokenService:
    return cast(TokenService, request.app.state.token_service)


def get_album_service(
    session: AsyncSession = Depends(get_db_session),
    musicbrainz: IMusicBrainzClient = Depends(get_musicbrainz_client),
    cover_art: ICoverArtClient = Depends(get_cover_art_client),
    legacy_catalog: ILegacyCatalogClient = Depends(get_legacy_catalog_client),
    settings: Settings = Depends(get_app_settings),
) -> AlbumService:
    """Get album service bound to the request session."""
    return AlbumService(session, musicbrainz, cover_art, legacy_catalog, settings)


def get_rating_service(
    session: AsyncSession = Depends(get_db_session),
    album_service: AlbumService = Depends(get_album_service),
) -> RatingService:
    return RatingService(session, album_service)


def get_vote_service(session: AsyncSession = Depends(get_db_session)) -> VoteService:
    return VoteService(session)


def get_simlr_service(
    session: AsyncSession = Depends(get_db_session),
    album_service: AlbumService = Depends(get_album_service),
    rating_service: RatingService = Depends(get_rating_service),
    settings: Settings = Depends(get_app_settings),
) -> SimlrService:
    return SimlrService(session, album_service, rating_service, settings)


def get_discussion_service(
    session: AsyncSession = Depends(get_db_session),
    album_service: AlbumService = Depends(get_album_service),
    settings: Settings = Depends(get_app_settings),
) -> DiscussionService:
    return DiscussionService(session, album_service, settings)


def get_auth_service(
    session: AsyncSession = Depends(get_db_session),
    tokens: TokenService = Depends(get_token_service),
    settings: Settings = Depends(get_app_settings),
) -> AuthService:
    return AuthService(session, tokens, settings.auth)


def get_profile_service(
    session: AsyncSession = Depends(get_db_session),
    album_service: AlbumService = Depends(get_album_service),
) -> ProfileService:
    return ProfileService(session, album_service)


def parse_bearer_token(authorization: str) -> str:
    """Strip a case-insensitive "Bearer " prefix; a bare token is accepted as-is."""
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return authorization.strip()


# Browsers send the HTTP-only cookie; API clients and scripts may send the same JWT
# as "Authorization: Bearer <token>". The header wins when both are present. A blank
# header falls back to the cookie.
def get_access_token(
    authorization: str | None = Header(None),
    access_token: str | None = Cookie(None, alias=ACCESS_TOKEN_COOKIE),
) -> str | None:
    if authorization and authorization.strip():
        return parse_bearer_token(authorization)
    return access_token


async def get_current_user_optional(
    token: str | None = Depends(get_access_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> User | None:
    """The signed-in user, or None for anonymous readers.

    A present but invalid/expired token counts as anonymous here; only
    endpoints that require a user turn that into a 401.
    """
    if not token:
        return None
    try:
        return await auth_service.get_user_from_access_token(token)
    except AuthenticationError as e:
        logger.debug("Ignoring unusable access token on optional-auth route: %s", e.message)
        return None


async def get_current_user(
    token: str | None = Depends(get_access_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    """
    Raises:
        AuthenticationError: No token, bad token or deleted user (→ 401)
    """
    if not token:
        raise AuthenticationError("Unauthorized")
    return await auth_service.get_user_from_access_token(token)
