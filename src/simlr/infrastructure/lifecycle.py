"""Startup and shutdown of the resources routes find on ``app.state``.

Startup order: logging, database (tables created if missing), outbound
clients, token service, then the optional mock seed. Shutdown closes them in
reverse order.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import AsyncExitStack, asynccontextmanager

from fastapi import FastAPI

from simlr.config import Settings, get_settings
from simlr.domain.ports import ILegacyCatalogClient
from simlr.infrastructure.integrations import (
    CoverArtArchiveClient,
    MockCatalogClient,
    MusicBrainzClient,
    SpotifyClient,
)
from simlr.infrastructure.observability import configure_logging
from simlr.infrastructure.persistence import Database
from simlr.infrastructure.security import TokenService

logger = logging.getLogger(__name__)


def _user_agent(settings: Settings) -> str:
    mb = settings.musicbrainz
    return f"{mb.app_name}/{mb.app_version} ( {mb.contact} )"


async def _seed_if_offline(db: Database, settings: Settings) -> None:
    """Bootstrap the mock catalog when no legacy catalog credentials exist."""
    if settings.spotify.has_credentials or not settings.seed_mock_data:
        return

    from simlr.application.services.seed_service import SeedService

    async with db.session_scope() as session:
        seeded = await SeedService(session).ensure_mock_seeded()
    if seeded:
        logger.info("Offline mode: mock catalog seeded")
    else:
        logger.debug("Offline mode: albums already present, seed skipped")


# Hey future me - tests hand their own Settings to create_app(), which parks them on
# app.state.settings. Only fall back to the cached env settings when nothing was given.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build shared resources on startup and release them in reverse order on shutdown."""
    settings: Settings = getattr(app.state, "settings", None) or get_settings()
    app.state.settings = settings

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("%s starting", settings.app_name)

    async with AsyncExitStack() as resources:
        try:
            db = Database(settings)
            resources.push_async_callback(db.close)
            await db.create_tables()
            app.state.db = db

            musicbrainz = MusicBrainzClient(settings.musicbrainz)
            resources.push_async_callback(musicbrainz.close)
            cover_art = CoverArtArchiveClient(settings.coverart, user_agent=_user_agent(settings))
            resources.push_async_callback(cover_art.close)
            app.state.musicbrainz_client = musicbrainz
            app.state.cover_art_client = cover_art

            legacy: ILegacyCatalogClient
            if settings.spotify.has_credentials:
                legacy = SpotifyClient(settings.spotify)
                logger.info("Legacy catalog: Spotify Web API")
            else:
                legacy = MockCatalogClient()
                logger.info("Legacy catalog: mock dataset (no Spotify credentials)")
            resources.push_async_callback(legacy.close)
            app.state.legacy_catalog_client = legacy

            app.state.token_service = TokenService(settings.auth)

            await _seed_if_offline(db, settings)
        except Exception:
            logger.exception("Startup failed")
            raise

        yield
        logger.info("%s shutting down", settings.app_name)
