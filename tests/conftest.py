"""Shared fixtures: isolated settings, a temp-file database and fake metadata clients.

Hey future me - aiosqlite ":memory:" gives every connection its own empty database,
so tests use a file under tmp_path instead. Each test gets a fresh file.
"""

import asyncio
from collections.abc import AsyncIterator, Iterator
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from simlr.api.dependencies import get_cover_art_client, get_musicbrainz_client
from simlr.application.services import AlbumService
from simlr.config.settings import (
    AuthSettings,
    CoverArtSettings,
    DatabaseSettings,
    MusicBrainzSettings,
    Settings,
    SpotifySettings,
)
from simlr.domain.dtos import AlbumDTO, ArtistCreditDTO
from simlr.domain.ports import ICoverArtClient, IMusicBrainzClient
from simlr.infrastructure.integrations import MockCatalogClient
from simlr.infrastructure.persistence import Database, UserRepository
from simlr.infrastructure.persistence.models import SimlrReasonModel
from simlr.main import create_app

OK_COMPUTER_MBID = "b1392450-e666-3926-a536-22c65f834433"
KID_A_MBID = "a3a0b7d5-1fd4-3b43-9a6c-2f3cd31a2dc3"
UNKNOWN_MBID = "00000000-0000-4000-8000-000000000000"
COVER_BASE = "https://coverartarchive.org/release-group"

TEST_PASSWORD = "correct-horse-battery"


def make_registry_album(mbid: str, title: str, artist: str, year: int) -> AlbumDTO:
    return AlbumDTO(
        mbid=mbid,
        title=title,
        source_service="musicbrainz",
        artists=[ArtistCreditDTO(id=f"artist-{title.lower().replace(' ', '-')}", name=artist)],
        release_year=year,
        primary_type="Album",
    )


class FakeMusicBrainz(IMusicBrainzClient):
    """In-memory release groups; records every lookup."""

    def __init__(self, albums: list[AlbumDTO] | None = None, delay: float = 0.0) -> None:
        self.albums = {a.mbid: a for a in albums or [] if a.mbid}
        self.delay = delay
        self.lookups: list[str] = []
        self.searches: list[str] = []

    async def search_release_groups(self, query: str, limit: int = 25) -> list[AlbumDTO]:
        self.searches.append(query)
        needle = query.lower()
        hits = [a for a in self.albums.values() if needle in a.title.lower()]
        return [replace(a) for a in hits[:limit]]

    async def lookup_release_group(self, mbid: str) -> AlbumDTO | None:
        self.lookups.append(mbid)
        if self.delay:
            await asyncio.sleep(self.delay)
        album = self.albums.get(mbid)
        # AlbumService writes cover_url onto the DTO; never hand out the stored one
        return replace(album) if album else None


class FakeCoverArt(ICoverArtClient):
    """Every MBID in ``with_art`` has a front cover."""

    def __init__(self, with_art: set[str] | None = None) -> None:
        self.with_art = with_art if with_art is not None else set()
        self.probes: list[str] = []

    async def get_release_group_front_url(self, mbid: str) -> str | None:
        self.probes.append(mbid)
        if mbid in self.with_art:
            return f"{COVER_BASE}/{mbid}/front-500"
        return None


def build_settings(database_url: str) -> Settings:
    return Settings(
        _env_file=None,
        seed_mock_data=False,
        database=DatabaseSettings(url=database_url),
        auth=AuthSettings(jwt_secret="test-secret-key-that-is-long-enough-123", bcrypt_rounds=4),
        musicbrainz=MusicBrainzSettings(initial_retry_delay=0.0),
        coverart=CoverArtSettings(initial_retry_delay=0.0),
        spotify=SpotifySettings(),
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return build_settings(f"sqlite+aiosqlite:///{tmp_path / 'simlr-test.db'}")


@pytest.fixture
async def db(settings: Settings) -> AsyncIterator[Database]:
    database = Database(settings)
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
async def session(db: Database) -> AsyncIterator[AsyncSession]:
    async with db.session_scope() as s:
        yield s


@pytest.fixture
def fake_musicbrainz() -> FakeMusicBrainz:
    return FakeMusicBrainz(
        [
            make_registry_album(OK_COMPUTER_MBID, "OK Computer", "Radiohead", 1997),
            make_registry_album(KID_A_MBID, "Kid A", "Radiohead", 2000),
        ]
    )


@pytest.fixture
def fake_cover_art() -> FakeCoverArt:
    return FakeCoverArt({OK_COMPUTER_MBID})


@pytest.fixture
def album_service(
    session: AsyncSession,
    fake_musicbrainz: FakeMusicBrainz,
    fake_cover_art: FakeCoverArt,
    settings: Settings,
) -> AlbumService:
    return AlbumService(session, fake_musicbrainz, fake_cover_art, MockCatalogClient(), settings)


@pytest.fixture
def create_user(session: AsyncSession):
    """Factory for password-less users (ratings need a real users row)."""
    users = UserRepository(session)

    async def _create(user_id: str, username: str | None = None) -> str:
        await users.upsert_seed_user(user_id, username or user_id, user_id.title())
        return user_id

    return _create


@pytest.fixture
def app(settings: Settings, fake_musicbrainz: FakeMusicBrainz, fake_cover_art: FakeCoverArt):
    application = create_app(settings)
    application.dependency_overrides[get_musicbrainz_client] = lambda: fake_musicbrainz
    application.dependency_overrides[get_cover_art_client] = lambda: fake_cover_art
    return application


@pytest.fixture
def client(app) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


def register_user(
    client: TestClient,
    email: str,
    username: str | None = None,
    password: str = TEST_PASSWORD,
) -> dict[str, str]:
    """Register through the API and return a Bearer header for that user.

    The header wins over whatever cookie the shared client jar holds, so
    several users can act through one TestClient.
    """
    response = client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "username": username},
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.cookies['access_token']}"}


async def count_rows(session: AsyncSession, model: type, **filters: str) -> int:
    """Row count of ``model`` matching column == value for every filter."""
    stmt = select(func.count()).select_from(model).filter_by(**filters)
    return int((await session.execute(stmt)).scalar_one())


async def reasons_for_edge(session: AsyncSession, edge_id: str) -> list[SimlrReasonModel]:
    """Oldest first; re-read so upserts done through Core statements show up."""
    stmt = (
        select(SimlrReasonModel)
        .where(SimlrReasonModel.edge_id == edge_id)
        .order_by(SimlrReasonModel.created_at)
        .execution_options(populate_existing=True)
    )
    return list((await session.execute(stmt)).scalars().all())
