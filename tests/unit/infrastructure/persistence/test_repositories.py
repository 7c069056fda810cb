"""Tests for the SQLAlchemy repositories against a temp-file SQLite database.

Hey future me - the contended writes are single INSERT ... ON CONFLICT statements.
These tests pin the conflict targets: which key decides "same row", and which
columns an upsert may overwrite.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from conftest import count_rows, reasons_for_edge

from simlr.domain.dtos import AlbumDTO, ArtistCreditDTO
from simlr.domain.exceptions import ConfigurationError
from simlr.domain.value_objects import LegacyId, RegistryId, VoteEntityType, VoteTarget, VoteValue
from simlr.infrastructure.persistence import (
    AlbumRepository,
    RatingRepository,
    RefreshTokenRepository,
    RushmoreRepository,
    SimlrRepository,
    UserRepository,
    VoteRepository,
)
from simlr.infrastructure.persistence.models import SimlrEdgeModel, utc_now
from simlr.infrastructure.persistence.repositories import upsert_insert

MBID = "b1392450-e666-3926-a536-22c65f834433"


def album_dto(title: str = "OK Computer", **ids: str) -> AlbumDTO:
    ids = ids or {"mbid": MBID}
    return AlbumDTO(
        title=title,
        source_service="musicbrainz" if "mbid" in ids else "spotify",
        artists=[ArtistCreditDTO(id="artist-1", name="Radiohead")],
        **ids,
    )


class TestUpsertInsert:
    def test_unsupported_dialect(self) -> None:
        session = MagicMock()
        session.get_bind.return_value.dialect.name = "mysql"
        with pytest.raises(ConfigurationError):
            upsert_insert(session, object)


class TestAlbumRepository:
    """Tests for AlbumRepository."""

    async def test_upsert_same_mbid_keeps_id(self, session) -> None:
        repo = AlbumRepository(session)
        first = await repo.upsert(album_dto("OK Computer"))
        second = await repo.upsert(album_dto("OK Computer (Remaster)"))

        album = await repo.get_by_id(first)
        assert second == first
        assert album is not None
        assert album.title == "OK Computer (Remaster)"
        assert await repo.count() == 1

    async def test_legacy_refresh_keeps_mbid(self, session) -> None:
        """Test that a Spotify-keyed upsert never clears a known MBID."""
        repo = AlbumRepository(session)
        album_id = await repo.upsert(album_dto(mbid=MBID, spotify_id="6dVIqQ8qmQ5GBnJ9shOYGE"))
        again = await repo.upsert(album_dto("Renamed", spotify_id="6dVIqQ8qmQ5GBnJ9shOYGE"))

        album = await repo.get_by_id(album_id)
        assert again == album_id
        assert album is not None
        assert album.mbid == MBID
        assert album.title == "Renamed"

    async def test_get_by_identifier(self, session) -> None:
        repo = AlbumRepository(session)
        album_id = await repo.upsert(album_dto(mbid=MBID, spotify_id="6dVIqQ8qmQ5GBnJ9shOYGE"))

        by_mbid = await repo.get_by_identifier(RegistryId(MBID))
        by_legacy = await repo.get_by_identifier(LegacyId("6dVIqQ8qmQ5GBnJ9shOYGE"))

        assert by_mbid is not None and by_legacy is not None
        assert by_mbid.id == by_legacy.id == album_id
        assert await repo.get_by_identifier(LegacyId("ZZZZZZZZZZZZZZZZZZZZZZ")) is None

    async def test_get_many(self, session) -> None:
        repo = AlbumRepository(session)
        album_id = await repo.upsert(album_dto())
        found = await repo.get_many([album_id, "missing"])
        assert list(found) == [album_id]


class TestRatingRepository:
    """Tests for RatingRepository."""

    async def test_upsert_one_row_per_user_album(self, session, create_user) -> None:
        await create_user("u1")
        album_id = await AlbumRepository(session).upsert(album_dto())
        repo = RatingRepository(session)

        await repo.upsert("u1", album_id, 5)
        await repo.upsert("u1", album_id, 8)

        assert await repo.scores_for_album(album_id) == [8]
        assert await repo.get_score("u1", album_id) == 8
        assert await repo.get_score("u2", album_id) is None

    async def test_top_albums_tie_break_on_count(self, session, create_user) -> None:
        """Test that equal averages put the album with more ratings first."""
        albums = AlbumRepository(session)
        few = await albums.upsert(album_dto("Few", spotify_id="AAAAAAAAAAAAAAAAAAAAAA"))
        many = await albums.upsert(album_dto("Many", spotify_id="BBBBBBBBBBBBBBBBBBBBBB"))
        repo = RatingRepository(session)
        for i in range(3):
            user = await create_user(f"u{i}")
            await repo.upsert(user, many, 8)
            if i < 2:
                await repo.upsert(user, few, 8)

        rows = await repo.top_albums(min_count=1, limit=10)
        assert [(album_id, count) for album_id, _, count in rows] == [(many, 3), (few, 2)]

    async def test_list_for_user_sees_updates(self, session, create_user) -> None:
        await create_user("u1")
        album_id = await AlbumRepository(session).upsert(album_dto())
        repo = RatingRepository(session)

        await repo.upsert("u1", album_id, 3)
        assert [r.score for r in await repo.list_for_user("u1")] == [3]
        await repo.upsert("u1", album_id, 9)
        assert [r.score for r in await repo.list_for_user("u1")] == [9]


class TestVoteRepository:
    """Tests for VoteRepository."""

    async def test_delete_matching_only_same_value(self, session, create_user) -> None:
        await create_user("u1")
        repo = VoteRepository(session)
        target = VoteTarget.post("post-1")
        await repo.upsert("u1", target, VoteValue.UP)

        assert await repo.delete_matching("u1", target, VoteValue.DOWN) is False
        assert await repo.get_value("u1", target) == 1
        assert await repo.delete_matching("u1", target, VoteValue.UP) is True
        assert await repo.get_value("u1", target) == 0

    async def test_scores_for(self, session, create_user) -> None:
        repo = VoteRepository(session)
        for user, value in [("a", VoteValue.UP), ("b", VoteValue.UP), ("c", VoteValue.DOWN)]:
            await create_user(user)
            await repo.upsert(user, VoteTarget.comment("c1"), value)
        await repo.upsert("a", VoteTarget.comment("c2"), VoteValue.DOWN)

        scores = await repo.scores_for(VoteEntityType.COMMENT, ["c1", "c2", "c3"])
        mine = await repo.values_for_user("a", VoteEntityType.COMMENT, ["c1", "c2", "c3"])

        assert scores == {"c1": 1, "c2": -1}
        assert mine == {"c1": 1, "c2": -1}
        assert await repo.scores_for(VoteEntityType.POST, ["c1"]) == {}

    async def test_insert_if_absent_keeps_existing(self, session, create_user) -> None:
        await create_user("u1")
        repo = VoteRepository(session)
        target = VoteTarget.simlr_edge("e1")
        await repo.upsert("u1", target, VoteValue.DOWN)
        await repo.insert_if_absent("u1", target, VoteValue.UP)
        assert await repo.get_value("u1", target) == -1


class TestSimlrRepository:
    """Tests for SimlrRepository."""

    @pytest.fixture
    async def pair(self, session) -> tuple[str, str]:
        albums = AlbumRepository(session)
        return (
            await albums.upsert(album_dto("Source", spotify_id="AAAAAAAAAAAAAAAAAAAAAA")),
            await albums.upsert(album_dto("Target", spotify_id="BBBBBBBBBBBBBBBBBBBBBB")),
        )

    async def test_upsert_edge_returns_existing_id(self, session, pair) -> None:
        repo = SimlrRepository(session)
        first = await repo.upsert_edge(*pair)
        second = await repo.upsert_edge(*pair)
        assert first == second
        assert await count_rows(session, SimlrEdgeModel, source_album_id=pair[0], target_album_id=pair[1]) == 1
        assert await repo.edge_exists(first)
        assert not await repo.edge_exists("nope")

    async def test_reason_overwrite_flag(self, session, pair, create_user) -> None:
        await create_user("u1")
        repo = SimlrRepository(session)
        edge_id = await repo.upsert_edge(*pair)

        await repo.upsert_reason(edge_id, "u1", "first")
        await repo.upsert_reason(edge_id, "u1", "ignored", overwrite=False)
        assert [r.reason for r in await reasons_for_edge(session, edge_id)] == ["first"]

        await repo.upsert_reason(edge_id, "u1", "second")
        assert [r.reason for r in await reasons_for_edge(session, edge_id)] == ["second"]


class TestRushmoreRepository:
    async def test_upsert_replaces_slot(self, session, create_user) -> None:
        await create_user("u1")
        albums = AlbumRepository(session)
        a = await albums.upsert(album_dto("A", spotify_id="AAAAAAAAAAAAAAAAAAAAAA"))
        b = await albums.upsert(album_dto("B", spotify_id="BBBBBBBBBBBBBBBBBBBBBB"))
        repo = RushmoreRepository(session)

        await repo.upsert("u1", 1, a)
        await repo.upsert("u1", 1, b)
        slots = await repo.list_for_user("u1")

        assert [(s.slot, s.album_id) for s in slots] == [(1, b)]
        assert await repo.delete("u1", 1) is True
        assert await repo.delete("u1", 1) is False


class TestUserAndTokenRepositories:
    async def test_seed_user_upsert_is_idempotent(self, session) -> None:
        users = UserRepository(session)
        await users.upsert_seed_user("seed_alice", "alice", "Alice")
        await users.upsert_seed_user("seed_alice", "alice", "Alice A.")

        user = await users.get_by_username("alice")
        assert user is not None
        assert user.id == "seed_alice"
        assert user.email is None

    async def test_refresh_token_lifecycle(self, session) -> None:
        user = await UserRepository(session).create("ana@example.com", "hash", username="ana")
        tokens = RefreshTokenRepository(session)
        expires = utc_now() + timedelta(days=7)

        await tokens.add(user.id, "tok", expires)
        stored = await tokens.get("tok")

        assert stored is not None
        assert stored[0] == user.id
        assert abs(stored[1] - expires) < timedelta(seconds=1)
        assert await tokens.delete("tok") is True
        assert await tokens.get("tok") is None
