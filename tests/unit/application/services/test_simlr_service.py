"""Tests for SimlrService: validation order, the rating gate, in-place reason upserts."""

import pytest
from conftest import KID_A_MBID, OK_COMPUTER_MBID, FakeMusicBrainz, count_rows, reasons_for_edge

from simlr.application.services import AlbumService, RatingService, SimlrService, SortOrder, VoteService
from simlr.domain.exceptions import (
    AlbumIdentifierNotRecognized,
    AuthorizationError,
    BusinessRuleViolation,
    ValidationException,
)
from simlr.domain.value_objects import VoteTarget, VoteValue
from simlr.infrastructure.persistence.models import SimlrEdgeModel

BLONDE = "MockBlonde000000000001"
IN_RAINBOWS = "MockInRainbows00000001"
TPAB = "MockToPimpAButterfly01"


def reason_of_length(n: int, seed: str = "Same patient builds and warm, close-miked textures. ") -> str:
    return (seed * (n // len(seed) + 1))[:n]


@pytest.fixture
def rating_service(session, album_service: AlbumService) -> RatingService:
    return RatingService(session, album_service)


@pytest.fixture
def simlr_service(session, album_service: AlbumService, rating_service: RatingService, settings) -> SimlrService:
    return SimlrService(session, album_service, rating_service, settings)


@pytest.fixture
async def catalog(album_service: AlbumService) -> dict[str, str]:
    """Legacy album id → internal id for three stored albums."""
    return {legacy: (await album_service.upsert_album(legacy)).id for legacy in (IN_RAINBOWS, BLONDE, TPAB)}


@pytest.fixture
async def rater(create_user, rating_service: RatingService, catalog) -> str:
    """A user who has rated In Rainbows (the source album in most tests)."""
    await create_user("rater")
    await rating_service.rate("rater", IN_RAINBOWS, 9)
    return "rater"


class TestCreateEdgeValidation:
    """Checks run in order: self-loop, reason length, resolution, rating gate."""

    async def test_self_loop(self, simlr_service: SimlrService, rater) -> None:
        with pytest.raises(BusinessRuleViolation):
            await simlr_service.create_edge(rater, IN_RAINBOWS, IN_RAINBOWS, reason_of_length(200))

    async def test_self_loop_checked_before_reason(self, simlr_service: SimlrService, rater) -> None:
        with pytest.raises(BusinessRuleViolation):
            await simlr_service.create_edge(rater, IN_RAINBOWS, IN_RAINBOWS, "short")

    async def test_self_loop_through_different_spellings(
        self, simlr_service: SimlrService, create_user, rating_service: RatingService
    ) -> None:
        """Test that an MBID in upper and lower case still counts as the same album."""
        await create_user("u1")
        await rating_service.rate("u1", OK_COMPUTER_MBID, 8)
        with pytest.raises(BusinessRuleViolation):
            await simlr_service.create_edge(
                "u1", OK_COMPUTER_MBID, OK_COMPUTER_MBID.upper(), reason_of_length(150)
            )

    @pytest.mark.parametrize("length", [0, 139, 281])
    async def test_reason_length_bounds(self, simlr_service: SimlrService, rater, length: int) -> None:
        """Test that reasons outside 140-280 characters are rejected."""
        with pytest.raises(ValidationException):
            await simlr_service.create_edge(rater, IN_RAINBOWS, BLONDE, reason_of_length(length))

    @pytest.mark.parametrize("length", [140, 280])
    async def test_reason_length_inclusive(self, simlr_service: SimlrService, rater, length: int) -> None:
        assert await simlr_service.create_edge(rater, IN_RAINBOWS, BLONDE, reason_of_length(length))

    async def test_reason_checked_before_resolution(
        self, simlr_service: SimlrService, rater, fake_musicbrainz: FakeMusicBrainz
    ) -> None:
        with pytest.raises(ValidationException):
            await simlr_service.create_edge(rater, OK_COMPUTER_MBID, KID_A_MBID, "too short")
        assert fake_musicbrainz.lookups == []

    async def test_unrecognized_identifier(self, simlr_service: SimlrService, rater) -> None:
        with pytest.raises(AlbumIdentifierNotRecognized):
            await simlr_service.create_edge(rater, IN_RAINBOWS, "garbage", reason_of_length(150))

    async def test_unresolvable_album(self, simlr_service: SimlrService, rater) -> None:
        """Test that an unstored legacy target is a business-rule violation, not a 404."""
        with pytest.raises(BusinessRuleViolation):
            await simlr_service.create_edge(
                rater, IN_RAINBOWS, "MockFlowersForVibes001", reason_of_length(150)
            )

    async def test_rating_gate(self, simlr_service: SimlrService, rater) -> None:
        """Test that the source album must be rated; rating the target doesn't count."""
        with pytest.raises(AuthorizationError, match="rate the source album"):
            await simlr_service.create_edge(rater, BLONDE, IN_RAINBOWS, reason_of_length(150))

    async def test_rejected_write_leaves_no_edge(self, simlr_service: SimlrService, rater, catalog, session) -> None:
        with pytest.raises(AuthorizationError):
            await simlr_service.create_edge(rater, BLONDE, IN_RAINBOWS, reason_of_length(150))
        assert await count_rows(session, SimlrEdgeModel, source_album_id=catalog[BLONDE]) == 0


class TestCreateEdgeUpserts:
    """Edges are unique per pair and reasons unique per (edge, user)."""

    async def test_resubmit_overwrites_own_reason(
        self, simlr_service: SimlrService, rater, catalog, session
    ) -> None:
        first = await simlr_service.create_edge(rater, IN_RAINBOWS, BLONDE, reason_of_length(150))
        second = await simlr_service.create_edge(
            rater, IN_RAINBOWS, BLONDE, reason_of_length(200, "Revised: both end on a long exhale. ")
        )

        reasons = await reasons_for_edge(session, first)
        assert second == first
        assert await count_rows(
            session, SimlrEdgeModel, source_album_id=catalog[IN_RAINBOWS], target_album_id=catalog[BLONDE]
        ) == 1
        assert len(reasons) == 1
        assert reasons[0].reason.startswith("Revised:")

    async def test_other_users_reason_is_kept(
        self, simlr_service: SimlrService, rating_service: RatingService, rater, create_user, session
    ) -> None:
        await create_user("second")
        await rating_service.rate("second", IN_RAINBOWS, 7)

        edge_id = await simlr_service.create_edge(rater, IN_RAINBOWS, BLONDE, reason_of_length(150))
        await simlr_service.create_edge(
            "second", IN_RAINBOWS, BLONDE, reason_of_length(150, "Another angle entirely. ")
        )

        reasons = await reasons_for_edge(session, edge_id)
        assert sorted(r.user_id for r in reasons) == ["rater", "second"]

    async def test_direction_matters(
        self, simlr_service: SimlrService, rating_service: RatingService, rater
    ) -> None:
        await rating_service.rate(rater, BLONDE, 8)
        forward = await simlr_service.create_edge(rater, IN_RAINBOWS, BLONDE, reason_of_length(150))
        backward = await simlr_service.create_edge(rater, BLONDE, IN_RAINBOWS, reason_of_length(150))
        assert forward != backward


class TestListEdges:
    """Tests for list_edges()."""

    @pytest.fixture
    async def two_edges(self, simlr_service: SimlrService, rater, create_user, session) -> dict[str, str]:
        to_blonde = await simlr_service.create_edge(rater, IN_RAINBOWS, BLONDE, reason_of_length(150))
        to_tpab = await simlr_service.create_edge(rater, IN_RAINBOWS, TPAB, reason_of_length(150))
        votes = VoteService(session)
        for voter in ("v1", "v2"):
            await create_user(voter)
            await votes.cast_vote(voter, VoteTarget.simlr_edge(to_tpab), VoteValue.UP)
        return {"blonde": to_blonde, "tpab": to_tpab}

    async def test_top_orders_by_votes(self, simlr_service: SimlrService, two_edges) -> None:
        edges = await simlr_service.list_edges(IN_RAINBOWS, SortOrder.TOP)

        assert [e.id for e in edges] == [two_edges["tpab"], two_edges["blonde"]]
        assert [e.score for e in edges] == [2, 0]
        assert edges[0].target_album.title == "To Pimp a Butterfly"
        assert edges[0].reasons[0].user.username == "rater"

    async def test_new_orders_by_creation(self, simlr_service: SimlrService, two_edges) -> None:
        edges = await simlr_service.list_edges(IN_RAINBOWS, SortOrder.NEW)
        assert [e.id for e in edges] == [two_edges["tpab"], two_edges["blonde"]]

    async def test_viewer_vote(self, simlr_service: SimlrService, two_edges) -> None:
        anonymous = await simlr_service.list_edges(IN_RAINBOWS)
        as_voter = await simlr_service.list_edges(IN_RAINBOWS, viewer_id="v1")

        assert all(e.my_vote == 0 for e in anonymous)
        assert {e.id: e.my_vote for e in as_voter}[two_edges["tpab"]] == 1

    async def test_only_outgoing_edges(self, simlr_service: SimlrService, two_edges) -> None:
        assert await simlr_service.list_edges(BLONDE) == []

    async def test_at_most_three_reasons_per_edge(
        self, simlr_service: SimlrService, rating_service: RatingService, create_user, catalog
    ) -> None:
        for i in range(5):
            user = await create_user(f"writer{i}")
            await rating_service.rate(user, IN_RAINBOWS, 8)
            await simlr_service.create_edge(user, IN_RAINBOWS, BLONDE, reason_of_length(150))

        (edge,) = await simlr_service.list_edges(IN_RAINBOWS)
        assert len(edge.reasons) == 3

    async def test_unresolvable_album_lists_nothing(self, simlr_service: SimlrService) -> None:
        assert await simlr_service.list_edges("MockFlowersForVibes001") == []

    async def test_hot_is_not_offered(self, simlr_service: SimlrService) -> None:
        with pytest.raises(ValidationException):
            await simlr_service.list_edges(IN_RAINBOWS, SortOrder.HOT)
