"""Mock catalog bootstrap for running without legacy catalog credentials.

Hey future me - the seed only runs when the album table is EMPTY, and every
write below is an upsert or insert-if-absent keyed by a fixed id. Two
processes starting at once can both decide to seed; neither can duplicate rows.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from simlr.domain.value_objects import VoteTarget, VoteValue
from simlr.infrastructure.integrations.mock_catalog import MOCK_ALBUMS
from simlr.infrastructure.persistence.repositories import (
    AlbumRepository,
    CommentRepository,
    PostRepository,
    RatingRepository,
    SimlrRepository,
    UserRepository,
    VoteRepository,
)

logger = logging.getLogger(__name__)

SEED_USERS = [
    ("seed_alice", "alice", "Alice"),
    ("seed_bob", "bob", "Bob"),
    ("seed_cara", "cara", "Cara"),
]

# (user id, legacy album id, score)
SEED_RATINGS = [
    ("seed_alice", "MockInRainbows00000001", 10),
    ("seed_bob", "MockInRainbows00000001", 9),
    ("seed_cara", "MockInRainbows00000001", 8),
    ("seed_alice", "MockToPimpAButterfly01", 9),
    ("seed_bob", "MockToPimpAButterfly01", 10),
    ("seed_cara", "MockToPimpAButterfly01", 9),
    ("seed_alice", "MockBlonde000000000001", 8),
    ("seed_bob", "MockBlonde000000000001", 7),
    ("seed_cara", "MockBlonde000000000001", 9),
    ("seed_alice", "MockFlowersForVibes001", 6),
    ("seed_bob", "MockFlowersForVibes001", 7),
    ("seed_cara", "MockFlowersForVibes001", 6),
]

SEED_POST_ID = "seed_post_first_impressions"
SEED_COMMENT_ID = "seed_comment_first_impressions"
SEED_EDGE_SOURCE = "MockInRainbows00000001"
SEED_EDGE_TARGET = "MockBlonde000000000001"
SEED_REASON = (
    "Both albums reward full, front-to-back listening. Different worlds, "
    "same obsessiveness about texture and pacing, and both save their best "
    "moments for the quiet stretches."
)


class SeedService:
    """Populates an empty database with the mock catalog and demo activity."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.albums = AlbumRepository(session)
        self.users = UserRepository(session)
        self.ratings = RatingRepository(session)
        self.posts = PostRepository(session)
        self.comments = CommentRepository(session)
        self.edges = SimlrRepository(session)
        self.votes = VoteRepository(session)

    async def ensure_mock_seeded(self) -> bool:
        """Seed if no album exists yet.

        Returns:
            True if seeding ran, False if the database already had albums
        """
        if await self.albums.count() > 0:
            return False

        for user_id, username, display_name in SEED_USERS:
            await self.users.upsert_seed_user(user_id, username, display_name)

        album_ids = {dto.spotify_id: await self.albums.upsert(dto) for dto in MOCK_ALBUMS}

        for user_id, legacy_id, score in SEED_RATINGS:
            await self.ratings.upsert(user_id, album_ids[legacy_id], score)

        source_id = album_ids[SEED_EDGE_SOURCE]
        target_id = album_ids[SEED_EDGE_TARGET]

        post_id = await self.posts.create(
            source_id,
            "seed_alice",
            "First impressions",
            "This is seeded test data so the UI has something to render without Spotify keys.",
            post_id=SEED_POST_ID,
        )
        await self.comments.create(
            post_id,
            "seed_bob",
            "Seeded comment: agree. The mix is incredible.",
            comment_id=SEED_COMMENT_ID,
        )

        edge_id = await self.edges.upsert_edge(source_id, target_id)
        await self.edges.upsert_reason(edge_id, "seed_cara", SEED_REASON, overwrite=False)
        for voter in ("seed_alice", "seed_bob"):
            await self.votes.insert_if_absent(voter, VoteTarget.simlr_edge(edge_id), VoteValue.UP)

        logger.info(
            "Seeded mock catalog: %d users, %d albums, %d ratings",
            len(SEED_USERS),
            len(album_ids),
            len(SEED_RATINGS),
        )
        return True
