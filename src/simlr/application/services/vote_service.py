"""Vote reconciliation for edges, posts and comments.

State machine per (user, target):

    NoVote    --up-->   Upvoted      NoVote    --down--> Downvoted
    Upvoted   --up-->   NoVote       Upvoted   --down--> Downvoted
    Downvoted --down--> NoVote       Downvoted --up-->   Upvoted

Hey future me - implemented with two atomic statements, never read-then-write:
1. DELETE the caller's vote WHERE value = :value. A deleted row means "same
   direction again" → toggled off, done.
2. Otherwise INSERT ... ON CONFLICT DO UPDATE SET value (covers NoVote and flip).
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from simlr.domain.exceptions import EntityNotFoundException
from simlr.domain.value_objects import VoteEntityType, VoteTarget, VoteValue
from simlr.infrastructure.persistence.repositories import (
    CommentRepository,
    PostRepository,
    SimlrRepository,
    VoteRepository,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteResult:
    score: int
    my_vote: int  # -1, 0 or 1


class VoteService:
    """Casts votes and reports the target's net score."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.votes = VoteRepository(session)
        self.edges = SimlrRepository(session)
        self.posts = PostRepository(session)
        self.comments = CommentRepository(session)

    async def _post_exists(self, post_id: str) -> bool:
        return await self.posts.get(post_id) is not None

    async def _comment_exists(self, comment_id: str) -> bool:
        return await self.comments.get(comment_id) is not None

    def _existence_check(self, entity_type: VoteEntityType) -> Callable[[str], Awaitable[bool]]:
        checks: dict[VoteEntityType, Callable[[str], Awaitable[bool]]] = {
            VoteEntityType.SIMLR_EDGE: self.edges.edge_exists,
            VoteEntityType.POST: self._post_exists,
            VoteEntityType.COMMENT: self._comment_exists,
        }
        return checks[entity_type]

    async def ensure_target_exists(self, target: VoteTarget) -> None:
        """
        Raises:
            EntityNotFoundException: No edge/post/comment with that id
        """
        if not await self._existence_check(target.entity_type)(target.entity_id):
            raise EntityNotFoundException(target.entity_type.value, target.entity_id)

    async def cast_vote(self, user_id: str, target: VoteTarget, value: VoteValue) -> VoteResult:
        """Apply one up/down action and return the new net score and caller's vote."""
        await self.ensure_target_exists(target)

        if await self.votes.delete_matching(user_id, target, value):
            logger.debug("Vote toggled off: %s %s by %s", target.entity_type.value, target.entity_id, user_id)
        else:
            await self.votes.upsert(user_id, target, value)
            logger.debug(
                "Vote %+d on %s %s by %s", int(value), target.entity_type.value, target.entity_id, user_id
            )

        return VoteResult(
            score=await self.votes.score(target),
            my_vote=await self.votes.get_value(user_id, target),
        )
