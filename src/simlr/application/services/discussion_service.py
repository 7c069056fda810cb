"""Album discussions: posts and flat comment threads with vote scores."""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from simlr.application.services.album_service import AlbumService
from simlr.application.services.ranking import Ranked, SortOrder, sort_ranked
from simlr.config.settings import Settings
from simlr.domain.entities import User
from simlr.domain.exceptions import (
    BusinessRuleViolation,
    EntityNotFoundException,
    ValidationException,
)
from simlr.domain.value_objects import VoteEntityType
from simlr.infrastructure.persistence.models import ensure_utc_aware
from simlr.infrastructure.persistence.repositories import (
    CommentRepository,
    PostRepository,
    UserRepository,
    VoteRepository,
)

logger = logging.getLogger(__name__)

POST_TITLE_MAX_LENGTH = 120
BODY_MAX_LENGTH = 5000


@dataclass(frozen=True)
class PostView:
    id: str
    title: str
    body: str
    user: User
    comment_count: int
    score: int
    my_vote: int
    created_at: datetime


@dataclass(frozen=True)
class CommentView:
    id: str
    parent_id: str | None
    body: str
    user: User
    score: int
    my_vote: int
    created_at: datetime


def _require_text(value: str, field_name: str, max_length: int) -> None:
    if not value or not value.strip():
        raise ValidationException(f"{field_name} cannot be empty")
    if len(value) > max_length:
        raise ValidationException(f"{field_name} must be at most {max_length} characters")


class DiscussionService:
    """Posts and comments."""

    def __init__(self, session: AsyncSession, album_service: AlbumService, settings: Settings) -> None:
        self.session = session
        self.album_service = album_service
        self.settings = settings
        self.posts = PostRepository(session)
        self.comments = CommentRepository(session)
        self.votes = VoteRepository(session)

    async def create_post(self, user_id: str, raw_album_id: str, title: str, body: str) -> str:
        """
        Raises:
            ValidationException: Empty/overlong title or body
            BusinessRuleViolation: Album can't be resolved
        """
        _require_text(title, "Title", POST_TITLE_MAX_LENGTH)
        _require_text(body, "Body", BODY_MAX_LENGTH)

        album_id = await self.album_service.resolve_album_id(raw_album_id)
        if album_id is None:
            raise BusinessRuleViolation("Album not found (upsert it first)")

        post_id = await self.posts.create(album_id, user_id, title, body)
        logger.info("User %s posted %s on album %s", user_id, post_id, album_id)
        return post_id

    async def list_posts(
        self,
        raw_album_id: str,
        sort: SortOrder = SortOrder.HOT,
        viewer_id: str | None = None,
    ) -> list[PostView]:
        """Latest posts of an album, scored and ranked. Unresolvable album → []."""
        album_id = await self.album_service.resolve_album_id(raw_album_id)
        if album_id is None:
            return []

        ranking = self.settings.ranking
        posts = await self.posts.recent_for_album(album_id, ranking.post_candidate_limit)
        post_ids = [p.id for p in posts]
        comment_counts = await self.posts.comment_counts(post_ids)
        scores = await self.votes.scores_for(VoteEntityType.POST, post_ids)
        my_votes = (
            await self.votes.values_for_user(viewer_id, VoteEntityType.POST, post_ids)
            if viewer_id
            else {}
        )

        candidates = [
            Ranked(
                item=PostView(
                    id=p.id,
                    title=p.title,
                    body=p.body,
                    user=UserRepository._model_to_entity(p.user),
                    comment_count=comment_counts.get(p.id, 0),
                    score=scores.get(p.id, 0),
                    my_vote=my_votes.get(p.id, 0),
                    created_at=ensure_utc_aware(p.created_at),
                ),
                score=scores.get(p.id, 0),
                created_at=p.created_at,
            )
            for p in posts
        ]
        ranked = sort_ranked(candidates, sort, epoch=ranking.epoch, divisor=ranking.divisor)
        return [r.item for r in ranked[: ranking.result_limit]]

    async def create_comment(
        self, user_id: str, post_id: str, body: str, parent_id: str | None = None
    ) -> str:
        """
        Raises:
            ValidationException: Empty/overlong body
            EntityNotFoundException: Post (or parent comment) doesn't exist
            BusinessRuleViolation: Parent comment belongs to another post
        """
        _require_text(body, "Body", BODY_MAX_LENGTH)

        if await self.posts.get(post_id) is None:
            raise EntityNotFoundException("Post", post_id)
        if parent_id is not None:
            parent = await self.comments.get(parent_id)
            if parent is None:
                raise EntityNotFoundException("Comment", parent_id)
            if parent.post_id != post_id:
                raise BusinessRuleViolation("Parent comment belongs to a different post")

        comment_id = await self.comments.create(post_id, user_id, body, parent_id)
        logger.info("User %s commented %s on post %s", user_id, comment_id, post_id)
        return comment_id

    async def list_comments(
        self,
        post_id: str,
        sort: SortOrder = SortOrder.NEW,
        viewer_id: str | None = None,
    ) -> list[CommentView]:
        """All comments of a post. ``new`` is chronological (oldest first), ``top`` by score."""
        if sort is SortOrder.HOT:
            raise ValidationException("sort must be 'new' or 'top'")

        comments = await self.comments.list_for_post(post_id)
        ids = [c.id for c in comments]
        scores = await self.votes.scores_for(VoteEntityType.COMMENT, ids)
        my_votes = (
            await self.votes.values_for_user(viewer_id, VoteEntityType.COMMENT, ids)
            if viewer_id
            else {}
        )

        views = [
            CommentView(
                id=c.id,
                parent_id=c.parent_id,
                body=c.body,
                user=UserRepository._model_to_entity(c.user),
                score=scores.get(c.id, 0),
                my_vote=my_votes.get(c.id, 0),
                created_at=ensure_utc_aware(c.created_at),
            )
            for c in comments
        ]
        if sort is SortOrder.TOP:
            views.sort(key=lambda v: v.score, reverse=True)
        return views
