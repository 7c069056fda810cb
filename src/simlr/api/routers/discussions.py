"""Album discussion posts and their comment threads."""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from simlr.api.dependencies import (
    get_current_user,
    get_current_user_optional,
    get_db_session,
    get_discussion_service,
)
from simlr.api.schemas.common import IdOut
from simlr.api.schemas.community import (
    CommentCreateRequest,
    CommentCreateResponse,
    CommentListResponse,
    CommentOut,
    PostCreateRequest,
    PostCreateResponse,
    PostListResponse,
    PostOut,
)
from simlr.application.services import DiscussionService, SortOrder
from simlr.domain.entities import User

logger = logging.getLogger(__name__)

posts_router = APIRouter()
comments_router = APIRouter()


@posts_router.get("")
async def list_posts(
    album_id: str = Query(..., alias="albumId", min_length=1),
    sort: SortOrder = Query(SortOrder.HOT),
    discussions: DiscussionService = Depends(get_discussion_service),
    user: User | None = Depends(get_current_user_optional),
) -> PostListResponse:
    posts = await discussions.list_posts(album_id, sort, user.id if user else None)
    return PostListResponse(items=[PostOut.from_view(p) for p in posts])


@posts_router.post("")
async def create_post(
    payload: PostCreateRequest,
    session: AsyncSession = Depends(get_db_session),
    discussions: DiscussionService = Depends(get_discussion_service),
    user: User = Depends(get_current_user),
) -> PostCreateResponse:
    post_id = await discussions.create_post(
        user.id, payload.album_id, payload.title, payload.body
    )
    await session.commit()
    return PostCreateResponse(post=IdOut(id=post_id))


@comments_router.get("")
async def list_comments(
    post_id: str = Query(..., alias="postId", min_length=1),
    sort: SortOrder = Query(SortOrder.NEW, description="'new' (oldest first) or 'top'"),
    discussions: DiscussionService = Depends(get_discussion_service),
    user: User | None = Depends(get_current_user_optional),
) -> CommentListResponse:
    comments = await discussions.list_comments(post_id, sort, user.id if user else None)
    return CommentListResponse(items=[CommentOut.from_view(c) for c in comments])


@comments_router.post("")
async def create_comment(
    payload: CommentCreateRequest,
    session: AsyncSession = Depends(get_db_session),
    discussions: DiscussionService = Depends(get_discussion_service),
    user: User = Depends(get_current_user),
) -> CommentCreateResponse:
    comment_id = await discussions.create_comment(
        user.id, payload.post_id, payload.body, payload.parent_id
    )
    await session.commit()
    return CommentCreateResponse(comment=IdOut(id=comment_id))
