"""API schemas for votes, Simlr edges, posts and comments."""

from datetime import datetime
from typing import Literal

from pydantic import Field

from simlr.api.schemas.common import AlbumOut, CamelModel, IdOut, UserPublic
from simlr.application.services.discussion_service import CommentView, PostView
from simlr.application.services.simlr_service import SimlrEdgeView
from simlr.domain.value_objects import VoteEntityType


class VoteRequest(CamelModel):
    entity_type: VoteEntityType
    entity_id: str = Field(..., min_length=1)
    value: Literal[1, -1]


class VoteResponse(CamelModel):
    score: int
    my_vote: int


class SimlrCreateRequest(CamelModel):
    """Body of POST /simlrs. Both album ids may be MBIDs or Spotify IDs.

    Reason length is checked by the service against configured bounds.
    """

    source_album_id: str = Field(..., min_length=1)
    target_album_id: str = Field(..., min_length=1)
    reason: str


class SimlrCreateResponse(CamelModel):
    edge: IdOut


class SimlrReasonOut(CamelModel):
    user: UserPublic
    reason: str
    created_at: datetime


class SimlrEdgeOut(CamelModel):
    id: str
    target_album: AlbumOut
    reasons: list[SimlrReasonOut]
    score: int
    my_vote: int
    created_at: datetime

    @classmethod
    def from_view(cls, view: SimlrEdgeView) -> "SimlrEdgeOut":
        return cls(
            id=view.id,
            target_album=AlbumOut.from_entity(view.target_album),
            reasons=[
                SimlrReasonOut(
                    user=UserPublic.from_entity(r.user),
                    reason=r.reason,
                    created_at=r.created_at,
                )
                for r in view.reasons
            ],
            score=view.score,
            my_vote=view.my_vote,
            created_at=view.created_at,
        )


class SimlrListResponse(CamelModel):
    items: list[SimlrEdgeOut]


class PostCreateRequest(CamelModel):
    album_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=120)
    body: str = Field(..., min_length=1, max_length=5000)


class PostCreateResponse(CamelModel):
    post: IdOut


class PostOut(CamelModel):
    id: str
    title: str
    body: str
    user: UserPublic
    comment_count: int
    score: int
    my_vote: int
    created_at: datetime

    @classmethod
    def from_view(cls, view: PostView) -> "PostOut":
        return cls(
            id=view.id,
            title=view.title,
            body=view.body,
            user=UserPublic.from_entity(view.user),
            comment_count=view.comment_count,
            score=view.score,
            my_vote=view.my_vote,
            created_at=view.created_at,
        )


class PostListResponse(CamelModel):
    items: list[PostOut]


class CommentCreateRequest(CamelModel):
    post_id: str = Field(..., min_length=1)
    parent_id: str | None = Field(default=None, min_length=1)
    body: str = Field(..., min_length=1, max_length=5000)


class CommentCreateResponse(CamelModel):
    comment: IdOut


class CommentOut(CamelModel):
    id: str
    parent_id: str | None = None
    body: str
    user: UserPublic
    score: int
    my_vote: int
    created_at: datetime

    @classmethod
    def from_view(cls, view: CommentView) -> "CommentOut":
        return cls(
            id=view.id,
            parent_id=view.parent_id,
            body=view.body,
            user=UserPublic.from_entity(view.user),
            score=view.score,
            my_vote=view.my_vote,
            created_at=view.created_at,
        )


class CommentListResponse(CamelModel):
    items: list[CommentOut]
