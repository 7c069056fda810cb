"""SQLAlchemy ORM models for Simlr."""

import uuid
from datetime import UTC, datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import JSON, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! UTC datetimes come back naive.
# Attach UTC before comparing with datetime.now(UTC) or computing epoch seconds.
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )


# Hey future me - the album row is keyed by OUR id, never by an external one. MBID and
# Spotify ID are both nullable+unique so the same album can carry both during the
# migration. Upserts go through INSERT ... ON CONFLICT on whichever external column
# the caller used (see AlbumRepository), so two requests racing on the same MBID
# end up with one row.
class AlbumModel(TimestampMixin, Base):
    """Album known to Simlr, created on first reference and never deleted."""

    __tablename__ = "albums"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    mbid: Mapped[str | None] = mapped_column(
        String(36), nullable=True, unique=True, index=True
    )
    spotify_album_id: Mapped[str | None] = mapped_column(
        String(22), nullable=True, unique=True, index=True
    )
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    # Ordered list of {"id": ..., "name": ...}
    artists: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    cover_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    release_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mb_artist_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    __table_args__ = (
        sa.CheckConstraint(
            "mbid IS NOT NULL OR spotify_album_id IS NOT NULL",
            name="ck_albums_has_external_id",
        ),
        Index("ix_albums_title", "title"),
    )


class UserModel(TimestampMixin, Base):
    """Registered (or seeded) user."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    username: Mapped[str | None] = mapped_column(
        String(20), nullable=True, unique=True, index=True
    )
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    email: Mapped[str | None] = mapped_column(
        String(255), nullable=True, unique=True, index=True
    )
    # NULL for seed accounts; those can't log in
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)


class RefreshTokenModel(Base):
    """Issued refresh token; deleted on rotation or logout."""

    __tablename__ = "refresh_tokens"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False, index=True
    )
    token: Mapped[str] = mapped_column(String(1024), nullable=False, unique=True)
    expires_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )


class RatingModel(TimestampMixin, Base):
    """One user's score for one album."""

    __tablename__ = "ratings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    album_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("albums.id"), nullable=False, index=True
    )
    score: Mapped[int] = mapped_column(Integer, nullable=False)

    album: Mapped[AlbumModel] = relationship("AlbumModel", lazy="joined")

    __table_args__ = (
        sa.UniqueConstraint("user_id", "album_id", name="uq_ratings_user_album"),
        sa.CheckConstraint("score BETWEEN 1 AND 10", name="ck_ratings_score_range"),
        Index("ix_ratings_user_updated", "user_id", "updated_at"),
    )


# Hey future me - votes are polymorphic: entity_id points at a simlr edge, a post or
# a comment depending on entity_type. No FK on purpose, existence is checked per
# variant in VoteService before writing.
class VoteModel(TimestampMixin, Base):
    """Up/down vote on an edge, post or comment."""

    __tablename__ = "votes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    value: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        sa.UniqueConstraint(
            "user_id", "entity_type", "entity_id", name="uq_votes_user_entity"
        ),
        sa.CheckConstraint("value IN (-1, 1)", name="ck_votes_value"),
        sa.CheckConstraint(
            "entity_type IN ('SIMLR_EDGE', 'POST', 'COMMENT')",
            name="ck_votes_entity_type",
        ),
        Index("ix_votes_entity", "entity_type", "entity_id"),
    )


class SimlrEdgeModel(TimestampMixin, Base):
    """Directed similarity link between two albums."""

    __tablename__ = "simlr_edges"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    source_album_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("albums.id"), nullable=False
    )
    target_album_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("albums.id"), nullable=False
    )

    target_album: Mapped[AlbumModel] = relationship(
        "AlbumModel", foreign_keys=[target_album_id], lazy="joined"
    )

    __table_args__ = (
        sa.UniqueConstraint(
            "source_album_id", "target_album_id", name="uq_simlr_edges_pair"
        ),
        sa.CheckConstraint(
            "source_album_id <> target_album_id", name="ck_simlr_edges_no_self_loop"
        ),
        Index("ix_simlr_edges_source_created", "source_album_id", "created_at"),
    )


class SimlrReasonModel(TimestampMixin, Base):
    """One user's justification for an edge; at most one per (edge, user)."""

    __tablename__ = "simlr_reasons"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    edge_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("simlr_edges.id"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)

    user: Mapped[UserModel] = relationship("UserModel", lazy="joined")

    __table_args__ = (
        sa.UniqueConstraint("edge_id", "user_id", name="uq_simlr_reasons_edge_user"),
        Index("ix_simlr_reasons_edge_created", "edge_id", "created_at"),
    )


class PostModel(TimestampMixin, Base):
    """Discussion thread attached to an album."""

    __tablename__ = "posts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    album_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("albums.id"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(120), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)

    user: Mapped[UserModel] = relationship("UserModel", lazy="joined")

    __table_args__ = (Index("ix_posts_album_created", "album_id", "created_at"),)


class CommentModel(TimestampMixin, Base):
    """Comment on a post; parent_id makes it a reply."""

    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.id"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    parent_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("comments.id"), nullable=True
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)

    user: Mapped[UserModel] = relationship("UserModel", lazy="joined")

    __table_args__ = (Index("ix_comments_post_created", "post_id", "created_at"),)


class RushmoreSlotModel(TimestampMixin, Base):
    """One of a user's four favourite-album slots."""

    __tablename__ = "rushmore_slots"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id"), nullable=False
    )
    slot: Mapped[int] = mapped_column(Integer, nullable=False)
    album_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("albums.id"), nullable=False
    )

    album: Mapped[AlbumModel] = relationship("AlbumModel", lazy="joined")

    __table_args__ = (
        sa.UniqueConstraint("user_id", "slot", name="uq_rushmore_user_slot"),
        sa.CheckConstraint("slot BETWEEN 1 AND 4", name="ck_rushmore_slot_range"),
    )
