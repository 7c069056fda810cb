"""Repository implementations for domain entities."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from simlr.domain.dtos import AlbumDTO
from simlr.domain.entities import Album, Rating, User
from simlr.domain.exceptions import ConfigurationError
from simlr.domain.ports import IAlbumRepository, IRatingRepository, IVoteRepository
from simlr.domain.value_objects import (
    AlbumIdentifier,
    VoteEntityType,
    VoteTarget,
    VoteValue,
)

from .models import (
    AlbumModel,
    CommentModel,
    PostModel,
    RatingModel,
    RefreshTokenModel,
    RushmoreSlotModel,
    SimlrEdgeModel,
    SimlrReasonModel,
    UserModel,
    VoteModel,
    ensure_utc_aware,
    new_id,
    utc_now,
)


# Hey future me - every contended write (album, rating, vote, edge, reason) is ONE
# "INSERT ... ON CONFLICT" statement. Don't turn these into select-then-insert: two
# requests racing on the same key would both see "absent" and one would hit the
# unique constraint. Both SQLite (3.35+) and PostgreSQL support ON CONFLICT with
# RETURNING, but the insert construct is dialect-specific.
def upsert_insert(session: AsyncSession, model: type[Any]) -> Any:
    """Return the dialect's ``insert()`` construct that supports ON CONFLICT."""
    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        return sqlite.insert(model)
    if dialect == "postgresql":
        return postgresql.insert(model)
    raise ConfigurationError(f"Upserts are not supported on the '{dialect}' dialect")


# Upserts bypass the identity map; list reads of upserted rows must overwrite stale instances
_REFRESH = {"populate_existing": True}


class AlbumRepository(IAlbumRepository):
    """SQLAlchemy implementation of Album repository."""

    # The session is NOT committed here. Database.session_scope commits once per
    # request, so everything a request stages lands together.
    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    @staticmethod
    def _model_to_entity(model: AlbumModel) -> Album:
        return Album(
            id=model.id,
            mbid=model.mbid,
            spotify_album_id=model.spotify_album_id,
            title=model.title,
            artists=list(model.artists or []),
            cover_url=model.cover_url,
            release_year=model.release_year,
            mb_artist_id=model.mb_artist_id,
            created_at=ensure_utc_aware(model.created_at),
            updated_at=ensure_utc_aware(model.updated_at),
        )

    async def get_by_id(self, album_id: str) -> Album | None:
        # Upserts bypass the identity map, so refresh any already-loaded instance
        model = await self.session.get(AlbumModel, album_id, populate_existing=True)
        return self._model_to_entity(model) if model else None

    async def get_many(self, album_ids: list[str]) -> dict[str, Album]:
        """Albums by internal id; missing ids are simply absent from the result."""
        if not album_ids:
            return {}
        stmt = select(AlbumModel).where(AlbumModel.id.in_(album_ids))
        result = await self.session.execute(stmt)
        return {m.id: self._model_to_entity(m) for m in result.scalars().all()}

    async def get_by_identifier(self, identifier: AlbumIdentifier) -> Album | None:
        """Find by the external column the identifier addresses (mbid or spotify id)."""
        column = getattr(AlbumModel, identifier.column)
        stmt = select(AlbumModel).where(column == identifier.value)
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._model_to_entity(model) if model else None

    async def upsert(self, album: AlbumDTO) -> str:
        """Insert or refresh an album keyed by its external ID.

        MBID wins when the DTO carries both. The other external column is never
        overwritten on conflict, so a Spotify refresh can't clear a known MBID.

        Returns:
            Our internal album id (new or existing)
        """
        key = "mbid" if album.mbid else "spotify_album_id"
        now = utc_now()
        primary = album.primary_artist
        values = {
            "id": new_id(),
            "mbid": album.mbid,
            "spotify_album_id": album.spotify_id,
            "title": album.title,
            "artists": album.artists_json(),
            "cover_url": album.cover_url,
            "release_year": album.release_year,
            "mb_artist_id": primary.id
            if primary and album.source_service == "musicbrainz"
            else None,
            "created_at": now,
            "updated_at": now,
        }
        stmt = upsert_insert(self.session, AlbumModel).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[key],
            set_={
                "title": stmt.excluded.title,
                "artists": stmt.excluded.artists,
                "cover_url": stmt.excluded.cover_url,
                "release_year": stmt.excluded.release_year,
                "mb_artist_id": func.coalesce(
                    stmt.excluded.mb_artist_id, AlbumModel.mb_artist_id
                ),
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(AlbumModel.id)
        result = await self.session.execute(stmt)
        return str(result.scalar_one())

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(AlbumModel))
        return int(result.scalar_one())


class UserRepository:
    """SQLAlchemy implementation of User repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    @staticmethod
    def _model_to_entity(model: UserModel) -> User:
        return User(
            id=model.id,
            username=model.username,
            display_name=model.display_name,
            avatar_url=model.avatar_url,
            email=model.email,
            created_at=ensure_utc_aware(model.created_at),
            updated_at=ensure_utc_aware(model.updated_at),
        )

    async def get_by_id(self, user_id: str) -> User | None:
        model = await self.session.get(UserModel, user_id)
        return self._model_to_entity(model) if model else None

    async def get_by_username(self, username: str) -> User | None:
        stmt = select(UserModel).where(UserModel.username == username)
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._model_to_entity(model) if model else None

    async def get_by_email(self, email: str) -> User | None:
        stmt = select(UserModel).where(UserModel.email == email)
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._model_to_entity(model) if model else None

    async def get_password_hash(self, user_id: str) -> str | None:
        stmt = select(UserModel.password_hash).where(UserModel.id == user_id)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def create(
        self,
        email: str,
        password_hash: str,
        username: str | None = None,
        display_name: str | None = None,
    ) -> User:
        """Stage a new user and flush so unique violations surface here."""
        model = UserModel(
            id=new_id(),
            email=email,
            password_hash=password_hash,
            username=username,
            display_name=display_name,
        )
        self.session.add(model)
        await self.session.flush()
        return self._model_to_entity(model)

    async def update_profile(self, user_id: str, changes: dict[str, Any]) -> User | None:
        """Apply ``changes`` (username/display_name/avatar_url) to the user."""
        model = await self.session.get(UserModel, user_id)
        if model is None:
            return None
        for field_name, value in changes.items():
            setattr(model, field_name, value)
        model.updated_at = utc_now()
        await self.session.flush()
        return self._model_to_entity(model)

    async def upsert_seed_user(self, user_id: str, username: str, display_name: str) -> None:
        """Seed accounts have no email/password and are keyed by a fixed id."""
        now = utc_now()
        stmt = upsert_insert(self.session, UserModel).values(
            id=user_id,
            username=username,
            display_name=display_name,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={"username": stmt.excluded.username, "display_name": stmt.excluded.display_name},
        )
        await self.session.execute(stmt)


class RefreshTokenRepository:
    """Stored refresh tokens; a token is valid only while its row exists."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def add(self, user_id: str, token: str, expires_at: datetime) -> None:
        self.session.add(
            RefreshTokenModel(id=new_id(), user_id=user_id, token=token, expires_at=expires_at)
        )
        await self.session.flush()

    async def get(self, token: str) -> tuple[str, datetime] | None:
        """Return (user_id, expires_at) for a stored token."""
        stmt = select(RefreshTokenModel.user_id, RefreshTokenModel.expires_at).where(
            RefreshTokenModel.token == token
        )
        row = (await self.session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return row.user_id, ensure_utc_aware(row.expires_at)

    async def delete(self, token: str) -> bool:
        stmt = (
            delete(RefreshTokenModel)
            .where(RefreshTokenModel.token == token)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return bool(result.rowcount)


class RatingRepository(IRatingRepository):
    """SQLAlchemy implementation of Rating repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def upsert(self, user_id: str, album_id: str, score: int) -> Rating:
        """Create or overwrite the user's rating; one row per (user, album)."""
        now = utc_now()
        stmt = upsert_insert(self.session, RatingModel).values(
            id=new_id(),
            user_id=user_id,
            album_id=album_id,
            score=score,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "album_id"],
            set_={"score": stmt.excluded.score, "updated_at": stmt.excluded.updated_at},
        )
        await self.session.execute(stmt)
        return Rating(user_id=user_id, album_id=album_id, score=score, updated_at=now)

    async def scores_for_album(self, album_id: str) -> list[int]:
        stmt = select(RatingModel.score).where(RatingModel.album_id == album_id)
        return [int(s) for s in (await self.session.execute(stmt)).scalars().all()]

    async def get_score(self, user_id: str, album_id: str) -> int | None:
        stmt = select(RatingModel.score).where(
            RatingModel.user_id == user_id, RatingModel.album_id == album_id
        )
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def top_albums(self, min_count: int, limit: int) -> list[tuple[str, float, int]]:
        """(album_id, average, count) for albums with at least ``min_count`` ratings.

        Sorted by average desc, then count desc.
        """
        avg_score = func.avg(RatingModel.score).label("avg_score")
        rating_count = func.count(RatingModel.id).label("rating_count")
        stmt = (
            select(RatingModel.album_id, avg_score, rating_count)
            .group_by(RatingModel.album_id)
            .having(func.count(RatingModel.id) >= min_count)
            .order_by(avg_score.desc(), rating_count.desc(), RatingModel.album_id)
            .limit(limit)
        )
        rows = (await self.session.execute(stmt)).all()
        return [(row.album_id, float(row.avg_score), int(row.rating_count)) for row in rows]

    async def list_for_user(self, user_id: str, limit: int = 100) -> list[RatingModel]:
        """Most recently updated first; ``album`` is eagerly loaded."""
        stmt = (
            select(RatingModel)
            .where(RatingModel.user_id == user_id)
            .order_by(RatingModel.updated_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt, execution_options=_REFRESH)
        return list(result.scalars().unique().all())


class VoteRepository(IVoteRepository):
    """SQLAlchemy implementation of Vote repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    @staticmethod
    def _matches(user_id: str, target: VoteTarget) -> list[Any]:
        return [
            VoteModel.user_id == user_id,
            VoteModel.entity_type == target.entity_type.value,
            VoteModel.entity_id == target.entity_id,
        ]

    async def delete_matching(
        self, user_id: str, target: VoteTarget, value: VoteValue
    ) -> bool:
        stmt = (
            delete(VoteModel)
            .where(*self._matches(user_id, target), VoteModel.value == int(value))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return bool(result.rowcount)

    async def upsert(self, user_id: str, target: VoteTarget, value: VoteValue) -> None:
        now = utc_now()
        stmt = upsert_insert(self.session, VoteModel).values(
            id=new_id(),
            user_id=user_id,
            entity_type=target.entity_type.value,
            entity_id=target.entity_id,
            value=int(value),
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "entity_type", "entity_id"],
            set_={"value": stmt.excluded.value, "updated_at": stmt.excluded.updated_at},
        )
        await self.session.execute(stmt)

    async def insert_if_absent(
        self, user_id: str, target: VoteTarget, value: VoteValue
    ) -> None:
        """Seed helper: never changes an existing vote."""
        now = utc_now()
        stmt = upsert_insert(self.session, VoteModel).values(
            id=new_id(),
            user_id=user_id,
            entity_type=target.entity_type.value,
            entity_id=target.entity_id,
            value=int(value),
            created_at=now,
            updated_at=now,
        )
        await self.session.execute(
            stmt.on_conflict_do_nothing(index_elements=["user_id", "entity_type", "entity_id"])
        )

    async def score(self, target: VoteTarget) -> int:
        stmt = select(func.coalesce(func.sum(VoteModel.value), 0)).where(
            VoteModel.entity_type == target.entity_type.value,
            VoteModel.entity_id == target.entity_id,
        )
        return int((await self.session.execute(stmt)).scalar_one())

    async def get_value(self, user_id: str, target: VoteTarget) -> int:
        stmt = select(VoteModel.value).where(*self._matches(user_id, target))
        value = (await self.session.execute(stmt)).scalar_one_or_none()
        return int(value) if value is not None else 0

    async def scores_for(
        self, entity_type: VoteEntityType, entity_ids: list[str]
    ) -> dict[str, int]:
        """Net score per entity id; ids without votes are absent."""
        if not entity_ids:
            return {}
        stmt = (
            select(VoteModel.entity_id, func.sum(VoteModel.value))
            .where(
                VoteModel.entity_type == entity_type.value,
                VoteModel.entity_id.in_(entity_ids),
            )
            .group_by(VoteModel.entity_id)
        )
        return {row[0]: int(row[1]) for row in (await self.session.execute(stmt)).all()}

    async def values_for_user(
        self, user_id: str, entity_type: VoteEntityType, entity_ids: list[str]
    ) -> dict[str, int]:
        if not entity_ids:
            return {}
        stmt = select(VoteModel.entity_id, VoteModel.value).where(
            VoteModel.user_id == user_id,
            VoteModel.entity_type == entity_type.value,
            VoteModel.entity_id.in_(entity_ids),
        )
        return {row[0]: int(row[1]) for row in (await self.session.execute(stmt)).all()}


class SimlrRepository:
    """Similarity edges and their per-user reasons."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def upsert_edge(self, source_album_id: str, target_album_id: str) -> str:
        """Create the (source, target) edge or touch the existing one.

        DO UPDATE (not DO NOTHING) so RETURNING yields the id on both paths.
        """
        now = utc_now()
        stmt = upsert_insert(self.session, SimlrEdgeModel).values(
            id=new_id(),
            source_album_id=source_album_id,
            target_album_id=target_album_id,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["source_album_id", "target_album_id"],
            set_={"updated_at": stmt.excluded.updated_at},
        ).returning(SimlrEdgeModel.id)
        return str((await self.session.execute(stmt)).scalar_one())

    async def upsert_reason(
        self, edge_id: str, user_id: str, reason: str, *, overwrite: bool = True
    ) -> None:
        """One reason per (edge, user); ``overwrite=False`` keeps an existing one."""
        now = utc_now()
        stmt = upsert_insert(self.session, SimlrReasonModel).values(
            id=new_id(),
            edge_id=edge_id,
            user_id=user_id,
            reason=reason,
            created_at=now,
            updated_at=now,
        )
        if overwrite:
            stmt = stmt.on_conflict_do_update(
                index_elements=["edge_id", "user_id"],
                set_={"reason": stmt.excluded.reason, "updated_at": stmt.excluded.updated_at},
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=["edge_id", "user_id"])
        await self.session.execute(stmt)

    async def edge_exists(self, edge_id: str) -> bool:
        stmt = select(SimlrEdgeModel.id).where(SimlrEdgeModel.id == edge_id)
        return (await self.session.execute(stmt)).scalar_one_or_none() is not None

    async def recent_edges_from(
        self, source_album_id: str, limit: int
    ) -> list[SimlrEdgeModel]:
        """Newest first; ``target_album`` is eagerly loaded."""
        stmt = (
            select(SimlrEdgeModel)
            .where(SimlrEdgeModel.source_album_id == source_album_id)
            .order_by(SimlrEdgeModel.created_at.desc(), SimlrEdgeModel.id.desc())
            .limit(limit)
        )
        return list((await self.session.execute(stmt)).scalars().unique().all())

    async def recent_reasons(
        self, edge_ids: list[str], per_edge: int
    ) -> dict[str, list[SimlrReasonModel]]:
        """Up to ``per_edge`` newest reasons for each edge, with authors loaded."""
        if not edge_ids:
            return {}
        stmt = (
            select(SimlrReasonModel)
            .where(SimlrReasonModel.edge_id.in_(edge_ids))
            .order_by(SimlrReasonModel.created_at.desc(), SimlrReasonModel.id.desc())
        )
        grouped: dict[str, list[SimlrReasonModel]] = defaultdict(list)
        result = await self.session.execute(stmt, execution_options=_REFRESH)
        for reason in result.scalars().unique().all():
            if len(grouped[reason.edge_id]) < per_edge:
                grouped[reason.edge_id].append(reason)
        return dict(grouped)


class PostRepository:
    """Album discussion posts."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def create(
        self,
        album_id: str,
        user_id: str,
        title: str,
        body: str,
        post_id: str | None = None,
    ) -> str:
        """Insert a post. A fixed ``post_id`` that already exists is left untouched."""
        now = utc_now()
        post_id = post_id or new_id()
        stmt = upsert_insert(self.session, PostModel).values(
            id=post_id,
            album_id=album_id,
            user_id=user_id,
            title=title,
            body=body,
            created_at=now,
            updated_at=now,
        )
        await self.session.execute(stmt.on_conflict_do_nothing(index_elements=["id"]))
        return post_id

    async def get(self, post_id: str) -> PostModel | None:
        return await self.session.get(PostModel, post_id)

    async def recent_for_album(self, album_id: str, limit: int) -> list[PostModel]:
        """Newest first; ``user`` is eagerly loaded."""
        stmt = (
            select(PostModel)
            .where(PostModel.album_id == album_id)
            .order_by(PostModel.created_at.desc(), PostModel.id.desc())
            .limit(limit)
        )
        return list((await self.session.execute(stmt)).scalars().unique().all())

    async def comment_counts(self, post_ids: list[str]) -> dict[str, int]:
        if not post_ids:
            return {}
        stmt = (
            select(CommentModel.post_id, func.count(CommentModel.id))
            .where(CommentModel.post_id.in_(post_ids))
            .group_by(CommentModel.post_id)
        )
        return {row[0]: int(row[1]) for row in (await self.session.execute(stmt)).all()}


class CommentRepository:
    """Post comments (flat storage, replies via parent_id)."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def create(
        self,
        post_id: str,
        user_id: str,
        body: str,
        parent_id: str | None = None,
        comment_id: str | None = None,
    ) -> str:
        now = utc_now()
        comment_id = comment_id or new_id()
        stmt = upsert_insert(self.session, CommentModel).values(
            id=comment_id,
            post_id=post_id,
            user_id=user_id,
            parent_id=parent_id,
            body=body,
            created_at=now,
            updated_at=now,
        )
        await self.session.execute(stmt.on_conflict_do_nothing(index_elements=["id"]))
        return comment_id

    async def get(self, comment_id: str) -> CommentModel | None:
        return await self.session.get(CommentModel, comment_id)

    async def list_for_post(self, post_id: str) -> list[CommentModel]:
        """Chronological (oldest first); ``user`` is eagerly loaded."""
        stmt = (
            select(CommentModel)
            .where(CommentModel.post_id == post_id)
            .order_by(CommentModel.created_at, CommentModel.id)
        )
        return list((await self.session.execute(stmt)).scalars().unique().all())


class RushmoreRepository:
    """A user's four favourite-album slots."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def upsert(self, user_id: str, slot: int, album_id: str) -> None:
        now = utc_now()
        stmt = upsert_insert(self.session, RushmoreSlotModel).values(
            id=new_id(),
            user_id=user_id,
            slot=slot,
            album_id=album_id,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "slot"],
            set_={"album_id": stmt.excluded.album_id, "updated_at": stmt.excluded.updated_at},
        )
        await self.session.execute(stmt)

    async def delete(self, user_id: str, slot: int) -> bool:
        stmt = (
            delete(RushmoreSlotModel)
            .where(RushmoreSlotModel.user_id == user_id, RushmoreSlotModel.slot == slot)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return bool(result.rowcount)

    async def list_for_user(self, user_id: str) -> list[RushmoreSlotModel]:
        stmt = (
            select(RushmoreSlotModel)
            .where(RushmoreSlotModel.user_id == user_id)
            .order_by(RushmoreSlotModel.slot)
        )
        result = await self.session.execute(stmt, execution_options=_REFRESH)
        return list(result.scalars().unique().all())
