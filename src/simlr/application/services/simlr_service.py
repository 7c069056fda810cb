"""Simlr (similarity edge) writer and reader.

An edge is a directed (source album → target album) link, unique per pair.
Each user may attach one reason per edge; re-submitting overwrites only that
user's reason. Writing requires having rated the SOURCE album.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from simlr.application.services.album_service import AlbumService
from simlr.application.services.ranking import Ranked, SortOrder, sort_ranked
from simlr.application.services.rating_service import RatingService
from simlr.config.settings import Settings
from simlr.domain.entities import Album, User
from simlr.domain.exceptions import BusinessRuleViolation, ValidationException
from simlr.domain.value_objects import VoteEntityType
from simlr.infrastructure.persistence.models import ensure_utc_aware
from simlr.infrastructure.persistence.repositories import (
    AlbumRepository,
    SimlrRepository,
    UserRepository,
    VoteRepository,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimlrReasonView:
    user: User
    reason: str
    created_at: datetime


@dataclass(frozen=True)
class SimlrEdgeView:
    id: str
    target_album: Album
    reasons: list[SimlrReasonView]
    score: int
    my_vote: int
    created_at: datetime


class SimlrService:
    """Creates and lists similarity edges."""

    def __init__(
        self,
        session: AsyncSession,
        album_service: AlbumService,
        rating_service: RatingService,
        settings: Settings,
    ) -> None:
        self.session = session
        self.album_service = album_service
        self.rating_service = rating_service
        self.settings = settings
        self.edges = SimlrRepository(session)
        self.votes = VoteRepository(session)

    def validate_reason(self, reason: str) -> None:
        """
        Raises:
            ValidationException: Reason length outside the configured bounds
        """
        min_len = self.settings.simlr.reason_min_length
        max_len = self.settings.simlr.reason_max_length
        if not min_len <= len(reason) <= max_len:
            raise ValidationException(
                f"Reason must be between {min_len} and {max_len} characters"
            )

    async def create_edge(
        self, user_id: str, raw_source_id: str, raw_target_id: str, reason: str
    ) -> str:
        """Create (or reuse) the edge and upsert the user's reason for it.

        Checks run in order: self-loop, reason length, resolution, rating gate.
        Edge + reason land in the caller's transaction, so a failing reason
        write rolls back a freshly created edge too.

        Returns:
            The edge id

        Raises:
            BusinessRuleViolation: Self-loop or an album that can't be resolved
            ValidationException: Reason length out of bounds
            AuthorizationError: User hasn't rated the source album
        """
        if raw_source_id == raw_target_id:
            raise BusinessRuleViolation("Source and target must be different albums")
        self.validate_reason(reason)

        source_id, target_id = await self.album_service.resolve_album_ids(
            [raw_source_id, raw_target_id]
        )
        if source_id is None or target_id is None:
            raise BusinessRuleViolation("Album not found. Upsert both albums first.")
        # Different spellings (MBID vs Spotify ID) can point at the same album
        if source_id == target_id:
            raise BusinessRuleViolation("Source and target must be different albums")

        await self.rating_service.require_rated(user_id, source_id)

        edge_id = await self.edges.upsert_edge(source_id, target_id)
        await self.edges.upsert_reason(edge_id, user_id, reason)
        logger.info("User %s linked album %s → %s (edge %s)", user_id, source_id, target_id, edge_id)
        return edge_id

    async def list_edges(
        self,
        raw_album_id: str,
        sort: SortOrder = SortOrder.TOP,
        viewer_id: str | None = None,
    ) -> list[SimlrEdgeView]:
        """Outgoing edges of an album, ranked by ``top`` (net votes) or ``new``.

        An identifier that can't be resolved yields an empty list.
        """
        if sort is SortOrder.HOT:
            raise ValidationException("sort must be 'top' or 'new'")

        album_id = await self.album_service.resolve_album_id(raw_album_id)
        if album_id is None:
            return []

        ranking = self.settings.ranking
        edges = await self.edges.recent_edges_from(album_id, ranking.edge_candidate_limit)
        edge_ids = [e.id for e in edges]
        reasons = await self.edges.recent_reasons(edge_ids, self.settings.simlr.reasons_per_edge)
        scores = await self.votes.scores_for(VoteEntityType.SIMLR_EDGE, edge_ids)
        my_votes = (
            await self.votes.values_for_user(viewer_id, VoteEntityType.SIMLR_EDGE, edge_ids)
            if viewer_id
            else {}
        )

        candidates = [
            Ranked(
                item=SimlrEdgeView(
                    id=edge.id,
                    target_album=AlbumRepository._model_to_entity(edge.target_album),
                    reasons=[
                        SimlrReasonView(
                            user=UserRepository._model_to_entity(r.user),
                            reason=r.reason,
                            created_at=ensure_utc_aware(r.created_at),
                        )
                        for r in reasons.get(edge.id, [])
                    ],
                    score=scores.get(edge.id, 0),
                    my_vote=my_votes.get(edge.id, 0),
                    created_at=ensure_utc_aware(edge.created_at),
                ),
                score=scores.get(edge.id, 0),
                created_at=edge.created_at,
            )
            for edge in edges
        ]
        ranked = sort_ranked(candidates, sort, epoch=ranking.epoch, divisor=ranking.divisor)
        return [r.item for r in ranked[: ranking.result_limit]]
