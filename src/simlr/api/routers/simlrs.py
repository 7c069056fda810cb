"""Simlr edges: "if you like the source album, try the target album"."""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from simlr.api.dependencies import (
    get_current_user,
    get_current_user_optional,
    get_db_session,
    get_simlr_service,
)
from simlr.api.schemas.common import IdOut
from simlr.api.schemas.community import (
    SimlrCreateRequest,
    SimlrCreateResponse,
    SimlrEdgeOut,
    SimlrListResponse,
)
from simlr.application.services import SimlrService, SortOrder
from simlr.domain.entities import User

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("")
async def create_simlr(
    payload: SimlrCreateRequest,
    session: AsyncSession = Depends(get_db_session),
    simlr_service: SimlrService = Depends(get_simlr_service),
    user: User = Depends(get_current_user),
) -> SimlrCreateResponse:
    """Create the edge (or reuse it) and set the caller's reason on it.

    The caller must have rated the source album.
    """
    edge_id = await simlr_service.create_edge(
        user.id, payload.source_album_id, payload.target_album_id, payload.reason
    )
    await session.commit()
    return SimlrCreateResponse(edge=IdOut(id=edge_id))


@router.get("/list")
async def list_simlrs(
    album_id: str = Query(..., alias="albumId", min_length=1),
    sort: SortOrder = Query(SortOrder.TOP, description="'top' (default) or 'new'"),
    simlr_service: SimlrService = Depends(get_simlr_service),
    user: User | None = Depends(get_current_user_optional),
) -> SimlrListResponse:
    """Outgoing edges of an album with their latest reasons and scores."""
    edges = await simlr_service.list_edges(album_id, sort, user.id if user else None)
    return SimlrListResponse(items=[SimlrEdgeOut.from_view(e) for e in edges])
