"""Up/down votes on Simlr edges, posts and comments."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from simlr.api.dependencies import get_current_user, get_db_session, get_vote_service
from simlr.api.schemas.community import VoteRequest, VoteResponse
from simlr.application.services import VoteService
from simlr.domain.entities import User
from simlr.domain.value_objects import VoteTarget, VoteValue

router = APIRouter()


# Same direction twice clears the vote; the opposite direction flips it.
@router.post("")
async def cast_vote(
    payload: VoteRequest,
    session: AsyncSession = Depends(get_db_session),
    vote_service: VoteService = Depends(get_vote_service),
    user: User = Depends(get_current_user),
) -> VoteResponse:
    """Cast, flip or clear a vote and return the target's net score."""
    result = await vote_service.cast_vote(
        user.id,
        VoteTarget(payload.entity_type, payload.entity_id),
        VoteValue(payload.value),
    )
    await session.commit()
    return VoteResponse(score=result.score, my_vote=result.my_vote)
