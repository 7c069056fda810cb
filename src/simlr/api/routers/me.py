"""The signed-in user's own profile, ratings and Rushmore (four favourite albums)."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from simlr.api.dependencies import get_current_user, get_db_session, get_profile_service
from simlr.api.schemas.common import OkResponse
from simlr.api.schemas.users import (
    MeResponse,
    MyRatingOut,
    MyRatingsResponse,
    ProfileUpdateRequest,
    RushmoreClearRequest,
    RushmoreSetRequest,
    RushmoreSetResponse,
    RushmoreSlotOut,
    RushmoreSlotRef,
    UserOut,
    UserResponse,
)
from simlr.application.services import ProfileService
from simlr.domain.entities import User

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
async def get_me(
    user: User = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
) -> MeResponse:
    profile, slots = await profiles.get_me(user.id)
    return MeResponse(
        user=UserOut.from_entity(profile),
        rushmore=[RushmoreSlotOut.from_view(s) for s in slots],
    )


@router.patch("")
async def update_me(
    payload: ProfileUpdateRequest,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
) -> UserResponse:
    """Update only the fields present in the body."""
    updated = await profiles.update_profile(
        user.id,
        username=payload.username,
        display_name=payload.display_name,
        avatar_url=payload.avatar_url,
    )
    await session.commit()
    return UserResponse(user=UserOut.from_entity(updated))


@router.get("/ratings")
async def my_ratings(
    user: User = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
) -> MyRatingsResponse:
    """Up to 100 of the caller's ratings, most recently changed first."""
    ratings = await profiles.list_my_ratings(user.id)
    return MyRatingsResponse(items=[MyRatingOut.from_view(r) for r in ratings])


@router.post("/rushmore")
async def set_rushmore(
    payload: RushmoreSetRequest,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
) -> RushmoreSetResponse:
    album_id = await profiles.set_rushmore_slot(user.id, payload.slot, payload.album_id)
    await session.commit()
    return RushmoreSetResponse(slot=RushmoreSlotRef(slot=payload.slot, album_id=album_id))


@router.delete("/rushmore")
async def clear_rushmore(
    payload: RushmoreClearRequest,
    session: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service),
) -> OkResponse:
    await profiles.clear_rushmore_slot(user.id, payload.slot)
    await session.commit()
    return OkResponse()
