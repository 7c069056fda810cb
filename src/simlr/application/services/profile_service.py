"""Profile Service - the signed-in user's profile, ratings and Rushmore slots."""

import logging
import re
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from simlr.application.services.album_service import AlbumService
from simlr.domain.entities import Album, User
from simlr.domain.exceptions import (
    AuthenticationError,
    BusinessRuleViolation,
    DuplicateEntityException,
    ValidationException,
)
from simlr.infrastructure.persistence.models import ensure_utc_aware
from simlr.infrastructure.persistence.repositories import (
    AlbumRepository,
    RatingRepository,
    RushmoreRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,20}$")
RUSHMORE_SLOTS = range(1, 5)
MY_RATINGS_LIMIT = 100


@dataclass(frozen=True)
class RushmoreSlotView:
    slot: int
    album: Album


@dataclass(frozen=True)
class MyRatingView:
    score: int
    updated_at: datetime
    album: Album


def validate_username(username: str) -> None:
    if not USERNAME_PATTERN.match(username):
        raise ValidationException(
            "Username must be 3-20 characters: letters, numbers, and underscores only"
        )


def validate_slot(slot: int) -> None:
    if slot not in RUSHMORE_SLOTS:
        raise ValidationException("Slot must be between 1 and 4")


class ProfileService:
    """Operations on the current user's own profile."""

    def __init__(self, session: AsyncSession, album_service: AlbumService) -> None:
        self.session = session
        self.album_service = album_service
        self.users = UserRepository(session)
        self.ratings = RatingRepository(session)
        self.rushmore = RushmoreRepository(session)

    async def get_me(self, user_id: str) -> tuple[User, list[RushmoreSlotView]]:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise AuthenticationError("User not found")
        slots = await self.rushmore.list_for_user(user_id)
        return user, [
            RushmoreSlotView(slot=s.slot, album=AlbumRepository._model_to_entity(s.album))
            for s in slots
        ]

    async def update_profile(
        self,
        user_id: str,
        *,
        username: str | None = None,
        display_name: str | None = None,
        avatar_url: str | None = None,
    ) -> User:
        """Change the provided fields only.

        Raises:
            ValidationException: Username format
            DuplicateEntityException: Username taken by someone else
        """
        changes: dict[str, str] = {}
        if username is not None:
            validate_username(username)
            existing = await self.users.get_by_username(username)
            if existing is not None and existing.id != user_id:
                raise DuplicateEntityException("User", username, message="Username already taken")
            changes["username"] = username
        if display_name is not None:
            changes["display_name"] = display_name.strip()
        if avatar_url is not None:
            changes["avatar_url"] = avatar_url

        try:
            user = await self.users.update_profile(user_id, changes)
        except IntegrityError as e:
            # Lost a race for the same username
            raise DuplicateEntityException(
                "User", username, message="Username already taken"
            ) from e
        if user is None:
            raise AuthenticationError("User not found")
        logger.info("User %s updated profile fields %s", user_id, sorted(changes))
        return user

    async def list_my_ratings(self, user_id: str) -> list[MyRatingView]:
        """The user's ratings, most recently updated first."""
        rows = await self.ratings.list_for_user(user_id, MY_RATINGS_LIMIT)
        return [
            MyRatingView(
                score=r.score,
                updated_at=ensure_utc_aware(r.updated_at),
                album=AlbumRepository._model_to_entity(r.album),
            )
            for r in rows
        ]

    async def set_rushmore_slot(self, user_id: str, slot: int, raw_album_id: str) -> str:
        """Put an album into a slot, replacing whatever was there.

        Returns:
            The resolved internal album id

        Raises:
            ValidationException: Slot outside 1-4
            BusinessRuleViolation: Album can't be resolved
        """
        validate_slot(slot)
        album_id = await self.album_service.resolve_album_id(raw_album_id)
        if album_id is None:
            raise BusinessRuleViolation("Album not found (upsert it first)")
        await self.rushmore.upsert(user_id, slot, album_id)
        logger.debug("User %s set Rushmore slot %d to %s", user_id, slot, album_id)
        return album_id

    async def clear_rushmore_slot(self, user_id: str, slot: int) -> None:
        validate_slot(slot)
        await self.rushmore.delete(user_id, slot)
