"""API schemas for authentication and the signed-in user's profile."""

from datetime import datetime

from pydantic import Field

from simlr.api.schemas.common import AlbumOut, CamelModel
from simlr.application.services.profile_service import MyRatingView, RushmoreSlotView
from simlr.domain.entities import User


class RegisterRequest(CamelModel):
    # Format is checked in AuthService so a bad address maps to a plain 400 message
    email: str
    password: str
    username: str | None = Field(default=None, min_length=3, max_length=20)
    display_name: str | None = Field(default=None, min_length=1, max_length=50)


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserOut(CamelModel):
    """The account owner's view of themselves (includes email)."""

    id: str
    email: str | None = None
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, user: User) -> "UserOut":
        return cls(
            id=user.id,
            email=user.email,
            username=user.username,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
            created_at=user.created_at,
        )


class UserResponse(CamelModel):
    user: UserOut


class MessageResponse(CamelModel):
    message: str


class ProfileUpdateRequest(CamelModel):
    username: str | None = None
    display_name: str | None = Field(default=None, min_length=1, max_length=50)
    avatar_url: str | None = None


class RushmoreSlotOut(CamelModel):
    slot: int
    album: AlbumOut

    @classmethod
    def from_view(cls, view: RushmoreSlotView) -> "RushmoreSlotOut":
        return cls(slot=view.slot, album=AlbumOut.from_entity(view.album))


class MeResponse(CamelModel):
    user: UserOut
    rushmore: list[RushmoreSlotOut]


class MyRatingOut(CamelModel):
    score: int
    updated_at: datetime
    album: AlbumOut

    @classmethod
    def from_view(cls, view: MyRatingView) -> "MyRatingOut":
        return cls(
            score=view.score,
            updated_at=view.updated_at,
            album=AlbumOut.from_entity(view.album),
        )


class MyRatingsResponse(CamelModel):
    items: list[MyRatingOut]


class RushmoreSetRequest(CamelModel):
    slot: int = Field(..., ge=1, le=4)
    album_id: str = Field(..., min_length=1)


class RushmoreClearRequest(CamelModel):
    slot: int = Field(..., ge=1, le=4)


class RushmoreSlotRef(CamelModel):
    slot: int
    album_id: str


class RushmoreSetResponse(CamelModel):
    slot: RushmoreSlotRef
