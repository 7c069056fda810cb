"""Email/password authentication with HTTP-only cookie sessions.

Hey future me - the access token (15 min) and refresh token (7 days) travel as
cookies named ``access_token`` / ``refresh_token``. Both are httponly and
samesite=lax; ``secure`` comes from settings.auth.cookie_secure so local http
development still works. Refresh rotates: the presented refresh token is
revoked and a new pair is set.
"""

import logging

from fastapi import APIRouter, Cookie, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from simlr.api.dependencies import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    get_app_settings,
    get_auth_service,
    get_current_user,
    get_db_session,
)
from simlr.api.schemas.users import (
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UserOut,
    UserResponse,
)
from simlr.application.services import AuthResult, AuthService
from simlr.config import Settings
from simlr.domain.entities import User
from simlr.domain.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

router = APIRouter()


def _set_session_cookies(response: Response, result: AuthResult, settings: Settings) -> None:
    auth = settings.auth
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        result.access_token.token,
        max_age=auth.access_token_ttl_seconds,
        httponly=True,
        secure=auth.cookie_secure,
        samesite="lax",
        path="/",
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        result.refresh_token.token,
        max_age=auth.refresh_token_ttl_seconds,
        httponly=True,
        secure=auth.cookie_secure,
        samesite="lax",
        path="/",
    )


def _clear_session_cookies(response: Response, settings: Settings) -> None:
    for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
        response.delete_cookie(
            name,
            path="/",
            httponly=True,
            secure=settings.auth.cookie_secure,
            samesite="lax",
        )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    response: Response,
    session: AsyncSession = Depends(get_db_session),
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> UserResponse:
    """Create an account and sign it in."""
    result = await auth_service.register(
        email=payload.email,
        password=payload.password,
        username=payload.username,
        display_name=payload.display_name,
    )
    await session.commit()
    _set_session_cookies(response, result, settings)
    return UserResponse(user=UserOut.from_entity(result.user))


@router.post("/login")
async def login(
    payload: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_db_session),
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> UserResponse:
    result = await auth_service.login(payload.email, payload.password)
    await session.commit()
    _set_session_cookies(response, result, settings)
    return UserResponse(user=UserOut.from_entity(result.user))


@router.post("/refresh")
async def refresh(
    response: Response,
    refresh_token: str | None = Cookie(None, alias=REFRESH_TOKEN_COOKIE),
    session: AsyncSession = Depends(get_db_session),
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> UserResponse:
    """Trade the refresh cookie for a new token pair."""
    if not refresh_token:
        raise AuthenticationError("No refresh token provided")
    result = await auth_service.refresh(refresh_token)
    await session.commit()
    _set_session_cookies(response, result, settings)
    return UserResponse(user=UserOut.from_entity(result.user))


@router.post("/logout")
async def logout(
    response: Response,
    refresh_token: str | None = Cookie(None, alias=REFRESH_TOKEN_COOKIE),
    session: AsyncSession = Depends(get_db_session),
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> MessageResponse:
    """Revoke the refresh token (if any) and clear both cookies."""
    await auth_service.logout(refresh_token)
    await session.commit()
    _clear_session_cookies(response, settings)
    return MessageResponse(message="Logged out successfully")


@router.get("/me")
async def whoami(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse(user=UserOut.from_entity(user))
