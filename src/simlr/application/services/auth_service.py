"""Authentication Service - registration, login, refresh-token rotation, logout.

Hey future me - refresh tokens are JWTs AND rows in refresh_tokens. The row is
what makes them revocable: rotation deletes the presented token's row before
issuing a new one, so a refresh token works exactly once.
"""

import asyncio
import logging
from dataclasses import dataclass

from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from simlr.application.services.profile_service import validate_username
from simlr.config.settings import AuthSettings
from simlr.domain.entities import User
from simlr.domain.exceptions import (
    AuthenticationError,
    DuplicateEntityException,
    ValidationException,
)
from simlr.infrastructure.persistence.models import utc_now
from simlr.infrastructure.persistence.repositories import (
    RefreshTokenRepository,
    UserRepository,
)
from simlr.infrastructure.security import (
    IssuedToken,
    TokenService,
    hash_password,
    validate_password,
    verify_password,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"

_email_adapter: TypeAdapter[EmailStr] = TypeAdapter(EmailStr)


@dataclass(frozen=True)
class AuthResult:
    user: User
    access_token: IssuedToken
    refresh_token: IssuedToken


class AuthService:
    """Account and session lifecycle."""

    def __init__(self, session: AsyncSession, tokens: TokenService, settings: AuthSettings) -> None:
        self.session = session
        self.tokens = tokens
        self.settings = settings
        self.users = UserRepository(session)
        self.refresh_tokens = RefreshTokenRepository(session)

    async def _issue(self, user: User) -> AuthResult:
        access = self.tokens.issue_access_token(user.id, user.email)
        refresh = self.tokens.issue_refresh_token(user.id)
        await self.refresh_tokens.add(user.id, refresh.token, refresh.expires_at)
        return AuthResult(user=user, access_token=access, refresh_token=refresh)

    async def register(
        self,
        email: str,
        password: str,
        username: str | None = None,
        display_name: str | None = None,
    ) -> AuthResult:
        """
        Raises:
            ValidationException: Bad email, password or username format
            DuplicateEntityException: Email registered or username taken
        """
        try:
            email = _email_adapter.validate_python(email)
        except ValidationError as e:
            raise ValidationException("Invalid email address") from e
        validate_password(password, self.settings.password_min_length)
        if username is not None:
            validate_username(username)

        if await self.users.get_by_email(email):
            raise DuplicateEntityException("User", email, message="Email already registered")
        if username and await self.users.get_by_username(username):
            raise DuplicateEntityException("User", username, message="Username already taken")

        # bcrypt is CPU-bound; keep it off the event loop
        password_hash = await asyncio.to_thread(
            hash_password, password, self.settings.bcrypt_rounds
        )
        try:
            user = await self.users.create(
                email=email,
                password_hash=password_hash,
                username=username,
                display_name=display_name,
            )
        except IntegrityError as e:
            # Lost a race: someone registered the same email or username after our check
            taken_username = username is not None and "username" in str(e.orig)
            raise DuplicateEntityException(
                "User",
                username if taken_username else email,
                message="Username already taken" if taken_username else "Email already registered",
            ) from e
        logger.info("Registered user %s", user.id)
        return await self._issue(user)

    async def login(self, email: str, password: str) -> AuthResult:
        """
        Raises:
            AuthenticationError: Unknown email, password-less account or wrong password
        """
        user = await self.users.get_by_email(email)
        if user is None:
            raise AuthenticationError(INVALID_CREDENTIALS)
        password_hash = await self.users.get_password_hash(user.id)
        if not password_hash:
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not await asyncio.to_thread(verify_password, password, password_hash):
            raise AuthenticationError(INVALID_CREDENTIALS)

        logger.info("User %s logged in", user.id)
        return await self._issue(user)

    async def refresh(self, refresh_token: str) -> AuthResult:
        """Rotate a refresh token: the presented one is revoked, a new pair issued.

        Raises:
            AuthenticationError: Invalid, unknown, expired or orphaned token
        """
        claims = self.tokens.decode_refresh_token(refresh_token)
        stored = await self.refresh_tokens.get(refresh_token)
        if stored is None:
            raise AuthenticationError("Refresh token not found")

        stored_user_id, expires_at = stored
        if expires_at < utc_now():
            raise AuthenticationError("Refresh token expired")
        await self.refresh_tokens.delete(refresh_token)

        user = await self.users.get_by_id(claims["sub"])
        if user is None or user.id != stored_user_id:
            raise AuthenticationError("User not found")
        return await self._issue(user)

    async def logout(self, refresh_token: str | None) -> None:
        """Revoke the presented refresh token (if any). Always succeeds."""
        if refresh_token and await self.refresh_tokens.delete(refresh_token):
            logger.info("Refresh token revoked on logout")

    async def get_user_from_access_token(self, access_token: str) -> User:
        """
        Raises:
            AuthenticationError: Bad token or user no longer exists
        """
        claims = self.tokens.decode_access_token(access_token)
        user = await self.users.get_by_id(claims["sub"])
        if user is None:
            raise AuthenticationError("User not found")
        return user
