"""Signed session tokens (PyJWT).

Hey future me - two token kinds share one secret, so the ``type`` claim is what
stops a refresh token from being accepted as an access token (and vice versa).
Always decode through ``decode_access_token`` / ``decode_refresh_token``.

- access:  15 min, claims sub/email/type=access
- refresh: 7 days, claims sub/type=refresh, also stored server-side so logout
  and rotation can revoke it
"""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from simlr.config.settings import AuthSettings
from simlr.domain.exceptions import AuthenticationError

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


class TokenService:
    """Issues and verifies access/refresh tokens."""

    def __init__(self, settings: AuthSettings) -> None:
        self.settings = settings

    def _encode(self, claims: dict[str, Any], ttl_seconds: int) -> IssuedToken:
        now = datetime.now(UTC)
        expires_at = now + timedelta(seconds=ttl_seconds)
        # jti keeps tokens unique even when two are issued in the same second
        payload = {**claims, "iat": now, "exp": expires_at, "jti": uuid.uuid4().hex}
        token = jwt.encode(payload, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)
        return IssuedToken(token=token, expires_at=expires_at)

    def issue_access_token(self, user_id: str, email: str | None) -> IssuedToken:
        return self._encode(
            {"sub": user_id, "email": email, "type": ACCESS},
            self.settings.access_token_ttl_seconds,
        )

    def issue_refresh_token(self, user_id: str) -> IssuedToken:
        return self._encode(
            {"sub": user_id, "type": REFRESH}, self.settings.refresh_token_ttl_seconds
        )

    def _decode(self, token: str, expected_type: str) -> dict[str, Any]:
        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[self.settings.jwt_algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationError("Token expired") from e
        except jwt.InvalidTokenError as e:
            raise AuthenticationError("Invalid token") from e
        if payload.get("type") != expected_type:
            raise AuthenticationError("Invalid token")
        return payload

    def decode_access_token(self, token: str) -> dict[str, Any]:
        """Verify an access token and return its claims.

        Raises:
            AuthenticationError: If the token is malformed, expired or not an access token
        """
        return self._decode(token, ACCESS)

    def decode_refresh_token(self, token: str) -> dict[str, Any]:
        """Verify a refresh token's signature/expiry (server-side row is checked separately)."""
        return self._decode(token, REFRESH)
