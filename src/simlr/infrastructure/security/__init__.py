"""Password hashing and session tokens."""

from .passwords import hash_password, validate_password, verify_password
from .tokens import IssuedToken, TokenService

__all__ = [
    "IssuedToken",
    "TokenService",
    "hash_password",
    "validate_password",
    "verify_password",
]
