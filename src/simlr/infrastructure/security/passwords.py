"""Password hashing with bcrypt."""

import bcrypt

from simlr.domain.exceptions import ValidationException

# bcrypt only looks at the first 72 bytes; reject longer input instead of silently truncating
BCRYPT_MAX_BYTES = 72


def validate_password(password: str, min_length: int = 8) -> None:
    """Raise ValidationException if the password is unacceptable."""
    if len(password) < min_length:
        raise ValidationException(f"Password must be at least {min_length} characters")
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValidationException(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode(
        "utf-8"
    )


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check; malformed hashes count as a mismatch."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False
