"""Password hashing and strength policy using bcrypt."""
from dataclasses import dataclass

import bcrypt

MIN_LENGTH = 8
MAX_LENGTH = 128
# bcrypt only uses the first 72 bytes; newer releases reject longer input
BCRYPT_MAX_BYTES = 72


def _to_bytes(plaintext: str) -> bytes:
    return plaintext.encode("utf-8")[:BCRYPT_MAX_BYTES]


@dataclass(frozen=True)
class PasswordCheck:
    """Result of the strength policy; message is set when invalid."""

    valid: bool
    message: str | None = None


def hash_password(plaintext: str, rounds: int = 12) -> str:
    """
    Hash a plaintext password with a fresh random salt.

    The salt is embedded in the digest, so hashing the same plaintext twice
    yields different digests.
    """
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_to_bytes(plaintext), salt).decode("utf-8")


def verify_password(plaintext: str, digest: str) -> bool:
    """Return True iff plaintext hashes to digest under its embedded salt."""
    try:
        return bcrypt.checkpw(_to_bytes(plaintext), digest.encode("utf-8"))
    except (ValueError, TypeError):
        # Invalid hash format
        return False


def validate_strength(plaintext: str) -> PasswordCheck:
    """
    Check a password against the strength policy.

    Requirements:
    - 8 to 128 characters
    - at least one lowercase letter, one uppercase letter and one digit
    """
    if len(plaintext) < MIN_LENGTH:
        return PasswordCheck(False, f"Password must be at least {MIN_LENGTH} characters long")
    if len(plaintext) > MAX_LENGTH:
        return PasswordCheck(False, f"Password cannot exceed {MAX_LENGTH} characters")
    if not any(c.islower() for c in plaintext):
        return PasswordCheck(False, "Password must contain at least one lowercase letter")
    if not any(c.isupper() for c in plaintext):
        return PasswordCheck(False, "Password must contain at least one uppercase letter")
    if not any(c.isdigit() for c in plaintext):
        return PasswordCheck(False, "Password must contain at least one number")
    return PasswordCheck(True)
