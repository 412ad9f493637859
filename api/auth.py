"""
Password hashing and security-question checks for the user endpoints.
"""

import secrets
from typing import Optional, Sequence

import bcrypt
import structlog
from fastapi import HTTPException

from api.config import config

logger = structlog.get_logger(__name__)

# bcrypt input limit
MAX_PASSWORD_BYTES = 72


class AuthError(HTTPException):
    """HTTP error raised by the user endpoints, rendered as ``{"message": ...}``."""


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """
    Hash a password with bcrypt.

    Args:
        password: Plaintext password
        rounds: bcrypt cost factor, defaults to ``config.bcrypt_rounds``

    Returns:
        The bcrypt hash as text

    Raises:
        ValueError: If the password is longer than bcrypt can handle
    """
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")

    salt = bcrypt.gensalt(rounds=rounds or config.bcrypt_rounds)
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """
    Check a plaintext password against a stored bcrypt hash.

    Returns False rather than raising when the password is too long or the
    stored hash is malformed.
    """
    encoded = password.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False

    try:
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
    except ValueError as e:
        logger.warning("Stored password hash could not be checked", error=str(e))
        return False


def answers_match(provided: Sequence[str], stored: Sequence[str]) -> bool:
    """
    Compare security-question answers in order.

    Every answer must match exactly; a different number of answers never matches.
    """
    if len(provided) != len(stored):
        return False

    # Every pair is compared, even after a mismatch
    results = [
        secrets.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))
        for given, expected in zip(provided, stored)
    ]
    return all(results)
