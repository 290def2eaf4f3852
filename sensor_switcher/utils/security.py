"""
Password hashing and signed login tokens.

Passwords: bcrypt with a per-hash salt.
Tokens: HS256 JWTs carrying {id, username, exp}, signed with SECRET_KEY.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
from jose import JWTError, jwt

from sensor_switcher.exceptions import ConfigurationError, ForbiddenError

ALGORITHM = "HS256"
DEFAULT_TOKEN_TTL_MINUTES = 60
BCRYPT_MAX_BYTES = 72


def get_secret_key() -> str:
    """
    Read the token signing key from the environment.

    Raises:
        ConfigurationError: If SECRET_KEY is not set
    """
    secret_key = os.getenv("SECRET_KEY")
    if not secret_key:
        raise ConfigurationError("SECRET_KEY not configured on server")
    return secret_key


def get_token_ttl() -> timedelta:
    """Lifetime of a freshly issued login token."""
    minutes = int(os.getenv("TOKEN_TTL_MINUTES", str(DEFAULT_TOKEN_TTL_MINUTES)))
    return timedelta(minutes=minutes)


def _password_bytes(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes; newer releases raise instead of truncating
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash a password with bcrypt. Returns the hash as text."""
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash."""
    return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))


def create_access_token(user_id: int, username: str, expires_at: datetime) -> str:
    """
    Mint a signed token for a user.

    Args:
        user_id: User primary key
        username: Username (embedded for convenience, not trusted on its own)
        expires_at: Absolute expiry, stored both in the token and the tokens table

    Returns:
        Encoded JWT
    """
    payload = {
        "id": user_id,
        "username": username,
        "exp": expires_at,
    }
    return jwt.encode(payload, get_secret_key(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry of a token and return its claims.

    Raises:
        ForbiddenError: If the token is malformed, tampered with or expired
    """
    try:
        payload = jwt.decode(token, get_secret_key(), algorithms=[ALGORITHM])
    except JWTError as e:
        raise ForbiddenError("Invalid or expired token") from e

    if not isinstance(payload.get("id"), int) or not payload.get("username"):
        raise ForbiddenError("Invalid or expired token")

    return payload


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
