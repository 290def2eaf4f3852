"""
Bearer token authentication for thermostat and sensor endpoints.

A request is authenticated when:
1. It carries "Authorization: Bearer <token>"        (else 401)
2. The token's signature and exp claim verify        (else 403)
3. The token is present in the tokens table for the
   same user and its stored expiry has not passed    (else 403)
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sensor_switcher.database import get_db
from sensor_switcher.exceptions import ForbiddenError, StorageError, UnauthorizedError
from sensor_switcher.models.database import Token
from sensor_switcher.utils.logging import get_logger
from sensor_switcher.utils.security import as_utc, decode_access_token, utcnow

logger = get_logger(__name__)

# auto_error=False so a missing header becomes our 401, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    """Identity attached to an authenticated request."""
    id: int
    username: str


async def authenticate_token(db: AsyncSession, token: str) -> CurrentUser:
    """
    Resolve a raw bearer token to a user identity.

    Raises:
        ForbiddenError: Token fails verification, is unknown or has expired
        StorageError: Token lookup failed
    """
    payload = decode_access_token(token)
    user_id = payload["id"]

    try:
        result = await db.execute(
            select(Token.expires_at).where(
                Token.token == token,
                Token.user_id == user_id
            )
        )
        expires_at = result.scalars().first()
    except SQLAlchemyError as e:
        logger.error("token_lookup_failed", user_id=user_id, error=str(e), exc_info=True)
        raise StorageError("Failed to verify token") from e

    if expires_at is None:
        logger.warning("token_not_issued", user_id=user_id)
        raise ForbiddenError("Invalid or expired token")

    if as_utc(expires_at) <= utcnow():
        logger.warning("token_expired", user_id=user_id)
        raise ForbiddenError("Invalid or expired token")

    return CurrentUser(id=user_id, username=payload["username"])


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> CurrentUser:
    """
    FastAPI dependency guarding authenticated routes.

    Returns:
        CurrentUser for the bearer token

    Raises:
        UnauthorizedError: Missing or malformed Authorization header (401)
        ForbiddenError: Token rejected (403)
        StorageError: Token store unavailable (500)
    """
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise UnauthorizedError("Missing or malformed Authorization header")

    return await authenticate_token(db, credentials.credentials)
