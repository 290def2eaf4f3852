"""
User service - account creation and login.

Unknown usernames and wrong passwords produce the same error so callers
cannot tell which accounts exist.
"""

import asyncio
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sensor_switcher.exceptions import (
    ConflictError,
    StorageError,
    SwitcherError,
    UnauthorizedError,
    ValidationError,
)
from sensor_switcher.models.database import Token, User
from sensor_switcher.utils.logging import get_logger
from sensor_switcher.utils.security import (
    create_access_token,
    get_token_ttl,
    hash_password,
    utcnow,
    verify_password,
)

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid username or password"


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class UserService:
    """
    Service for user accounts and login tokens.
    """

    def __init__(self, db: AsyncSession):
        """
        Args:
            db: Async database session
        """
        self.db = db

    async def create_account(
        self,
        username: Optional[str],
        password: Optional[str],
        email: Optional[str]
    ) -> Dict[str, Any]:
        """
        Register a new user.

        Returns:
            Dict: {"message": ..., "userId": 1}

        Raises:
            ValidationError: Any field missing
            ConflictError: Username or email already taken
            StorageError: Hashing or insert failed
        """
        username = _clean(username)
        email = _clean(email)

        # Guard clause: all three fields required
        if not username or not password or not email:
            logger.warning("account_create_missing_fields")
            raise ValidationError("Missing username, password, or email")

        logger.info("account_create_requested", username=username)

        try:
            password_hash = await asyncio.to_thread(hash_password, password)
        except Exception as e:
            logger.error("password_hash_failed", username=username, error=str(e), exc_info=True)
            raise StorageError("Failed to hash password") from e

        user = User(username=username, password_hash=password_hash, email=email)

        try:
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning("account_create_duplicate", username=username)
            raise ConflictError("Username or email already exists") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("account_create_failed", username=username, error=str(e), exc_info=True)
            raise StorageError("Failed to create account") from e

        logger.info("account_create_success", user_id=user.id, username=username)
        return {"message": "Account created successfully", "userId": user.id}

    async def login(self, username: Optional[str], password: Optional[str]) -> Dict[str, str]:
        """
        Verify credentials and issue a token valid for TOKEN_TTL_MINUTES.

        Returns:
            Dict: {"token": "<jwt>"}

        Raises:
            ValidationError: Username or password missing
            UnauthorizedError: Unknown user or wrong password (same message)
            StorageError: Lookup, compare or token insert failed
        """
        username = _clean(username)

        if not username or not password:
            raise ValidationError("Missing username or password")

        try:
            result = await self.db.execute(select(User).where(User.username == username))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("login_lookup_failed", username=username, error=str(e), exc_info=True)
            raise StorageError("Login failed") from e

        if user is None:
            logger.warning("login_failed", username=username)
            raise UnauthorizedError(INVALID_CREDENTIALS)

        try:
            matches = await asyncio.to_thread(verify_password, password, user.password_hash)
        except Exception as e:
            logger.error("password_compare_failed", user_id=user.id, error=str(e), exc_info=True)
            raise StorageError("Login failed") from e

        if not matches:
            logger.warning("login_failed", username=username)
            raise UnauthorizedError(INVALID_CREDENTIALS)

        expires_at = utcnow() + get_token_ttl()

        try:
            token = create_access_token(user.id, user.username, expires_at)
            self.db.add(Token(user_id=user.id, token=token, expires_at=expires_at))
            await self.db.commit()
        except SwitcherError:
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error("token_store_failed", user_id=user.id, error=str(e), exc_info=True)
            raise StorageError("Login failed") from e

        logger.info("login_success", user_id=user.id)
        return {"token": token}
