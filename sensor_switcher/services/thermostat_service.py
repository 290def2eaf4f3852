"""
Thermostat service - ownership-scoped thermostat operations.

A thermostat is visible to a user only through a user_thermostats row.
Multi-statement writes run in one transaction and roll back on any error,
including authorization failures discovered after the transaction began.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sensor_switcher.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StorageError,
    SwitcherError,
    ValidationError,
)
from sensor_switcher.models.database import Thermostat, User, UserThermostat
from sensor_switcher.utils.logging import get_logger

logger = get_logger(__name__)


def thermostat_to_dict(thermostat: Thermostat) -> Dict[str, Any]:
    """API representation of a thermostat."""
    return {
        "id": thermostat.id,
        "thermostatName": thermostat.name,
        "location": thermostat.location,
        "deviceId": thermostat.device_id
    }


class ThermostatService:
    """
    Service for thermostats owned by the current user.

    Handles:
    - Listing thermostats through the ownership join
    - Creating a thermostat together with its ownership row
    - Sharing (assigning) a thermostat with another user
    """

    def __init__(self, db: AsyncSession):
        """
        Args:
            db: Async database session
        """
        self.db = db

    async def list_for_user(self, user_id: int) -> List[Dict[str, Any]]:
        """
        List all thermostats the user owns.

        Returns:
            List of thermostat dicts (empty if none)
        """
        query = (
            select(Thermostat)
            .join(UserThermostat, UserThermostat.thermostat_id == Thermostat.id)
            .where(UserThermostat.user_id == user_id)
            .order_by(Thermostat.id)
        )

        try:
            result = await self.db.execute(query)
            thermostats = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("thermostat_list_failed", user_id=user_id, error=str(e), exc_info=True)
            raise StorageError("Failed to retrieve thermostats") from e

        logger.info("thermostat_list_success", user_id=user_id, count=len(thermostats))
        return [thermostat_to_dict(t) for t in thermostats]

    async def create(
        self,
        user_id: int,
        name: Optional[str],
        location: Optional[str],
        device_id: Optional[str]
    ) -> Dict[str, Any]:
        """
        Create a thermostat and make the user its owner, atomically.

        Raises:
            ValidationError: One or more required fields missing (each listed)
            StorageError: Either insert failed (nothing is persisted)
        """
        missing = [
            field for field, value in (
                ("thermostatName", name),
                ("location", location),
                ("deviceId", device_id),
            )
            if value is None or not str(value).strip()
        ]

        # Guard clause: report every missing field at once
        if missing:
            logger.warning("thermostat_create_missing_fields", user_id=user_id, missing=missing)
            raise ValidationError(
                f"Missing required field(s): {', '.join(missing)}",
                details=[f"{field} is required" for field in missing]
            )

        thermostat = Thermostat(
            name=name.strip(),
            location=location.strip(),
            device_id=device_id.strip()
        )

        try:
            self.db.add(thermostat)
            await self.db.flush()

            self.db.add(UserThermostat(user_id=user_id, thermostat_id=thermostat.id))
            await self.db.flush()

            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error("thermostat_create_failed", user_id=user_id, error=str(e), exc_info=True)
            raise StorageError("Failed to create thermostat") from e

        logger.info("thermostat_create_success", user_id=user_id, thermostat_id=thermostat.id)
        return thermostat_to_dict(thermostat)

    async def assign(
        self,
        current_user_id: int,
        thermostat_id: int,
        target_user_id: Optional[int]
    ) -> Dict[str, Any]:
        """
        Share a thermostat the current user owns with another user.

        Checks, in order, inside one transaction:
        thermostat exists (404), caller owns it (403), target user exists (404),
        target doesn't already own it (409). Then inserts and commits.

        Returns:
            Dict: {"message": ..., "thermostatId": 1, "assignedToUserId": 2}
        """
        # Guard clause: validation before any storage access
        if target_user_id is None:
            raise ValidationError("Missing userId")
        if isinstance(target_user_id, bool) or not isinstance(target_user_id, int) or target_user_id < 1:
            raise ValidationError("userId must be a positive integer")

        logger.info(
            "thermostat_assign_requested",
            user_id=current_user_id,
            thermostat_id=thermostat_id,
            target_user_id=target_user_id
        )

        try:
            thermostat = await self.db.get(Thermostat, thermostat_id)
            if thermostat is None:
                raise NotFoundError("Thermostat not found")

            if not await self._owns(current_user_id, thermostat_id):
                raise ForbiddenError("Forbidden, you do not own this thermostat")

            if await self.db.get(User, target_user_id) is None:
                raise NotFoundError("Target user not found")

            if await self._owns(target_user_id, thermostat_id):
                raise ConflictError("Thermostat is already assigned to this user")

            self.db.add(UserThermostat(user_id=target_user_id, thermostat_id=thermostat_id))
            await self.db.commit()
        except SwitcherError as e:
            await self.db.rollback()
            logger.warning(
                "thermostat_assign_rejected",
                user_id=current_user_id,
                thermostat_id=thermostat_id,
                target_user_id=target_user_id,
                reason=e.message
            )
            raise
        except IntegrityError as e:
            # Concurrent assignment won the race for the composite key
            await self.db.rollback()
            logger.warning("thermostat_assign_duplicate", thermostat_id=thermostat_id, target_user_id=target_user_id)
            raise ConflictError("Thermostat is already assigned to this user") from e
        except Exception as e:
            await self.db.rollback()
            logger.error("thermostat_assign_failed", thermostat_id=thermostat_id, error=str(e), exc_info=True)
            raise StorageError("Failed to assign thermostat") from e

        logger.info(
            "thermostat_assign_success",
            thermostat_id=thermostat_id,
            target_user_id=target_user_id
        )
        return {
            "message": f"Thermostat {thermostat_id} assigned to user {target_user_id}",
            "thermostatId": thermostat_id,
            "assignedToUserId": target_user_id
        }

    async def _owns(self, user_id: int, thermostat_id: int) -> bool:
        result = await self.db.execute(
            select(UserThermostat.user_id).where(
                UserThermostat.user_id == user_id,
                UserThermostat.thermostat_id == thermostat_id
            )
        )
        return result.first() is not None
