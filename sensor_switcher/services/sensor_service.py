"""
Sensor service - sensors scoped to the caller's thermostats.

Every lookup goes through sensors -> thermostat -> user_thermostats, so a
guessed sensor id belonging to someone else's thermostat is never returned
or modified.
"""

import asyncio
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sensor_switcher.devices.base import SensorSwitcher
from sensor_switcher.exceptions import (
    ExternalActionError,
    ForbiddenError,
    NotFoundError,
    StorageError,
    SwitcherError,
    ValidationError,
)
from sensor_switcher.models.database import Sensor, Thermostat, UserThermostat
from sensor_switcher.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_ACTIVATION_TIMEOUT_SECONDS = 120.0


def sensor_to_dict(sensor: Sensor) -> Dict[str, Any]:
    """API representation of a sensor."""
    return {
        "id": sensor.id,
        "name": sensor.name,
        "deviceID": sensor.device_id,
        "thermostat_id": sensor.thermostat_id
    }


def _owned_sensors(user_id: int):
    """Base query: sensors whose thermostat the user owns."""
    return (
        select(Sensor)
        .join(Thermostat, Thermostat.id == Sensor.thermostat_id)
        .join(UserThermostat, UserThermostat.thermostat_id == Thermostat.id)
        .where(UserThermostat.user_id == user_id)
    )


class SensorService:
    """
    Service for temperature sensors.

    Handles:
    - Listing sensors (full records or names only)
    - Creating and deleting sensors under owned thermostats
    - Activating a sensor through the automation collaborator
    """

    def __init__(
        self,
        db: AsyncSession,
        switcher: Optional[SensorSwitcher] = None,
        activation_timeout: float = DEFAULT_ACTIVATION_TIMEOUT_SECONDS
    ):
        """
        Args:
            db: Async database session
            switcher: Collaborator that drives the Nest UI (needed for activate)
            activation_timeout: Upper bound in seconds for one activation
        """
        self.db = db
        self.switcher = switcher
        self.activation_timeout = activation_timeout

    async def list_for_user(self, user_id: int) -> Dict[str, Any]:
        """
        Returns:
            Dict: {"sensors": [{"id", "name", "deviceID", "thermostat_id"}, ...]}
        """
        try:
            result = await self.db.execute(_owned_sensors(user_id).order_by(Sensor.id))
            sensors = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("sensor_list_failed", user_id=user_id, error=str(e), exc_info=True)
            raise StorageError("Failed to retrieve sensors") from e

        logger.info("sensor_list_success", user_id=user_id, count=len(sensors))
        return {"sensors": [sensor_to_dict(s) for s in sensors]}

    async def list_names(self, user_id: int) -> Dict[str, List[str]]:
        """
        Returns:
            Dict: {"sensorNames": ["Bedroom Sensor", ...]} ordered by sensor id
        """
        query = (
            _owned_sensors(user_id)
            .with_only_columns(Sensor.name)
            .order_by(Sensor.id)
        )

        try:
            result = await self.db.execute(query)
            names = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("sensor_names_failed", user_id=user_id, error=str(e), exc_info=True)
            raise StorageError("Failed to retrieve sensor names") from e

        return {"sensorNames": names}

    async def create(
        self,
        user_id: int,
        name: Optional[str],
        device_id: Optional[str],
        thermostat_id: Optional[int]
    ) -> Dict[str, Any]:
        """
        Add a sensor to a thermostat the user owns.

        Raises:
            ValidationError: name, deviceID or thermostat_id missing
            ForbiddenError: Thermostat not owned by the user (or doesn't exist)
            StorageError: Insert failed
        """
        missing = []
        if name is None or not name.strip():
            missing.append("name")
        if device_id is None or not device_id.strip():
            missing.append("deviceID")
        if thermostat_id is None:
            missing.append("thermostat_id")

        if missing:
            logger.warning("sensor_create_missing_fields", user_id=user_id, missing=missing)
            raise ValidationError(
                f"Missing required field(s): {', '.join(missing)}",
                details=[f"{field} is required" for field in missing]
            )

        try:
            if not await self._owns_thermostat(user_id, thermostat_id):
                raise ForbiddenError("Forbidden, you do not own this thermostat")

            sensor = Sensor(
                name=name.strip(),
                device_id=device_id.strip(),
                thermostat_id=thermostat_id
            )
            self.db.add(sensor)
            await self.db.commit()
        except SwitcherError:
            await self.db.rollback()
            logger.warning("sensor_create_forbidden", user_id=user_id, thermostat_id=thermostat_id)
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error("sensor_create_failed", user_id=user_id, error=str(e), exc_info=True)
            raise StorageError("Failed to create sensor") from e

        logger.info("sensor_create_success", user_id=user_id, sensor_id=sensor.id, thermostat_id=thermostat_id)
        return sensor_to_dict(sensor)

    async def delete(self, user_id: int, sensor_id: int) -> Dict[str, str]:
        """
        Delete a sensor attached to one of the user's thermostats.

        Ownership is checked first (403); a delete that then affects no rows
        means the sensor vanished in between (404).
        """
        try:
            result = await self.db.execute(
                _owned_sensors(user_id).where(Sensor.id == sensor_id)
            )
            if result.scalars().first() is None:
                raise ForbiddenError("Forbidden, you do not own this sensor")

            deleted = await self.db.execute(delete(Sensor).where(Sensor.id == sensor_id))
            if deleted.rowcount == 0:
                raise NotFoundError("Sensor not found")

            await self.db.commit()
        except SwitcherError as e:
            await self.db.rollback()
            logger.warning("sensor_delete_rejected", user_id=user_id, sensor_id=sensor_id, reason=e.message)
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error("sensor_delete_failed", user_id=user_id, sensor_id=sensor_id, error=str(e), exc_info=True)
            raise StorageError("Failed to delete sensor") from e

        logger.info("sensor_delete_success", user_id=user_id, sensor_id=sensor_id)
        return {"message": "Sensor deleted successfully"}

    async def activate(
        self,
        user_id: int,
        sensor_name: Optional[str],
        thermostat_id: Optional[int]
    ) -> Dict[str, str]:
        """
        Make a named sensor the active temperature sensor of a thermostat.

        Both the thermostat (owned by the user) and the sensor (attached to
        that thermostat) must resolve before the switcher is called.

        Raises:
            ValidationError: sensorName or thermostat_id missing
            ForbiddenError: Thermostat not owned, or sensor not on it
            ExternalActionError: Switcher failed or timed out
        """
        if sensor_name is None or not sensor_name.strip() or thermostat_id is None:
            raise ValidationError("Missing sensorName or thermostat_id")

        sensor_name = sensor_name.strip()

        try:
            result = await self.db.execute(
                select(Thermostat.device_id, Thermostat.name)
                .join(UserThermostat, UserThermostat.thermostat_id == Thermostat.id)
                .where(
                    UserThermostat.user_id == user_id,
                    Thermostat.id == thermostat_id
                )
            )
            thermostat_row = result.first()

            sensor_device_id = None
            if thermostat_row is not None:
                result = await self.db.execute(
                    select(Sensor.device_id).where(
                        Sensor.name == sensor_name,
                        Sensor.thermostat_id == thermostat_id
                    )
                )
                sensor_device_id = result.scalars().first()
        except SQLAlchemyError as e:
            logger.error("sensor_activate_lookup_failed", user_id=user_id, error=str(e), exc_info=True)
            raise StorageError("Failed to change temperature sensor") from e

        if thermostat_row is None:
            logger.warning("sensor_activate_thermostat_forbidden", user_id=user_id, thermostat_id=thermostat_id)
            raise ForbiddenError("Forbidden, you do not own this thermostat")

        if sensor_device_id is None:
            logger.warning(
                "sensor_activate_sensor_forbidden",
                user_id=user_id,
                thermostat_id=thermostat_id,
                sensor_name=sensor_name
            )
            raise ForbiddenError("Sensor not found on this thermostat")

        thermostat_device_id, thermostat_name = thermostat_row

        if self.switcher is None:
            raise ExternalActionError("No sensor switcher configured")

        logger.info(
            "sensor_activate_requested",
            user_id=user_id,
            sensor_device_id=sensor_device_id,
            thermostat_device_id=thermostat_device_id
        )

        try:
            await asyncio.wait_for(
                self.switcher.activate_sensor(sensor_device_id, thermostat_device_id, headless=True),
                timeout=self.activation_timeout
            )
        except asyncio.TimeoutError as e:
            logger.error(
                "sensor_activate_timeout",
                sensor_device_id=sensor_device_id,
                thermostat_device_id=thermostat_device_id,
                timeout_s=self.activation_timeout
            )
            raise ExternalActionError("Sensor activation timed out") from e
        except Exception as e:
            logger.error(
                "sensor_activate_failed",
                sensor_device_id=sensor_device_id,
                thermostat_device_id=thermostat_device_id,
                error=str(e),
                exc_info=True
            )
            raise ExternalActionError(str(e)) from e

        logger.info("sensor_activate_success", sensor_device_id=sensor_device_id, thermostat_device_id=thermostat_device_id)
        return {
            "message": f"Temperature sensor changed to {sensor_name} on {thermostat_name}"
        }
