"""
Sensor endpoints.

This is a thin HTTP adapter - all business logic is in SensorService.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from sensor_switcher.dependencies import get_sensor_service
from sensor_switcher.services.sensor_service import SensorService
from sensor_switcher.utils.auth import CurrentUser, get_current_user

router = APIRouter(prefix="/sensor")


class SensorCreateRequest(BaseModel):
    """Request model for adding a sensor to a thermostat."""
    name: Optional[str] = None
    deviceID: Optional[str] = None
    thermostat_id: Optional[int] = None


class ChangeSensorRequest(BaseModel):
    """Request model for switching the active temperature sensor."""
    sensorName: Optional[str] = None
    thermostat_id: Optional[int] = None


@router.get("")
async def list_sensors(
    user: CurrentUser = Depends(get_current_user),
    service: SensorService = Depends(get_sensor_service)
):
    """
    Returns:
        dict: {"sensors": [{"id": 1, "name": "Bedroom Sensor", "deviceID": "S1", "thermostat_id": 1}]}
    """
    return await service.list_for_user(user.id)


@router.get("/sensor-names")
async def list_sensor_names(
    user: CurrentUser = Depends(get_current_user),
    service: SensorService = Depends(get_sensor_service)
):
    """
    Returns:
        dict: {"sensorNames": ["Bedroom Sensor", ...]}
    """
    return await service.list_names(user.id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_sensor(
    request: SensorCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    service: SensorService = Depends(get_sensor_service)
):
    """
    Add a sensor to one of the caller's thermostats.

    Returns:
        dict: {"id": 1, "name": ..., "deviceID": ..., "thermostat_id": 1}
    """
    return await service.create(user.id, request.name, request.deviceID, request.thermostat_id)


@router.post("/change-sensor")
async def change_sensor(
    request: ChangeSensorRequest,
    user: CurrentUser = Depends(get_current_user),
    service: SensorService = Depends(get_sensor_service)
):
    """
    Make the named sensor the thermostat's active temperature sensor.

    Drives the Nest web UI, so this can take tens of seconds.

    Returns:
        dict: {"message": "Temperature sensor changed to Bedroom Sensor on Main Floor"}
    """
    return await service.activate(user.id, request.sensorName, request.thermostat_id)


@router.delete("/{sensor_id}")
async def delete_sensor(
    sensor_id: int,
    user: CurrentUser = Depends(get_current_user),
    service: SensorService = Depends(get_sensor_service)
):
    """
    Returns:
        dict: {"message": "Sensor deleted successfully"}
    """
    return await service.delete(user.id, sensor_id)
