"""
Thermostat endpoints.

This is a thin HTTP adapter - all business logic is in ThermostatService.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from sensor_switcher.dependencies import get_thermostat_service
from sensor_switcher.services.thermostat_service import ThermostatService
from sensor_switcher.utils.auth import CurrentUser, get_current_user

router = APIRouter(prefix="/thermostat")


class ThermostatCreateRequest(BaseModel):
    """Request model for creating a thermostat."""
    thermostatName: Optional[str] = None
    location: Optional[str] = None
    deviceId: Optional[str] = None


class ThermostatAssignRequest(BaseModel):
    """Request model for sharing a thermostat."""
    userId: Optional[int] = None


@router.get("")
async def list_thermostats(
    user: CurrentUser = Depends(get_current_user),
    service: ThermostatService = Depends(get_thermostat_service)
):
    """
    List thermostats owned by the caller.

    Returns:
        list: [{"id": 1, "thermostatName": "Main Floor", "location": "Living Room", "deviceId": "T3.ABC"}]
    """
    return await service.list_for_user(user.id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_thermostat(
    request: ThermostatCreateRequest,
    user: CurrentUser = Depends(get_current_user),
    service: ThermostatService = Depends(get_thermostat_service)
):
    """
    Register a thermostat; the caller becomes its owner.

    Returns:
        dict: {"id": 1, "thermostatName": ..., "location": ..., "deviceId": ...}
    """
    return await service.create(user.id, request.thermostatName, request.location, request.deviceId)


@router.post("/{thermostat_id}/assign")
async def assign_thermostat(
    thermostat_id: int,
    request: ThermostatAssignRequest,
    user: CurrentUser = Depends(get_current_user),
    service: ThermostatService = Depends(get_thermostat_service)
):
    """
    Share a thermostat the caller owns with another user.

    Returns:
        dict: {"message": ..., "thermostatId": 1, "assignedToUserId": 2}

    Raises:
        400 bad userId, 403 not owner, 404 thermostat/user missing, 409 already assigned
    """
    return await service.assign(user.id, thermostat_id, request.userId)
