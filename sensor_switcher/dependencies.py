"""
FastAPI dependency injection for services.
Centralizes service construction to avoid repetition in routers.
"""

import os

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from sensor_switcher.database import get_db
from sensor_switcher.devices.base import SensorSwitcher, SimSensorSwitcher
from sensor_switcher.devices.nest_client import NestSensorSwitcher
from sensor_switcher.services.sensor_service import (
    DEFAULT_ACTIVATION_TIMEOUT_SECONDS,
    SensorService,
)
from sensor_switcher.services.thermostat_service import ThermostatService
from sensor_switcher.services.user_service import UserService


def build_sensor_switcher() -> SensorSwitcher:
    """
    Create the sensor switcher from environment configuration.

    SIM_MODE=true gives a switcher that never launches a browser.
    """
    if os.getenv("SIM_MODE", "false").lower() == "true":
        return SimSensorSwitcher()

    return build_nest_switcher()


def build_nest_switcher() -> NestSensorSwitcher:
    """Nest driver configured from NEST_STORAGE_STATE and SCREENSHOT_DIR."""
    return NestSensorSwitcher(
        storage_state_path=os.getenv("NEST_STORAGE_STATE", "resource/nest-session.json"),
        screenshot_dir=os.getenv("SCREENSHOT_DIR", "logs/screenshots")
    )


def get_activation_timeout() -> float:
    return float(os.getenv(
        "SENSOR_SWITCH_TIMEOUT_SECONDS",
        str(DEFAULT_ACTIVATION_TIMEOUT_SECONDS)
    ))


def get_sensor_switcher(request: Request) -> SensorSwitcher:
    """Switcher created at startup and kept on app.state."""
    return request.app.state.sensor_switcher


async def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


async def get_thermostat_service(db: AsyncSession = Depends(get_db)) -> ThermostatService:
    return ThermostatService(db)


async def get_sensor_service(
    db: AsyncSession = Depends(get_db),
    switcher: SensorSwitcher = Depends(get_sensor_switcher)
) -> SensorService:
    return SensorService(db, switcher, activation_timeout=get_activation_timeout())
