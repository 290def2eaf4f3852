"""
Tests for sensor service authorization and activation.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from sensor_switcher.devices.base import SensorSwitcher
from sensor_switcher.exceptions import (
    ExternalActionError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from sensor_switcher.services.sensor_service import SensorService


def _first(value):
    result = MagicMock()
    result.first.return_value = value
    result.scalars.return_value.first.return_value = value
    return result


def _rowcount(count):
    result = MagicMock()
    result.rowcount = count
    return result


@pytest.fixture
def switcher():
    mock = AsyncMock(spec=SensorSwitcher)
    mock.activate_sensor = AsyncMock(return_value=None)
    return mock


@pytest.mark.asyncio
async def test_create_reports_missing_fields(mock_db_session):
    service = SensorService(mock_db_session)

    with pytest.raises(ValidationError) as exc_info:
        await service.create(1, "Bedroom", None, None)

    assert exc_info.value.details == ["deviceID is required", "thermostat_id is required"]
    mock_db_session.execute.assert_not_called()


@pytest.mark.asyncio
async def test_create_on_unowned_thermostat_is_forbidden(mock_db_session):
    mock_db_session.execute.return_value = _first(None)
    service = SensorService(mock_db_session)

    with pytest.raises(ForbiddenError):
        await service.create(1, "Bedroom", "S1", 9)

    mock_db_session.add.assert_not_called()
    mock_db_session.rollback.assert_called_once()


@pytest.mark.asyncio
async def test_delete_checks_ownership_before_existence(mock_db_session):
    mock_db_session.execute.return_value = _first(None)
    service = SensorService(mock_db_session)

    with pytest.raises(ForbiddenError):
        await service.delete(1, 5)

    # Only the ownership lookup ran; no DELETE was issued
    assert mock_db_session.execute.call_count == 1


@pytest.mark.asyncio
async def test_delete_affecting_no_rows_is_not_found(mock_db_session):
    mock_db_session.execute.side_effect = [_first(object()), _rowcount(0)]
    service = SensorService(mock_db_session)

    with pytest.raises(NotFoundError):
        await service.delete(1, 5)

    mock_db_session.rollback.assert_called_once()
    mock_db_session.commit.assert_not_called()


@pytest.mark.asyncio
async def test_delete_success(mock_db_session):
    mock_db_session.execute.side_effect = [_first(object()), _rowcount(1)]
    service = SensorService(mock_db_session)

    result = await service.delete(1, 5)

    assert "deleted" in result["message"]
    mock_db_session.commit.assert_called_once()


@pytest.mark.asyncio
async def test_activate_requires_fields(mock_db_session, switcher):
    service = SensorService(mock_db_session, switcher)

    with pytest.raises(ValidationError):
        await service.activate(1, "", 1)

    switcher.activate_sensor.assert_not_called()


@pytest.mark.asyncio
async def test_activate_unowned_thermostat_is_forbidden(mock_db_session, switcher):
    mock_db_session.execute.return_value = _first(None)
    service = SensorService(mock_db_session, switcher)

    with pytest.raises(ForbiddenError):
        await service.activate(1, "Bedroom Sensor", 1)

    switcher.activate_sensor.assert_not_called()


@pytest.mark.asyncio
async def test_activate_sensor_not_on_thermostat_is_forbidden(mock_db_session, switcher):
    mock_db_session.execute.side_effect = [_first(("T3.ABC", "Main Floor")), _first(None)]
    service = SensorService(mock_db_session, switcher)

    with pytest.raises(ForbiddenError):
        await service.activate(1, "Garage Sensor", 1)

    switcher.activate_sensor.assert_not_called()


@pytest.mark.asyncio
async def test_activate_calls_switcher_headless(mock_db_session, switcher):
    mock_db_session.execute.side_effect = [_first(("T3.ABC", "Main Floor")), _first("S1")]
    service = SensorService(mock_db_session, switcher)

    result = await service.activate(1, "Bedroom Sensor", 1)

    switcher.activate_sensor.assert_awaited_once_with("S1", "T3.ABC", headless=True)
    assert "Bedroom Sensor" in result["message"]
    assert "Main Floor" in result["message"]


@pytest.mark.asyncio
async def test_activate_switcher_failure_is_generic(mock_db_session, switcher):
    mock_db_session.execute.side_effect = [_first(("T3.ABC", "Main Floor")), _first("S1")]
    switcher.activate_sensor.side_effect = RuntimeError("selector .puck-item not found")
    service = SensorService(mock_db_session, switcher)

    with pytest.raises(ExternalActionError) as exc_info:
        await service.activate(1, "Bedroom Sensor", 1)

    assert exc_info.value.public_message == "Failed to change temperature sensor"


@pytest.mark.asyncio
async def test_activate_timeout_is_generic(mock_db_session):
    class HangingSwitcher(SensorSwitcher):
        async def activate_sensor(self, sensor_device_id, thermostat_device_id, headless=True):
            await asyncio.sleep(10)

    mock_db_session.execute.side_effect = [_first(("T3.ABC", "Main Floor")), _first("S1")]
    service = SensorService(mock_db_session, HangingSwitcher(), activation_timeout=0.05)

    with pytest.raises(ExternalActionError) as exc_info:
        await service.activate(1, "Bedroom Sensor", 1)

    assert exc_info.value.public_message == "Failed to change temperature sensor"
