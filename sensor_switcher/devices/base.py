"""
Base interface for the thermostat automation collaborator.

The API never talks to the Nest web UI directly; it asks a SensorSwitcher to
make a sensor the active temperature source for a thermostat. Every switcher
supports sim mode so development and tests never drive a real account.
"""

from abc import ABC, abstractmethod

from sensor_switcher.utils.logging import get_logger

logger = get_logger(__name__)


class SensorSwitcher(ABC):
    """
    Abstract base class for sensor switchers.
    """

    def __init__(self, sim_mode: bool = False):
        """
        Args:
            sim_mode: If True, log the request but don't touch any device
        """
        self.sim_mode = sim_mode

    @abstractmethod
    async def activate_sensor(
        self,
        sensor_device_id: str,
        thermostat_device_id: str,
        headless: bool = True
    ) -> None:
        """
        Make a sensor the active temperature sensor of a thermostat.

        Args:
            sensor_device_id: Sensor identifier in the Nest UI
            thermostat_device_id: Thermostat identifier in the Nest UI
            headless: Run the browser without a window

        Raises:
            Exception: Any failure; callers treat this as opaque
        """
        pass


class SimSensorSwitcher(SensorSwitcher):
    """Switcher that only records what it would have done."""

    def __init__(self):
        super().__init__(sim_mode=True)
        self.calls = []

    async def activate_sensor(
        self,
        sensor_device_id: str,
        thermostat_device_id: str,
        headless: bool = True
    ) -> None:
        self.calls.append((sensor_device_id, thermostat_device_id, headless))
        logger.info(
            "sim_sensor_activated",
            sensor_device_id=sensor_device_id,
            thermostat_device_id=thermostat_device_id,
            headless=headless
        )
