"""
Nest web UI driver built on Playwright.

Opens home.nest.com with a previously saved browser session, navigates to a
thermostat and selects one of its remote temperature sensors. There is no
retry: on failure a screenshot is saved and the error is re-raised.
"""

import os
from datetime import datetime, timezone
from typing import Optional

from playwright.async_api import Page, async_playwright

from sensor_switcher.devices.base import SensorSwitcher
from sensor_switcher.utils.logging import get_logger

logger = get_logger(__name__)


class NestHomePage:
    """
    Page object for the Nest home page.
    Only the selectors needed to switch the active temperature sensor.
    """

    URL = "https://home.nest.com"
    SELECTED_CLASS = "style--selected_3GC"
    SETTINGS_BUTTON = "button[data-test='thermozilla-header-settings-button']"

    def __init__(self, page: Page):
        self.page = page

    async def navigate(self) -> None:
        await self.page.goto(self.URL)
        logger.debug("nest_navigated", url=self.URL)

    @staticmethod
    def _sensor_cell(sensor_device_id: str) -> str:
        return (
            ".card div[data-test='thermozilla-aag-sensors-temperature-sensor-"
            f"{sensor_device_id}-listcell']"
        )

    @staticmethod
    def _sensor_value(sensor_device_id: str) -> str:
        return (
            ".card span[data-test='thermozilla-aag-sensors-temperature-sensor-"
            f"{sensor_device_id}-listcell-value']"
        )

    async def wait_for_settings_button(self, timeout_ms: float) -> None:
        """The settings button only renders once the user is logged in."""
        await self.page.wait_for_selector(
            self.SETTINGS_BUTTON,
            state="visible",
            timeout=timeout_ms
        )

    async def open_thermostat(self, thermostat_device_id: str, timeout_ms: float) -> None:
        """Click the thermostat's puck item and wait for its page to load."""
        selector = f".puck-item a[href='/thermostat/{thermostat_device_id}']"
        await self.page.click(selector, timeout=timeout_ms)
        await self.wait_for_settings_button(timeout_ms)

    async def is_sensor_selected(self, sensor_device_id: str) -> bool:
        selector = f"{self._sensor_cell(sensor_device_id)}.{self.SELECTED_CLASS}"
        return await self.page.query_selector(selector) is not None

    async def select_sensor(self, sensor_device_id: str, timeout_ms: float) -> None:
        """Click a sensor and wait until the UI marks it selected."""
        await self.page.click(self._sensor_value(sensor_device_id), timeout=timeout_ms)
        await self.page.wait_for_selector(
            f"{self._sensor_cell(sensor_device_id)}.{self.SELECTED_CLASS}",
            state="attached",
            timeout=timeout_ms
        )


class NestSensorSwitcher(SensorSwitcher):
    """
    Switches the active temperature sensor through the Nest web UI.

    Requires a Playwright storage-state file holding a logged-in session.
    """

    PAGE_TIMEOUT_MS = 30_000
    LOGIN_TIMEOUT_MS = 300_000

    def __init__(
        self,
        storage_state_path: str,
        screenshot_dir: Optional[str] = None,
        sim_mode: bool = False
    ):
        """
        Args:
            storage_state_path: Playwright storage state JSON (cookies, local storage)
            screenshot_dir: Where to save screenshots on failure (None disables)
            sim_mode: If True, don't launch a browser
        """
        super().__init__(sim_mode)
        self.storage_state_path = storage_state_path
        self.screenshot_dir = screenshot_dir

    async def activate_sensor(
        self,
        sensor_device_id: str,
        thermostat_device_id: str,
        headless: bool = True
    ) -> None:
        if self.sim_mode:
            logger.info(
                "nest_sim_activate",
                sensor_device_id=sensor_device_id,
                thermostat_device_id=thermostat_device_id
            )
            return

        if not os.path.exists(self.storage_state_path):
            raise FileNotFoundError(
                f"Nest session file not found: {self.storage_state_path}"
            )

        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=headless)
            try:
                context = await browser.new_context(storage_state=self.storage_state_path)
                page = await context.new_page()
                home = NestHomePage(page)

                try:
                    await home.navigate()
                    await home.open_thermostat(thermostat_device_id, self.PAGE_TIMEOUT_MS)

                    if await home.is_sensor_selected(sensor_device_id):
                        logger.info(
                            "nest_sensor_already_selected",
                            sensor_device_id=sensor_device_id,
                            thermostat_device_id=thermostat_device_id
                        )
                        return

                    await home.select_sensor(sensor_device_id, self.PAGE_TIMEOUT_MS)
                except Exception:
                    await self._save_screenshot(page, thermostat_device_id)
                    raise

                logger.info(
                    "nest_sensor_selected",
                    sensor_device_id=sensor_device_id,
                    thermostat_device_id=thermostat_device_id
                )
            finally:
                await browser.close()

    async def save_session(self, login_timeout_ms: float = LOGIN_TIMEOUT_MS) -> str:
        """
        Open a visible browser so the user can log in to Nest by hand, then
        store the logged-in session at storage_state_path.

        Args:
            login_timeout_ms: How long to wait for the login to finish

        Returns:
            Path of the saved storage state
        """
        directory = os.path.dirname(self.storage_state_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=False)
            try:
                context = await browser.new_context()
                page = await context.new_page()
                home = NestHomePage(page)

                await home.navigate()
                logger.info("nest_login_waiting", timeout_ms=login_timeout_ms)
                await home.wait_for_settings_button(login_timeout_ms)

                await context.storage_state(path=self.storage_state_path)
            finally:
                await browser.close()

        logger.info("nest_session_saved", path=self.storage_state_path)
        return self.storage_state_path

    async def _save_screenshot(self, page: Page, thermostat_device_id: str) -> None:
        if not self.screenshot_dir:
            return

        os.makedirs(self.screenshot_dir, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        path = os.path.join(self.screenshot_dir, f"error-{thermostat_device_id}-{stamp}.png")

        try:
            await page.screenshot(path=path, full_page=True)
            logger.warning("nest_error_screenshot_saved", path=path)
        except Exception as e:
            logger.warning("nest_error_screenshot_failed", error=str(e))
