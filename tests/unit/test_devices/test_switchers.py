"""
Tests for sensor switcher implementations.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from sensor_switcher.devices.base import SensorSwitcher, SimSensorSwitcher
from sensor_switcher.devices.nest_client import NestHomePage, NestSensorSwitcher


class ConcreteSwitcher(SensorSwitcher):
    """Concrete implementation for testing abstract base class."""

    async def activate_sensor(self, sensor_device_id, thermostat_device_id, headless=True):
        return None


def test_switcher_sim_mode_defaults_to_false():
    assert ConcreteSwitcher().sim_mode is False


def test_switcher_cannot_be_instantiated_without_activate():
    with pytest.raises(TypeError):
        SensorSwitcher()


@pytest.mark.asyncio
async def test_sim_switcher_records_calls():
    switcher = SimSensorSwitcher()

    await switcher.activate_sensor("S1", "T3.ABC")
    await switcher.activate_sensor("S2", "T3.ABC", headless=False)

    assert switcher.sim_mode is True
    assert switcher.calls == [("S1", "T3.ABC", True), ("S2", "T3.ABC", False)]


@pytest.mark.asyncio
async def test_nest_switcher_sim_mode_does_not_launch_browser(tmp_path):
    switcher = NestSensorSwitcher(
        storage_state_path=str(tmp_path / "missing.json"),
        sim_mode=True
    )

    # Would raise FileNotFoundError if it tried to open a session
    await switcher.activate_sensor("S1", "T3.ABC")


@pytest.mark.asyncio
async def test_nest_switcher_requires_session_file(tmp_path):
    switcher = NestSensorSwitcher(storage_state_path=str(tmp_path / "missing.json"))

    with pytest.raises(FileNotFoundError):
        await switcher.activate_sensor("S1", "T3.ABC")


def test_sensor_selectors_embed_device_id():
    assert "temperature-sensor-S1-listcell'" in NestHomePage._sensor_cell("S1")
    assert "temperature-sensor-S1-listcell-value'" in NestHomePage._sensor_value("S1")


def _fake_playwright(page):
    """
    Stand-in for async_playwright() wired to a mock page.

    Returns:
        (factory, browser, context) so tests can assert on launch/close/storage_state
    """
    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.storage_state = AsyncMock()

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)

    manager = MagicMock()
    manager.__aenter__ = AsyncMock(return_value=playwright)
    manager.__aexit__ = AsyncMock(return_value=False)

    return MagicMock(return_value=manager), browser, context


@pytest.fixture
def session_file(tmp_path):
    path = tmp_path / "nest-session.json"
    path.write_text("{}")
    return str(path)


def _clicked_selectors(page):
    return [c.args[0] for c in page.click.await_args_list]


@pytest.mark.asyncio
async def test_nest_switcher_skips_click_when_sensor_already_selected(session_file):
    page = AsyncMock()
    page.query_selector.return_value = object()
    factory, browser, _ = _fake_playwright(page)
    switcher = NestSensorSwitcher(storage_state_path=session_file)

    with patch("sensor_switcher.devices.nest_client.async_playwright", factory):
        await switcher.activate_sensor("S1", "T3.ABC")

    assert _clicked_selectors(page) == [".puck-item a[href='/thermostat/T3.ABC']"]
    browser.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_nest_switcher_clicks_sensor_and_waits_for_selected(session_file):
    page = AsyncMock()
    page.query_selector.return_value = None
    factory, browser, _ = _fake_playwright(page)
    switcher = NestSensorSwitcher(storage_state_path=session_file)

    with patch("sensor_switcher.devices.nest_client.async_playwright", factory):
        await switcher.activate_sensor("S1", "T3.ABC", headless=False)

    assert _clicked_selectors(page)[-1] == NestHomePage._sensor_value("S1")

    last_wait = page.wait_for_selector.await_args_list[-1]
    assert last_wait.args[0] == f"{NestHomePage._sensor_cell('S1')}.style--selected_3GC"
    assert last_wait.kwargs["state"] == "attached"

    browser.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_nest_switcher_screenshots_and_reraises_on_failure(session_file, tmp_path):
    page = AsyncMock()
    page.query_selector.return_value = None
    page.wait_for_selector.side_effect = [None, TimeoutError("Timeout 30000ms exceeded")]
    factory, browser, _ = _fake_playwright(page)
    screenshot_dir = tmp_path / "shots"
    switcher = NestSensorSwitcher(storage_state_path=session_file, screenshot_dir=str(screenshot_dir))

    with patch("sensor_switcher.devices.nest_client.async_playwright", factory):
        with pytest.raises(TimeoutError):
            await switcher.activate_sensor("S1", "T3.ABC")

    page.screenshot.assert_awaited_once()
    path = page.screenshot.await_args.kwargs["path"]
    assert path.startswith(str(screenshot_dir))
    assert "T3.ABC" in path
    assert screenshot_dir.is_dir()

    # No retry: one browser, closed once
    factory.return_value.__aenter__.return_value.chromium.launch.assert_awaited_once()
    browser.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_nest_switcher_save_session_writes_storage_state(tmp_path):
    page = AsyncMock()
    factory, browser, context = _fake_playwright(page)
    target = tmp_path / "resource" / "nest-session.json"
    switcher = NestSensorSwitcher(storage_state_path=str(target))

    with patch("sensor_switcher.devices.nest_client.async_playwright", factory):
        saved = await switcher.save_session(login_timeout_ms=1000)

    assert saved == str(target)
    assert (tmp_path / "resource").is_dir()
    factory.return_value.__aenter__.return_value.chromium.launch.assert_awaited_once_with(headless=False)
    page.goto.assert_awaited_once_with(NestHomePage.URL)
    assert page.wait_for_selector.await_args.args[0] == NestHomePage.SETTINGS_BUTTON
    context.storage_state.assert_awaited_once_with(path=str(target))
    browser.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_nest_switcher_save_session_closes_browser_when_login_times_out(tmp_path):
    page = AsyncMock()
    page.wait_for_selector.side_effect = TimeoutError("login not completed")
    factory, browser, context = _fake_playwright(page)
    switcher = NestSensorSwitcher(storage_state_path=str(tmp_path / "nest-session.json"))

    with patch("sensor_switcher.devices.nest_client.async_playwright", factory):
        with pytest.raises(TimeoutError):
            await switcher.save_session(login_timeout_ms=10)

    context.storage_state.assert_not_called()
    browser.close.assert_awaited_once()
