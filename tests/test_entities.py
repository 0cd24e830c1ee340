from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from custom_components.lounge_remote import binary_sensor, button, sensor
from custom_components.lounge_remote.api import LoungeBindError
from custom_components.lounge_remote.const import DOMAIN
from custom_components.lounge_remote.runtime import EntryRuntime
from custom_components.lounge_remote.session import LoungeStatus, LoungeStatusSnapshot
from homeassistant.exceptions import HomeAssistantError


def _runtime(**status_kwargs) -> EntryRuntime:
    runtime = EntryRuntime(
        manager=MagicMock(),
        config_entry=MagicMock(title="Den"),
        room="den",
    )
    if status_kwargs:
        runtime.status = LoungeStatusSnapshot(**status_kwargs)
    return runtime


def test_status_sensor_reports_snapshot() -> None:
    runtime = _runtime(
        status=LoungeStatus.ERROR, screen_name="Living Room TV", error="gone"
    )
    entity = sensor.LoungeStatusSensor(runtime)

    assert entity.unique_id == "den_status"
    assert entity.native_value == "error"
    assert entity.options == ["connecting", "connected", "error", "disconnected"]
    attrs = entity.extra_state_attributes
    assert attrs["screen_name"] == "Living Room TV"
    assert attrs["error"] == "gone"
    assert attrs["room"] == "den"


def test_device_info_falls_back_to_entry_title() -> None:
    entity = sensor.LoungeStatusSensor(_runtime())

    info = entity.device_info

    assert info["identifiers"] == {(DOMAIN, "den")}
    assert info["name"] == "Den"


def test_binary_sensor_tracks_connection() -> None:
    runtime = _runtime()
    entity = binary_sensor.LoungeConnectedBinarySensor(runtime)

    assert entity.is_on is False
    entity._handle_status(LoungeStatusSnapshot(LoungeStatus.CONNECTED, "TV"))
    assert entity.is_on is True
    assert runtime.status.screen_name == "TV"


@pytest.mark.asyncio
async def test_reconnect_button_calls_manager() -> None:
    runtime = _runtime()
    runtime.manager.async_reconnect = AsyncMock()
    entity = button.LoungeReconnectButton(runtime)

    await entity.async_press()

    runtime.manager.async_reconnect.assert_awaited_once_with("den")


@pytest.mark.asyncio
async def test_reconnect_button_surfaces_errors() -> None:
    runtime = _runtime()
    runtime.manager.async_reconnect = AsyncMock(side_effect=LoungeBindError("nope"))
    entity = button.LoungeReconnectButton(runtime)

    with pytest.raises(HomeAssistantError, match="Could not reconnect den"):
        await entity.async_press()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("module", "entity_type"),
    [
        (sensor, sensor.LoungeStatusSensor),
        (binary_sensor, binary_sensor.LoungeConnectedBinarySensor),
        (button, button.LoungeReconnectButton),
    ],
)
async def test_platform_setup_adds_entity(module, entity_type) -> None:
    runtime = _runtime()
    hass = MagicMock()
    hass.data = {DOMAIN: {"entry-1": runtime}}
    add_entities = MagicMock()

    await module.async_setup_entry(hass, MagicMock(entry_id="entry-1"), add_entities)

    (entities,) = add_entities.call_args.args
    assert len(entities) == 1
    assert isinstance(entities[0], entity_type)
