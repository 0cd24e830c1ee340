"""Status sensor for paired Lounge rooms."""

from __future__ import annotations

from typing import Any

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity

from .entity import LoungeRoomEntity
from .runtime import EntryRuntime, require_runtime
from .session import LoungeStatus


async def async_setup_entry(hass, entry, async_add_entities):
    """Set up the connection status sensor for a config entry."""
    runtime = require_runtime(hass, entry.entry_id)
    async_add_entities([LoungeStatusSensor(runtime)])


class LoungeStatusSensor(LoungeRoomEntity, SensorEntity):
    """Connection state of the Lounge session for a room."""

    _attr_device_class = SensorDeviceClass.ENUM
    _attr_options = [status.value for status in LoungeStatus]
    _attr_translation_key = "connection_status"

    def __init__(self, runtime: EntryRuntime) -> None:
        """Initialise the status sensor."""
        super().__init__(runtime, "status")

    @property
    def native_value(self) -> str:
        """Return the current connection status."""
        return self.snapshot.status.value

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        """Expose the screen name and last error."""
        snapshot = self.snapshot
        return {
            "room": self.room,
            "screen_name": snapshot.screen_name,
            "error": snapshot.error,
        }
