"""Connectivity binary sensor for paired Lounge rooms."""

from __future__ import annotations

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
)

from .entity import LoungeRoomEntity
from .runtime import EntryRuntime, require_runtime
from .session import LoungeStatus


async def async_setup_entry(hass, entry, async_add_entities):
    """Set up the connectivity binary sensor for a config entry."""
    runtime = require_runtime(hass, entry.entry_id)
    async_add_entities([LoungeConnectedBinarySensor(runtime)])


class LoungeConnectedBinarySensor(LoungeRoomEntity, BinarySensorEntity):
    """On while the room holds a bound channel to its TV."""

    _attr_device_class = BinarySensorDeviceClass.CONNECTIVITY
    _attr_translation_key = "connected"

    def __init__(self, runtime: EntryRuntime) -> None:
        """Initialise the connectivity binary sensor."""
        super().__init__(runtime, "connected")

    @property
    def is_on(self) -> bool:
        """Return True when the Lounge session is connected."""
        return self.snapshot.status is LoungeStatus.CONNECTED
