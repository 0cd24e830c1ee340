"""Entity base shared across Lounge Remote platforms."""

from __future__ import annotations

import logging

from homeassistant.core import callback
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.entity import Entity

from .const import DOMAIN, signal_status
from .runtime import EntryRuntime
from .session import LoungeStatusSnapshot

_LOGGER = logging.getLogger(__name__)


class LoungeRoomEntity(Entity):
    """Entity tied to one room, refreshed by status dispatcher signals."""

    _attr_has_entity_name = True
    _attr_should_poll = False

    def __init__(self, runtime: EntryRuntime, suffix: str) -> None:
        """Initialise identifiers for the room entity."""

        self._runtime = runtime
        self._attr_unique_id = f"{runtime.room}_{suffix}"

    @property
    def room(self) -> str:
        """Return the room key this entity represents."""

        return self._runtime.room

    @property
    def snapshot(self) -> LoungeStatusSnapshot:
        """Return the latest known status of the room."""

        return self._runtime.status

    @property
    def device_info(self) -> DeviceInfo:
        """Return Home Assistant device metadata for the paired screen."""

        return DeviceInfo(
            identifiers={(DOMAIN, self.room)},
            name=self.snapshot.screen_name or self._runtime.config_entry.title,
            manufacturer="YouTube",
            model="Lounge screen",
        )

    async def async_added_to_hass(self) -> None:
        """Subscribe to status updates when the entity is added."""

        await super().async_added_to_hass()
        self.async_on_remove(
            async_dispatcher_connect(
                self.hass, signal_status(self.room), self._handle_status
            )
        )

    @callback
    def _handle_status(self, snapshot: LoungeStatusSnapshot) -> None:
        """Store the new status and refresh the entity state."""

        _LOGGER.debug("Status update for %s: %s", self.room, snapshot.status)
        self._runtime.status = snapshot
        if self.hass is not None:
            self.async_write_ha_state()
