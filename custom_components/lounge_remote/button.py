"""Reconnect button for paired Lounge rooms."""

from __future__ import annotations

import logging

from homeassistant.components.button import ButtonEntity
from homeassistant.const import EntityCategory
from homeassistant.exceptions import HomeAssistantError

from .api import LoungeError
from .entity import LoungeRoomEntity
from .runtime import EntryRuntime, require_runtime

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(hass, entry, async_add_entities):
    """Expose the reconnect button for a config entry."""
    runtime = require_runtime(hass, entry.entry_id)
    async_add_entities([LoungeReconnectButton(runtime)])


class LoungeReconnectButton(LoungeRoomEntity, ButtonEntity):
    """Button that re-binds the room using its stored credentials."""

    _attr_entity_category = EntityCategory.CONFIG
    _attr_translation_key = "reconnect"

    def __init__(self, runtime: EntryRuntime) -> None:
        """Initialise the reconnect button."""
        super().__init__(runtime, "reconnect")

    async def async_press(self) -> None:
        """Reconnect the room without a new pairing code."""
        _LOGGER.debug("Reconnect button pressed for %s", self.room)
        try:
            await self._runtime.manager.async_reconnect(self.room)
        except LoungeError as err:
            raise HomeAssistantError(
                f"Could not reconnect {self.room}: {err}"
            ) from err
