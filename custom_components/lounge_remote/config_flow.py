"""Config flow handlers for the Lounge Remote integration."""

from __future__ import annotations

import logging
from typing import Any

from homeassistant import config_entries
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.data_entry_flow import FlowResult
import voluptuous as vol

from .api import LoungeConnectionError, LoungeError, LoungePairingError
from .const import CONF_PAIRING_CODE, CONF_ROOM, DOMAIN
from .runtime import async_get_manager, room_key
from .session import LoungeStatusSnapshot

_LOGGER = logging.getLogger(__name__)


def _pair_schema(default_room: str = "") -> vol.Schema:
    """Build the pairing form schema with provided defaults."""

    return vol.Schema(
        {
            vol.Required(CONF_ROOM, default=default_room): str,
            vol.Required(CONF_PAIRING_CODE): str,
        }
    )


def _reconfigure_schema() -> vol.Schema:
    """Build the re-pairing form schema."""

    return vol.Schema({vol.Required(CONF_PAIRING_CODE): str})


async def _async_pair(
    hass: HomeAssistant, room: str, pairing_code: str
) -> tuple[LoungeStatusSnapshot | None, dict[str, str]]:
    """Pair ``room`` and map protocol failures onto form errors."""

    manager = async_get_manager(hass)
    errors: dict[str, str] = {}
    try:
        snapshot = await manager.async_pair(room, pairing_code)
    except LoungePairingError as err:
        if isinstance(err.__cause__, LoungeConnectionError):
            errors["base"] = "cannot_connect"
        else:
            errors["base"] = "invalid_code"
        return None, errors
    except LoungeError:
        errors["base"] = "cannot_connect"
        return None, errors
    except Exception:
        _LOGGER.exception("Unexpected error while pairing %s", room)
        errors["base"] = "unknown"
        return None, errors
    return snapshot, errors


class LoungeRemoteConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Pair a room with a TV and (optionally) re-pair it later."""

    VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Collect a room name and pairing code, then pair."""

        if user_input is None:
            return self.async_show_form(step_id="user", data_schema=_pair_schema())

        raw_room = (user_input.get(CONF_ROOM) or "").strip()
        room = room_key(raw_room)
        if not room:
            return self.async_show_form(
                step_id="user",
                data_schema=_pair_schema(raw_room),
                errors={CONF_ROOM: "invalid_room"},
            )

        await self.async_set_unique_id(room)
        self._abort_if_unique_id_configured()

        snapshot, errors = await _async_pair(
            self.hass, room, user_input.get(CONF_PAIRING_CODE) or ""
        )
        if errors or snapshot is None:
            return self.async_show_form(
                step_id="user", data_schema=_pair_schema(raw_room), errors=errors
            )

        title = snapshot.screen_name or raw_room
        _LOGGER.info("Lounge Remote paired %s with %s", room, title)
        return self.async_create_entry(title=title, data={CONF_ROOM: room})

    async def async_step_reconfigure(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Re-pair an existing room with a new pairing code."""

        entry_id = self.context.get("entry_id")
        entry: ConfigEntry | None = (
            self.hass.config_entries.async_get_entry(entry_id) if entry_id else None
        )
        if entry is None:
            return self.async_abort(reason="no_config_entry")

        if user_input is None:
            return self.async_show_form(
                step_id="reconfigure", data_schema=_reconfigure_schema()
            )

        room = entry.data[CONF_ROOM]
        snapshot, errors = await _async_pair(
            self.hass, room, user_input.get(CONF_PAIRING_CODE) or ""
        )
        if errors or snapshot is None:
            return self.async_show_form(
                step_id="reconfigure",
                data_schema=_reconfigure_schema(),
                errors=errors,
            )

        title = snapshot.screen_name or entry.title
        self.hass.config_entries.async_update_entry(entry, title=title)
        return self.async_abort(reason="reconfigure_successful")
