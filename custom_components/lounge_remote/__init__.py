"""Home Assistant entry point for the Lounge Remote integration."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging
from typing import Any, Final

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import EVENT_HOMEASSISTANT_STOP
from homeassistant.core import Event, HomeAssistant, ServiceCall, callback
from homeassistant.exceptions import HomeAssistantError
import homeassistant.helpers.config_validation as cv
from homeassistant.helpers.dispatcher import async_dispatcher_send
import voluptuous as vol

from .api import LoungeError, LoungeNoCredentialsError
from .const import (
    ATTR_VIDEO_ID,
    CONF_PAIRING_CODE,
    CONF_ROOM,
    DOMAIN,
    SERVICE_ADD_VIDEO,
    SERVICE_DISCONNECT,
    SERVICE_PAIR,
    SERVICE_PLAY_NOW,
    SERVICE_RECONNECT,
    signal_status,
)
from .manager import LoungeManager
from .runtime import EntryRuntime, async_get_manager, room_key
from .session import LoungeStatusSnapshot

_LOGGER = logging.getLogger(__name__)

PLATFORMS = ["binary_sensor", "button", "sensor"]

STOP_LISTENER_KEY: Final = f"{DOMAIN}_stop_listener"

ROOM_SCHEMA = vol.Schema({vol.Required(CONF_ROOM): cv.string})
PAIR_SCHEMA = ROOM_SCHEMA.extend({vol.Required(CONF_PAIRING_CODE): cv.string})
VIDEO_SCHEMA = ROOM_SCHEMA.extend({vol.Required(ATTR_VIDEO_ID): cv.string})


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up a paired room for a config entry."""

    room = entry.data[CONF_ROOM]
    manager = async_get_manager(hass)
    runtime = EntryRuntime(manager=manager, config_entry=entry, room=room)
    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = runtime

    @callback
    def _handle_status(key: str, snapshot: LoungeStatusSnapshot) -> None:
        if key != room:
            return
        runtime.status = snapshot
        async_dispatcher_send(hass, signal_status(room), snapshot)

    runtime.unsub_status = manager.add_listener(_handle_status)
    _async_register_stop_listener(hass, manager)

    if not await manager.async_is_connected(room):
        try:
            await manager.async_reconnect(room)
        except LoungeNoCredentialsError:
            _LOGGER.warning("No stored Lounge credentials for %s; pair again", room)
        except LoungeError as err:
            _LOGGER.warning("Lounge reconnect for %s failed during setup: %s", room, err)
    runtime.status = await manager.async_status(room)

    await async_register_services(hass)
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    _LOGGER.info("Lounge Remote setup complete for %s (%s)", room, runtime.status.status)
    return True


@callback
def _async_register_stop_listener(hass: HomeAssistant, manager: LoungeManager) -> None:
    """Stop every long-poll worker when Home Assistant shuts down."""

    if hass.data.get(STOP_LISTENER_KEY):
        return

    async def _async_stop(_event: Event) -> None:
        hass.data.pop(STOP_LISTENER_KEY, None)
        await manager.async_shutdown()

    hass.data[STOP_LISTENER_KEY] = hass.bus.async_listen_once(
        EVENT_HOMEASSISTANT_STOP, _async_stop
    )


def _room_from_call(call: ServiceCall) -> str:
    """Return the normalised room key targeted by a service call."""

    room = room_key(call.data.get(CONF_ROOM))
    if not room:
        raise HomeAssistantError("A room is required")
    return room


async def _async_run_service(
    name: str, room: str, action: Callable[[], Awaitable[Any]]
) -> Any:
    """Run a manager call, converting protocol errors for Home Assistant."""

    _LOGGER.debug("service %s called for %s", name, room)
    try:
        return await action()
    except LoungeError as err:
        raise HomeAssistantError(f"Lounge {name} failed for {room}: {err}") from err


async def async_register_services(hass: HomeAssistant) -> None:
    """Register the room services if they are missing."""

    if hass.services.has_service(DOMAIN, SERVICE_PAIR):
        return

    manager = async_get_manager(hass)

    async def _service_pair(call: ServiceCall) -> None:
        room = _room_from_call(call)
        code = call.data[CONF_PAIRING_CODE]
        await _async_run_service(
            SERVICE_PAIR, room, lambda: manager.async_pair(room, code)
        )

    async def _service_reconnect(call: ServiceCall) -> None:
        room = _room_from_call(call)
        await _async_run_service(
            SERVICE_RECONNECT, room, lambda: manager.async_reconnect(room)
        )

    async def _service_disconnect(call: ServiceCall) -> None:
        room = _room_from_call(call)
        await _async_run_service(
            SERVICE_DISCONNECT, room, lambda: manager.async_disconnect(room)
        )

    async def _service_add_video(call: ServiceCall) -> None:
        room = _room_from_call(call)
        video_id = call.data[ATTR_VIDEO_ID]
        await _async_run_service(
            SERVICE_ADD_VIDEO,
            room,
            lambda: manager.async_send_add_video(room, video_id),
        )

    async def _service_play_now(call: ServiceCall) -> None:
        room = _room_from_call(call)
        video_id = call.data[ATTR_VIDEO_ID]
        await _async_run_service(
            SERVICE_PLAY_NOW,
            room,
            lambda: manager.async_send_play_now(room, video_id),
        )

    hass.services.async_register(DOMAIN, SERVICE_PAIR, _service_pair, PAIR_SCHEMA)
    hass.services.async_register(
        DOMAIN, SERVICE_RECONNECT, _service_reconnect, ROOM_SCHEMA
    )
    hass.services.async_register(
        DOMAIN, SERVICE_DISCONNECT, _service_disconnect, ROOM_SCHEMA
    )
    hass.services.async_register(
        DOMAIN, SERVICE_ADD_VIDEO, _service_add_video, VIDEO_SCHEMA
    )
    hass.services.async_register(
        DOMAIN, SERVICE_PLAY_NOW, _service_play_now, VIDEO_SCHEMA
    )


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a room, keeping its credentials for the next setup."""

    domain_data = hass.data.get(DOMAIN)
    runtime = domain_data.get(entry.entry_id) if domain_data else None
    if not isinstance(runtime, EntryRuntime):
        return True

    ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if not ok:
        return False

    if callable(runtime.unsub_status):
        runtime.unsub_status()
        runtime.unsub_status = None
    await runtime.manager.async_release(runtime.room)
    domain_data.pop(entry.entry_id, None)

    if not domain_data:
        for service in (
            SERVICE_PAIR,
            SERVICE_RECONNECT,
            SERVICE_DISCONNECT,
            SERVICE_ADD_VIDEO,
            SERVICE_PLAY_NOW,
        ):
            hass.services.async_remove(DOMAIN, service)
    return True


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Forget the paired screen when a room is deleted."""

    room = entry.data.get(CONF_ROOM)
    if not room:
        return
    await async_get_manager(hass).async_disconnect(room)
