"""Runtime containers for Lounge Remote config entries."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Final

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers import aiohttp_client
from homeassistant.util import slugify

from .api import LoungeClient
from .const import DOMAIN
from .manager import LoungeManager
from .session import LoungeStatus, LoungeStatusSnapshot
from .store import LoungeCredentialStore

DATA_MANAGER: Final = f"{DOMAIN}_manager"


@dataclass(slots=True)
class EntryRuntime:
    """Runtime container for a configured room."""

    manager: LoungeManager
    config_entry: ConfigEntry
    room: str
    status: LoungeStatusSnapshot = field(
        default_factory=lambda: LoungeStatusSnapshot(LoungeStatus.DISCONNECTED)
    )
    unsub_status: Callable[[], None] | None = None


def async_get_manager(hass: HomeAssistant) -> LoungeManager:
    """Return the shared session manager, creating it on first use."""

    manager = hass.data.get(DATA_MANAGER)
    if isinstance(manager, LoungeManager):
        return manager
    client = LoungeClient(aiohttp_client.async_get_clientsession(hass))
    manager = LoungeManager(client, LoungeCredentialStore.from_hass(hass))
    hass.data[DATA_MANAGER] = manager
    return manager


def room_key(value: Any) -> str:
    """Return the slugified room key for ``value``, or ``""`` when it has none.

    ``slugify`` reports input without any usable characters as ``"unknown"``;
    that is only accepted when the room is literally named so.
    """

    raw = str(value or "").strip()
    if not raw:
        return ""
    room = slugify(raw)
    if room == "unknown" and raw.casefold() != "unknown":
        return ""
    return room


def require_runtime(hass: HomeAssistant, entry_id: str) -> EntryRuntime:
    """Return the runtime container stored for ``entry_id``."""

    domain_data = hass.data.get(DOMAIN)
    runtime = domain_data.get(entry_id) if isinstance(domain_data, dict) else None
    if isinstance(runtime, EntryRuntime):
        return runtime
    raise LookupError("Lounge Remote runtime data is unavailable")


__all__ = [
    "DATA_MANAGER",
    "EntryRuntime",
    "async_get_manager",
    "require_runtime",
    "room_key",
]
