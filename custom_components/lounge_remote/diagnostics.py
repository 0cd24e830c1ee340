"""Diagnostics support for the Lounge Remote integration."""

from __future__ import annotations

from collections.abc import Mapping
import platform
from typing import Any, Final

from homeassistant.components.diagnostics import async_redact_data
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import DOMAIN
from .runtime import require_runtime

SENSITIVE_FIELDS: Final = {
    "gsessionid",
    "lounge_token",
    "screen_id",
    "sid",
}


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> Mapping[str, Any]:
    """Return a diagnostics payload for ``entry``."""

    runtime = require_runtime(hass, entry.entry_id)
    manager = runtime.manager
    snapshot = await manager.async_status(runtime.room)

    diagnostics: dict[str, Any] = {
        "integration": {"domain": DOMAIN, "room": runtime.room},
        "home_assistant": {
            "version": str(getattr(hass, "version", None) or "unknown"),
            "python_version": platform.python_version(),
        },
        "status": snapshot.as_dict(),
        "session": await manager.async_debug_snapshot(runtime.room),
    }
    return async_redact_data(diagnostics, SENSITIVE_FIELDS)
