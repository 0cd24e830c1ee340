"""Persistence of paired screen credentials."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from homeassistant.core import HomeAssistant
from homeassistant.helpers.storage import Store

from .const import STORAGE_KEY, STORAGE_VERSION
from .sanitize import mask_identifier
from .session import LoungeCredentials

_LOGGER = logging.getLogger(__name__)


class CredentialStore(Protocol):
    """Durable storage for the credentials of each room."""

    async def async_save(self, key: str, credentials: LoungeCredentials) -> None:
        """Persist ``credentials`` for ``key``."""

    async def async_clear(self, key: str) -> None:
        """Forget the credentials stored for ``key``."""

    async def async_load(self, key: str) -> LoungeCredentials | None:
        """Return the credentials stored for ``key``, if complete."""


class LoungeCredentialStore:
    """Credential store backed by a Home Assistant ``Store`` document.

    The document maps room keys to ``screen_id``/``lounge_token``/
    ``screen_name``; clearing a room nulls all three fields together.
    """

    def __init__(self, store: Any) -> None:
        """Wrap an object exposing ``async_load``/``async_save``."""

        self._store = store
        self._data: dict[str, dict[str, Any]] | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_hass(cls, hass: HomeAssistant) -> LoungeCredentialStore:
        """Return a store persisted under the integration storage key."""

        return cls(Store(hass, STORAGE_VERSION, STORAGE_KEY))

    async def _async_rooms(self) -> dict[str, dict[str, Any]]:
        """Return the cached document, loading it on first use."""

        if self._data is None:
            raw = await self._store.async_load()
            rooms = raw.get("rooms") if isinstance(raw, dict) else None
            self._data = dict(rooms) if isinstance(rooms, dict) else {}
        return self._data

    async def async_save(self, key: str, credentials: LoungeCredentials) -> None:
        """Persist ``credentials`` for ``key``."""

        async with self._lock:
            rooms = await self._async_rooms()
            rooms[key] = credentials.as_dict()
            await self._store.async_save({"rooms": rooms})
        _LOGGER.debug(
            "Saved credentials for %s (screen %s)",
            key,
            mask_identifier(credentials.screen_id),
        )

    async def async_clear(self, key: str) -> None:
        """Forget the credentials stored for ``key``."""

        async with self._lock:
            rooms = await self._async_rooms()
            if key not in rooms:
                return
            rooms[key] = {"screen_id": None, "lounge_token": None, "screen_name": None}
            await self._store.async_save({"rooms": rooms})
        _LOGGER.debug("Cleared credentials for %s", key)

    async def async_load(self, key: str) -> LoungeCredentials | None:
        """Return the credentials stored for ``key``, if complete."""

        async with self._lock:
            rooms = await self._async_rooms()
            return LoungeCredentials.from_mapping(rooms.get(key))


__all__ = ["CredentialStore", "LoungeCredentialStore"]
