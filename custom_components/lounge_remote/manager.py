"""Registry of Lounge sessions keyed by room."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from contextlib import suppress
import logging
from typing import Any

from .api import (
    LoungeBindError,
    LoungeClient,
    LoungeError,
    LoungeNoCredentialsError,
    LoungePairingError,
)
from .const import (
    COMMAND_ADD_VIDEO,
    COMMAND_SET_VIDEO,
    CONNECTION_LOST_MESSAGE,
)
from .poller import LongPollWorker, PollSettings
from .sanitize import mask_identifier
from .session import LoungeSession, LoungeStatus, LoungeStatusSnapshot
from .store import CredentialStore

_LOGGER = logging.getLogger(__name__)

StatusListener = Callable[[str, LoungeStatusSnapshot], None]


def normalize_pairing_code(code: str | None) -> str:
    """Return ``code`` without the grouping whitespace TVs display."""

    return "".join(str(code or "").split())


class LoungeManager:
    """Own every Lounge session and expose the remote-control operations.

    A single lock guards the room map and each record's fields; it is held
    only around lookups and field updates, never across network calls.
    Pair and reconnect calls for the same room run one at a time, so each
    room has at most one worker.
    """

    def __init__(
        self,
        client: LoungeClient,
        store: CredentialStore,
        *,
        settings: PollSettings | None = None,
    ) -> None:
        """Initialise the manager with a transport client and credential store."""

        self._client = client
        self._store = store
        self._settings = settings or PollSettings()
        self._lock = asyncio.Lock()
        self._sessions: dict[str, LoungeSession] = {}
        self._listeners: list[StatusListener] = []
        self._key_locks: dict[str, asyncio.Lock] = {}

    @property
    def client(self) -> LoungeClient:
        """Return the transport client."""

        return self._client

    def add_listener(self, listener: StatusListener) -> Callable[[], None]:
        """Register ``listener`` for status changes and return an unsubscribe."""

        self._listeners.append(listener)

        def _remove() -> None:
            with suppress(ValueError):
                self._listeners.remove(listener)

        return _remove

    def _key_lock(self, key: str) -> asyncio.Lock:
        """Return the lock serialising pair and reconnect calls for ``key``."""

        return self._key_locks.setdefault(key, asyncio.Lock())

    def _notify(self, key: str, session: LoungeSession) -> None:
        """Send the current status of ``session`` to listeners."""

        current = self._sessions.get(key)
        if current is not None and current is not session:
            return
        snapshot = session.snapshot()
        for listener in list(self._listeners):
            try:
                listener(key, snapshot)
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Lounge status listener failed for %s", key)

    async def _async_stop_worker(self, session: LoungeSession | None) -> None:
        """Cancel the worker of ``session`` and wait until it has exited."""

        if session is None:
            return
        task = session.worker
        session.worker = None
        if task is None or task.done():
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    def _start_worker(self, key: str, session: LoungeSession) -> None:
        """Start a long-poll worker bound to ``session``."""

        worker = LongPollWorker(
            key,
            session,
            self._client,
            self._lock,
            settings=self._settings,
            on_status_change=self._notify,
        )
        session.worker = worker.start()

    async def _async_fail(
        self, key: str, session: LoungeSession, err: Exception
    ) -> None:
        """Record ``err`` on ``session`` and notify listeners."""

        async with self._lock:
            session.set_error(str(err))
        self._notify(key, session)

    async def _async_save_credentials(self, key: str, session: LoungeSession) -> None:
        """Persist credentials; failures are logged and otherwise ignored."""

        credentials = session.credentials
        if credentials is None:
            return
        try:
            await self._store.async_save(key, credentials)
        except Exception:  # noqa: BLE001
            _LOGGER.exception("Failed to persist Lounge credentials for %s", key)

    async def _async_bind(self, key: str, session: LoungeSession) -> None:
        """Open a channel for ``session`` and mark it connected."""

        async with self._lock:
            session.reset_channel()
            credentials = session.credentials
            rid = session.next_rid()
        if credentials is None:
            raise LoungeBindError("no credentials to bind with")

        try:
            result = await self._client.bind(credentials, rid=rid)
        except LoungeBindError:
            raise
        except LoungeError as err:
            raise LoungeBindError(str(err)) from err

        async with self._lock:
            if self._sessions.get(key) is not session:
                raise LoungeBindError("session was replaced while binding")
            session.sid = result.sid
            session.gsessionid = result.gsessionid
            session.status = LoungeStatus.CONNECTED
            session.error_message = ""
            session.touch()
        _LOGGER.info(
            "Lounge bind succeeded for %s (sid %s)", key, mask_identifier(result.sid)
        )

    async def async_pair(self, key: str, pairing_code: str) -> LoungeStatusSnapshot:
        """Pair ``key`` with the screen showing ``pairing_code`` and bind to it."""

        code = normalize_pairing_code(pairing_code)
        if not code:
            raise LoungePairingError("pairing code is required")

        async with self._key_lock(key):
            return await self._async_pair(key, code)

    async def _async_pair(self, key: str, code: str) -> LoungeStatusSnapshot:
        """Replace the record for ``key`` with a freshly paired and bound one."""

        _LOGGER.info("Lounge pairing started for %s", key)
        session = LoungeSession()
        async with self._lock:
            previous = self._sessions.get(key)
            self._sessions[key] = session
        if previous is not None:
            _LOGGER.info("Replacing existing Lounge session for %s", key)
            await self._async_stop_worker(previous)
        self._notify(key, session)

        try:
            credentials = await self._client.get_screen(code)
        except LoungeError as err:
            _LOGGER.error("Lounge pairing failed for %s: %s", key, err)
            await self._async_fail(key, session, err)
            raise LoungePairingError(f"pairing failed: {err}") from err

        async with self._lock:
            session.apply_credentials(credentials)
        _LOGGER.info(
            "Resolved pairing code for %s to screen %s (%s)",
            key,
            mask_identifier(credentials.screen_id),
            credentials.screen_name or "unnamed",
        )
        await self._async_save_credentials(key, session)

        try:
            await self._async_bind(key, session)
        except LoungeBindError as err:
            _LOGGER.error("Lounge bind failed for %s: %s", key, err)
            await self._async_fail(key, session, err)
            raise

        self._start_worker(key, session)
        self._notify(key, session)
        _LOGGER.info("Lounge paired successfully for %s", key)
        return session.snapshot()

    async def async_reconnect(self, key: str) -> LoungeStatusSnapshot:
        """Re-bind ``key`` using known credentials without a pairing code."""

        async with self._key_lock(key):
            return await self._async_reconnect(key)

    async def _async_reconnect(self, key: str) -> LoungeStatusSnapshot:
        """Stop any worker for ``key`` and bind again with stored credentials."""

        async with self._lock:
            session = self._sessions.get(key)
        if session is None or session.credentials is None:
            credentials = await self._store.async_load(key)
            if credentials is None:
                raise LoungeNoCredentialsError(
                    "no existing credentials to reconnect with"
                )
            replacement = LoungeSession()
            replacement.apply_credentials(credentials)
            async with self._lock:
                previous = self._sessions.get(key)
                self._sessions[key] = replacement
            if previous is not None:
                await self._async_stop_worker(previous)
            session = replacement
            _LOGGER.info("Loaded Lounge credentials for %s from storage", key)
        else:
            await self._async_stop_worker(session)

        async with self._lock:
            session.status = LoungeStatus.CONNECTING
            session.error_message = ""
            session.touch()
        self._notify(key, session)
        _LOGGER.info("Lounge reconnecting %s", key)

        try:
            await self._async_bind(key, session)
        except LoungeBindError as err:
            _LOGGER.error("Lounge reconnect failed for %s: %s", key, err)
            await self._async_fail(key, session, err)
            raise

        self._start_worker(key, session)
        self._notify(key, session)
        _LOGGER.info("Lounge reconnected %s", key)
        return session.snapshot()

    async def async_disconnect(self, key: str) -> None:
        """Stop the session for ``key`` and forget its credentials."""

        async with self._lock:
            session = self._sessions.pop(key, None)
        if session is None:
            _LOGGER.info("Lounge disconnect for %s: no active session", key)
        else:
            _LOGGER.info("Lounge disconnecting %s", key)
            await self._async_stop_worker(session)
            async with self._lock:
                session.status = LoungeStatus.DISCONNECTED
                session.error_message = ""
            self._notify(key, session)

        try:
            await self._store.async_clear(key)
        except Exception:  # noqa: BLE001
            _LOGGER.exception("Failed to clear Lounge credentials for %s", key)

    async def async_release(self, key: str) -> None:
        """Stop the session for ``key`` but keep its persisted credentials."""

        async with self._lock:
            session = self._sessions.pop(key, None)
        await self._async_stop_worker(session)

    async def async_shutdown(self) -> None:
        """Stop every worker, keeping persisted credentials."""

        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        await asyncio.gather(*(self._async_stop_worker(s) for s in sessions))

    async def async_status(self, key: str) -> LoungeStatusSnapshot:
        """Return ``(status, screen_name, error)`` for ``key``."""

        async with self._lock:
            session = self._sessions.get(key)
            if session is not None:
                return session.snapshot()

        credentials = await self._store.async_load(key)
        if credentials is not None:
            return LoungeStatusSnapshot(
                status=LoungeStatus.ERROR,
                screen_name=credentials.screen_name or None,
                error=CONNECTION_LOST_MESSAGE,
            )
        return LoungeStatusSnapshot(status=LoungeStatus.DISCONNECTED)

    async def async_is_connected(self, key: str) -> bool:
        """Return True when ``key`` has a connected session."""

        async with self._lock:
            session = self._sessions.get(key)
            return session is not None and session.status is LoungeStatus.CONNECTED

    async def _async_send(
        self,
        key: str,
        command: str,
        video_id: str,
        extra: dict[str, Any] | None = None,
    ) -> bool:
        """Send ``command`` when connected; return False when skipped."""

        async with self._lock:
            session = self._sessions.get(key)
            if session is None or session.status is not LoungeStatus.CONNECTED:
                credentials = None
            else:
                credentials = session.credentials
            if session is None or credentials is None:
                _LOGGER.info("Lounge %s skipped for %s: not connected", command, key)
                return False
            rid = session.next_rid()
            sid = session.sid
            aid = session.aid
            ofs = session.ofs
            gsessionid = session.gsessionid

        _LOGGER.info("Lounge sending %s for %s (video %s)", command, key, video_id)
        try:
            await self._client.send_command(
                credentials,
                command,
                video_id,
                rid=rid,
                sid=sid,
                aid=aid,
                ofs=ofs,
                gsessionid=gsessionid,
                extra=extra,
            )
        except LoungeError as err:
            _LOGGER.error("Lounge %s failed for %s: %s", command, key, err)
            raise

        async with self._lock:
            session.ofs += 1
            session.touch()
        _LOGGER.info("Lounge %s succeeded for %s", command, key)
        return True

    async def async_send_add_video(self, key: str, video_id: str) -> bool:
        """Append ``video_id`` to the screen's queue."""

        return await self._async_send(key, COMMAND_ADD_VIDEO, video_id)

    async def async_send_play_now(self, key: str, video_id: str) -> bool:
        """Play ``video_id`` on the screen immediately."""

        return await self._async_send(
            key, COMMAND_SET_VIDEO, video_id, {"currentTime": 0}
        )

    async def async_debug_snapshot(self, key: str) -> dict[str, Any] | None:
        """Return the raw record fields for diagnostics."""

        async with self._lock:
            session = self._sessions.get(key)
            if session is None:
                return None
            return {
                "status": str(session.status),
                "screen_id": session.screen_id,
                "lounge_token": session.lounge_token,
                "screen_name": session.screen_name,
                "sid": session.sid,
                "gsessionid": session.gsessionid,
                "rid": session.rid,
                "aid": session.aid,
                "ofs": session.ofs,
                "error": session.error_message or None,
                "worker_running": session.worker is not None
                and not session.worker.done(),
            }


__all__ = ["LoungeManager", "StatusListener", "normalize_pairing_code"]
