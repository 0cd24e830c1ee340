"""Background long-poll worker for a bound Lounge channel."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import logging
from time import monotonic as time_mod

from .api import LoungeClient, LoungeError
from .const import (
    INACTIVITY_MESSAGE,
    INACTIVITY_TIMEOUT,
    MAX_POLL_RETRIES,
    RETRY_BASE_DELAY,
)
from .sanitize import redact_text
from .session import LoungeSession

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PollSettings:
    """Retry and inactivity policy for long-poll workers."""

    inactivity_timeout: float = INACTIVITY_TIMEOUT
    max_retries: int = MAX_POLL_RETRIES
    retry_base_delay: float = RETRY_BASE_DELAY


def backoff_delay(attempt: int, base_delay: float = RETRY_BASE_DELAY) -> float:
    """Return the delay before retry ``attempt`` (1-based), doubling each time."""

    return base_delay * (2 ** max(attempt - 1, 0))


class LongPollWorker:
    """Keep the backward channel of one session open until stopped.

    The worker exits on cancellation without touching the session status,
    or marks the session as errored after the retry budget is exhausted or
    when no exchange succeeded within the inactivity window.
    """

    def __init__(
        self,
        key: str,
        session: LoungeSession,
        client: LoungeClient,
        lock: asyncio.Lock,
        *,
        settings: PollSettings | None = None,
        on_status_change: Callable[[str, LoungeSession], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Bind the worker to a session record and its owner's lock."""

        self._key = key
        self._session = session
        self._client = client
        self._lock = lock
        self._settings = settings or PollSettings()
        self._on_status_change = on_status_change
        self._sleep = sleep
        self.consecutive_errors = 0

    def start(self) -> asyncio.Task[None]:
        """Schedule the poll loop and return its task."""

        task = asyncio.create_task(
            self.run(), name=f"lounge_remote_poll_{self._key}"
        )
        task.add_done_callback(self._finalise)
        return task

    def _finalise(self, finished: asyncio.Task[None]) -> None:
        """Log unexpected worker crashes."""

        if finished.cancelled():
            return
        exception = finished.exception()
        if exception is not None:
            _LOGGER.error(
                "Long-poll worker for %s crashed",
                self._key,
                exc_info=exception,
            )

    def _notify(self) -> None:
        """Report a status transition to the owner."""

        if self._on_status_change is not None:
            self._on_status_change(self._key, self._session)

    async def _fail(self, message: str) -> None:
        """Move the session to the error state and notify."""

        async with self._lock:
            self._session.set_error(message)
        self._notify()

    async def run(self) -> None:
        """Run the long-poll loop until cancelled or failed."""

        session = self._session
        settings = self._settings
        _LOGGER.info("Long-poll loop started for %s", self._key)

        try:
            while True:
                async with self._lock:
                    idle = time_mod() - session.last_activity
                    credentials = session.credentials
                    sid = session.sid
                    aid = session.aid
                    gsessionid = session.gsessionid

                if idle > settings.inactivity_timeout:
                    _LOGGER.info("Disconnected %s due to inactivity", self._key)
                    await self._fail(INACTIVITY_MESSAGE)
                    return
                if credentials is None or not sid:
                    await self._fail("channel is not bound")
                    return

                try:
                    event_id = await self._client.long_poll(
                        credentials, sid=sid, aid=aid, gsessionid=gsessionid
                    )
                except LoungeError as err:
                    self.consecutive_errors += 1
                    _LOGGER.warning(
                        "Poll error for %s (%d/%d): %s",
                        self._key,
                        self.consecutive_errors,
                        settings.max_retries,
                        redact_text(str(err)),
                    )
                    if self.consecutive_errors >= settings.max_retries:
                        _LOGGER.error(
                            "Disconnected %s after max poll retries", self._key
                        )
                        await self._fail(
                            f"disconnected after {settings.max_retries} "
                            f"consecutive poll errors: {err}"
                        )
                        return
                    delay = backoff_delay(
                        self.consecutive_errors, settings.retry_base_delay
                    )
                    _LOGGER.debug(
                        "Retrying poll for %s in %.1fs", self._key, delay
                    )
                    await self._sleep(delay)
                    continue

                self.consecutive_errors = 0
                async with self._lock:
                    if event_id is not None and event_id > session.aid:
                        session.aid = event_id
                    session.touch()
        except asyncio.CancelledError:
            _LOGGER.info("Long-poll loop stopped for %s (cancelled)", self._key)
            raise


__all__ = ["LongPollWorker", "PollSettings", "backoff_delay"]
