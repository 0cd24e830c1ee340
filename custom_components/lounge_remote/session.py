"""Session state for a paired Lounge screen."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import StrEnum
from time import monotonic as time_mod
from typing import Any


class LoungeStatus(StrEnum):
    """Connection state of a Lounge session."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True, slots=True)
class LoungeCredentials:
    """Durable credentials obtained from a pairing code."""

    screen_id: str
    lounge_token: str
    screen_name: str = ""

    @classmethod
    def from_mapping(cls, data: Any) -> LoungeCredentials | None:
        """Return credentials from persisted data, or ``None`` when incomplete."""

        if not isinstance(data, dict):
            return None
        screen_id = data.get("screen_id")
        lounge_token = data.get("lounge_token")
        if not screen_id or not lounge_token:
            return None
        return cls(
            screen_id=str(screen_id),
            lounge_token=str(lounge_token),
            screen_name=str(data.get("screen_name") or ""),
        )

    def as_dict(self) -> dict[str, str | None]:
        """Return the persisted representation."""

        return {
            "screen_id": self.screen_id,
            "lounge_token": self.lounge_token,
            "screen_name": self.screen_name or None,
        }


@dataclass(frozen=True, slots=True)
class LoungeStatusSnapshot:
    """Status triple reported to callers."""

    status: LoungeStatus
    screen_name: str | None = None
    error: str | None = None

    def as_dict(self) -> dict[str, str]:
        """Return a response payload omitting empty optional fields."""

        payload = {"status": str(self.status)}
        if self.screen_name:
            payload["screen_name"] = self.screen_name
        if self.error:
            payload["error"] = self.error
        return payload


@dataclass(slots=True)
class LoungeSession:
    """Protocol state for one paired screen.

    ``rid`` counts outbound requests on this record and only ever grows;
    ``aid`` is the highest event id received from the screen and ``ofs``
    the number of commands sent on the current channel. All fields are
    mutated under the owning manager's lock.
    """

    status: LoungeStatus = LoungeStatus.CONNECTING
    screen_id: str = ""
    lounge_token: str = ""
    screen_name: str = ""
    sid: str = ""
    gsessionid: str = ""
    rid: int = 0
    aid: int = 0
    ofs: int = 0
    error_message: str = ""
    last_activity: float = field(default_factory=time_mod)
    worker: asyncio.Task[None] | None = field(default=None, repr=False)

    @property
    def credentials(self) -> LoungeCredentials | None:
        """Return the durable credentials held by this record."""

        if not self.screen_id or not self.lounge_token:
            return None
        return LoungeCredentials(self.screen_id, self.lounge_token, self.screen_name)

    def apply_credentials(self, credentials: LoungeCredentials) -> None:
        """Store durable credentials on the record."""

        self.screen_id = credentials.screen_id
        self.lounge_token = credentials.lounge_token
        self.screen_name = credentials.screen_name

    def next_rid(self) -> int:
        """Advance and return the request counter."""

        self.rid += 1
        return self.rid

    def reset_channel(self) -> None:
        """Forget the bound channel before a rebind."""

        self.sid = ""
        self.gsessionid = ""
        self.aid = 0
        self.ofs = 0

    def touch(self) -> None:
        """Record a successful exchange."""

        self.last_activity = time_mod()

    def set_error(self, message: str) -> None:
        """Move the record to the error state."""

        self.status = LoungeStatus.ERROR
        self.error_message = message

    def snapshot(self) -> LoungeStatusSnapshot:
        """Return the public status triple."""

        return LoungeStatusSnapshot(
            status=self.status,
            screen_name=self.screen_name or None,
            error=self.error_message or None,
        )


__all__ = [
    "LoungeCredentials",
    "LoungeSession",
    "LoungeStatus",
    "LoungeStatusSnapshot",
]
