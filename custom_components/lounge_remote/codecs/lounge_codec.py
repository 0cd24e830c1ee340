"""Codec helpers for Lounge protocol requests and responses."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from ..const import PROTOCOL_VERSION, REMOTE_DEVICE
from ..session import LoungeCredentials
from .lounge_models import PairingResponse

_LOGGER = logging.getLogger(__name__)

_SID_MARKER = '["c","'
_GSESSIONID_MARKER = '["S","'
_EVENT_ID_RE = re.compile(r"(?:\[\[|,\[)\s*(\d+)\s*(?=[,\]])")


class LoungeParseError(ValueError):
    """Raised when a Lounge response cannot be decoded."""


class BindResponseError(LoungeParseError):
    """Raised when a bind response lacks the channel SID."""


class EventIdNotFoundError(LoungeParseError):
    """Raised when a poll response carries no event id."""


@dataclass(frozen=True, slots=True)
class BindResult:
    """Channel identifiers negotiated by a bind request."""

    sid: str
    gsessionid: str = ""


def _as_text(body: bytes | str) -> str:
    """Return ``body`` decoded as UTF-8 text."""

    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


# ----------------- Requests -----------------


def build_channel_params(
    credentials: LoungeCredentials, client_name: str
) -> dict[str, str]:
    """Return the query parameters shared by every channel request."""

    return {
        "device": REMOTE_DEVICE,
        "name": client_name,
        "id": credentials.screen_id,
        "loungeIdToken": credentials.lounge_token,
        "VER": PROTOCOL_VERSION,
    }


def build_bind_params(
    credentials: LoungeCredentials, client_name: str, rid: int
) -> dict[str, str]:
    """Return query parameters for the channel-open request."""

    params = build_channel_params(credentials, client_name)
    params["RID"] = str(rid)
    return params


def build_command_params(
    credentials: LoungeCredentials,
    client_name: str,
    *,
    rid: int,
    sid: str,
    aid: int,
    gsessionid: str = "",
) -> dict[str, str]:
    """Return query parameters for a command sent on a bound channel."""

    params = build_bind_params(credentials, client_name, rid)
    params["SID"] = sid
    params["AID"] = str(aid)
    if gsessionid:
        params["gsessionid"] = gsessionid
    return params


def build_command_form(
    command: str,
    video_id: str,
    *,
    ofs: int,
    extra: Mapping[str, Any] | None = None,
) -> dict[str, str]:
    """Return the form body describing a single queued command."""

    form = {
        "count": "1",
        "ofs": str(ofs),
        "req0__sc": command,
        "req0_videoId": video_id,
    }
    for key, value in (extra or {}).items():
        form[f"req0_{key}"] = str(value)
    return form


def build_poll_params(
    credentials: LoungeCredentials,
    client_name: str,
    *,
    sid: str,
    aid: int,
    gsessionid: str = "",
) -> dict[str, str]:
    """Return query parameters for the backward-channel long-poll."""

    params = build_channel_params(credentials, client_name)
    params.update(
        {
            "SID": sid,
            "AID": str(aid),
            "CI": "0",
            "TYPE": "xmlhttp",
            "RID": "rpc",
        }
    )
    if gsessionid:
        params["gsessionid"] = gsessionid
    return params


# ----------------- Responses -----------------


def parse_pairing_response(body: bytes | str) -> LoungeCredentials:
    """Decode the pairing endpoint JSON into screen credentials."""

    try:
        raw = json.loads(_as_text(body))
    except ValueError as err:
        raise LoungeParseError(f"failed to parse pairing response: {err}") from err

    try:
        model = PairingResponse.model_validate(raw)
    except ValidationError as err:
        raise LoungeParseError(
            "invalid pairing response: missing screenId or loungeToken"
        ) from err

    screen = model.screen
    return LoungeCredentials(
        screen_id=screen.screen_id,
        lounge_token=screen.lounge_token,
        screen_name=screen.screen_name,
    )


def _extract_marker(text: str, marker: str) -> str:
    """Return the quoted value following ``marker`` or an empty string."""

    idx = text.find(marker)
    if idx < 0:
        return ""
    start = idx + len(marker)
    end = text.find('"', start)
    if end <= start:
        return ""
    return text[start:end]


def parse_bind_response(body: bytes | str) -> BindResult:
    """Extract ``SID`` and the optional ``gsessionid`` from a bind response."""

    text = _as_text(body)
    sid = _extract_marker(text, _SID_MARKER)
    if not sid:
        raise BindResponseError("failed to parse SID from bind response")
    return BindResult(sid=sid, gsessionid=_extract_marker(text, _GSESSIONID_MARKER))


def parse_poll_event_id(body: bytes | str) -> int:
    """Return the highest event id found in a long-poll response.

    Events arrive as ``[[id, [...]], [id, [...]]]`` chunks, possibly spread
    over several length-prefixed lines and not necessarily in order.
    """

    highest = -1
    for line in _as_text(body).splitlines():
        for match in _EVENT_ID_RE.finditer(line.strip()):
            highest = max(highest, int(match.group(1)))

    if highest < 0:
        raise EventIdNotFoundError("no event id found in poll response")
    return highest


__all__ = [
    "BindResponseError",
    "BindResult",
    "EventIdNotFoundError",
    "LoungeParseError",
    "build_bind_params",
    "build_channel_params",
    "build_command_form",
    "build_command_params",
    "build_poll_params",
    "parse_bind_response",
    "parse_pairing_response",
    "parse_poll_event_id",
]
