"""Async HTTP client for the Lounge pairing protocol."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
import logging
from typing import Any

import aiohttp

from .codecs.lounge_codec import (
    BindResult,
    EventIdNotFoundError,
    LoungeParseError,
    build_bind_params,
    build_command_form,
    build_command_params,
    build_poll_params,
    parse_bind_response,
    parse_pairing_response,
    parse_poll_event_id,
)
from .const import (
    BIND_PATH,
    DEFAULT_CLIENT_NAME,
    LOUNGE_BASE_URL,
    PAIRING_PATH,
    POLL_TIMEOUT,
    REQUEST_TIMEOUT,
)
from .sanitize import redact_text
from .session import LoungeCredentials

_LOGGER = logging.getLogger(__name__)

# Toggle to preview bodies in debug logs (redacted). Leave False by default.
API_LOG_PREVIEW = False

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class LoungeError(Exception):
    """Base error for Lounge protocol failures."""


class LoungeConnectionError(LoungeError):
    """The request could not be completed (network error or timeout)."""


class LoungeRequestError(LoungeError):
    """The server answered with a non-2xx status."""

    def __init__(self, stage: str, status: int, body: str) -> None:
        """Record the failing stage, HTTP status and response body."""

        super().__init__(f"{stage} failed with status {status}: {redact_text(body)}")
        self.stage = stage
        self.status = status
        self.body = body


class LoungePairingError(LoungeError):
    """A pairing code could not be exchanged for screen credentials."""


class LoungeBindError(LoungeError):
    """A channel could not be opened for a paired screen."""


class LoungeNoCredentialsError(LoungeError):
    """No credentials are available to reconnect with."""


@dataclass(frozen=True, slots=True)
class LoungeResponse:
    """Raw HTTP response returned by the transport."""

    status: int
    body: str

    @property
    def ok(self) -> bool:
        """Return True for 2xx statuses."""

        return 200 <= self.status < 300


class LoungeClient:
    """Thin async client for the Lounge endpoints (HA-safe)."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        client_name: str = DEFAULT_CLIENT_NAME,
        base_url: str = LOUNGE_BASE_URL,
        request_timeout: float = REQUEST_TIMEOUT,
        poll_timeout: float = POLL_TIMEOUT,
    ) -> None:
        """Initialise the client with an aiohttp session and timeouts."""

        self._session = session
        self._base_url = base_url.rstrip("/") if base_url else LOUNGE_BASE_URL
        self._request_timeout = request_timeout
        self._poll_timeout = poll_timeout
        self.client_name = client_name or DEFAULT_CLIENT_NAME

    @property
    def base_url(self) -> str:
        """Expose the endpoint base URL."""

        return self._base_url

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        data: Mapping[str, str] | str | None = None,
        timeout: float | None = None,
    ) -> LoungeResponse:
        """Perform an HTTP request and return status and body text.

        Transport failures and timeouts are raised as
        :class:`LoungeConnectionError`; HTTP statuses are left to the caller.
        Errors are logged WITHOUT secrets.
        """

        url = f"{self._base_url}{path}"
        headers: dict[str, str] = {}
        if data is not None:
            headers["Content-Type"] = FORM_CONTENT_TYPE
        client_timeout = aiohttp.ClientTimeout(
            total=timeout if timeout is not None else self._request_timeout
        )
        _LOGGER.debug("HTTP %s %s", method, url)

        try:
            async with self._session.request(
                method,
                url,
                params=params,
                data=data,
                headers=headers,
                timeout=client_timeout,
            ) as resp:
                body = await resp.text()
                status = resp.status
        except asyncio.CancelledError:
            raise
        except (aiohttp.ClientError, TimeoutError) as err:
            _LOGGER.debug(
                "Request %s %s failed (sanitized): %s",
                method,
                url,
                redact_text(str(err)) or type(err).__name__,
            )
            raise LoungeConnectionError(
                f"{method} {path} failed: {redact_text(str(err)) or type(err).__name__}"
            ) from err

        if status >= 400:
            _LOGGER.debug(
                "HTTP error %s %s -> %s; body=%s",
                method,
                url,
                status,
                redact_text(body)[:200],
            )
        elif API_LOG_PREVIEW:
            _LOGGER.debug(
                "HTTP %s -> %s, body[0:200]=%r", url, status, redact_text(body)[:200]
            )
        else:
            _LOGGER.debug("HTTP %s -> %s", url, status)
        return LoungeResponse(status=status, body=body)

    # ----------------- Public API -----------------

    async def get_screen(self, pairing_code: str) -> LoungeCredentials:
        """Exchange a pairing code for screen credentials."""

        resp = await self._request(
            "GET", PAIRING_PATH, params={"pairing_code": pairing_code}
        )
        if resp.status != 200:
            raise LoungeRequestError("pairing", resp.status, resp.body)
        try:
            return parse_pairing_response(resp.body)
        except LoungeParseError as err:
            raise LoungePairingError(str(err)) from err

    async def bind(self, credentials: LoungeCredentials, *, rid: int) -> BindResult:
        """Open a channel for ``credentials`` and return its identifiers."""

        resp = await self._request(
            "POST",
            BIND_PATH,
            params=build_bind_params(credentials, self.client_name, rid),
            data="count=0",
        )
        if resp.status != 200:
            raise LoungeRequestError("bind", resp.status, resp.body)
        try:
            return parse_bind_response(resp.body)
        except LoungeParseError as err:
            raise LoungeBindError(str(err)) from err

    async def send_command(
        self,
        credentials: LoungeCredentials,
        command: str,
        video_id: str,
        *,
        rid: int,
        sid: str,
        aid: int,
        ofs: int,
        gsessionid: str = "",
        extra: Mapping[str, Any] | None = None,
    ) -> None:
        """Send a single command on a bound channel."""

        resp = await self._request(
            "POST",
            BIND_PATH,
            params=build_command_params(
                credentials,
                self.client_name,
                rid=rid,
                sid=sid,
                aid=aid,
                gsessionid=gsessionid,
            ),
            data=build_command_form(command, video_id, ofs=ofs, extra=extra),
        )
        if not resp.ok:
            raise LoungeRequestError(f"command {command}", resp.status, resp.body)

    async def long_poll(
        self,
        credentials: LoungeCredentials,
        *,
        sid: str,
        aid: int,
        gsessionid: str = "",
    ) -> int | None:
        """Hold the backward channel open and return the latest event id.

        ``None`` means the response carried no recognisable event id; the
        poll itself still succeeded.
        """

        resp = await self._request(
            "GET",
            BIND_PATH,
            params=build_poll_params(
                credentials,
                self.client_name,
                sid=sid,
                aid=aid,
                gsessionid=gsessionid,
            ),
            timeout=self._poll_timeout,
        )
        if not resp.ok:
            raise LoungeRequestError("poll", resp.status, resp.body)
        try:
            return parse_poll_event_id(resp.body)
        except EventIdNotFoundError:
            _LOGGER.debug("Poll response carried no event id")
            return None


__all__ = [
    "LoungeBindError",
    "LoungeClient",
    "LoungeConnectionError",
    "LoungeError",
    "LoungeNoCredentialsError",
    "LoungePairingError",
    "LoungeRequestError",
    "LoungeResponse",
]
