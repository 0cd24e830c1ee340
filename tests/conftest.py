# ruff: noqa: D100,D101,D102,D103,D105,D107,INP001
from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable

import pytest

from custom_components.lounge_remote.api import LoungeRequestError
from custom_components.lounge_remote.codecs.lounge_codec import BindResult
from custom_components.lounge_remote.manager import LoungeManager
from custom_components.lounge_remote.poller import PollSettings
from custom_components.lounge_remote.session import LoungeCredentials


def pytest_configure(config: pytest.Config) -> None:
    """Register custom pytest markers used across the suite."""

    if not config.pluginmanager.hasplugin("pytest_asyncio"):
        config.addinivalue_line(
            "markers", "asyncio: mark test as requiring asyncio event loop support."
        )


def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute async tests when pytest-asyncio is unavailable."""

    if pyfuncitem.config.pluginmanager.hasplugin("pytest_asyncio"):
        return None

    testfunction = pyfuncitem.obj
    if not inspect.iscoroutinefunction(testfunction):
        return None

    marker = pyfuncitem.get_closest_marker("asyncio")
    if marker is None:
        return None

    with asyncio.Runner(debug=False) as runner:
        runner.run(testfunction(**pyfuncitem.funcargs))
    return True


SCREEN = LoungeCredentials("abc", "tok", "Living Room TV")


class MockResponse:
    def __init__(
        self,
        status: int,
        text_data: str | Callable[[], str] = "",
        *,
        text_exc: Exception | None = None,
    ) -> None:
        self.status = status
        self._text = text_data
        self._text_exc = text_exc
        self.text_calls = 0

    async def __aenter__(self) -> MockResponse:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    async def text(self) -> str:
        self.text_calls += 1
        if self._text_exc is not None:
            raise self._text_exc
        return self._text() if callable(self._text) else self._text


class FakeSession:
    """Minimal stand-in for ``aiohttp.ClientSession.request``."""

    def __init__(
        self, responses: list[MockResponse | BaseException] | None = None
    ) -> None:
        self.responses = list(responses or [])
        self.calls: list[dict[str, Any]] = []

    def queue(self, *responses: MockResponse | BaseException) -> None:
        self.responses.extend(responses)

    def request(self, method: str, url: str, **kwargs: Any) -> MockResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"unexpected request {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


class InMemoryCredentialStore:
    """Credential store keeping rooms in a dict."""

    def __init__(self, rooms: dict[str, LoungeCredentials] | None = None) -> None:
        self.rooms: dict[str, LoungeCredentials] = dict(rooms or {})
        self.saved: list[tuple[str, LoungeCredentials]] = []
        self.cleared: list[str] = []
        self.save_error: Exception | None = None

    async def async_save(self, key: str, credentials: LoungeCredentials) -> None:
        if self.save_error is not None:
            raise self.save_error
        self.saved.append((key, credentials))
        self.rooms[key] = credentials

    async def async_clear(self, key: str) -> None:
        self.cleared.append(key)
        self.rooms.pop(key, None)

    async def async_load(self, key: str) -> LoungeCredentials | None:
        return self.rooms.get(key)


class FakeLoungeClient:
    """Scriptable Lounge client recording every request counter it sees."""

    def __init__(self) -> None:
        self.screens: dict[str, LoungeCredentials] = {"123456": SCREEN}
        self.screen_error: Exception | None = None
        self.bind_results: list[BindResult | Exception] = []
        self.bind_delay = 0.0
        self.command_errors: list[Exception] = []
        self.poll_script: list[int | None | Exception] = []
        self.rids: list[int] = []
        self.binds: list[LoungeCredentials] = []
        self.commands: list[dict[str, Any]] = []
        self.polls: list[dict[str, Any]] = []
        self.pairing_codes: list[str] = []
        self.poll_blocked = asyncio.Event()

    @property
    def network_calls(self) -> int:
        return (
            len(self.pairing_codes)
            + len(self.binds)
            + len(self.commands)
            + len(self.polls)
        )

    async def get_screen(self, pairing_code: str) -> LoungeCredentials:
        self.pairing_codes.append(pairing_code)
        if self.screen_error is not None:
            raise self.screen_error
        try:
            return self.screens[pairing_code]
        except KeyError:
            raise LoungeRequestError("pairing", 404, "Not Found") from None

    async def bind(self, credentials: LoungeCredentials, *, rid: int) -> BindResult:
        self.rids.append(rid)
        self.binds.append(credentials)
        if self.bind_delay:
            await asyncio.sleep(self.bind_delay)
        if self.bind_results:
            result = self.bind_results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result
        return BindResult(sid=f"SID{len(self.binds)}", gsessionid="GS456")

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
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.rids.append(rid)
        self.commands.append(
            {
                "command": command,
                "video_id": video_id,
                "rid": rid,
                "sid": sid,
                "aid": aid,
                "ofs": ofs,
                "gsessionid": gsessionid,
                "extra": extra,
            }
        )
        if self.command_errors:
            raise self.command_errors.pop(0)

    async def long_poll(
        self,
        credentials: LoungeCredentials,
        *,
        sid: str,
        aid: int,
        gsessionid: str = "",
    ) -> int | None:
        self.polls.append({"sid": sid, "aid": aid, "gsessionid": gsessionid})
        if self.poll_script:
            item = self.poll_script.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        self.poll_blocked.set()
        await asyncio.Event().wait()
        return None


@pytest.fixture
def fake_client() -> FakeLoungeClient:
    return FakeLoungeClient()


@pytest.fixture
def credential_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def make_manager(
    fake_client: FakeLoungeClient, credential_store: InMemoryCredentialStore
) -> Callable[..., LoungeManager]:
    def _factory(
        *,
        client: FakeLoungeClient | None = None,
        store: InMemoryCredentialStore | None = None,
        settings: PollSettings | None = None,
    ) -> LoungeManager:
        return LoungeManager(
            client or fake_client,
            store or credential_store,
            settings=settings or PollSettings(retry_base_delay=0.0),
        )

    return _factory
