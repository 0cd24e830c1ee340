from __future__ import annotations

import asyncio

import pytest

import custom_components.lounge_remote.poller as poller_module
from custom_components.lounge_remote.api import LoungeConnectionError
from custom_components.lounge_remote.const import INACTIVITY_MESSAGE
from custom_components.lounge_remote.poller import (
    LongPollWorker,
    PollSettings,
    backoff_delay,
)
from custom_components.lounge_remote.session import LoungeSession, LoungeStatus
from conftest import FakeLoungeClient


def _bound_session(**overrides) -> LoungeSession:
    fields = {
        "status": LoungeStatus.CONNECTED,
        "screen_id": "abc",
        "lounge_token": "tok",
        "screen_name": "Living Room TV",
        "sid": "SID123",
        "gsessionid": "GS456",
    }
    fields.update(overrides)
    return LoungeSession(**fields)


class _RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _worker(
    session: LoungeSession,
    client: FakeLoungeClient,
    *,
    settings: PollSettings | None = None,
    sleep: _RecordingSleep | None = None,
    notified: list | None = None,
) -> LongPollWorker:
    def _on_status(key: str, record: LoungeSession) -> None:
        if notified is not None:
            notified.append((key, record.status))

    return LongPollWorker(
        "living_room",
        session,
        client,
        asyncio.Lock(),
        settings=settings,
        on_status_change=_on_status,
        sleep=sleep or _RecordingSleep(),
    )


def test_backoff_delay_doubles() -> None:
    delays = [backoff_delay(attempt, 2.0) for attempt in range(1, 6)]

    assert delays == [2.0, 4.0, 8.0, 16.0, 32.0]
    assert all(later > earlier for earlier, later in zip(delays, delays[1:]))


@pytest.mark.asyncio
async def test_retry_budget_exhaustion_sets_error(fake_client) -> None:
    fake_client.poll_script = [LoungeConnectionError("reset")] * 3
    session = _bound_session()
    sleep = _RecordingSleep()
    notified: list = []
    worker = _worker(session, fake_client, sleep=sleep, notified=notified)

    await worker.run()

    assert session.status is LoungeStatus.ERROR
    assert "3 consecutive poll errors" in session.error_message
    assert sleep.delays == [2.0, 4.0]
    assert notified == [("living_room", LoungeStatus.ERROR)]
    assert len(fake_client.polls) == 3


@pytest.mark.asyncio
async def test_failures_below_budget_keep_status(fake_client) -> None:
    fake_client.poll_script = [
        LoungeConnectionError("reset"),
        LoungeConnectionError("reset"),
        5,
        LoungeConnectionError("reset"),
        LoungeConnectionError("reset"),
        6,
    ]
    session = _bound_session()
    sleep = _RecordingSleep()
    worker = _worker(session, fake_client, sleep=sleep)

    task = asyncio.create_task(worker.run())
    await asyncio.wait_for(fake_client.poll_blocked.wait(), timeout=1)

    assert session.status is LoungeStatus.CONNECTED
    assert session.error_message == ""
    assert session.aid == 6
    assert sleep.delays == [2.0, 4.0, 2.0, 4.0]
    assert worker.consecutive_errors == 0

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert session.status is LoungeStatus.CONNECTED


@pytest.mark.asyncio
async def test_event_counter_never_moves_backward(fake_client) -> None:
    fake_client.poll_script = [9, 4, None]
    session = _bound_session(aid=2)
    worker = _worker(session, fake_client)

    task = asyncio.create_task(worker.run())
    await asyncio.wait_for(fake_client.poll_blocked.wait(), timeout=1)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert session.aid == 9
    assert [poll["aid"] for poll in fake_client.polls] == [2, 9, 9, 9]
    assert fake_client.polls[0]["gsessionid"] == "GS456"


@pytest.mark.asyncio
async def test_inactivity_disconnects_without_polling(
    fake_client, monkeypatch
) -> None:
    session = _bound_session()
    session.last_activity = 1_000.0
    monkeypatch.setattr(poller_module, "time_mod", lambda: 1_000.0 + 31 * 60)
    notified: list = []
    worker = _worker(session, fake_client, notified=notified)

    await worker.run()

    assert session.status is LoungeStatus.ERROR
    assert session.error_message == INACTIVITY_MESSAGE
    assert fake_client.polls == []
    assert notified == [("living_room", LoungeStatus.ERROR)]


@pytest.mark.asyncio
async def test_successful_poll_refreshes_activity(fake_client, monkeypatch) -> None:
    clock = {"now": 500.0}
    monkeypatch.setattr(poller_module, "time_mod", lambda: clock["now"])
    monkeypatch.setattr(
        "custom_components.lounge_remote.session.time_mod", lambda: clock["now"]
    )
    session = _bound_session()
    session.last_activity = 0.0
    fake_client.poll_script = [3]
    worker = _worker(session, fake_client, settings=PollSettings(inactivity_timeout=600))

    task = asyncio.create_task(worker.run())
    await asyncio.wait_for(fake_client.poll_blocked.wait(), timeout=1)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert session.last_activity == 500.0
    assert session.status is LoungeStatus.CONNECTED


@pytest.mark.asyncio
async def test_unbound_session_fails_fast(fake_client) -> None:
    session = _bound_session(sid="")
    worker = _worker(session, fake_client)

    await worker.run()

    assert session.status is LoungeStatus.ERROR
    assert session.error_message == "channel is not bound"
    assert fake_client.polls == []


@pytest.mark.asyncio
async def test_start_returns_named_task(fake_client) -> None:
    session = _bound_session()
    worker = _worker(session, fake_client)

    task = worker.start()
    await asyncio.wait_for(fake_client.poll_blocked.wait(), timeout=1)

    assert task.get_name() == "lounge_remote_poll_living_room"
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
