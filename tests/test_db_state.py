import asyncio
import json
from datetime import datetime, timezone

import pytest

from magnets.db_state import (
    INITIAL_SETUP,
    LAST_SHOWS_UPDATE,
    MAX_NYAA_SI_ID,
    REMATCH_UNMATCHED,
    DbWatcher,
    StateError,
    WatchMessageHandler,
    get_state,
    set_state,
)


class FakeClient:
    def __init__(self, row=None, fail=False):
        self.calls = []
        self.row = row
        self.fail = fail

    async def execute(self, sql, params=()):
        self.calls.append(("execute", sql, list(params)))
        if self.fail:
            raise RuntimeError("boom")
        return 1

    async def query_one(self, sql, params=()):
        self.calls.append(("query_one", sql, list(params)))
        if self.fail:
            raise RuntimeError("boom")
        return self.row

    async def simple_query(self, sql):
        self.calls.append(("simple_query", sql))
        if self.fail:
            raise RuntimeError("boom")
        return []


async def _fired(notify):
    try:
        await asyncio.wait_for(notify.notified(), 0.05)
    except TimeoutError:
        return False
    return True


@pytest.mark.asyncio
async def test_permit_is_stored_once():
    watcher = DbWatcher()
    watcher.rematch_unmatched.notify()
    watcher.rematch_unmatched.notify()
    assert await _fired(watcher.rematch_unmatched) is True
    assert await _fired(watcher.rematch_unmatched) is False


@pytest.mark.asyncio
async def test_notify_wakes_waiter():
    watcher = DbWatcher()
    task = asyncio.create_task(watcher.last_shows_update.notified())
    await asyncio.sleep(0)
    watcher.last_shows_update.notify()
    await asyncio.wait_for(task, 1)
    assert task.done() and task.exception() is None
    assert await _fired(watcher.last_shows_update) is False


@pytest.mark.asyncio
async def test_handle_str_known_row():
    watcher = DbWatcher()
    watcher.handle_str("last_schedule_update")
    assert await _fired(watcher.last_schedule_update) is True
    assert await _fired(watcher.max_nyaa_si_id) is False


@pytest.mark.asyncio
async def test_handle_str_unknown_row_is_ignored():
    watcher = DbWatcher()
    watcher.handle_str("initial_setup")
    watcher.handle_str("nonsense")
    results = [
        await _fired(n)
        for n in (
            watcher.max_nyaa_si_id,
            watcher.rematch_unmatched,
            watcher.last_shows_update,
            watcher.last_schedule_update,
        )
    ]
    assert results == [False, False, False, False]


@pytest.mark.asyncio
async def test_notify_all():
    watcher = DbWatcher()
    watcher.notify_all()
    results = [
        await _fired(n)
        for n in (
            watcher.max_nyaa_si_id,
            watcher.rematch_unmatched,
            watcher.last_shows_update,
            watcher.last_schedule_update,
        )
    ]
    assert results == [True, True, True, True]


@pytest.mark.asyncio
async def test_listen_subscribes_and_notifies():
    watcher = DbWatcher()
    handler = watcher.message_handler()
    assert isinstance(handler, WatchMessageHandler)
    assert handler.watcher is watcher
    client = FakeClient()
    await handler.listen(client)
    assert client.calls == [("simple_query", "listen state_change")]
    assert await _fired(watcher.max_nyaa_si_id) is True


@pytest.mark.asyncio
async def test_listen_failure_raises():
    watcher = DbWatcher()
    with pytest.raises(StateError, match="listen state_change"):
        await watcher.message_handler().listen(FakeClient(fail=True))
    assert await _fired(watcher.max_nyaa_si_id) is False


@pytest.mark.asyncio
async def test_handle_forwards_payload():
    watcher = DbWatcher()
    watcher.message_handler().handle("state_change", "max_nyaa_si_id")
    assert await _fired(watcher.max_nyaa_si_id) is True
    assert await _fired(watcher.rematch_unmatched) is False


def test_handle_wrong_channel():
    handler = DbWatcher().message_handler()
    with pytest.raises(ValueError):
        handler.handle("other", "max_nyaa_si_id")


@pytest.mark.asyncio
async def test_set_state_sends_json():
    client = FakeClient()
    await set_state(client, REMATCH_UNMATCHED, 0)
    kind, sql, params = client.calls[0]
    assert kind == "execute"
    assert sql == "update magnets.state set value = $1 where key = $2"
    assert json.loads(params[0]) == 0
    assert params[1] == "rematch_unmatched"


@pytest.mark.asyncio
async def test_set_state_datetime_round_trip():
    client = FakeClient()
    now = datetime(2020, 5, 1, 12, 0, tzinfo=timezone.utc)
    await set_state(client, LAST_SHOWS_UPDATE, now)
    encoded = client.calls[0][2][0]
    assert datetime.fromisoformat(json.loads(encoded)) == now


@pytest.mark.asyncio
async def test_get_state_decodes():
    client = FakeClient(row=("true",))
    assert await get_state(client, INITIAL_SETUP) is True
    assert client.calls == [
        ("query_one", "select value from magnets.state where key = $1", ["initial_setup"])
    ]


@pytest.mark.asyncio
async def test_set_then_get_round_trip():
    writer = FakeClient()
    await set_state(writer, MAX_NYAA_SI_ID, 12345)
    reader = FakeClient(row=(writer.calls[0][2][0],))
    assert await get_state(reader, MAX_NYAA_SI_ID) == 12345


@pytest.mark.asyncio
async def test_errors_are_wrapped():
    with pytest.raises(StateError, match="cannot set database state of rematch_unmatched"):
        await set_state(FakeClient(fail=True), REMATCH_UNMATCHED, 2)
    with pytest.raises(StateError, match="cannot retrieve database state of initial_setup"):
        await get_state(FakeClient(fail=True), INITIAL_SETUP)