"""Rows of ``magnets.state`` and notifications about their changes."""

from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from collections.abc import Sequence as Seq
from datetime import date, datetime
from typing import Any, Protocol

__all__ = [
    "MAX_NYAA_SI_ID",
    "REMATCH_UNMATCHED",
    "LAST_SHOWS_UPDATE",
    "LAST_SCHEDULE_UPDATE",
    "INITIAL_SETUP",
    "StateError",
    "Notify",
    "DbWatcher",
    "WatchMessageHandler",
    "set_state",
    "get_state",
]

log = logging.getLogger(__name__)

MAX_NYAA_SI_ID = "max_nyaa_si_id"
REMATCH_UNMATCHED = "rematch_unmatched"
LAST_SHOWS_UPDATE = "last_shows_update"
LAST_SCHEDULE_UPDATE = "last_schedule_update"
INITIAL_SETUP = "initial_setup"

CHANNEL = "state_change"

_SET_SQL = "update magnets.state set value = $1 where key = $2"
_GET_SQL = "select value from magnets.state where key = $1"


class StateError(Exception):
    """Reading or writing ``magnets.state`` failed."""


class _Client(Protocol):
    async def execute(self, sql: str, params: Seq[Any] = ...) -> Any: ...

    async def query_one(self, sql: str, params: Seq[Any] = ...) -> Seq[Any]: ...

    async def simple_query(self, sql: str) -> Any: ...


class Notify:
    """Wakes one waiter, or stores a single permit if nobody is waiting."""

    def __init__(self) -> None:
        self._waiters: deque[asyncio.Future[None]] = deque()
        self._permit = False

    def notify(self) -> None:
        """Wake the oldest waiter or store a permit for the next one."""
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._permit = True

    async def notified(self) -> None:
        """Wait until :meth:`notify` is called, consuming a stored permit first."""
        if self._permit:
            self._permit = False
            return
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)


class DbWatcher:
    """One :class:`Notify` per watched state row."""

    def __init__(self) -> None:
        self.max_nyaa_si_id = Notify()
        self.rematch_unmatched = Notify()
        self.last_shows_update = Notify()
        self.last_schedule_update = Notify()
        self._by_name = {
            MAX_NYAA_SI_ID: self.max_nyaa_si_id,
            REMATCH_UNMATCHED: self.rematch_unmatched,
            LAST_SHOWS_UPDATE: self.last_shows_update,
            LAST_SCHEDULE_UPDATE: self.last_schedule_update,
        }

    def notify_all(self) -> None:
        """Notify every watched row."""
        for notify in self._by_name.values():
            notify.notify()

    def handle_str(self, name: str) -> None:
        """Notify the row called ``name``; unknown names are logged and ignored."""
        notify = self._by_name.get(name)
        if notify is None:
            log.warning("received unknown state change: %s", name)
            return
        log.info("received state change of row %s", name)
        notify.notify()

    def message_handler(self) -> WatchMessageHandler:
        """Return a message handler that forwards notifications to this watcher."""
        return WatchMessageHandler(self)


class WatchMessageHandler:
    """Listens on the ``state_change`` channel and forwards payloads to a watcher."""

    def __init__(self, watcher: DbWatcher) -> None:
        self.watcher = watcher

    async def listen(self, client: _Client) -> None:
        """Subscribe ``client`` to state changes and notify every row once."""
        try:
            await client.simple_query(f"listen {CHANNEL}")
        except Exception as exc:
            raise StateError(f"could not execute `listen {CHANNEL}`: {exc}") from exc
        self.watcher.notify_all()

    def handle(self, channel: str, payload: str) -> None:
        """Handle a notification received on ``channel``."""
        if channel != CHANNEL:
            raise ValueError(f"unexpected notification channel {channel!r}")
        self.watcher.handle_str(payload)


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"cannot encode {type(value).__name__} as JSON")


async def set_state(client: _Client, key: str, value: Any) -> None:
    """Store ``value`` as JSON in the state row ``key``."""
    try:
        encoded = json.dumps(value, default=_json_default)
        await client.execute(_SET_SQL, [encoded, key])
    except Exception as exc:
        raise StateError(f"cannot set database state of {key} to {value!r}: {exc}") from exc


async def get_state(client: _Client, key: str) -> Any:
    """Return the decoded JSON value of the state row ``key``."""
    try:
        row = await client.query_one(_GET_SQL, [key])
        return json.loads(row[0])
    except Exception as exc:
        raise StateError(f"cannot retrieve database state of {key}: {exc}") from exc