"""Airing schedule items from anilist and their diff against the database."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any

__all__ = [
    "QUERY",
    "Item",
    "ExistingItem",
    "DiffKind",
    "Diff",
    "compute_diff",
    "items_from_page",
    "schedule_window",
]

QUERY = """
query ($start: Int, $stop: Int, $page: Int) {
  page: Page(perPage: 50, page: $page) {
    page_info: pageInfo {
      total
      per_page: perPage
      current_page: currentPage
      last_page: lastPage
      has_next_page: hasNextPage
    }
    airing_schedule: airingSchedules(airingAt_greater: $start, airingAt_lesser: $stop) {
      airing_at: airingAt
      episode
      media_id: mediaId
    }
  }
}"""


@dataclass(frozen=True, order=True)
class Item:
    """One episode airing; ordered by air time, then show, then episode."""

    airs_at: datetime
    anilist_id: int
    episode: int


@dataclass(frozen=True)
class ExistingItem:
    """A schedule item already stored in the database."""

    item: Item
    schedule_id: int


class DiffKind(Enum):
    ADD = "add"
    DEL = "del"


@dataclass(frozen=True)
class Diff:
    """A change to apply: add a new item or delete an existing one."""

    kind: DiffKind
    entry: Item | ExistingItem


def _pop_order(values: Iterable[Any], key: Any) -> deque[Any]:
    # Among equal keys, later inputs come first.
    return deque(reversed(sorted(values, key=key, reverse=True)))


def compute_diff(existing: Iterable[ExistingItem], new: Iterable[Item]) -> list[Diff]:
    """Return the changes that turn ``existing`` into ``new``."""
    old = _pop_order(existing, key=lambda e: e.item)
    fresh = _pop_order(new, key=lambda n: n)
    result: list[Diff] = []
    while old and fresh:
        if old[0].item < fresh[0]:
            result.append(Diff(DiffKind.DEL, old.popleft()))
        elif old[0].item > fresh[0]:
            result.append(Diff(DiffKind.ADD, fresh.popleft()))
        else:
            old.popleft()
            fresh.popleft()
    result.extend(Diff(DiffKind.ADD, n) for n in fresh)
    result.extend(Diff(DiffKind.DEL, e) for e in old)
    return result


def items_from_page(data: Mapping[str, Any]) -> tuple[list[Item], bool]:
    """Parse one response page; return its items and whether another page follows."""
    try:
        page = data["page"]
        has_next = page["page_info"]["has_next_page"]
        items = [
            Item(
                airs_at=datetime.fromtimestamp(int(entry["airing_at"]), timezone.utc),
                anilist_id=int(entry["media_id"]),
                episode=int(entry["episode"]),
            )
            for entry in page["airing_schedule"]
        ]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"invalid schedule page: {exc}") from exc
    if not isinstance(has_next, bool):
        raise ValueError("invalid schedule page: has_next_page is not a boolean")
    return items, has_next


def schedule_window(today: date | None = None) -> tuple[int, int]:
    """Return the POSIX timestamps from yesterday's to next week's midnight (UTC)."""
    if today is None:
        today = datetime.now(timezone.utc).date()
    midnight = datetime.combine(today, time(0, 0), tzinfo=timezone.utc)
    start = midnight - timedelta(days=1)
    stop = midnight + timedelta(days=7)
    return int(start.timestamp()), int(stop.timestamp())