"""Loading of the processor configuration from ``config.toml``."""

from __future__ import annotations

import re
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

__all__ = [
    "ConfigError",
    "Db",
    "Http",
    "Anilist",
    "Nyaa",
    "Config",
    "parse_duration",
    "load_toml",
    "load",
]


class ConfigError(ValueError):
    """The configuration cannot be read or is invalid."""


_UNIT_GROUPS: list[tuple[Decimal, tuple[str, ...]]] = [
    (Decimal("1e-9"), ("ns", "nsec", "nsecs", "nanosecond", "nanoseconds")),
    (Decimal("1e-6"), ("us", "µs", "μs", "usec", "usecs", "microsecond", "microseconds")),
    (Decimal("1e-3"), ("ms", "msec", "msecs", "millisecond", "milliseconds")),
    (Decimal(1), ("", "s", "sec", "secs", "second", "seconds")),
    (Decimal(60), ("m", "min", "mins", "minute", "minutes")),
    (Decimal(3600), ("h", "hr", "hrs", "hour", "hours")),
    (Decimal(86400), ("d", "day", "days")),
    (Decimal(604800), ("w", "wk", "wks", "week", "weeks")),
    (Decimal(2629746), ("mon", "mons", "month", "months")),
    (Decimal(31556952), ("y", "yr", "yrs", "year", "years")),
]
_UNITS = {name: factor for factor, names in _UNIT_GROUPS for name in names}

_TERM = re.compile(
    r"\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:e[+-]?\d+)?)\s*([a-zµμ]*)\s*,?",
    re.IGNORECASE,
)


def parse_duration(text: str) -> timedelta:
    """Parse a human-readable duration such as ``"1h 30m"`` or ``"90"`` (seconds)."""
    if not text.strip():
        raise ValueError("empty duration")
    total = Decimal(0)
    pos = 0
    end = len(text.rstrip())
    while pos < end:
        match = _TERM.match(text, pos)
        if match is None or match.end() == pos:
            raise ValueError(f"unexpected input at position {pos}")
        number, unit = match.groups()
        factor = _UNITS.get(unit.lower())
        if factor is None:
            raise ValueError(f"unknown unit `{unit}`")
        try:
            total += Decimal(number) * factor
        except InvalidOperation as exc:
            raise ValueError(f"invalid number `{number}`") from exc
        pos = match.end()
    if total < 0:
        raise ValueError("duration cannot be negative")
    try:
        return timedelta(microseconds=int(total * 10**6))
    except OverflowError as exc:
        raise ValueError("duration is too large") from exc


@dataclass(frozen=True)
class Db:
    connection_string: str


@dataclass(frozen=True)
class Http:
    user_agent: str


@dataclass(frozen=True)
class Anilist:
    startup_grace_period: timedelta
    schedule_poll_interval: timedelta
    shows_poll_interval: timedelta


@dataclass(frozen=True)
class Nyaa:
    scrape_interval: timedelta


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name)
    if not isinstance(value, Mapping):
        raise ConfigError(f"missing or invalid section `{name}`")
    return value


def _string(section: Mapping[str, Any], name: str) -> str:
    value = section.get(name)
    if not isinstance(value, str):
        raise ConfigError(f"missing or invalid string field `{name}`")
    return value


def _duration(section: Mapping[str, Any], name: str) -> timedelta:
    text = _string(section, name)
    try:
        return parse_duration(text)
    except ValueError as exc:
        raise ConfigError(f"cannot parse duration `{text}`: {exc}") from exc


@dataclass(frozen=True)
class Config:
    db: Db
    anilist: Anilist
    nyaa: Nyaa
    http: Http

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Config:
        """Build a configuration from parsed TOML data."""
        db = _section(data, "db")
        anilist = _section(data, "anilist")
        nyaa = _section(data, "nyaa")
        http = _section(data, "http")
        return cls(
            db=Db(_string(db, "connection_string")),
            anilist=Anilist(
                startup_grace_period=_duration(anilist, "startup_grace_period"),
                schedule_poll_interval=_duration(anilist, "schedule_poll_interval"),
                shows_poll_interval=_duration(anilist, "shows_poll_interval"),
            ),
            nyaa=Nyaa(_duration(nyaa, "scrape_interval")),
            http=Http(_string(http, "user_agent")),
        )


def load_toml(path: str | Path = "config.toml") -> dict[str, Any]:
    """Read and parse a TOML file."""
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"cannot load config.toml: {exc}") from exc


def load(path: str | Path = "config.toml") -> Config:
    """Load the configuration from ``path``."""
    data = load_toml(path)
    try:
        return Config.from_mapping(data)
    except ConfigError as exc:
        raise ConfigError(f"cannot load config.toml: {exc}") from exc