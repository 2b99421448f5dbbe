"""Seasons and year seasons in which shows air."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum

__all__ = ["Season", "YearSeason"]

_MAX_YEAR = 0xFFFF
_YEAR_RE = re.compile(r"\+?[0-9]+")


class Season(Enum):
    """The part of the year in which a show aired."""

    WINTER = 1
    SPRING = 2
    SUMMER = 3
    FALL = 4

    def to_db(self) -> int:
        """Return the database constant of the season."""
        return self.value

    @classmethod
    def from_db(cls, value: int) -> Season:
        """Parse a database season constant."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"invalid season {value}") from None

    @classmethod
    def from_anilist_str(cls, text: str) -> Season:
        """Parse a season name returned by the anilist API."""
        try:
            return cls[text]
        except KeyError:
            raise ValueError(f"invalid season {text}") from None

    @classmethod
    def from_display_string(cls, text: str) -> Season:
        """Parse the string produced by ``str(season)``."""
        for season in cls:
            if str(season) == text:
                return season
        raise ValueError(f"invalid season {text}")

    def __str__(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True, repr=False)
class YearSeason:
    """The year and season in which a show aired."""

    year: int
    season: Season

    def to_db(self) -> int:
        """Return the database encoding, e.g. Spring 2020 is 202002."""
        return self.year * 100 + self.season.to_db()

    @classmethod
    def from_db(cls, value: int) -> YearSeason:
        """Parse the database encoding of a year season."""
        magnitude_year, magnitude_season = divmod(abs(value), 100)
        sign = -1 if value < 0 else 1
        year = sign * magnitude_year
        if not 0 <= year <= _MAX_YEAR:
            raise ValueError(f"invalid year {year}")
        return cls(year, Season.from_db(sign * magnitude_season))

    @classmethod
    def current(cls, today: date | None = None) -> YearSeason:
        """Return the season of ``today``, by default the current UTC date."""
        if today is None:
            today = datetime.now(timezone.utc).date()
        return cls(today.year, Season((today.month - 1) // 3 + 1))

    def display_name(self) -> str:
        """Return a human-readable name such as ``Spring 2020``."""
        return f"{self.season} {self.year}"

    def prev(self) -> YearSeason:
        """Return the previous season."""
        if self.season is Season.WINTER:
            if self.year == 0:
                raise OverflowError("year season has no predecessor")
            return YearSeason(self.year - 1, Season.FALL)
        return YearSeason(self.year, Season(self.season.value - 1))

    def next(self) -> YearSeason:
        """Return the next season."""
        if self.season is Season.FALL:
            if self.year == _MAX_YEAR:
                raise OverflowError("year season has no successor")
            return YearSeason(self.year + 1, Season.WINTER)
        return YearSeason(self.year, Season(self.season.value + 1))

    def to_url_str(self) -> str:
        """Return a unique identifier suitable for use in a URL."""
        return f"{self.season}-{self.year}"

    @classmethod
    def from_url_str(cls, text: str) -> YearSeason:
        """Parse the identifier produced by :meth:`to_url_str`."""
        left, sep, right = text.partition("-")
        if not sep:
            raise ValueError(f"invalid year season {text}")
        season = Season.from_display_string(left)
        if not _YEAR_RE.fullmatch(right) or int(right) > _MAX_YEAR:
            raise ValueError(f"invalid year season {text}")
        return cls(int(right), season)

    def __repr__(self) -> str:
        return f"{self.year} {self.season}"