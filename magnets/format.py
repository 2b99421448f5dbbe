"""Show formats and show name types with their database and API encodings."""

from __future__ import annotations

from enum import Enum, IntEnum

__all__ = ["Format", "ShowNameType"]


class Format(Enum):
    """Format of a show.

    "Show" is the general term used for any of these.
    """

    TV = 1
    TV_SHORT = 2
    MOVIE = 3
    SPECIAL = 4
    OVA = 5
    ONA = 6

    @classmethod
    def from_anilist(cls, name: str) -> Format:
        """Parse a format string returned by the anilist API."""
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"invalid format {name}") from None

    def to_db(self) -> int:
        """Return the database constant of the format."""
        return self.value

    @classmethod
    def from_db(cls, value: int) -> Format:
        """Parse a database format constant."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"invalid format {value}") from None

    def __str__(self) -> str:
        return _LABELS[self]


_LABELS = {
    Format.TV: "TV Show",
    Format.TV_SHORT: "TV Short",
    Format.MOVIE: "Movie",
    Format.SPECIAL: "Special",
    Format.OVA: "OVA",
    Format.ONA: "ONA",
}


class ShowNameType(IntEnum):
    """Values of the ``magnets.show_name_type`` column."""

    ROMAJI = 1
    ENGLISH = 2
    ADDITIONAL = 3