"""Line-based text encodings of PostgreSQL column values used by database dumps."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from pathlib import Path
from typing import Any

__all__ = ["PgType", "Codec", "codec_for", "read_text", "write_text"]

_INT_RE = re.compile(r"[+-]?[0-9]+")
_HEX_RE = re.compile(r"(?:[0-9a-fA-F]{2})*")
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)
_NULL = "null"


class PgType(IntEnum):
    """PostgreSQL types that can be dumped, keyed by their OID."""

    BOOL = 16
    BYTEA = 17
    INT8 = 20
    INT4 = 23
    TEXT = 25
    TIMESTAMPTZ = 1184
    JSONB = 3802


def write_text(value: str) -> str:
    """Quote ``value``, escaping quotes, backslashes and newlines."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def read_text(line: str) -> str:
    """Parse a quoted line produced by :func:`write_text`."""
    if len(line) < 2:
        raise ValueError("text line is too small")
    if line[0] != '"' or line[-1] != '"':
        raise ValueError('text line is not delimited by "')
    out: list[str] = []
    chars = iter(line[1:-1])
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        escaped = next(chars, None)
        if escaped is None:
            raise ValueError("text line contains a trailing \\")
        out.append("\n" if escaped == "n" else escaped)
    return "".join(out)


def _parse_int(line: str) -> int:
    if not _INT_RE.fullmatch(line):
        raise ValueError(f"invalid integer {line!r}")
    return int(line)


class Codec(ABC):
    """Converts values of one column type to and from single dump lines."""

    def __init__(self, pg_type: PgType) -> None:
        self.pg_type = pg_type

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.pg_type.name})"

    def serialize(self, value: Any) -> str:
        """Return the dump line for ``value``, including the trailing newline."""
        if value is None:
            return _NULL + "\n"
        return self._format(value) + "\n"

    def read(self, line: str) -> Any:
        """Parse one dump line (without newline); ``null`` yields ``None``."""
        if line == _NULL:
            return None
        return self._parse(line)

    def file_path(self, root: str | Path, key: Any) -> Path:
        """Return the file that holds the row whose first column is ``key``."""
        raise TypeError(f"cannot derive row file names from {self.pg_type.name} keys")

    @abstractmethod
    def _format(self, value: Any) -> str: ...

    @abstractmethod
    def _parse(self, line: str) -> Any: ...


class _IntCodec(Codec):
    def __init__(self, pg_type: PgType, bits: int) -> None:
        super().__init__(pg_type)
        self._min = -(2 ** (bits - 1))
        self._max = 2 ** (bits - 1) - 1

    def _check(self, value: int) -> int:
        if not self._min <= value <= self._max:
            raise ValueError(f"{value} is out of range for {self.pg_type.name}")
        return value

    def _format(self, value: Any) -> str:
        return str(self._check(int(value)))

    def _parse(self, line: str) -> int:
        return self._check(_parse_int(line))

    def file_path(self, root: str | Path, key: Any) -> Path:
        key = int(key)
        bucket = abs(key) // 1000
        if key < 0:
            bucket = -bucket
        directory = Path(root) / str(bucket)
        directory.mkdir(parents=True, exist_ok=True)
        return directory / str(key)


class _TextCodec(Codec):
    def _format(self, value: Any) -> str:
        return write_text(value)

    def _parse(self, line: str) -> str:
        return read_text(line)

    def file_path(self, root: str | Path, key: Any) -> Path:
        return Path(root) / key


class _TimestampCodec(Codec):
    def _format(self, value: Any) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return str((value - _EPOCH) // _MICROSECOND)

    def _parse(self, line: str) -> datetime:
        micros = _parse_int(line)
        if micros < 0:
            raise ValueError(f"timestamp {micros} is before the epoch")
        try:
            return _EPOCH + timedelta(microseconds=micros)
        except OverflowError:
            raise ValueError(f"duration of {micros} microseconds is out of bounds") from None


class _JsonCodec(Codec):
    def _format(self, value: Any) -> str:
        return write_text(value)

    def _parse(self, line: str) -> str:
        return read_text(line)


class _ByteaCodec(Codec):
    def serialize(self, value: Any) -> str:
        if value is None:
            return _NULL
        return super().serialize(value)

    def _format(self, value: Any) -> str:
        return f'"{bytes(value).hex()}"'

    def _parse(self, line: str) -> bytes:
        text = read_text(line)
        if not _HEX_RE.fullmatch(text):
            raise ValueError(f"invalid hex string {text!r}")
        return bytes.fromhex(text)


class _BoolCodec(Codec):
    def _format(self, value: Any) -> str:
        return "true" if value else "false"

    def _parse(self, line: str) -> bool:
        if line == "true":
            return True
        if line == "false":
            return False
        raise ValueError(f"invalid boolean {line!r}")


_CODECS: dict[PgType, Codec] = {
    PgType.TEXT: _TextCodec(PgType.TEXT),
    PgType.INT4: _IntCodec(PgType.INT4, 32),
    PgType.INT8: _IntCodec(PgType.INT8, 64),
    PgType.TIMESTAMPTZ: _TimestampCodec(PgType.TIMESTAMPTZ),
    PgType.JSONB: _JsonCodec(PgType.JSONB),
    PgType.BYTEA: _ByteaCodec(PgType.BYTEA),
    PgType.BOOL: _BoolCodec(PgType.BOOL),
}


def codec_for(pg_type: PgType | int) -> Codec:
    """Return the codec for a type given as :class:`PgType` or OID."""
    try:
        key = PgType(pg_type)
    except ValueError:
        raise ValueError(f"cannot serialize type {pg_type}") from None
    return _CODECS[key]