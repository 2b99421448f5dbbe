"""Logger setup with systemd-journald aware formatting."""

from __future__ import annotations

import logging
import os
import re
import sys
from collections.abc import Mapping

__all__ = ["logging_to_journal", "configure_logger", "JournalFormatter"]

_U64_RE = re.compile(r"\+?[0-9]+")
_U64_MAX = 2**64 - 1


def _parse_u64(text: str) -> int | None:
    if not _U64_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _U64_MAX else None


def logging_to_journal(environ: Mapping[str, str] | None = None) -> bool:
    """Return whether stderr is connected to the systemd journal.

    This compares ``JOURNAL_STREAM`` (``device:inode``) with the stderr file.
    """
    if environ is None:
        environ = os.environ
    stream = environ.get("JOURNAL_STREAM")
    if stream is None:
        return False
    left, sep, right = stream.partition(":")
    if not sep:
        return False
    device, inode = _parse_u64(left), _parse_u64(right)
    if device is None or inode is None:
        return False
    try:
        info = os.fstat(2)
    except OSError:
        return False
    return (info.st_dev, info.st_ino) == (device, inode)


class JournalFormatter(logging.Formatter):
    """Formats records with sd-daemon priority prefixes."""

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.ERROR:
            prefix = "<3>"
        elif record.levelno >= logging.WARNING:
            prefix = "<4>"
        elif record.levelno >= logging.INFO:
            prefix = "<6>"
        else:
            prefix = "<7>"
        text = f"{prefix}[{record.name}] {record.getMessage()}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


def configure_logger() -> logging.Handler:
    """Log at INFO level to stderr and return the installed handler."""
    handler = logging.StreamHandler(sys.stderr)
    if logging_to_journal():
        handler.setFormatter(JournalFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("[%(asctime)s %(levelname)s %(name)s] %(message)s")
        )
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.addHandler(handler)
    return handler