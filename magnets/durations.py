"""Duration constants, formatting and sleeping."""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timedelta
from decimal import Decimal

__all__ = ["MINUTE", "HOUR", "format_duration", "sleep_until"]

MINUTE = 60.0
HOUR = 60.0 * 60.0

_NANOS = 10**9
_SECS_PER_DAY = 86400
_MAX_MILLIS = 2**63 - 1


def _to_nanos(seconds: float | int | timedelta) -> int:
    if isinstance(seconds, timedelta):
        micros = (seconds.days * _SECS_PER_DAY + seconds.seconds) * 10**6 + seconds.microseconds
        return micros * 1000
    return int(Decimal(str(seconds)) * _NANOS)


def format_duration(seconds: float | int | timedelta) -> str:
    """Format a non-negative duration in ISO 8601 form, or ``?`` if it is too large."""
    nanos = _to_nanos(seconds)
    if nanos < 0:
        raise ValueError("duration cannot be negative")
    if nanos > _MAX_MILLIS * 10**6:
        return "?"
    secs, frac = divmod(nanos, _NANOS)
    days, secs = divmod(secs, _SECS_PER_DAY)
    out = ["P"]
    if days:
        out.append(f"{days}D")
    if secs or frac or not days:
        if frac == 0:
            out.append(f"T{secs}S")
        elif frac % 10**6 == 0:
            out.append(f"T{secs}.{frac // 10**6:03}S")
        elif frac % 1000 == 0:
            out.append(f"T{secs}.{frac // 1000:06}S")
        else:
            out.append(f"T{secs}.{frac:09}S")
    return "".join(out)


async def sleep_until(when: datetime | float) -> None:
    """Sleep until ``when``, a datetime or a POSIX timestamp; return at once if it has passed."""
    target = when.timestamp() if isinstance(when, datetime) else float(when)
    remaining = target - time.time()
    if remaining > 0:
        await asyncio.sleep(remaining)