"""
Date parsing for the date and time operators.

Every supported representation is reduced to an instant expressed as
integer epoch milliseconds. Values that cannot be read as an instant
yield ``None``; the date operators treat ``None`` as a failed comparison
and never raise.
"""

import math
import time
from datetime import date, datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional

# Largest timestamp magnitude accepted, in either direction.
MAX_EPOCH_MS = 8.64e15

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MILLISECOND = timedelta(milliseconds=1)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def _datetime_to_ms(value: datetime) -> Optional[int]:
    try:
        if value.utcoffset() is None:
            # Naive values are local time
            value = value.astimezone()
        return (value - _EPOCH) // _MILLISECOND
    except (OverflowError, OSError, ValueError):
        return None


def _number_to_ms(value: float) -> Optional[int]:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if abs(value) > MAX_EPOCH_MS:
        return None
    return int(value)


def _parse_string(text: str) -> Optional[datetime]:
    text = text.strip()
    if not text:
        return None

    # Date-only forms, in any ISO spelling, are midnight UTC
    try:
        day = date.fromisoformat(text)
    except ValueError:
        day = None
    if day is not None:
        return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)

    iso_text = text[:-1] + "+00:00" if text[-1] in "Zz" else text
    try:
        parsed = datetime.fromisoformat(iso_text)
    except ValueError:
        parsed = None

    if parsed is not None:
        return parsed

    # RFC 2822, e.g. "Mon, 01 Jan 2024 10:00:00 GMT"
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None


def to_epoch_ms(value: Any) -> Optional[int]:
    """Read a value as an instant in epoch milliseconds.

    Accepts ``datetime`` and ``date`` objects, numeric epoch-millisecond
    timestamps and date strings (ISO 8601 or RFC 2822). Returns ``None``
    for anything else, including invalid or unparseable values.
    """
    if isinstance(value, datetime):
        return _datetime_to_ms(value)

    if isinstance(value, date):
        return _datetime_to_ms(datetime(value.year, value.month, value.day, tzinfo=timezone.utc))

    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        return _number_to_ms(value)

    if isinstance(value, str):
        parsed = _parse_string(value)
        return _datetime_to_ms(parsed) if parsed is not None else None

    return None


def to_date(value: Any) -> Optional[datetime]:
    """Read a value as a timezone-aware UTC ``datetime``, or ``None``.

    Limited to the ``datetime`` range (years 1 to 9999): instants that
    ``to_epoch_ms`` accepts beyond it yield ``None`` here.
    """
    millis = to_epoch_ms(value)
    if millis is None:
        return None
    try:
        return _EPOCH + timedelta(milliseconds=millis)
    except OverflowError:
        return None
