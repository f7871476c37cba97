"""
Normalization of the date encodings Fireflies returns.

Fireflies reports ``date`` as epoch milliseconds on most transcripts, but older
payloads (and payloads echoed back by the dashboard) carry ISO or locale
strings, and some have no date at all. Everything is converted to one
timezone-aware UTC ``datetime`` or ``None``.
"""
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Tried in order after ISO 8601
_FALLBACK_FORMATS = (
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y",
    "%d %b %Y %H:%M:%S",
    "%a %b %d %Y %H:%M:%S",
    "%a, %d %b %Y %H:%M:%S",
)


def _from_epoch_millis(value) -> Optional[datetime]:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        return EPOCH + timedelta(milliseconds=value)
    except OverflowError:
        return None


def _to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _parse_string(value: str) -> Optional[datetime]:
    text = value.strip()
    if not text:
        return None

    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return _to_utc(datetime.fromisoformat(iso))
    except ValueError:
        pass

    # JS Date.toString(): "Fri Mar 01 2024 10:00:00 GMT+0200 (Eastern European Standard Time)"
    head, sep, tail = text.partition(" GMT")
    if sep:
        try:
            return _to_utc(datetime.strptime(f"{head} {tail[:5]}", "%a %b %d %Y %H:%M:%S %z"))
        except ValueError:
            pass

    for fmt in _FALLBACK_FORMATS:
        try:
            return _to_utc(datetime.strptime(head, fmt))
        except ValueError:
            continue
    return None


def normalize_date(raw: Any) -> Optional[datetime]:
    """
    Convert a raw upstream date into a UTC instant.

    Args:
        raw: Epoch milliseconds (int/float), a date string, or None

    Returns:
        Timezone-aware UTC datetime, or None when absent or unparsable.
        Never raises.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return _from_epoch_millis(raw)
    if isinstance(raw, str):
        return _parse_string(raw)
    return None
