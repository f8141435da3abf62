from datetime import datetime, time, timezone
from email.utils import parsedate_to_datetime
from typing import Optional


def parse_timestamp(ts_raw) -> Optional[datetime]:
    """
    Try ISO8601 first, then fall back to RFC-style dates.
    Returns a naive UTC datetime, or None if parsing fails.
    """
    if isinstance(ts_raw, datetime):
        return _to_naive_utc(ts_raw)
    if not isinstance(ts_raw, str) or not ts_raw.strip():
        return None
    ts_raw = ts_raw.strip()

    # ISO: e.g. "2025-07-16T20:54:01+00:00", "2025-07-16T20:54:01Z" or "2025-07-16"
    try:
        return _to_naive_utc(datetime.fromisoformat(ts_raw.replace("Z", "+00:00")))
    except ValueError:
        pass

    # RFC: e.g. "Wed, 16 Jul 2025 20:54:01 +0000"
    try:
        return _to_naive_utc(parsedate_to_datetime(ts_raw))
    except (TypeError, ValueError, IndexError):
        return None


def is_date_only(ts_raw: str) -> bool:
    """True for bare calendar dates such as ``2024-01-05``."""
    try:
        return len(ts_raw.strip()) == 10 and bool(datetime.strptime(ts_raw.strip(), "%Y-%m-%d"))
    except ValueError:
        return False


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.max)


def _to_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)
