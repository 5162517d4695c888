"""Date helpers shared by the job engine

All timestamps are stored as naive UTC datetimes; dates inside JSON
sub-documents are stored as ISO-8601 strings.
"""

import calendar
from datetime import date, datetime, timezone
from typing import Any, Callable, Iterable, Optional


def utcnow() -> datetime:
    """Current time as a naive UTC datetime"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_instant(value: Any) -> Optional[datetime]:
    """
    Coerce a datetime, date or ISO string into a naive UTC datetime.

    Returns None for empty or unparseable values so that callers can compare
    "no date" on both sides without special cases.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return to_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return to_naive_utc(value).isoformat()


def format_timestamp(value: datetime) -> str:
    """Render as e.g. 'Oct 19, 2026, 3:04 PM'"""
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{value.strftime('%b')} {value.day}, {value.year}, {hour}:{value.minute:02d} {meridiem}"


def format_date(value: datetime) -> str:
    """Render as e.g. '10/19/2026'"""
    return f"{value.month}/{value.day}/{value.year}"


def format_short_date(value: datetime) -> str:
    """Render as e.g. 'Oct 19, 2026'"""
    return f"{value.strftime('%b')} {value.day}, {value.year}"


def group_by_month(items: Iterable[Any], date_of: Callable[[Any], Optional[datetime]], key: str) -> list[dict]:
    """
    Bucket items into ``{year, month, monthName, <key>}`` groups, newest month first.

    Items without a date are left out. Order inside a group follows the input.
    """
    organized: dict[tuple[int, int], dict] = {}
    for item in items:
        when = date_of(item)
        if not when:
            continue
        bucket = (when.year, when.month)
        if bucket not in organized:
            organized[bucket] = {
                "year": when.year,
                "month": when.month,
                "monthName": calendar.month_name[when.month],
                key: [],
            }
        organized[bucket][key].append(item)
    return [organized[bucket] for bucket in sorted(organized, reverse=True)]
