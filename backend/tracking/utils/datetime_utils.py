"""Datetime helpers for the store and API responses.
- Timestamps are generated as aware UTC.
- API datetimes serialize as UTC with Z so clients interpret them as UTC."""
from datetime import date, datetime, time, timezone

END_OF_DAY = time(23, 59, 59, 999000)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite hands back naive values)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def serialize_datetime_utc(v: datetime) -> str:
    """Serialize datetime for API JSON: always UTC with Z, millisecond precision."""
    return as_utc(v).replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


def parse_calendar_value(value: str) -> datetime:
    """Parse a date or ISO date-time query value into an aware UTC datetime.

    Raises ValueError for anything that is not ISO-8601.
    """
    value = value.strip()
    if len(value) == 10:
        return datetime.combine(date.fromisoformat(value), time.min, tzinfo=timezone.utc)
    return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def start_of_day(value: str) -> datetime:
    """Inclusive lower bound: dates start at 00:00:00.000, date-times are used as given."""
    return parse_calendar_value(value)


def end_of_day(value: str) -> datetime:
    """Inclusive upper bound: 23:59:59.999 UTC of the value's calendar day."""
    return datetime.combine(parse_calendar_value(value).date(), END_OF_DAY, tzinfo=timezone.utc)
