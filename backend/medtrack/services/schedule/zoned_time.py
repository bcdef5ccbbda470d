"""Conversions between instants and civil wall-clock readings in IANA zones.

Civil fields are turned back into an instant with a single offset
correction: build the naive UTC instant from the fields, read the zone's
offset at that naive instant and subtract it. Inside the skipped or repeated
hour of a DST transition this can be off by the transition delta; regimen
times in the supported locales sit far from those boundaries, so the
approximation is kept rather than resolved iteratively.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from enum import StrEnum
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from medtrack.services.schedule.errors import InvalidTimezoneError


class Weekday(StrEnum):
    SUN = "SUN"
    MON = "MON"
    TUE = "TUE"
    WED = "WED"
    THU = "THU"
    FRI = "FRI"
    SAT = "SAT"


_WEEKDAYS = (
    Weekday.MON,
    Weekday.TUE,
    Weekday.WED,
    Weekday.THU,
    Weekday.FRI,
    Weekday.SAT,
    Weekday.SUN,
)


@dataclass(frozen=True)
class ZonedParts:
    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int


@lru_cache(maxsize=128)
def _zone(time_zone: str) -> ZoneInfo:
    try:
        return ZoneInfo(time_zone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidTimezoneError(time_zone) from exc


def get_zone(time_zone: str | None) -> ZoneInfo:
    """Resolve an IANA name, rejecting blank or unknown zones."""
    if time_zone is None or not time_zone.strip():
        raise InvalidTimezoneError(time_zone)
    return _zone(time_zone.strip())


def ensure_utc(instant: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalize aware ones to UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)


def get_zoned_parts(instant: datetime, time_zone: str) -> ZonedParts:
    local = ensure_utc(instant).astimezone(get_zone(time_zone))
    return ZonedParts(
        year=local.year,
        month=local.month,
        day=local.day,
        hour=local.hour,
        minute=local.minute,
        second=local.second,
    )


def get_timezone_offset(instant: datetime, time_zone: str) -> timedelta:
    """UTC offset observed in ``time_zone`` at ``instant``."""
    offset = ensure_utc(instant).astimezone(get_zone(time_zone)).utcoffset()
    return offset or timedelta(0)


def make_instant(
    year: int,
    month: int,
    day: int,
    hour: int,
    minute: int,
    time_zone: str,
) -> datetime:
    """Instant at which ``time_zone`` reads the given civil fields.

    ``day`` may exceed the month length by overflow arithmetic (e.g. day + 1
    on the last day of a month rolls into the next month).
    """
    assumed_utc = datetime(year, month, 1, hour, minute, tzinfo=UTC) + timedelta(
        days=day - 1
    )
    return assumed_utc - get_timezone_offset(assumed_utc, time_zone)


def start_of_local_date(value: date, time_zone: str) -> datetime:
    return make_instant(value.year, value.month, value.day, 0, 0, time_zone)


def start_of_local_day(instant: datetime, time_zone: str) -> datetime:
    parts = get_zoned_parts(instant, time_zone)
    return make_instant(parts.year, parts.month, parts.day, 0, 0, time_zone)


def start_of_next_local_day(instant: datetime, time_zone: str) -> datetime:
    parts = get_zoned_parts(instant, time_zone)
    return make_instant(parts.year, parts.month, parts.day + 1, 0, 0, time_zone)


def truncate_to_local_minute(instant: datetime, time_zone: str) -> datetime:
    """Drop seconds and sub-seconds as read on the local wall clock."""
    parts = get_zoned_parts(instant, time_zone)
    return make_instant(
        parts.year, parts.month, parts.day, parts.hour, parts.minute, time_zone
    )


def local_weekday(instant: datetime, time_zone: str) -> Weekday:
    local = ensure_utc(instant).astimezone(get_zone(time_zone))
    return _WEEKDAYS[local.weekday()]


def local_time_string(instant: datetime, time_zone: str) -> str:
    parts = get_zoned_parts(instant, time_zone)
    return f"{parts.hour:02d}:{parts.minute:02d}"


def local_date_key(instant: datetime, time_zone: str) -> str:
    parts = get_zoned_parts(instant, time_zone)
    return f"{parts.year:04d}-{parts.month:02d}-{parts.day:02d}"


def get_day_range(value: date, time_zone: str) -> tuple[datetime, datetime]:
    """Half-open instant range covering the local calendar day ``value``."""
    start = start_of_local_date(value, time_zone)
    return start, start_of_next_local_day(start, time_zone)


def format_instant(instant: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. ``2026-02-02T08:00:00.000Z``."""
    utc = ensure_utc(instant)
    return f"{utc:%Y-%m-%dT%H:%M:%S}.{utc.microsecond // 1000:03d}Z"
