from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser

from ..config import settings

logger = logging.getLogger(__name__)

PROVIDER_TZ = "Africa/Cairo"
SLOT_MINUTES = 30


@dataclass(frozen=True)
class SlotWindow:
    start: time
    end: time


WORKING_WINDOW = SlotWindow(start=time(8, 0), end=time(19, 30))
FULL_DAY_WINDOW = SlotWindow(start=time(0, 0), end=time(23, 30))


@dataclass(frozen=True)
class Slot:
    cairo_time: str
    user_date: str
    user_time: str
    starts_at_utc: str
    display: str
    cairo_display: str


def configured_window() -> SlotWindow:
    if settings.slot_window == "full_day":
        return FULL_DAY_WINDOW
    return WORKING_WINDOW


def as_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def cairo_utc_offset(day: date, exact: bool = False) -> timedelta:
    """Cairo's UTC offset on ``day``.

    The default is the April-October summer-time approximation (+3, else +2).
    ``exact`` consults the IANA database instead.
    """
    if exact:
        midday = datetime.combine(day, time(12, 0), tzinfo=ZoneInfo(PROVIDER_TZ))
        return midday.utcoffset() or timedelta(hours=2)
    return timedelta(hours=3 if 4 <= day.month <= 10 else 2)


def provider_slot_times(start: time, end: time, step: int = SLOT_MINUTES) -> list[time]:
    times: list[time] = []
    current = datetime.combine(date(2000, 1, 1), start)
    last = datetime.combine(date(2000, 1, 1), end)
    while current <= last:
        times.append(current.time())
        current += timedelta(minutes=step)
    return times


def cairo_to_utc(day: date, wall_time: time, exact: bool = False) -> datetime:
    if exact:
        local = datetime.combine(day, wall_time, tzinfo=ZoneInfo(PROVIDER_TZ))
        return local.astimezone(timezone.utc)
    naive = datetime.combine(day, wall_time) - cairo_utc_offset(day)
    return naive.replace(tzinfo=timezone.utc)


def utc_to_cairo(instant: datetime, exact: bool | None = None) -> datetime:
    """Inverse of ``cairo_to_utc`` using the same offset source."""
    exact = settings.exact_cairo_offset if exact is None else exact
    if exact:
        return instant.astimezone(ZoneInfo(PROVIDER_TZ)).replace(tzinfo=None)
    naive = instant.astimezone(timezone.utc).replace(tzinfo=None)
    return naive + cairo_utc_offset((naive + timedelta(hours=2)).date())


def is_valid_timezone(tz_name: str | None) -> bool:
    if not tz_name:
        return False
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def resolve_timezone(tz_name: str | None) -> str:
    if is_valid_timezone(tz_name):
        return tz_name  # type: ignore[return-value]
    if tz_name:
        logger.info("unknown_timezone_fallback tz=%s default=%s", tz_name, settings.default_timezone)
    return settings.default_timezone


def parse_instant(value: str) -> datetime:
    # Naive instants are UTC; that is how the API stores them.
    instant = date_parser.isoparse(value)
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant


def to_utc_iso(instant: datetime) -> str:
    utc = instant.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def utc_to_zone(instant: datetime, tz_name: str | None) -> datetime:
    return instant.astimezone(ZoneInfo(resolve_timezone(tz_name)))


def convert_utc_to_user_time(utc_time: str, tz_name: str) -> str:
    try:
        instant = parse_instant(utc_time)
        zone = ZoneInfo(tz_name)
    except (ValueError, OverflowError, TypeError, ZoneInfoNotFoundError):
        logger.debug("utc_conversion_failed utc=%s tz=%s", utc_time, tz_name)
        return "00:00"
    return instant.astimezone(zone).strftime("%H:%M")


def format_time(hour: int, minute: int) -> str:
    period = "PM" if hour >= 12 else "AM"
    display_hour = hour - 12 if hour > 12 else 12 if hour == 0 else hour
    return f"{display_hour}:{minute:02d} {period}"


def working_slots_for_user(
    day: date | str,
    tz_name: str | None,
    window: SlotWindow | None = None,
    exact: bool | None = None,
) -> list[Slot]:
    """Provider slots for the Cairo calendar date ``day``, rendered in ``tz_name``."""
    day = as_date(day)
    zone = ZoneInfo(resolve_timezone(tz_name))
    window = window or configured_window()
    exact = settings.exact_cairo_offset if exact is None else exact

    slots: list[Slot] = []
    seen: set[tuple[date, int, int]] = set()
    for wall in provider_slot_times(window.start, window.end):
        instant = cairo_to_utc(day, wall, exact=exact)
        local = instant.astimezone(zone)
        key = (local.date(), local.hour, local.minute)
        if key in seen:
            continue
        seen.add(key)
        slots.append(
            Slot(
                cairo_time=wall.strftime("%H:%M"),
                user_date=local.date().isoformat(),
                user_time=local.strftime("%H:%M"),
                starts_at_utc=to_utc_iso(instant),
                display=format_time(local.hour, local.minute),
                cairo_display=format_time(wall.hour, wall.minute),
            )
        )
    slots.sort(key=lambda slot: slot.starts_at_utc)
    return slots


def session_utc(date_str: str, time_str: str, tz_name: str | None) -> str:
    local = datetime.combine(
        as_date(date_str),
        time.fromisoformat(time_str),
        tzinfo=ZoneInfo(resolve_timezone(tz_name)),
    )
    return to_utc_iso(local)

