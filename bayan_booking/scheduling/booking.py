from __future__ import annotations

import calendar
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from typing import Iterable, Sequence

from dateutil import parser as date_parser

from .slots import Slot, as_date, format_time, parse_instant

MONTH_ABBR = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


@dataclass
class SelectedSession:
    date: str
    time: str
    starts_at_utc: str | None = None
    notes: str | None = None
    cairo_time: str | None = None

    def to_api(self) -> dict:
        payload: dict = {"date": self.date, "time": self.time}
        if self.notes:
            payload["notes"] = self.notes
        if self.starts_at_utc:
            payload["startsAtUTC"] = self.starts_at_utc
        return payload


@dataclass(frozen=True)
class BookedSlot:
    date: str
    time: str
    starts_at_utc: str | None = None

    @classmethod
    def from_api(cls, payload: dict) -> "BookedSlot":
        return cls(
            date=str(payload.get("date", "")),
            time=str(payload.get("time", "")),
            starts_at_utc=payload.get("startsAtUTC") or payload.get("utcTime"),
        )


@dataclass
class ToggleResult:
    sessions: list[SelectedSession]
    accepted: bool
    removed: bool = False
    message: str = ""


@dataclass
class SlotView:
    slot: Slot
    selected: bool
    booked: bool
    week_full: bool
    reason: str = ""

    def as_dict(self) -> dict:
        return {
            **asdict(self.slot),
            "selected": self.selected,
            "booked": self.booked,
            "week_full": self.week_full,
            "reason": self.reason,
        }


@dataclass
class CalendarDay:
    date: str
    day: int
    past: bool
    selected: bool
    current: bool
    week_full: bool
    sessions_in_week: int
    title: str


@dataclass
class MonthCalendar:
    year: int
    month: int
    label: str
    leading_blanks: int
    days: list[CalendarDay] = field(default_factory=list)


def week_bounds(day: date | str) -> tuple[date, date]:
    """Sunday..Saturday window containing ``day``."""
    day = as_date(day)
    start = day - timedelta(days=(day.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


def sessions_in_week(sessions: Iterable[SelectedSession], day: date | str) -> int:
    start, end = week_bounds(day)
    return sum(1 for session in sessions if start <= as_date(session.date) <= end)


def is_week_full(sessions: Iterable[SelectedSession], day: date | str, sessions_per_week: int) -> bool:
    return sessions_in_week(sessions, day) >= sessions_per_week


def is_selected(sessions: Iterable[SelectedSession], date_str: str, time_str: str) -> bool:
    return any(s.date == date_str and s.time == time_str for s in sessions)


def _same_slot(candidate: SelectedSession, booked: BookedSlot) -> bool:
    if candidate.starts_at_utc and booked.starts_at_utc:
        try:
            return parse_instant(candidate.starts_at_utc) == parse_instant(booked.starts_at_utc)
        except (ValueError, OverflowError):
            pass
    return candidate.date == booked.date and candidate.time == booked.time


def is_slot_booked(candidate: SelectedSession, booked: Iterable[BookedSlot]) -> bool:
    return any(_same_slot(candidate, slot) for slot in booked)


def toggle_session(
    sessions: Sequence[SelectedSession],
    candidate: SelectedSession,
    max_sessions: int,
    sessions_per_week: int,
    booked: Iterable[BookedSlot] = (),
) -> ToggleResult:
    for index, existing in enumerate(sessions):
        if existing.date == candidate.date and existing.time == candidate.time:
            remaining = list(sessions[:index]) + list(sessions[index + 1:])
            return ToggleResult(remaining, accepted=True, removed=True)

    current = list(sessions)
    if is_slot_booked(candidate, booked):
        return ToggleResult(current, accepted=False, message="This time slot is already booked")
    if len(current) >= max_sessions:
        return ToggleResult(
            current,
            accepted=False,
            message=f"You can only select {max_sessions} sessions in total",
        )
    if is_week_full(current, candidate.date, sessions_per_week):
        return ToggleResult(
            current,
            accepted=False,
            message=f"Week limit reached ({sessions_per_week} sessions max)",
        )
    return ToggleResult(current + [candidate], accepted=True)


def slot_views(
    slots: Iterable[Slot],
    sessions: Sequence[SelectedSession],
    booked: Sequence[BookedSlot],
    sessions_per_week: int,
) -> list[SlotView]:
    views: list[SlotView] = []
    for slot in slots:
        candidate = SelectedSession(slot.user_date, slot.user_time, slot.starts_at_utc)
        selected = is_selected(sessions, slot.user_date, slot.user_time)
        taken = is_slot_booked(candidate, booked)
        week_full = not selected and is_week_full(sessions, slot.user_date, sessions_per_week)
        if taken:
            reason = "This time slot is already booked"
        elif week_full:
            reason = f"Week limit reached ({sessions_per_week} sessions max)"
        else:
            reason = ""
        views.append(SlotView(slot, selected=selected, booked=taken, week_full=week_full, reason=reason))
    return views


def month_calendar(
    year: int,
    month: int,
    sessions: Sequence[SelectedSession],
    sessions_per_week: int,
    selected_date: str | None = None,
    today: date | None = None,
) -> MonthCalendar:
    today = today or date.today()
    # Today is never bookable.
    minimum = today + timedelta(days=1)
    first = date(year, month, 1)
    result = MonthCalendar(
        year=year,
        month=month,
        label=first.strftime("%B %Y"),
        leading_blanks=(first.weekday() + 1) % 7,
    )
    for number in range(1, calendar.monthrange(year, month)[1] + 1):
        day = date(year, month, number)
        iso = day.isoformat()
        past = day < minimum
        selected = any(s.date == iso for s in sessions)
        count = sessions_in_week(sessions, day)
        week_full = count >= sessions_per_week and not selected
        if past:
            title = "Past date - cannot book"
        elif week_full:
            title = f"Week full ({count}/{sessions_per_week} sessions used)"
        elif selected:
            title = "Has booked sessions"
        else:
            title = "Available for booking"
        result.days.append(
            CalendarDay(
                date=iso,
                day=number,
                past=past,
                selected=selected,
                current=selected_date == iso,
                week_full=week_full,
                sessions_in_week=count,
                title=title,
            )
        )
    return result


def shift_month(year: int, month: int, direction: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + direction
    return index // 12, index % 12 + 1


def format_week_range(day: date | str) -> str:
    start, end = week_bounds(day)
    if start.month == end.month:
        return f"{MONTH_ABBR[start.month - 1]} {start.day} - {end.day}"
    return f"{MONTH_ABBR[start.month - 1]} {start.day} - {MONTH_ABBR[end.month - 1]} {end.day}"


def reconcile(
    sessions: Iterable[SelectedSession], booked: Sequence[BookedSlot]
) -> tuple[list[SelectedSession], list[SelectedSession]]:
    free: list[SelectedSession] = []
    conflicts: list[SelectedSession] = []
    for session in sessions:
        (conflicts if is_slot_booked(session, booked) else free).append(session)
    return free, conflicts


def describe_session(session: SelectedSession) -> str:
    day = as_date(session.date)
    hour, minute = (int(part) for part in session.time.split(":"))
    return f"{day.strftime('%a %b %d, %Y')} at {format_time(hour, minute)}"


def normalize_date_time(date_str: str, time_str: str) -> tuple[str, str]:
    # Parse flexible inputs and normalize to ISO date + 24h time.
    try:
        parsed_date = date_parser.parse(date_str, fuzzy=True).date()
        parsed_time = date_parser.parse(time_str, fuzzy=True).time()
    except (ValueError, OverflowError, TypeError) as exc:
        raise ValueError("invalid datetime") from exc
    return parsed_date.isoformat(), parsed_time.strftime("%H:%M")
