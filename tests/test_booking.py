from datetime import date

import pytest

from bayan_booking.scheduling.booking import (
    BookedSlot,
    SelectedSession,
    describe_session,
    format_week_range,
    is_slot_booked,
    is_week_full,
    month_calendar,
    normalize_date_time,
    reconcile,
    sessions_in_week,
    shift_month,
    slot_views,
    toggle_session,
    week_bounds,
)
from bayan_booking.scheduling.slots import WORKING_WINDOW, working_slots_for_user


def test_week_runs_sunday_to_saturday():
    assert week_bounds(date(2024, 1, 17)) == (date(2024, 1, 14), date(2024, 1, 20))
    assert week_bounds("2024-01-14") == (date(2024, 1, 14), date(2024, 1, 20))
    assert week_bounds("2024-01-20") == (date(2024, 1, 14), date(2024, 1, 20))


def test_sessions_in_week_counts_only_that_window():
    sessions = [
        SelectedSession("2024-01-14", "10:00"),
        SelectedSession("2024-01-20", "10:00"),
        SelectedSession("2024-01-21", "10:00"),
    ]
    assert sessions_in_week(sessions, "2024-01-16") == 2
    assert is_week_full(sessions, "2024-01-16", 2)
    assert not is_week_full(sessions, "2024-01-22", 2)


def test_booked_match_prefers_utc_instant():
    candidate = SelectedSession("2024-01-15", "01:00", "2024-01-15T06:00:00.000Z")
    same_instant = BookedSlot("2024-01-15", "08:00", "2024-01-15T06:00:00Z")
    other_instant = BookedSlot("2024-01-15", "01:00", "2024-01-15T07:00:00.000Z")
    assert is_slot_booked(candidate, [same_instant])
    assert not is_slot_booked(candidate, [other_instant])


def test_booked_match_falls_back_to_date_and_time():
    candidate = SelectedSession("2024-01-15", "10:00", "2024-01-15T08:00:00.000Z")
    assert is_slot_booked(candidate, [BookedSlot("2024-01-15", "10:00")])
    assert not is_slot_booked(candidate, [BookedSlot("2024-01-15", "10:30")])


def test_booked_slot_from_api_reads_utc_aliases():
    assert BookedSlot.from_api({"date": "2024-01-15", "time": "10:00", "utcTime": "x"}).starts_at_utc == "x"
    assert BookedSlot.from_api({"date": "2024-01-15", "time": "10:00"}).starts_at_utc is None


def test_toggle_removes_existing_selection():
    sessions = [SelectedSession("2024-01-15", "10:00")]
    result = toggle_session(sessions, SelectedSession("2024-01-15", "10:00"), 8, 2)
    assert result.accepted and result.removed
    assert result.sessions == []


def test_toggle_rejects_booked_slot():
    booked = [BookedSlot("2024-01-15", "10:00")]
    result = toggle_session([], SelectedSession("2024-01-15", "10:00"), 8, 2, booked)
    assert not result.accepted
    assert result.message == "This time slot is already booked"


def test_toggle_enforces_total_before_weekly_limit():
    sessions = [SelectedSession("2024-01-15", "10:00"), SelectedSession("2024-01-16", "10:00")]
    result = toggle_session(sessions, SelectedSession("2024-01-17", "10:00"), 2, 2)
    assert result.message == "You can only select 2 sessions in total"

    result = toggle_session(sessions, SelectedSession("2024-01-17", "10:00"), 8, 2)
    assert result.message == "Week limit reached (2 sessions max)"

    result = toggle_session(sessions, SelectedSession("2024-01-22", "10:00"), 8, 2)
    assert result.accepted
    assert len(result.sessions) == 3


def test_slot_views_flag_booked_and_full_weeks():
    available = working_slots_for_user(date(2024, 1, 17), "Africa/Cairo", window=WORKING_WINDOW, exact=False)
    sessions = [SelectedSession("2024-01-14", "10:00"), SelectedSession("2024-01-17", "08:00")]
    booked = [BookedSlot("2024-01-17", "09:00", "2024-01-17T07:00:00.000Z")]
    views = {v.slot.user_time: v for v in slot_views(available, sessions, booked, 2)}

    assert views["08:00"].selected and not views["08:00"].week_full
    assert views["09:00"].booked
    assert views["09:00"].reason == "This time slot is already booked"
    assert views["10:00"].week_full
    assert views["10:00"].as_dict()["reason"] == "Week limit reached (2 sessions max)"


def test_month_calendar_marks_past_and_full_days():
    sessions = [SelectedSession("2024-02-12", "10:00"), SelectedSession("2024-02-13", "10:00")]
    cal = month_calendar(2024, 2, sessions, 2, selected_date="2024-02-12", today=date(2024, 2, 10))
    days = {d.day: d for d in cal.days}

    assert cal.label == "February 2024"
    assert cal.leading_blanks == 4
    assert len(cal.days) == 29
    assert days[10].past and days[10].title == "Past date - cannot book"
    assert not days[11].past
    assert days[12].selected and days[12].current
    assert days[14].week_full
    assert days[14].title == "Week full (2/2 sessions used)"
    assert days[18].title == "Available for booking"


def test_shift_month_wraps_years():
    assert shift_month(2024, 1, -1) == (2023, 12)
    assert shift_month(2024, 12, 1) == (2025, 1)


def test_format_week_range():
    assert format_week_range(date(2024, 1, 17)) == "Jan 14 - 20"
    assert format_week_range(date(2024, 1, 31)) == "Jan 28 - Feb 3"


def test_reconcile_splits_conflicts():
    sessions = [SelectedSession("2024-01-15", "10:00"), SelectedSession("2024-01-16", "10:00")]
    free, conflicts = reconcile(sessions, [BookedSlot("2024-01-16", "10:00")])
    assert free == [sessions[0]]
    assert conflicts == [sessions[1]]


def test_describe_session():
    assert describe_session(SelectedSession("2024-01-15", "14:30")) == "Mon Jan 15, 2024 at 2:30 PM"


def test_session_payload_uses_api_field_names():
    session = SelectedSession("2024-01-15", "10:00", "2024-01-15T08:00:00.000Z", notes="Gold session")
    assert session.to_api() == {
        "date": "2024-01-15",
        "time": "10:00",
        "notes": "Gold session",
        "startsAtUTC": "2024-01-15T08:00:00.000Z",
    }


def test_normalize_date_time():
    assert normalize_date_time("Jan 5 2024", "3pm") == ("2024-01-05", "15:00")
    with pytest.raises(ValueError):
        normalize_date_time("nonsense", "later")
