from datetime import date, datetime, time, timedelta, timezone

from bayan_booking.scheduling import slots
from bayan_booking.scheduling.slots import (
    FULL_DAY_WINDOW,
    WORKING_WINDOW,
    cairo_to_utc,
    cairo_utc_offset,
    convert_utc_to_user_time,
    format_time,
    parse_instant,
    provider_slot_times,
    resolve_timezone,
    session_utc,
    to_utc_iso,
    utc_to_cairo,
    working_slots_for_user,
)


def test_offset_heuristic_uses_summer_months():
    assert cairo_utc_offset(date(2024, 1, 15)) == timedelta(hours=2)
    assert cairo_utc_offset(date(2024, 4, 1)) == timedelta(hours=3)
    assert cairo_utc_offset(date(2024, 10, 31)) == timedelta(hours=3)
    assert cairo_utc_offset(date(2024, 11, 1)) == timedelta(hours=2)


def test_exact_offset_reads_zone_database():
    assert cairo_utc_offset(date(2024, 1, 15), exact=True) == timedelta(hours=2)
    assert cairo_utc_offset(date(2024, 7, 15), exact=True) == timedelta(hours=3)


def test_provider_slot_times_cover_working_day():
    times = provider_slot_times(WORKING_WINDOW.start, WORKING_WINDOW.end)
    assert len(times) == 24
    assert times[0] == time(8, 0)
    assert times[-1] == time(19, 30)
    assert len(provider_slot_times(FULL_DAY_WINDOW.start, FULL_DAY_WINDOW.end)) == 48


def test_cairo_to_utc_subtracts_offset():
    assert cairo_to_utc(date(2024, 1, 15), time(8, 0)) == datetime(2024, 1, 15, 6, 0, tzinfo=timezone.utc)
    assert cairo_to_utc(date(2024, 7, 10), time(8, 0)) == datetime(2024, 7, 10, 5, 0, tzinfo=timezone.utc)


def test_exact_cairo_to_utc_follows_egyptian_summer_time():
    # Egypt moved to summer time on 2024-04-26.
    assert cairo_to_utc(date(2024, 4, 25), time(8, 0), exact=True) == datetime(2024, 4, 25, 6, 0, tzinfo=timezone.utc)
    assert cairo_to_utc(date(2024, 4, 26), time(8, 0), exact=True) == datetime(2024, 4, 26, 5, 0, tzinfo=timezone.utc)
    assert cairo_to_utc(date(2024, 4, 25), time(8, 0)) == datetime(2024, 4, 25, 5, 0, tzinfo=timezone.utc)


def test_utc_to_cairo_inverts_the_same_offset():
    instant = cairo_to_utc(date(2024, 4, 7), time(8, 0))
    assert utc_to_cairo(instant, exact=False) == datetime(2024, 4, 7, 8, 0)
    assert utc_to_cairo(datetime(2024, 1, 15, 17, 30, tzinfo=timezone.utc), exact=False) == datetime(2024, 1, 15, 19, 30)
    assert utc_to_cairo(datetime(2024, 7, 15, 5, 0, tzinfo=timezone.utc), exact=True) == datetime(2024, 7, 15, 8, 0)

def test_to_utc_iso_has_millisecond_z_suffix():
    instant = datetime(2024, 1, 15, 6, 0, 5, 123456, tzinfo=timezone.utc)
    assert to_utc_iso(instant) == "2024-01-15T06:00:05.123Z"


def test_parse_instant_treats_naive_values_as_utc():
    assert parse_instant("2024-01-15T06:00:00") == datetime(2024, 1, 15, 6, 0, tzinfo=timezone.utc)
    assert parse_instant("2024-01-15T08:00:00+02:00") == datetime(2024, 1, 15, 6, 0, tzinfo=timezone.utc)


def test_working_slots_in_cairo_match_wall_clock():
    result = working_slots_for_user("2024-01-15", "Africa/Cairo", window=WORKING_WINDOW, exact=False)
    assert len(result) == 24
    first = result[0]
    assert first.cairo_time == "08:00"
    assert first.user_time == "08:00"
    assert first.starts_at_utc == "2024-01-15T06:00:00.000Z"
    assert first.display == "8:00 AM"


def test_working_slots_convert_to_viewer_zone():
    result = working_slots_for_user(date(2024, 1, 15), "America/New_York", window=WORKING_WINDOW, exact=False)
    assert [s.user_time for s in result[:2]] == ["01:00", "01:30"]
    assert result[-1].user_time == "12:30"
    assert result[-1].cairo_display == "7:30 PM"
    assert all(s.user_date == "2024-01-15" for s in result)


def test_summer_slots_use_three_hour_offset():
    result = working_slots_for_user(date(2024, 7, 10), "Asia/Tokyo", window=WORKING_WINDOW, exact=False)
    assert result[0].starts_at_utc == "2024-07-10T05:00:00.000Z"
    assert result[0].user_time == "14:00"


def test_full_day_slots_can_fall_on_previous_viewer_date():
    result = working_slots_for_user(date(2024, 1, 15), "America/New_York", window=FULL_DAY_WINDOW, exact=False)
    assert len(result) == 48
    assert result[0].user_date == "2024-01-14"
    assert result[0].user_time == "17:00"
    assert [s.starts_at_utc for s in result] == sorted(s.starts_at_utc for s in result)


def test_repeated_viewer_hour_keeps_first_instant():
    # New York falls back on 2024-11-03, so 01:00 and 01:30 happen twice.
    result = working_slots_for_user(date(2024, 11, 3), "America/New_York", window=FULL_DAY_WINDOW, exact=False)
    keys = [(s.user_date, s.user_time) for s in result]
    assert len(result) == 46
    assert len(set(keys)) == 46
    one_am = next(s for s in result if s.user_time == "01:00")
    assert one_am.starts_at_utc == "2024-11-03T05:00:00.000Z"
    assert one_am.cairo_time == "07:00"

def test_configured_window_follows_settings(monkeypatch):
    monkeypatch.setattr(slots.settings, "slot_window", "full_day")
    assert len(working_slots_for_user(date(2024, 1, 15), "UTC", exact=False)) == 48


def test_unknown_timezone_falls_back_to_default():
    assert resolve_timezone("Not/AZone") == slots.settings.default_timezone
    assert resolve_timezone(None) == slots.settings.default_timezone
    assert resolve_timezone("Europe/London") == "Europe/London"


def test_convert_utc_to_user_time():
    assert convert_utc_to_user_time("2024-01-15T06:00:00.000Z", "Asia/Dubai") == "10:00"
    assert convert_utc_to_user_time("garbage", "Asia/Dubai") == "00:00"
    assert convert_utc_to_user_time("2024-01-15T06:00:00.000Z", "Nowhere/Zone") == "00:00"


def test_session_utc_from_viewer_local_pair():
    assert session_utc("2024-01-15", "01:00", "America/New_York") == "2024-01-15T06:00:00.000Z"


def test_format_time_twelve_hour_clock():
    assert format_time(0, 0) == "12:00 AM"
    assert format_time(12, 30) == "12:30 PM"
    assert format_time(19, 30) == "7:30 PM"

