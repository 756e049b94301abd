from datetime import datetime, timedelta, timezone

import pytest

from dates import (
    as_utc, calendar_days, combine_date_time, days_in_month, first_weekday_of_month,
    format_date, format_time, time_ago, to_naive_utc
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_naive_round_trip():
    aware = datetime(2024, 5, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))

    naive = to_naive_utc(aware)

    assert naive == datetime(2024, 5, 1, 12, 0)
    assert as_utc(naive) == NOW


def test_combine_date_time_defaults_to_utc():
    assert combine_date_time("2024-05-01", "12:00") == NOW


def test_combine_date_time_in_named_zone():
    zoneinfo = pytest.importorskip("zoneinfo")
    try:
        zoneinfo.ZoneInfo("Europe/Berlin")
    except zoneinfo.ZoneInfoNotFoundError:
        pytest.skip("no time zone database")

    combined = combine_date_time("2024-05-01", "14:00", "Europe/Berlin")

    assert combined.astimezone(timezone.utc) == NOW


@pytest.mark.parametrize("value,expected", [
    ("2024-05-01", "May 1, 2024"),
    ("2023-12-25", "December 25, 2023"),
])
def test_format_date(value, expected):
    assert format_date(value) == expected


@pytest.mark.parametrize("value,expected", [
    ("00:05", "12:05 AM"),
    ("09:30", "9:30 AM"),
    ("12:00", "12:00 PM"),
    ("23:59", "11:59 PM"),
    ("", ""),
])
def test_format_time(value, expected):
    assert format_time(value) == expected


def test_month_helpers():
    assert days_in_month(2024, 2) == 29
    assert days_in_month(2023, 2) == 28
    # 1 May 2024 was a Wednesday
    assert first_weekday_of_month(2024, 5) == 3
    # 1 September 2024 was a Sunday
    assert first_weekday_of_month(2024, 9) == 0


def test_calendar_grid_for_may_2024():
    cells = calendar_days(2024, 5)

    assert len(cells) == 35
    assert cells[:3] == [(28, False), (29, False), (30, False)]
    assert cells[3] == (1, True)
    assert cells[33] == (31, True)
    assert cells[34] == (1, False)
    assert sum(1 for _, in_month in cells if in_month) == 31


def test_calendar_grid_across_new_year():
    cells = calendar_days(2024, 1)

    # 1 January 2024 was a Monday: one trailing day of December
    assert cells[0] == (31, False)
    assert len(cells) % 7 == 0


@pytest.mark.parametrize("delta,expected", [
    (timedelta(seconds=2), "just now"),
    (timedelta(seconds=30), "30 seconds ago"),
    (timedelta(minutes=1), "1 minute ago"),
    (timedelta(minutes=45), "45 minutes ago"),
    (timedelta(hours=1), "1 hour ago"),
    (timedelta(hours=5), "5 hours ago"),
    (timedelta(days=1), "1 day ago"),
    (timedelta(days=12), "12 days ago"),
])
def test_time_ago(delta, expected):
    assert time_ago(NOW - delta, now=NOW) == expected


def test_time_ago_accepts_iso_strings():
    assert time_ago("2024-05-01T11:00:00Z", now=NOW) == "1 hour ago"
    assert time_ago("yesterday", now=NOW) == "Invalid date"
