"""Tests for date parser with relative and statement dates."""

import pytest
from datetime import date, datetime, timedelta, timezone

from dateutil import tz

from moneyquest.utils.date_parser import (
    add_months,
    get_date_range,
    local_date,
    parse_date,
    parse_statement_date,
    period_bounds,
    week_start,
)

TODAY = date(2024, 3, 13)  # a Wednesday


def test_parse_absolute_date():
    """Test parsing absolute dates."""
    assert parse_date("2024-01-15") == date(2024, 1, 15)


def test_parse_day_first_date():
    """Statement style dates are day first."""
    assert parse_date("05/03/2024") == date(2024, 3, 5)


def test_parse_today():
    """Test parsing 'today'."""
    assert parse_date("today") == date.today()


def test_parse_relative_dates():
    assert parse_date("yesterday", today=TODAY) == TODAY - timedelta(days=1)
    assert parse_date("tomorrow", today=TODAY) == TODAY + timedelta(days=1)
    assert parse_date("this week", today=TODAY) == date(2024, 3, 11)
    assert parse_date("last week", today=TODAY) == date(2024, 3, 4)
    assert parse_date("this month", today=TODAY) == date(2024, 3, 1)
    assert parse_date("Last Month", today=TODAY) == date(2024, 2, 1)


def test_parse_invalid_date():
    """Test parsing invalid date."""
    with pytest.raises(ValueError):
        parse_date("not a date")


@pytest.mark.parametrize(
    "value,expected",
    [
        ("15/01/2024", date(2024, 1, 15)),
        ("15-01-2024", date(2024, 1, 15)),
        ("15.01.2024", date(2024, 1, 15)),
        ("1/2/2024", date(2024, 2, 1)),
        ("15/01/24", date(2024, 1, 15)),
        ("15/01/99", date(1999, 1, 15)),
        ("2024-01-15", date(2024, 1, 15)),
        (" 2024/01/15 ", date(2024, 1, 15)),
    ],
)
def test_parse_statement_date(value, expected):
    assert parse_statement_date(value) == expected


@pytest.mark.parametrize("value", ["31/02/2024", "2024-13-01", "Jan 15 2024", "", "15/01"])
def test_parse_statement_date_rejects(value):
    assert parse_statement_date(value) is None


def test_add_months_clamps_to_month_end():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2024, 1, 10), 12) == date(2025, 1, 10)


def test_week_start_is_monday():
    assert week_start(TODAY) == date(2024, 3, 11)
    assert week_start(date(2024, 3, 11)) == date(2024, 3, 11)


def test_period_bounds():
    assert period_bounds("daily", TODAY) == (TODAY, TODAY)
    assert period_bounds("weekly", TODAY) == (date(2024, 3, 11), date(2024, 3, 17))
    assert period_bounds("monthly", TODAY) == (date(2024, 3, 1), date(2024, 3, 31))
    with pytest.raises(ValueError):
        period_bounds("yearly", TODAY)


def test_get_date_range():
    assert get_date_range("this-month", TODAY) == (date(2024, 3, 1), TODAY)
    assert get_date_range("last-month", TODAY) == (date(2024, 2, 1), date(2024, 2, 29))
    assert get_date_range("last-week", TODAY) == (date(2024, 3, 4), date(2024, 3, 10))
    with pytest.raises(ValueError, match="Unknown period"):
        get_date_range("next-decade", TODAY)


def test_local_date_uses_the_local_calendar_day():
    sao_paulo = tz.tzoffset("BRT", -3 * 3600)
    just_after_midnight_utc = datetime(2024, 1, 15, 1, 30)

    assert local_date(just_after_midnight_utc, sao_paulo) == date(2024, 1, 14)
    assert local_date(just_after_midnight_utc.replace(tzinfo=timezone.utc), sao_paulo) == date(2024, 1, 14)
    assert local_date(datetime(2024, 1, 15, 12, 0), sao_paulo) == date(2024, 1, 15)
