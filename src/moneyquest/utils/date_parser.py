"""Date parsing and calendar helpers."""

import re
from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from dateutil import parser as date_parser
from dateutil import tz
from dateutil.relativedelta import relativedelta

_DMY_RE = re.compile(r"^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2}|\d{4})$")
_ISO_RE = re.compile(r"^(\d{4})[/\-](\d{1,2})[/\-](\d{1,2})$")


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a user supplied date string into a date object.

    Supports ISO dates, day-first statement dates and a few relative forms:
    "today", "yesterday", "tomorrow", "this month", "last month", "this week",
    "last week".

    Args:
        date_str: Date string
        today: Reference day for relative forms (defaults to date.today())

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = today or date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
        "this week": week_start(today),
        "last week": week_start(today) - timedelta(days=7),
        "this month": today.replace(day=1),
        "last month": (today - relativedelta(months=1)).replace(day=1),
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    statement_date = parse_statement_date(date_str)
    if statement_date is not None:
        return statement_date

    try:
        return date_parser.parse(date_str, dayfirst=True).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_statement_date(value: str) -> Optional[date]:
    """Parse a bank statement date.

    Accepts DD/MM/YYYY, DD-MM-YYYY, DD.MM.YYYY (two digit years above 50 are
    19xx, the rest 20xx) and YYYY-MM-DD. Returns None when the value is not one
    of these formats or names an impossible day.
    """
    cleaned = value.strip()
    try:
        match = _DMY_RE.match(cleaned)
        if match:
            day, month, year = (int(g) for g in match.groups())
            if len(match.group(3)) == 2:
                year += 1900 if year > 50 else 2000
            return date(year, month, day)

        match = _ISO_RE.match(cleaned)
        if match:
            year, month, day = (int(g) for g in match.groups())
            return date(year, month, day)
    except ValueError:
        return None
    return None


def looks_like_statement_date(value: str) -> bool:
    """Return True if value has the shape of a day-first statement date."""
    return bool(_DMY_RE.match(value.strip()))


def local_date(moment: datetime, zone: Optional[tzinfo] = None) -> date:
    """Calendar day of a stored timestamp in the local (or given) timezone.

    Naive timestamps are UTC, which is how the database stores them.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=tz.UTC)
    return moment.astimezone(zone or tz.tzlocal()).date()


def add_months(start: date, months: int) -> date:
    """Add calendar months, clamping to the last day of shorter months."""
    return start + relativedelta(months=months)


def week_start(day: date) -> date:
    """Monday of the week containing day."""
    return day - timedelta(days=day.weekday())


def period_bounds(period: str, today: date) -> tuple[date, date]:
    """Return the (start, end) window of a quest period containing today.

    Args:
        period: "daily", "weekly" (Monday to Sunday) or "monthly"
        today: Reference day

    Raises:
        ValueError: If period is not recognized
    """
    if period == "daily":
        return (today, today)
    if period == "weekly":
        start = week_start(today)
        return (start, start + timedelta(days=6))
    if period == "monthly":
        start = today.replace(day=1)
        return (start, start + relativedelta(months=1) - timedelta(days=1))
    raise ValueError(f"Unknown period: '{period}'")


def get_date_range(period: str, today: Optional[date] = None) -> tuple[date, date]:
    """Get start and end dates for a reporting period.

    Args:
        period: this-month, this-week, this-year, last-month, last-week
        today: Reference day (defaults to date.today())

    Returns:
        Tuple of (start_date, end_date)

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = today or date.today()

    if period == "this-month":
        return (today.replace(day=1), today)
    if period == "this-week":
        return (week_start(today), today)
    if period == "this-year":
        return (today.replace(month=1, day=1), today)
    if period == "last-month":
        first_of_month = today.replace(day=1)
        return (first_of_month - relativedelta(months=1), first_of_month - timedelta(days=1))
    if period == "last-week":
        start = week_start(today) - timedelta(days=7)
        return (start, start + timedelta(days=6))
    raise ValueError(
        f"Unknown period: '{period}'. Supported periods: this-month, this-week, "
        "this-year, last-month, last-week"
    )
