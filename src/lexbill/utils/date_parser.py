"""Date parsing utilities."""

from datetime import date, datetime, time, timedelta
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2024-01-15", "January 15, 2024") and relative
    ones: "today", "yesterday", "tomorrow", "last friday", "this week",
    "last week", "this month", "last month".

    Args:
        date_str: Date string in various formats
        today: Reference date for relative dates (default: today)

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
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    if date_str.startswith("last "):
        period = date_str[5:]
        if period == "week":
            # Monday of last week
            return today - timedelta(days=today.weekday() + 7)
        if period == "month":
            return (today - relativedelta(months=1)).replace(day=1)
        if period in WEEKDAYS:
            days_ago = (today.weekday() - WEEKDAYS.index(period)) % 7
            return today - timedelta(days=days_ago or 7)

    elif date_str.startswith("this "):
        period = date_str[5:]
        if period == "week":
            return today - timedelta(days=today.weekday())
        if period == "month":
            return today.replace(day=1)

    try:
        return date_parser.parse(date_str).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_datetime(value: str, now: Optional[datetime] = None) -> datetime:
    """Parse a moment such as "2024-01-06 19:30", "19:30" or "now".

    A bare time is taken on the reference day.

    Args:
        value: Date and/or time string
        now: Reference moment (default: current local time)

    Returns:
        Naive datetime

    Raises:
        ValueError: If the string cannot be parsed
    """
    now = now or datetime.now()
    value = value.strip()
    if value.lower() == "now":
        return now

    try:
        return date_parser.parse(value, default=datetime.combine(now.date(), time()))
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date/time '{value}': {e}")


def get_date_range(period: str, today: Optional[date] = None) -> tuple[date, date]:
    """Get start and end dates for a named period.

    Args:
        period: One of this-week, last-week, this-month, last-month
        today: Reference date (default: today)

    Returns:
        Tuple of (start_date, end_date), both inclusive

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = today or date.today()

    if period == "this-week":
        return (today - timedelta(days=today.weekday()), today)

    if period == "last-week":
        start_date = today - timedelta(days=today.weekday() + 7)
        return (start_date, start_date + timedelta(days=6))

    if period == "this-month":
        return (today.replace(day=1), today)

    if period == "last-month":
        start_date = (today - relativedelta(months=1)).replace(day=1)
        return (start_date, today.replace(day=1) - timedelta(days=1))

    raise ValueError(
        f"Unknown period: '{period}'. Supported periods: this-week, last-week, this-month, last-month"
    )
