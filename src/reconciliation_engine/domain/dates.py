"""Date normalization for financial documents.

Documents carry dates as text in one of two formats:

- ``DD.MM.YYYY`` - canonical persisted/display form for payroll dates
- ``YYYY-MM-DD`` - ISO form used for invoice issue/due dates and timesheets

Parsing never raises. Callers treat ``None`` as "skip this record".
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def parse_date(value: str | date | None) -> date | None:
    """Parse a ``DD.MM.YYYY`` or ISO date string into a calendar date.

    The dot-delimited form is tried first. Anything else goes through ISO
    parsing, which also admits full timestamps (``2025-03-01T09:00:00Z``);
    the time component is dropped.

    Returns:
        The parsed date, or None if the text is empty or unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = value.strip()
    if not text:
        return None

    if "." in text:
        parts = text.split(".")
        if len(parts) == 3:
            try:
                day, month, year = (int(p) for p in parts)
                return date(year, month, day)
            except ValueError:
                return None

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def format_date(value: date) -> str:
    """Format a date as ``DD.MM.YYYY``."""
    return f"{value.day:02d}.{value.month:02d}.{value.year:04d}"


def format_iso(value: date) -> str:
    """Format a date as ``YYYY-MM-DD``."""
    return value.isoformat()


def first_of_next_month(value: date) -> date:
    """First day of the month following ``value``'s month."""
    if value.month == 12:
        return date(value.year + 1, 1, 1)
    return date(value.year, value.month + 1, 1)


def month_name(value: date) -> str:
    """English month name of a date."""
    return MONTH_NAMES[value.month - 1]


def in_month(value: date, year: int, month: int) -> bool:
    """Check whether a date falls inside the given calendar month."""
    return value.year == year and value.month == month


def calculate_payment_date(work_date: str | date, cycle_days: int = 45) -> date | None:
    """Payment due date: work date plus the payment cycle.

    Example: work starting 1 November with a 45 day cycle is due
    16 December.
    """
    start = parse_date(work_date)
    if start is None:
        return None
    return start + timedelta(days=cycle_days)
