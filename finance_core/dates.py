"""
Date Arithmetic Module

Calendar math for installment schedules: period addition with end-of-month
clamping, day counts, and the DD-MM-YYYY text form used throughout the app.
"""

from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
import calendar
import re

from .exceptions import ParseError


class InstallmentFrequency(Enum):
    """Repayment frequency options"""
    WEEKLY = "weekly"          # 52 payments per year
    BIWEEKLY = "biweekly"      # 26 payments per year
    MONTHLY = "monthly"        # 12 payments per year
    QUARTERLY = "quarterly"    # 4 payments per year
    YEARLY = "yearly"          # 1 payment per year

    @property
    def periods_per_year(self) -> int:
        return {
            InstallmentFrequency.WEEKLY: 52,
            InstallmentFrequency.BIWEEKLY: 26,
            InstallmentFrequency.MONTHLY: 12,
            InstallmentFrequency.QUARTERLY: 4,
            InstallmentFrequency.YEARLY: 1,
        }[self]

    @property
    def period_years(self) -> Decimal:
        """Length of one period expressed in years"""
        return Decimal('1') / Decimal(self.periods_per_year)


_DATE_PATTERN = re.compile(r"^([0-9]{1,2})-([0-9]{1,2})-([0-9]{4})$")


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, clamping the day to the target month's last day"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def add_years(start_date: date, years: int) -> date:
    """Add calendar years; Feb 29 becomes Feb 28 in non-leap target years"""
    year = start_date.year + years
    day = start_date.day
    if start_date.month == 2 and day == 29 and not calendar.isleap(year):
        day = 28
    return date(year, start_date.month, day)


def add_period(start_date: date, frequency: InstallmentFrequency, count: int = 1) -> date:
    """
    Advance a date by `count` periods of `frequency`

    Args:
        start_date: Anchor date
        frequency: Period length
        count: Number of periods (may be zero or negative)

    Returns:
        The shifted date
    """
    frequency = InstallmentFrequency(frequency)

    if frequency == InstallmentFrequency.WEEKLY:
        return start_date + timedelta(days=7 * count)
    elif frequency == InstallmentFrequency.BIWEEKLY:
        return start_date + timedelta(days=14 * count)
    elif frequency == InstallmentFrequency.MONTHLY:
        return add_months(start_date, count)
    elif frequency == InstallmentFrequency.QUARTERLY:
        return add_months(start_date, 3 * count)
    elif frequency == InstallmentFrequency.YEARLY:
        return add_years(start_date, count)
    else:
        raise ValueError(f"Unsupported installment frequency: {frequency}")


def days_between(start: date, end: date) -> int:
    """Signed day count, end - start"""
    return (end - start).days


def days_until(target: date, as_of: date) -> int:
    return days_between(as_of, target)


def is_overdue(due_date: date, as_of: date) -> bool:
    return as_of > due_date


def parse_date(value: str) -> date:
    """
    Parse the DD-MM-YYYY text form

    Raises:
        ParseError: On wrong segment count, non-numeric segments or an
            impossible calendar date
    """
    if not isinstance(value, str):
        raise ParseError(f"Expected a DD-MM-YYYY string, got {type(value).__name__}")

    parts = value.strip().split("-")
    if len(parts) != 3:
        raise ParseError(f"Invalid date '{value}': expected DD-MM-YYYY")

    match = _DATE_PATTERN.match(value.strip())
    if not match:
        raise ParseError(f"Invalid date '{value}': day, month and year must be numeric")

    day, month, year = (int(part) for part in match.groups())
    if not 1 <= month <= 12:
        raise ParseError(f"Invalid date '{value}': month {month} out of range")
    if year < 1 or not 1 <= day <= calendar.monthrange(year, month)[1]:
        raise ParseError(f"Invalid date '{value}': day {day} out of range")

    return date(year, month, day)


def format_date(value: date) -> str:
    """Format as DD-MM-YYYY, always 10 characters"""
    return f"{value.day:02d}-{value.month:02d}-{value.year:04d}"


def format_date_short(value: date) -> str:
    return f"{value.day:02d}-{value.month:02d}"


def month_key(value: date) -> str:
    """Sortable calendar-month bucket, e.g. 2024-01"""
    return f"{value.year:04d}-{value.month:02d}"


def month_label(value: date) -> str:
    """Display name of the calendar month, e.g. January 2024"""
    return f"{calendar.month_name[value.month]} {value.year}"
