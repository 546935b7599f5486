"""
Certificate Periods
Half-year windows used for bi-annual seminar certificates
"""

from datetime import date, datetime, timezone
from typing import Tuple

from app.exceptions import ValidationError

FIRST_HALF = "first_half"
SECOND_HALF = "second_half"
PERIODS = (FIRST_HALF, SECOND_HALF)

PERIOD_LABELS = {
    FIRST_HALF: "January - June",
    SECOND_HALF: "July - December",
}

PERIOD_CODES = {
    FIRST_HALF: "H1",
    SECOND_HALF: "H2",
}


def validate_period(period: str) -> str:
    if period not in PERIODS:
        raise ValidationError(
            f"Period must be one of: {', '.join(PERIODS)}",
            period=period,
        )
    return period


def period_dates(period: str, year: int) -> Tuple[date, date]:
    """Inclusive start and exclusive end date of a period"""
    validate_period(period)
    if period == FIRST_HALF:
        return date(year, 1, 1), date(year, 7, 1)
    return date(year, 7, 1), date(year + 1, 1, 1)


def period_bounds(period: str, year: int) -> Tuple[datetime, datetime]:
    """Period window as UTC datetimes, end exclusive"""
    start, end = period_dates(period, year)
    return (
        datetime(start.year, start.month, start.day, tzinfo=timezone.utc),
        datetime(end.year, end.month, end.day, tzinfo=timezone.utc),
    )


def period_display(period: str, year: int) -> str:
    """Human label, e.g. 'January - June 2026'"""
    validate_period(period)
    return f"{PERIOD_LABELS[period]} {year}"


def period_for_date(day: date) -> Tuple[str, int]:
    """
    Period a date falls in

    The scheduled run happens on the last day of June and December, so the
    period containing the run date is the one being certified.
    """
    return (FIRST_HALF if day.month <= 6 else SECOND_HALF), day.year
