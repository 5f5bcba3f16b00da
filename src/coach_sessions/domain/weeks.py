"""ISO-8601 week keys."""

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True, order=True)
class WeekKey:
    """Calendar week identifier, ordered by year then week number."""

    year: int
    week: int

    def __str__(self) -> str:
        return f"{self.year}-W{self.week:02d}"


def week_key(day: date | datetime) -> WeekKey:
    """Return the ISO week containing a day.

    The week belongs to the year of its Thursday, so late-December days can
    fall in week 1 of the next year and early-January days in week 52 or 53
    of the previous one.
    """
    if isinstance(day, datetime):
        day = day.date()
    iso_year, iso_week, _ = day.isocalendar()
    return WeekKey(year=iso_year, week=iso_week)
