"""Find the calendar gaps in stored data for a requested date interval."""

import collections.abc
import datetime
from typing import NamedTuple

ONE_DAY = datetime.timedelta(days=1)


class DateRange(NamedTuple):
    """An inclusive, contiguous run of calendar dates."""

    start: datetime.date
    end: datetime.date

    @property
    def days(self) -> int:
        """Number of dates covered, counting both ends."""
        return day_count(self.start, self.end)


def day_count(start: datetime.date, end: datetime.date) -> int:
    """Inclusive number of days between start and end."""
    return (end - start).days + 1


def iter_dates(
    start: datetime.date, end: datetime.date
) -> collections.abc.Iterator[datetime.date]:
    """Yield every date from start to end inclusive, ascending."""
    current = start
    while current <= end:
        yield current
        current += ONE_DAY


def missing_ranges(
    start: datetime.date,
    end: datetime.date,
    existing_dates: collections.abc.Container[datetime.date],
) -> list[DateRange]:
    """Compute the maximal contiguous runs of dates with no stored data.

    Walks the interval day by day. A range opens on the first absent date
    and closes on the day before the next present date; a range still open
    at the end of the walk closes at ``end``.

    Args:
        start: First requested date.
        end: Last requested date (inclusive).
        existing_dates: Dates that already have a stored record.

    Returns:
        Disjoint ranges sorted ascending whose union, together with the
        existing dates inside the interval, is exactly ``[start, end]``.
    """
    ranges: list[DateRange] = []
    range_start: datetime.date | None = None

    for day in iter_dates(start, end):
        if day in existing_dates:
            if range_start is not None:
                ranges.append(DateRange(range_start, day - ONE_DAY))
                range_start = None
        elif range_start is None:
            range_start = day

    if range_start is not None:
        ranges.append(DateRange(range_start, end))

    return ranges
