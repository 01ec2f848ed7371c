"""
Time Window Helpers
===================

The reading queries use three kinds of windows:

- trailing:  [now - N months, now], exact bounds, no snapping
- hour:      [top of the hour, top of the next hour] in UTC
- day range: [start day 00:00:00.000, end day 23:59:59.999] in server-local time

All functions take and return naive UTC datetimes, which is how MongoDB
stores dates.
"""

import math
from datetime import datetime, time, timedelta, timezone


def subtract_months(moment: datetime, months: int) -> datetime:
    """
    Go back a number of calendar months.

    A day past the end of the target month rolls over into the next month
    (31 July minus 5 months is "31 February", i.e. 2 March in a leap year).
    """
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month = divmod(month_index, 12)
    first_of_month = moment.replace(year=year, month=month + 1, day=1)
    return first_of_month + timedelta(days=moment.day - 1)


def trailing_months_window(now: datetime, months: int) -> tuple[datetime, datetime]:
    """Window covering the last `months` months up to `now`."""
    return subtract_months(now, months), now


def hour_bucket(moment: datetime) -> tuple[datetime, datetime]:
    """One-hour bucket starting at the top of the hour of `moment`."""
    start = moment.replace(minute=0, second=0, microsecond=0)
    return start, start + timedelta(hours=1)


def local_day_range(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    """
    Snap a range to whole days in the server's local timezone.

    `start` moves back to local midnight, `end` forward to 23:59:59.999
    local. Both are returned as naive UTC.
    """
    local_start = start.replace(tzinfo=timezone.utc).astimezone()
    local_end = end.replace(tzinfo=timezone.utc).astimezone()

    day_start = datetime.combine(local_start.date(), time.min)
    day_end = datetime.combine(local_end.date(), time(23, 59, 59, 999000))

    return (
        day_start.astimezone(timezone.utc).replace(tzinfo=None),
        day_end.astimezone(timezone.utc).replace(tzinfo=None),
    )


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (2.5 -> 3)."""
    return math.floor(value + 0.5)
