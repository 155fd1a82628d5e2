# slotbook/core.py

import math
from datetime import datetime, timedelta
from typing import List

HOUR = timedelta(hours=1)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    # half-open [start, end): back-to-back intervals do not overlap
    return a_start < b_end and a_end > b_start


def hours_needed(duration_minutes: int) -> int:
    return math.ceil(duration_minutes / 60)


def floor_to_hour(moment: datetime) -> datetime:
    return moment.replace(minute=0, second=0, microsecond=0)


def hours_touched(start: datetime, end: datetime) -> List[datetime]:
    """Whole-hour starts h for which [h, h+1) overlaps [start, end)."""
    hours = []
    current = floor_to_hour(start)
    while current < end:
        hours.append(current)
        current += HOUR
    return hours


def local_naive(moment: datetime) -> datetime:
    # stored times are naive local wall-clock times
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)
