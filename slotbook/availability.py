# slotbook/availability.py
"""
Availability engine.

Turns a business's working hours, a service duration and the intervals
already booked on a date into the list of hourly slots a client may pick.
Everything here is a pure function of its arguments: no database, no
request state, so every screen and endpoint gets the same answer for the
same input.
"""

from dataclasses import dataclass
from datetime import date as Date, datetime, time, timedelta
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from slotbook.calendar import WorkingHoursCalendar
from slotbook.core import HOUR, hours_needed, overlaps
from slotbook.errors import ValidationError


class SlotStatus(str, Enum):
    available = "available"
    occupied = "occupied"


@dataclass(frozen=True)
class BookedInterval:
    start_time: datetime
    end_time: datetime


@dataclass(frozen=True)
class TimeSlot:
    time: time
    status: SlotStatus

    @property
    def is_available(self) -> bool:
        return self.status == SlotStatus.available


def compute_slots(
    calendar: WorkingHoursCalendar,
    service_duration: int,
    on_date: Date,
    booked: Iterable[BookedInterval],
) -> List[TimeSlot]:
    if service_duration <= 0:
        raise ValidationError("Service duration must be a positive number of minutes")

    # 1) Closed day -> no slots
    window = calendar.window_for(on_date)
    if window is None:
        return []

    booked = list(booked)
    needed = hours_needed(service_duration)
    close_hour = window.close.hour

    # 2) One candidate per whole hour in [open.hour, close.hour)
    slots = []
    for hour in range(window.open.hour, close_hour):
        slot_start = datetime.combine(on_date, time(hour))
        slot_end = slot_start + HOUR

        # 3a) Taken by an existing booking
        taken = any(overlaps(slot_start, slot_end, b.start_time, b.end_time) for b in booked)

        # 3b) Service would run past closing
        too_late = hour + needed > close_hour

        status = SlotStatus.occupied if taken or too_late else SlotStatus.available
        slots.append(TimeSlot(time=time(hour), status=status))

    return slots


def available_slots(slots: Iterable[TimeSlot]) -> List[TimeSlot]:
    return [s for s in slots if s.is_available]


def find_slot(slots: Iterable[TimeSlot], at: time) -> Optional[TimeSlot]:
    for s in slots:
        if s.time == at:
            return s
    return None


def booked_intervals(appointments: Iterable, exclude_id: Optional[int] = None) -> List[BookedInterval]:
    """Anything with ``start_time``/``end_time`` (and optionally ``id``)."""
    return [
        BookedInterval(start_time=a.start_time, end_time=a.end_time)
        for a in appointments
        if exclude_id is None or getattr(a, "id", None) != exclude_id
    ]


def upcoming_open_dates(calendar: WorkingHoursCalendar, start: Date, days: int = 30) -> Sequence[Date]:
    return [
        day
        for day in (start + timedelta(days=offset) for offset in range(days))
        if calendar.is_open(day)
    ]
