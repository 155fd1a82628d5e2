# slotbook/calendar.py
"""
Weekly working hours of a business.

Stored on the business profile as the ``work_days`` JSON document::

    {"monday": {"start": "09:00", "end": "17:00"}, "saturday": {...}}

A weekday missing from the document is a closed day.
"""

from dataclasses import dataclass, field
from datetime import date as Date, datetime, time
from typing import Any, Dict, Mapping, Optional

from slotbook.errors import ValidationError

# index matches date.weekday(): 0 = Monday ... 6 = Sunday
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def weekday_name(day: Date) -> str:
    return WEEKDAYS[day.weekday()]


def _parse_time(value: Any) -> time:
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        for fmt in ("%H:%M", "%H:%M:%S"):
            try:
                return datetime.strptime(value.strip(), fmt).time()
            except ValueError:
                continue
    raise ValidationError(f"Invalid time of day: {value!r}")


@dataclass(frozen=True)
class WorkingWindow:
    open: time
    close: time

    def __post_init__(self):
        if self.open >= self.close:
            raise ValidationError("Opening time must be before closing time")

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.open.strftime("%H:%M"), "end": self.close.strftime("%H:%M")}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WorkingWindow":
        start = data.get("start", data.get("open"))
        end = data.get("end", data.get("close"))
        if start is None or end is None:
            raise ValidationError("Working window needs both a start and an end time")
        return cls(open=_parse_time(start), close=_parse_time(end))


@dataclass(frozen=True)
class WorkingHoursCalendar:
    windows: Mapping[str, WorkingWindow] = field(default_factory=dict)

    def __post_init__(self):
        unknown = set(self.windows) - set(WEEKDAYS)
        if unknown:
            raise ValidationError(f"Unknown weekday(s): {', '.join(sorted(unknown))}")

    def window_for(self, day: Date) -> Optional[WorkingWindow]:
        return self.windows.get(weekday_name(day))

    def is_open(self, day: Date) -> bool:
        return self.window_for(day) is not None

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {name: self.windows[name].to_dict() for name in WEEKDAYS if name in self.windows}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "WorkingHoursCalendar":
        if not data:
            return cls()
        windows = {}
        for name, window in data.items():
            # null entries are closed days
            if window is None:
                continue
            windows[name.strip().lower()] = WorkingWindow.from_dict(window)
        return cls(windows=windows)
