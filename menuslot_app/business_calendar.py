"""
Business calendar - opening hours, holidays and arrival-time slots per date.
"""

import logging
from typing import Optional

from .config import DEFAULT_CLOSE_TIME, DEFAULT_OPEN_TIME, SLOT_STEP_MINUTES
from .errors import ReservationError, ValidationError
from .models import BusinessDay, DayHours
from .storage import BUSINESS_DAYS, Storage
from .validation import (
    check_date,
    check_time,
    is_valid_date,
    is_valid_time,
    minutes_to_time,
    time_to_minutes,
)

logger = logging.getLogger(__name__)


class TimeSlots:
    """Arrival times from open (inclusive) to close (exclusive).

    Iterating again starts over, so the same object can be shown and then
    used to check a submitted time.
    """

    def __init__(self, open_time: str, close_time: str, step_minutes: int = SLOT_STEP_MINUTES):
        if step_minutes <= 0:
            raise ValueError("step_minutes must be positive")
        self.open_time = open_time
        self.close_time = close_time
        self.step_minutes = step_minutes
        self._start = time_to_minutes(open_time)
        self._end = time_to_minutes(close_time)

    def __iter__(self):
        current = self._start
        while current < self._end:
            yield minutes_to_time(current)
            current += self.step_minutes

    def __len__(self) -> int:
        if self._start >= self._end:
            return 0
        return -(-(self._end - self._start) // self.step_minutes)

    def __contains__(self, value) -> bool:
        if not isinstance(value, str):
            return False
        try:
            minutes = time_to_minutes(value)
        except ValueError:
            return False
        return (self._start <= minutes < self._end
                and (minutes - self._start) % self.step_minutes == 0)

    def __repr__(self) -> str:
        return f"TimeSlots({self.open_time!r}, {self.close_time!r}, {self.step_minutes})"


def _clock(value, default: str) -> Optional[str]:
    """Stored time as HH:MM. Postgres `time` columns come back as HH:MM:SS.

    Returns the default for an empty column and None for anything unparseable.
    """
    if value is None or value == "":
        return default
    if not isinstance(value, str):
        return None
    value = value[:5]
    return value if is_valid_time(value) else None


def generate_slots(open_time: str, close_time: str, step_minutes: int = SLOT_STEP_MINUTES) -> TimeSlots:
    check_time(open_time)
    check_time(close_time)
    return TimeSlots(open_time, close_time, step_minutes)


class CalendarResolver:
    def __init__(self, storage: Storage):
        self.storage = storage

    def _default(self, date: str) -> DayHours:
        return DayHours(date=date, is_holiday=False,
                        open_time=DEFAULT_OPEN_TIME, close_time=DEFAULT_CLOSE_TIME)

    def resolve_day(self, date: str) -> DayHours:
        """Hours and holiday flag for a date. Never raises; falls back to the defaults."""
        if not is_valid_date(date):
            logger.warning("Invalid date %r, using default hours", date)
            return self._default(date)
        try:
            rows = self.storage.select(BUSINESS_DAYS, {"day": date})
        except ReservationError as e:
            logger.warning("Could not load business day %s, using default hours: %s", date, e)
            return self._default(date)

        if not rows:
            logger.debug("No business day row for %s, using default hours", date)
            return self._default(date)

        day = BusinessDay.from_row(rows[0])
        open_time = _clock(day.open_time, DEFAULT_OPEN_TIME)
        close_time = _clock(day.close_time, DEFAULT_CLOSE_TIME)
        if (open_time is None or close_time is None
                or time_to_minutes(open_time) >= time_to_minutes(close_time)):
            logger.warning("Unusable business hours for %s (%r-%r), using default hours",
                           date, day.open_time, day.close_time)
            open_time, close_time = DEFAULT_OPEN_TIME, DEFAULT_CLOSE_TIME
        return DayHours(date=date, is_holiday=day.holiday,
                        open_time=open_time, close_time=close_time)

    def slots_for(self, hours: DayHours) -> TimeSlots:
        return TimeSlots(hours.open_time, hours.close_time)

    def set_hours(self, date: str, open_time: str, close_time: str) -> BusinessDay:
        check_date(date)
        check_time(open_time)
        check_time(close_time)
        if time_to_minutes(open_time) >= time_to_minutes(close_time):
            raise ValidationError(f"Opening time {open_time} must be before closing time {close_time}")
        row = self.storage.upsert(
            BUSINESS_DAYS,
            {"day": date, "open_time": open_time, "close_time": close_time},
            key="day",
        )
        logger.info("Business hours for %s set to %s-%s", date, open_time, close_time)
        return BusinessDay.from_row(row)

    def set_holiday(self, date: str, is_holiday: bool) -> BusinessDay:
        check_date(date)
        row = self.storage.upsert(BUSINESS_DAYS, {"day": date, "holiday": bool(is_holiday)}, key="day")
        logger.info("Holiday flag for %s set to %s", date, bool(is_holiday))
        return BusinessDay.from_row(row)

    def list_days(self) -> list[BusinessDay]:
        return [BusinessDay.from_row(r) for r in self.storage.select(BUSINESS_DAYS, order_by="day")]

    def holidays_between(self, start: str, end: Optional[str] = None) -> list[str]:
        check_date(start)
        if end is None:
            day_filter = ("gte", start)
        else:
            day_filter = ("between", (start, check_date(end)))
        rows = self.storage.select(BUSINESS_DAYS, {"day": day_filter, "holiday": True}, order_by="day")
        return [r["day"] for r in rows]
