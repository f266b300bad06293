"""Fixed daily catalog of bookable time slots and 12/24-hour label conversion."""

from collections.abc import Iterator

from clinic_scheduler.config import settings


def _to_minutes(time24: str) -> int:
    hour_str, minute_str = time24.split(":")
    hour, minute = int(hour_str), int(minute_str)
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid 24-hour time: {time24!r}")
    return hour * 60 + minute


def _from_minutes(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


class TimeSlotCatalog:
    """
    The clinic day as a sequence of "HH:MM" labels.

    Slots start at ``opening`` and step by ``interval_minutes`` up to but
    excluding ``closing``. The catalog holds no state beyond its bounds, so
    every call to :meth:`all_slots` yields the same sequence.
    """

    def __init__(
        self,
        opening: str | None = None,
        closing: str | None = None,
        interval_minutes: int | None = None,
    ):
        self.opening = opening or settings.opening_time
        self.closing = closing or settings.closing_time
        self.interval_minutes = interval_minutes or settings.slot_interval_minutes
        if self.interval_minutes <= 0:
            raise ValueError("Slot interval must be positive")
        if _to_minutes(self.opening) >= _to_minutes(self.closing):
            raise ValueError("Opening time must be before closing time")

    def all_slots(self) -> Iterator[str]:
        """Yield canonical slot labels in chronological order."""
        current = _to_minutes(self.opening)
        end = _to_minutes(self.closing)
        while current < end:
            yield _from_minutes(current)
            current += self.interval_minutes

    def is_canonical_slot(self, time24: str) -> bool:
        """Whether ``time24`` is one of this catalog's slot labels."""
        try:
            minutes = _to_minutes(time24)
        except ValueError:
            return False
        start, end = _to_minutes(self.opening), _to_minutes(self.closing)
        return (
            start <= minutes < end
            and (minutes - start) % self.interval_minutes == 0
            and _from_minutes(minutes) == time24
        )


def to_12_hour(time24: str) -> str:
    """Convert "HH:MM" to "h:MM AM/PM"."""
    total = _to_minutes(time24)
    hour, minute = divmod(total, 60)
    period = "AM" if hour < 12 else "PM"
    hour12 = hour % 12 or 12
    return f"{hour12}:{minute:02d} {period}"


def to_24_hour(time12: str) -> str:
    """Convert "h:MM AM/PM" to "HH:MM"."""
    clock, period = time12.strip().split(" ")
    hour_str, minute_str = clock.split(":")
    hour, minute = int(hour_str), int(minute_str)
    period = period.upper()
    if period not in ("AM", "PM") or not (1 <= hour <= 12) or not (0 <= minute <= 59):
        raise ValueError(f"Invalid 12-hour time: {time12!r}")
    if period == "AM":
        hour = 0 if hour == 12 else hour
    else:
        hour = 12 if hour == 12 else hour + 12
    return _from_minutes(hour * 60 + minute)
