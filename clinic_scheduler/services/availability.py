"""Slot availability rules shared by the booking guard and the time-slot listing."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Literal, Protocol

from clinic_scheduler.services.time_slots import TimeSlotCatalog

UnavailableCause = Literal["blocked", "fully_booked"]


class BlockedRange(Protocol):
    """Anything shaped like a blocked_time_ranges row."""

    start_date: date
    end_date: date
    is_active: bool
    reason: str | None
    custom_reason: str | None


@dataclass(frozen=True)
class SlotStatus:
    """One slot of a day with its booking state."""

    time: str
    booked: bool = False
    passed: bool = False
    blocked: bool = False

    @property
    def available(self) -> bool:
        return not (self.booked or self.passed or self.blocked)

    @property
    def label(self) -> str:
        if self.blocked:
            return f"{self.time} (Blocked)"
        if self.booked:
            return f"{self.time} (Booked)"
        if self.passed:
            return f"{self.time} (Passed)"
        return self.time


@dataclass
class DayAvailability:
    """Availability of every slot on one date, and why the date is closed if it is."""

    date: date
    slots: list[SlotStatus] = field(default_factory=list)
    blocked: bool = False
    block_reason: str | None = None

    @property
    def available_slots(self) -> list[str]:
        return [slot.time for slot in self.slots if slot.available]

    @property
    def is_available(self) -> bool:
        return bool(self.available_slots)

    @property
    def cause(self) -> UnavailableCause | None:
        if self.blocked:
            return "blocked"
        if not self.is_available:
            return "fully_booked"
        return None


def block_reason(blocked_range: BlockedRange) -> str | None:
    """Human-readable reason, preferring the custom text for "Other"."""
    if blocked_range.custom_reason and blocked_range.reason in (None, "Other"):
        return blocked_range.custom_reason
    return blocked_range.reason or blocked_range.custom_reason


def find_block(day: date, blocked_ranges: Iterable[BlockedRange]) -> BlockedRange | None:
    """First active range whose inclusive date interval contains ``day``."""
    for blocked_range in blocked_ranges:
        if blocked_range.is_active and blocked_range.start_date <= day <= blocked_range.end_date:
            return blocked_range
    return None


def is_passed(day: date, slot: str, now: datetime) -> bool:
    """A slot has passed only on today's date, once its start is at or before ``now``."""
    if day != now.date():
        return False
    hour, minute = (int(part) for part in slot.split(":"))
    slot_start = datetime.combine(day, time(hour, minute), tzinfo=now.tzinfo)
    return slot_start <= now


class AvailabilityEngine:
    """Computes bookable slots from bookings, blocked ranges and the current time."""

    def __init__(self, catalog: TimeSlotCatalog | None = None):
        self.catalog = catalog or TimeSlotCatalog()

    def day_availability(
        self,
        day: date,
        booked_slots: set[tuple[date, str]],
        blocked_ranges: Iterable[BlockedRange],
        now: datetime,
    ) -> DayAvailability:
        """Annotate every catalog slot on ``day``; a blocked day has no open slot."""
        blocked_range = find_block(day, blocked_ranges)
        if blocked_range is not None:
            return DayAvailability(
                date=day,
                slots=[SlotStatus(time=slot, blocked=True) for slot in self.catalog.all_slots()],
                blocked=True,
                block_reason=block_reason(blocked_range),
            )

        slots = [
            SlotStatus(
                time=slot,
                booked=(day, slot) in booked_slots,
                passed=is_passed(day, slot, now),
            )
            for slot in self.catalog.all_slots()
        ]
        return DayAvailability(date=day, slots=slots)

    def is_time_available(
        self,
        slot: str,
        day: date,
        booked_slots: set[tuple[date, str]],
        blocked_ranges: Iterable[BlockedRange],
        now: datetime,
    ) -> bool:
        """Single-slot form of :meth:`day_availability`."""
        if find_block(day, blocked_ranges) is not None:
            return False
        return (day, slot) not in booked_slots and not is_passed(day, slot, now)

    def is_date_available(
        self,
        day: date,
        booked_slots: set[tuple[date, str]],
        blocked_ranges: Iterable[BlockedRange],
        now: datetime,
    ) -> bool:
        """True when at least one slot on ``day`` is open."""
        return self.day_availability(day, booked_slots, blocked_ranges, now).is_available
