"""Database models."""

from clinic_scheduler.models.appointments import appointments
from clinic_scheduler.models.base import metadata
from clinic_scheduler.models.blocked_time_ranges import blocked_time_ranges
from clinic_scheduler.models.counters import counters
from clinic_scheduler.models.notifications import notifications

__all__ = [
    "appointments",
    "blocked_time_ranges",
    "counters",
    "metadata",
    "notifications",
]
