"""Injectable wall clock for scheduling rules."""

from datetime import datetime
from zoneinfo import ZoneInfo

from clinic_scheduler.config import settings


class Clock:
    """Current time in the clinic's timezone."""

    def __init__(self, timezone: str | None = None):
        self.tz = ZoneInfo(timezone or settings.clinic_timezone)

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock(Clock):
    """Clock frozen at a given instant. Naive instants are read as clinic time."""

    def __init__(self, instant: datetime, timezone: str | None = None):
        super().__init__(timezone)
        self.instant = instant if instant.tzinfo else instant.replace(tzinfo=self.tz)

    def now(self) -> datetime:
        return self.instant


_clock = Clock()


def get_clock() -> Clock:
    """Dependency returning the process-wide clock."""
    return _clock
