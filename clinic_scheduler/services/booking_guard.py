"""Validation of a requested appointment slot before it is written."""

from datetime import date, timedelta
from uuid import UUID

import structlog
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.config import settings
from clinic_scheduler.core.clock import Clock
from clinic_scheduler.core.exceptions import (
    DateBlocked,
    LeadTimeViolation,
    SlotConflict,
    ValidationException,
)
from clinic_scheduler.models.appointments import appointments
from clinic_scheduler.schemas.appointments import AppointmentStatus
from clinic_scheduler.services.availability import block_reason, find_block
from clinic_scheduler.services.blocked_time_range_service import BlockedTimeRangeService
from clinic_scheduler.services.time_slots import TimeSlotCatalog

logger = structlog.get_logger(__name__)


class BookingGuard:
    """
    Gatekeeper for appointment slots.

    The conflict lookup here only produces a readable error early. The
    partial unique index on active (preferred_date, preferred_time) is what
    actually keeps two concurrent bookings out of one slot; callers translate
    its IntegrityError into SlotConflict.
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock,
        catalog: TimeSlotCatalog | None = None,
        lead_days: int | None = None,
    ):
        self.db = db
        self.clock = clock
        self.catalog = catalog or TimeSlotCatalog()
        self.lead_days = settings.booking_lead_days if lead_days is None else lead_days

    def minimum_date(self) -> date:
        """Earliest date that may be booked, at day granularity."""
        return self.clock.now().date() + timedelta(days=self.lead_days)

    def check_lead_time(self, preferred_date: date) -> None:
        """Raise LeadTimeViolation for dates before :meth:`minimum_date`."""
        minimum = self.minimum_date()
        if preferred_date < minimum:
            logger.info(
                "booking_rejected_lead_time",
                preferred_date=preferred_date.isoformat(),
                minimum_date=minimum.isoformat(),
            )
            raise LeadTimeViolation(minimum)

    def check_slot(self, preferred_time: str) -> None:
        """Raise ValidationException unless the time is one of the catalog's slots."""
        if not self.catalog.is_canonical_slot(preferred_time):
            raise ValidationException(
                f"Invalid time slot {preferred_time}. Appointments are available between "
                f"{self.catalog.opening} and {self.catalog.closing} every "
                f"{self.catalog.interval_minutes} minutes."
            )

    async def check_not_blocked(self, preferred_date: date) -> None:
        """Raise DateBlocked if an active blocked range covers the date."""
        ranges = await BlockedTimeRangeService(self.db).active_ranges_covering(preferred_date)
        blocked_range = find_block(preferred_date, ranges)
        if blocked_range is not None:
            reason = block_reason(blocked_range)
            logger.info(
                "booking_rejected_blocked",
                preferred_date=preferred_date.isoformat(),
                reason=reason,
            )
            raise DateBlocked(preferred_date, reason)

    async def check_conflict(
        self,
        preferred_date: date,
        preferred_time: str,
        exclude_id: UUID | None = None,
    ) -> None:
        """Raise SlotConflict if another active appointment holds the slot."""
        conditions = [
            appointments.c.preferred_date == preferred_date,
            appointments.c.preferred_time == preferred_time,
            appointments.c.status != AppointmentStatus.CANCELLED.value,
        ]
        if exclude_id is not None:
            conditions.append(appointments.c.id != exclude_id)

        stmt = select(appointments.c.id).where(and_(*conditions)).limit(1)
        result = await self.db.execute(stmt)
        if result.first() is not None:
            logger.info(
                "slot_conflict",
                preferred_date=preferred_date.isoformat(),
                preferred_time=preferred_time,
            )
            raise SlotConflict(preferred_date, preferred_time)

    async def validate_new_booking(self, preferred_date: date, preferred_time: str) -> None:
        """
        Run every rule for a new booking.

        Raises:
            ValidationException: Time is not a bookable slot
            LeadTimeViolation: Date is sooner than the lead time allows
            DateBlocked: Date is inside an active blocked range
            SlotConflict: Slot already taken by an active appointment
        """
        self.check_slot(preferred_time)
        self.check_lead_time(preferred_date)
        await self.check_not_blocked(preferred_date)
        await self.check_conflict(preferred_date, preferred_time)
