"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.core.clock import Clock, get_clock
from clinic_scheduler.database import get_db
from clinic_scheduler.services.appointment_service import AppointmentService
from clinic_scheduler.services.sms_service import SmsNotifier, get_sms_notifier

# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
AppClock = Annotated[Clock, Depends(get_clock)]
SmsNotifierDep = Annotated[SmsNotifier, Depends(get_sms_notifier)]


async def get_appointment_service(
    db: DatabaseSession,
    clock: AppClock,
    notifier: SmsNotifierDep,
) -> AppointmentService:
    """
    Build the appointment service for a request.

    Args:
        db: Database session
        clock: Clinic clock
        notifier: SMS notifier used for status messages

    Returns:
        Appointment service bound to the request's session
    """
    return AppointmentService(db, clock=clock, notifier=notifier)


AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]
