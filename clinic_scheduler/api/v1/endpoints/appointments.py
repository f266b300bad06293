"""Appointment endpoints."""

from datetime import date
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Query, status

from clinic_scheduler.dependencies import AppointmentServiceDep
from clinic_scheduler.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentSource,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    AppointmentUpdateResponse,
)
from clinic_scheduler.schemas.availability import TimeSlotsResponse

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Create new appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Book an appointment slot.

    Bookings coming from the patient app also record an
    AppointmentCreated notification for clinic staff.

    Args:
        data: Appointment creation data
        service: Appointment service

    Returns:
        Created appointment in the Pending state
    """
    return await service.create_appointment(
        data,
        create_notification=data.source == AppointmentSource.PATIENT_APP,
    )


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    service: AppointmentServiceDep,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    patient_id: UUID | None = Query(None),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    search: str | None = Query(None, max_length=100),
    sort_by: Literal[
        "created_at", "preferred_date", "preferred_time", "first_name", "last_name", "status"
    ] = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List appointments with filtering.

    Args:
        service: Appointment service
        status_filter: Filter by status
        patient_id: Filter by patient ID
        from_date: Earliest preferred date
        to_date: Latest preferred date
        search: Text matched against name, reason and address
        sort_by: Sort field
        sort_order: asc or desc
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        status=status_filter,
        patient_id=patient_id,
        from_date=from_date,
        to_date=to_date,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size,
    )
    return await service.list_appointments(filters)


@router.get(
    "/time-slots",
    response_model=TimeSlotsResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get time slots for a date",
)
async def get_time_slots(
    service: AppointmentServiceDep,
    day: date = Query(..., alias="date"),
) -> TimeSlotsResponse:
    """
    Appointments of a date grouped by time, with the slots still open.

    Args:
        service: Appointment service
        day: Date to inspect (YYYY-MM-DD)

    Returns:
        Slot availability for the date
    """
    return await service.get_time_slots(day)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Raises:
        NotFoundException: If appointment not found
    """
    return await service.get_appointment(appointment_id)


@router.put(
    "/{appointment_id}",
    response_model=AppointmentUpdateResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    service: AppointmentServiceDep,
) -> AppointmentUpdateResponse:
    """
    Update an existing appointment.

    Args:
        appointment_id: Appointment ID
        data: Fields to change
        service: Appointment service

    Returns:
        Updated appointment and SMS outcome when the status changed
    """
    return await service.update_appointment(appointment_id, data)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentUpdateResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    service: AppointmentServiceDep,
) -> AppointmentUpdateResponse:
    """
    Update appointment status (e.g., schedule, cancel, complete).

    Args:
        appointment_id: Appointment ID
        data: Status update data
        service: Appointment service

    Returns:
        Updated appointment and SMS outcome
    """
    return await service.update_appointment_status(appointment_id, data)


@router.delete(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: UUID,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Permanently delete an appointment.

    Returns:
        The deleted appointment
    """
    return await service.delete_appointment(appointment_id)
