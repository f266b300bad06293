"""Blocked time range endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from clinic_scheduler.dependencies import DatabaseSession
from clinic_scheduler.schemas.blocked_time_ranges import (
    BlockedTimeRangeCreate,
    BlockedTimeRangeListResponse,
    BlockedTimeRangeResponse,
    BlockedTimeRangeUpdate,
)
from clinic_scheduler.services.blocked_time_range_service import BlockedTimeRangeService

router = APIRouter(prefix="/blocked-time-ranges", tags=["Blocked Time Ranges"])


@router.post(
    "/",
    response_model=BlockedTimeRangeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Block a date range",
)
async def create_blocked_time_range(
    data: BlockedTimeRangeCreate,
    db: DatabaseSession,
) -> BlockedTimeRangeResponse:
    """
    Close the clinic for bookings over a date range.

    Args:
        data: Range and reason
        db: Database session

    Returns:
        Created blocked time range
    """
    return await BlockedTimeRangeService(db).create(data)


@router.get(
    "/",
    response_model=BlockedTimeRangeListResponse,
    summary="List blocked date ranges",
)
async def list_blocked_time_ranges(
    db: DatabaseSession,
    is_active: bool | None = Query(None),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> BlockedTimeRangeListResponse:
    """List blocked ranges overlapping the optional date window."""
    return await BlockedTimeRangeService(db).list_blocked_time_ranges(
        is_active=is_active,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/{blocked_time_range_id}",
    response_model=BlockedTimeRangeResponse,
    summary="Get blocked date range",
)
async def get_blocked_time_range(
    blocked_time_range_id: UUID,
    db: DatabaseSession,
) -> BlockedTimeRangeResponse:
    return await BlockedTimeRangeService(db).get(blocked_time_range_id)


@router.put(
    "/{blocked_time_range_id}",
    response_model=BlockedTimeRangeResponse,
    summary="Update blocked date range",
)
async def update_blocked_time_range(
    blocked_time_range_id: UUID,
    data: BlockedTimeRangeUpdate,
    db: DatabaseSession,
) -> BlockedTimeRangeResponse:
    """
    Update a blocked range.

    Raises:
        NotFoundException: If it does not exist
        ValidationException: If the end date would precede the start date
    """
    return await BlockedTimeRangeService(db).update(blocked_time_range_id, data)


@router.delete(
    "/{blocked_time_range_id}",
    response_model=BlockedTimeRangeResponse,
    summary="Delete blocked date range",
)
async def delete_blocked_time_range(
    blocked_time_range_id: UUID,
    db: DatabaseSession,
) -> BlockedTimeRangeResponse:
    return await BlockedTimeRangeService(db).delete(blocked_time_range_id)
