"""Notification endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from clinic_scheduler.dependencies import DatabaseSession
from clinic_scheduler.schemas.notifications import (
    MarkAllReadResponse,
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
)
from clinic_scheduler.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.post(
    "/",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create notification",
)
async def create_notification(
    data: NotificationCreate,
    db: DatabaseSession,
) -> NotificationResponse:
    """
    Create a notification.

    Args:
        data: Notification data
        db: Database session

    Returns:
        Created notification

    Raises:
        DuplicateNotification: If the same event was already recorded
    """
    return await NotificationService.create(db, data)


@router.get(
    "/",
    response_model=NotificationListResponse,
    summary="List notifications",
)
async def list_notifications(
    db: DatabaseSession,
    source_id: UUID | None = Query(None, description="Filter by source"),
    is_read: bool | None = Query(None, description="Filter by read state"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
) -> NotificationListResponse:
    """
    List notifications, newest first.

    Args:
        db: Database session
        source_id: Optional source filter
        is_read: Optional read-state filter
        page: Page number (starts at 1)
        limit: Number of items per page (max 100)

    Returns:
        Paginated notifications with the unread count
    """
    return await NotificationService.list_notifications(
        db=db,
        source_id=source_id,
        is_read=is_read,
        page=page,
        limit=limit,
    )


@router.patch(
    "/read-all",
    response_model=MarkAllReadResponse,
    summary="Mark all notifications as read",
)
async def mark_all_notifications_read(
    db: DatabaseSession,
    source_id: UUID | None = Query(None, description="Only this source's notifications"),
) -> MarkAllReadResponse:
    """Mark every unread notification as read."""
    updated = await NotificationService.mark_all_as_read(db, source_id=source_id)
    return MarkAllReadResponse(updated=updated)


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark notification as read",
)
async def mark_notification_read(
    notification_id: UUID,
    db: DatabaseSession,
) -> NotificationResponse:
    """
    Mark a notification as read.

    Raises:
        NotFoundException: If notification not found
    """
    return await NotificationService.mark_as_read(db, notification_id)


@router.delete(
    "/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete notification",
)
async def delete_notification(
    notification_id: UUID,
    db: DatabaseSession,
) -> None:
    """
    Delete a notification.

    Raises:
        NotFoundException: If notification not found
    """
    await NotificationService.delete_notification(db, notification_id)
