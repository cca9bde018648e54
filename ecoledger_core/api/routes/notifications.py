"""Notification API routes.

Provides endpoints for:
- GET /notifications/unread - Unread notifications, newest first
- POST /notifications/{id}/read - Mark one notification read
- POST /notifications/read-all - Mark every notification read
"""

from fastapi import APIRouter, HTTPException, status

from ecoledger_core.api.deps import CurrentUser, DBSession, NotificationServiceDep
from ecoledger_core.api.schemas.notifications import (
    MarkReadResponse,
    NotificationListResponse,
    NotificationResponse,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/unread", response_model=NotificationListResponse)
async def list_unread(
    current_user: CurrentUser,
    notification_service: NotificationServiceDep,
):
    """Unread notifications of the current user."""
    notifications = notification_service.unread(current_user.id)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        total=len(notifications),
    )


@router.post("/{notification_id}/read", response_model=MarkReadResponse)
async def mark_read(
    notification_id: int,
    current_user: CurrentUser,
    notification_service: NotificationServiceDep,
    db: DBSession,
):
    """Mark a notification read. Marking it twice changes nothing."""
    notification = notification_service.get_notification(notification_id)
    if notification is None or notification.user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Notification {notification_id} not found",
        )

    updated = notification_service.mark_read(notification_id, user_id=current_user.id)
    db.commit()
    return MarkReadResponse(updated=updated)


@router.post("/read-all", response_model=MarkReadResponse)
async def mark_all_read(
    current_user: CurrentUser,
    notification_service: NotificationServiceDep,
    db: DBSession,
):
    """Mark every notification of the current user read."""
    updated = notification_service.mark_all_read(current_user.id)
    db.commit()
    return MarkReadResponse(updated=updated)
