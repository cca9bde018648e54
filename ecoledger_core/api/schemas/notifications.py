"""Notification API schemas."""

from datetime import datetime

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    """Response body for a notification."""

    id: int
    user_id: int
    message: str
    type: str
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    """Response body for unread notifications."""

    notifications: list[NotificationResponse]
    total: int


class MarkReadResponse(BaseModel):
    """Number of notifications that changed state."""

    updated: int
