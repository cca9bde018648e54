"""Notification dispatcher.

Notifications are advisory: they are written after the ledger or task
change they describe, and a failure to write one never undoes that change.
Consumers pull them with ``unread``; marking read is idempotent.
"""

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ecoledger_core.domain.models import Notification
from ecoledger_core.observability.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """Service for user notifications."""

    def __init__(self, db: Session):
        """Initialize the notification service.

        Args:
            db: SQLAlchemy database session.
        """
        self.db = db

    def notify(self, user_id: int, message: str, type: str) -> Notification:
        """Create an unread notification."""
        notification = Notification(
            user_id=user_id,
            message=message,
            type=type,
            is_read=False,
        )
        self.db.add(notification)
        self.db.flush()
        return notification

    def notify_safely(
        self, user_id: int, message: str, type: str
    ) -> Optional[Notification]:
        """Create a notification inside its own savepoint.

        Store failures are logged and swallowed so the caller's already
        flushed ledger/task writes stay intact.
        """
        try:
            with self.db.begin_nested():
                return self.notify(user_id, message, type)
        except SQLAlchemyError:
            logger.warning(
                "Notification dropped",
                exc_info=True,
                user_id=user_id,
                notification_type=type,
            )
            return None

    def unread(self, user_id: int) -> list[Notification]:
        """Unread notifications for a user, newest first."""
        return (
            self.db.query(Notification)
            .filter(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .all()
        )

    def get_notification(self, notification_id: int) -> Optional[Notification]:
        return (
            self.db.query(Notification)
            .filter(Notification.id == notification_id)
            .first()
        )

    def mark_read(self, notification_id: int, user_id: Optional[int] = None) -> int:
        """Mark one notification read.

        Args:
            notification_id: The notification ID.
            user_id: When given, only a notification owned by this user is touched.

        Returns:
            Number of rows changed (0 if already read or unknown).
        """
        query = self.db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.is_read.is_(False),
        )
        if user_id is not None:
            query = query.filter(Notification.user_id == user_id)

        changed = query.update(
            {Notification.is_read: True}, synchronize_session=False
        )
        self.db.flush()
        self.db.expire_all()
        return changed

    def mark_all_read(self, user_id: int) -> int:
        """Mark every unread notification of a user read.

        Returns:
            Number of rows changed (0 if there was nothing unread).
        """
        changed = (
            self.db.query(Notification)
            .filter(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        self.db.flush()
        self.db.expire_all()
        return changed
