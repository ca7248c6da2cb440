"""
Notification delivery boundary.

Notifications are fire-and-forget: the triggering state transition has
already been committed when they are sent, and a delivery failure is
logged, never propagated.
"""

import logging
from typing import List, Optional, Protocol, Sequence

from sqlalchemy.orm import Session

from exam_scheduler.models.notification.notification import Notification

logger = logging.getLogger(__name__)


class NotificationType:
    """Notification type identifiers."""

    BOOKING_SUBMITTED = "booking_submitted"
    BOOKING_APPROVED = "booking_approved"
    BOOKING_REJECTED = "booking_rejected"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_AUTO_CANCELLED = "booking_auto_cancelled"
    ADMIN_REMINDER = "admin_reminder"
    ACTION_REMINDER = "action_reminder"
    ACTION_USER_COMPLETED = "action_user_completed"
    ACTION_VERIFIED = "action_verified"
    ACTION_REJECTED = "action_rejected"


class Notifier(Protocol):
    """Anything that can deliver a notification to one user."""

    def notify(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        booking_id: Optional[str] = None,
    ) -> None:
        ...


class AdminDirectory(Protocol):
    def list_admin_ids(self) -> List[str]:
        ...


class StaticAdminDirectory:
    """Admin ids from configuration."""

    def __init__(self, admin_ids: Sequence[str]):
        self._admin_ids = list(admin_ids)

    def list_admin_ids(self) -> List[str]:
        return list(self._admin_ids)


class InAppNotifier:
    """
    Stores notifications in the ``notifications`` table.

    Runs its own commit on the given session; callers only notify after
    their own unit of work is committed.
    """

    def __init__(self, db: Session):
        self.db = db

    def notify(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        booking_id: Optional[str] = None,
    ) -> None:
        try:
            self.db.add(
                Notification(
                    user_id=user_id,
                    type=type,
                    title=title,
                    message=message,
                    booking_id=booking_id,
                )
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise


class NotificationDispatcher:
    """
    Wraps a Notifier so that delivery failures never reach the caller.
    """

    def __init__(self, notifier: Notifier, admin_directory: Optional[AdminDirectory] = None):
        self.notifier = notifier
        self.admin_directory = admin_directory or StaticAdminDirectory([])

    def send(
        self,
        user_id: str,
        type: str,
        title: str,
        message: str,
        booking_id: Optional[str] = None,
    ) -> bool:
        """Deliver one notification; returns False if delivery failed."""
        try:
            self.notifier.notify(user_id, type, title, message, booking_id)
            logger.debug(
                "Notification sent",
                extra={"user_id": user_id, "type": type, "booking_id": booking_id},
            )
            return True
        except Exception as e:
            logger.error(
                f"Notification delivery failed: {e}",
                extra={"user_id": user_id, "type": type, "booking_id": booking_id},
            )
            return False

    def send_to_admins(
        self,
        type: str,
        title: str,
        message: str,
        booking_id: Optional[str] = None,
    ) -> int:
        """Deliver to every admin; returns the number of successful sends."""
        sent = 0
        for admin_id in self.admin_directory.list_admin_ids():
            if self.send(admin_id, type, title, message, booking_id):
                sent += 1
        return sent
