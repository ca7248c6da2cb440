"""In-app notification store."""

from typing import Optional

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from exam_scheduler.models.base.base_model import TimestampModel

__all__ = ["Notification"]


class Notification(TimestampModel):
    """A message addressed to one user, optionally about a booking."""

    __tablename__ = "notifications"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, comment="Recipient")
    type: Mapped[str] = mapped_column(String(50), nullable=False, comment="Notification type")
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    booking_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, comment="Related booking")
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_notification_user_read", "user_id", "is_read"),
        {"comment": "In-app notifications"},
    )
