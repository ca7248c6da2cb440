"""Notification repository."""

from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from exam_scheduler.models.notification.notification import Notification
from exam_scheduler.repositories.base.base_repository import BaseRepository


class NotificationRepository(BaseRepository[Notification]):

    def __init__(self, db: Session):
        super().__init__(Notification, db)

    def list_for_user(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        return list(self.db.scalars(stmt.order_by(Notification.created_at.desc())).all())
