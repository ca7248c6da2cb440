from exam_scheduler.repositories.notification.notification_repository import NotificationRepository

__all__ = ["NotificationRepository"]
