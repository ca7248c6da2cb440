from exam_scheduler.models.notification.notification import Notification

__all__ = ["Notification"]
