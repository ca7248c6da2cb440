from exam_scheduler.repositories.booking.booking_repository import BookingRepository
from exam_scheduler.repositories.booking.booking_history_repository import BookingHistoryRepository

__all__ = ["BookingRepository", "BookingHistoryRepository"]
