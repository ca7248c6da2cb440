from exam_scheduler.models.booking.booking import Booking, BookingHistoryEntry

__all__ = ["Booking", "BookingHistoryEntry"]
