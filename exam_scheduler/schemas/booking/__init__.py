from exam_scheduler.schemas.booking.booking_request import BookingHoldRequest
from exam_scheduler.schemas.booking.booking_response import BookingHistoryResponse, BookingResponse

__all__ = ["BookingHoldRequest", "BookingResponse", "BookingHistoryResponse"]
