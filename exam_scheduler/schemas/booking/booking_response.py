"""
Booking response schemas.
"""

from datetime import date as Date, datetime
from typing import Any, Dict, Optional

from pydantic import Field

from exam_scheduler.models.base.enums import (
    BookingEventType,
    BookingStatus,
    ExternalActionStatus,
    ShiftName,
)
from exam_scheduler.schemas.common.base import BaseResponseSchema

__all__ = ["BookingResponse", "BookingHistoryResponse"]


class BookingResponse(BaseResponseSchema):
    user_id: str
    department_id: str
    candidate_count: int
    course_end_date: Date
    preferred_shift: ShiftName
    shift_id: Optional[str] = None
    exam_start_hour: Optional[int] = None
    booking_date: Date
    status: BookingStatus
    hold_expires_at: Optional[datetime] = None
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    confirmation_number: str
    external_action_status: ExternalActionStatus
    warning_sent_at: Optional[datetime] = None
    capacity_override_by: Optional[str] = None
    capacity_override_at: Optional[datetime] = None
    capacity_override_details: Optional[Dict[str, Any]] = None


class BookingHistoryResponse(BaseResponseSchema):
    booking_id: str
    event_type: BookingEventType
    description: str
    performed_by: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="event_metadata")
