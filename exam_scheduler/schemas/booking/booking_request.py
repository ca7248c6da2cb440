"""
Booking request schemas.
"""

from datetime import date as Date
from typing import Optional

from pydantic import Field, model_validator

from exam_scheduler.models.base.enums import ShiftName
from exam_scheduler.schemas.common.base import BaseSchema
from exam_scheduler.schemas.scheduling.slot_search import MAX_CANDIDATES_PER_REQUEST

__all__ = ["BookingHoldRequest"]


class BookingHoldRequest(BaseSchema):
    """
    Request to place a hold on a slot picked from search results.

    The hold is provisional: capacity is only checked at approval time.
    """

    department_id: str = Field(..., min_length=1, description="Requesting department")
    candidate_count: int = Field(..., ge=1, le=MAX_CANDIDATES_PER_REQUEST)
    course_end_date: Date = Field(..., description="Last teaching day of the course")
    preferred_shift: ShiftName = Field(..., description="Shift asked for in the search")
    booking_date: Date = Field(..., description="Chosen exam date")
    shift_id: Optional[str] = Field(default=None, description="Chosen shift")
    exam_start_hour: Optional[int] = Field(default=None, ge=0, le=23, description="Chosen start hour")
    notes: Optional[str] = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def exam_after_course_end(self) -> "BookingHoldRequest":
        if self.booking_date <= self.course_end_date:
            raise ValueError("booking_date must be after course_end_date")
        if self.exam_start_hour is not None and self.shift_id is None:
            raise ValueError("exam_start_hour requires shift_id")
        return self
