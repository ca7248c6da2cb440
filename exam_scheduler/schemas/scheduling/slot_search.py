"""
Slot search schemas.

The request mirrors what a department submits when looking for an exam
date; the response lists ranked (date, shift) options, each with the start
hours that still have room.
"""

from datetime import date as Date
from typing import List, Optional

from pydantic import Field

from exam_scheduler.models.base.enums import ShiftName
from exam_scheduler.schemas.common.base import BaseSchema

__all__ = [
    "SlotSearchRequest",
    "HourlySlot",
    "SlotOption",
    "UnavailableDate",
    "SlotSearchResponse",
]

MAX_CANDIDATES_PER_REQUEST = 50


class SlotSearchRequest(BaseSchema):
    """Search for bookable exam slots."""

    department_id: str = Field(..., min_length=1, description="Requesting department")
    candidate_count: int = Field(
        ...,
        ge=1,
        le=MAX_CANDIDATES_PER_REQUEST,
        description="Number of candidates sitting the exam",
    )
    course_end_date: Date = Field(..., description="Last teaching day of the course")
    preferred_shift: ShiftName = Field(..., description="Preferred shift")


class HourlySlot(BaseSchema):
    """Availability at one start hour."""

    hour: int = Field(..., ge=0, le=23)
    effective_capacity: int
    booked: int
    available: int


class SlotOption(BaseSchema):
    """One (date, shift) option."""

    date: Date
    shift_id: str
    shift_name: ShiftName
    start_time: str
    end_time: str
    available_capacity: int = Field(..., description="Shift-level remaining capacity")
    priority: int = Field(..., ge=1, le=3)
    is_split: bool = Field(..., description="No single hour can seat every candidate")
    hourly_slots: List[HourlySlot] = Field(default_factory=list)


class UnavailableDate(BaseSchema):
    date: Date
    reason: Optional[str] = None


class SlotSearchResponse(BaseSchema):
    min_date: Date
    slots: List[SlotOption]
    unavailable_dates: List[UnavailableDate] = Field(default_factory=list)
