"""
Capacity schemas: approval breakdowns, roster ingestion rows and
scheduling settings updates.
"""

from datetime import date as Date
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from exam_scheduler.models.base.enums import ShiftName
from exam_scheduler.schemas.common.base import BaseSchema

__all__ = [
    "CapacitySource",
    "CapacityBreakdown",
    "ShiftRosterRow",
    "HourlyRosterRow",
    "RowError",
    "IngestionReport",
    "SettingsUpdate",
]


class CapacitySource(str, Enum):
    """Where an effective capacity figure came from."""
    HOURLY = "hourly"
    ROSTER = "roster"
    SHIFT_DEFAULT = "shift_default"


class CapacityBreakdown(BaseSchema):
    """
    Capacity arithmetic behind an approval decision.

    Returned with CapacityExceeded failures and stored verbatim on the
    booking when an admin forces an over-capacity approval.
    """

    effective_capacity: int
    current_approved: int
    requested_candidates: int
    total_after_approval: int
    overage: int = Field(..., ge=0)
    capacity_source: CapacitySource
    has_hourly_capacity: bool
    has_roster: bool
    exam_start_hour: Optional[int] = None

    @property
    def exceeds(self) -> bool:
        return self.total_after_approval > self.effective_capacity


class ShiftRosterRow(BaseSchema):
    """One per-shift roster row produced by an external importer."""

    date: Date
    shift: ShiftName
    proctor_count: int = Field(..., ge=0)


class HourlyRosterRow(BaseSchema):
    """One per-hour roster row produced by an external importer."""

    date: Date
    hour: int = Field(..., ge=0, le=23)
    proctor_count: int = Field(..., ge=0)


class RowError(BaseSchema):
    row: int = Field(..., description="1-based row number in the submitted batch")
    message: str


class IngestionReport(BaseSchema):
    start_date: Date
    end_date: Date
    inserted: int = 0
    errors: List[RowError] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


class SettingsUpdate(BaseSchema):
    """Partial update of the scheduling rules."""

    working_days_rule: Optional[int] = Field(default=None, ge=0, le=60)
    hold_duration_minutes: Optional[int] = Field(default=None, ge=1, le=24 * 60)
    max_candidates_per_day: Optional[int] = Field(default=None, ge=0)
    candidates_per_proctor: Optional[int] = Field(default=None, ge=1)
    reserve_percentage: Optional[int] = Field(default=None, ge=0, le=100)

    @field_validator("*", mode="before")
    @classmethod
    def reject_bool(cls, v):
        if isinstance(v, bool):
            raise ValueError("must be an integer")
        return v
