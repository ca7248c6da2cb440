"""Runtime scheduling rules, editable by admins."""

from typing import Optional

from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from exam_scheduler.models.base.base_model import TimestampModel

__all__ = ["SchedulingSettings"]


class SchedulingSettings(TimestampModel):
    """
    Singleton row with the rules slot search and holds read at runtime.

    Seeded from environment settings the first time it is requested.
    """

    __tablename__ = "scheduling_settings"

    working_days_rule: Mapped[int] = mapped_column(Integer, nullable=False, comment="Minimum working days after course end")
    hold_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, comment="Hold lifetime in minutes")
    max_candidates_per_day: Mapped[int] = mapped_column(Integer, nullable=False, comment="Daily candidate ceiling")
    candidates_per_proctor: Mapped[int] = mapped_column(Integer, nullable=False, comment="Seats per proctor")
    reserve_percentage: Mapped[int] = mapped_column(Integer, nullable=False, comment="Reserve proctor percentage")
    updated_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, comment="Last admin to edit")

    __table_args__ = (
        CheckConstraint("reserve_percentage >= 0 AND reserve_percentage <= 100", name="ck_settings_reserve_range"),
        CheckConstraint("hold_duration_minutes > 0", name="ck_settings_hold_positive"),
        {"comment": "Scheduling rules"},
    )
