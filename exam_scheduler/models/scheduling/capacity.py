"""
Proctor-backed capacity rosters.

Two granularities share the same arithmetic: reserve proctors are
``ceil(total * reserve_percentage / 100)`` and effective capacity is
``(total - reserve) * candidates_per_proctor``, never negative. Both tables
are bulk-replaced per date range on ingestion and never patched.
"""

import math
from datetime import date as Date

from sqlalchemy import CheckConstraint, Date as SQLDate, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from exam_scheduler.models.base.base_model import TimestampModel
from exam_scheduler.models.scheduling.shift import Shift

__all__ = ["ShiftCapacityRoster", "HourlyCapacity", "compute_reserve", "compute_effective_capacity"]


def compute_reserve(total_proctors: int, reserve_percentage: int) -> int:
    return math.ceil(total_proctors * reserve_percentage / 100)


def compute_effective_capacity(total_proctors: int, reserve_proctors: int, candidates_per_proctor: int) -> int:
    return max(0, (total_proctors - reserve_proctors) * candidates_per_proctor)


class ShiftCapacityRoster(TimestampModel):
    """Proctor roster for one shift on one date."""

    __tablename__ = "shift_capacity_rosters"

    date: Mapped[Date] = mapped_column(SQLDate, nullable=False, comment="Roster date")
    shift_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("shifts.id", ondelete="CASCADE"),
        nullable=False,
        comment="Shift covered",
    )
    total_proctors: Mapped[int] = mapped_column(Integer, nullable=False, comment="Proctors on duty")
    reserve_proctors: Mapped[int] = mapped_column(Integer, nullable=False, comment="Proctors held in reserve")
    effective_capacity: Mapped[int] = mapped_column(Integer, nullable=False, comment="Usable candidate seats")

    shift: Mapped[Shift] = relationship(Shift, lazy="joined")

    __table_args__ = (
        UniqueConstraint("date", "shift_id", name="uq_shift_roster_date_shift"),
        CheckConstraint("total_proctors >= 0", name="ck_shift_roster_total_non_negative"),
        CheckConstraint("effective_capacity >= 0", name="ck_shift_roster_capacity_non_negative"),
        {"comment": "Per-shift proctor rosters"},
    )


class HourlyCapacity(TimestampModel):
    """Proctor roster for one start hour on one date."""

    __tablename__ = "hourly_capacities"

    date: Mapped[Date] = mapped_column(SQLDate, nullable=False, comment="Roster date")
    hour: Mapped[int] = mapped_column(Integer, nullable=False, comment="Start hour 0-23")
    total_proctors: Mapped[int] = mapped_column(Integer, nullable=False, comment="Proctors on duty")
    reserve_proctors: Mapped[int] = mapped_column(Integer, nullable=False, comment="Proctors held in reserve")
    effective_capacity: Mapped[int] = mapped_column(Integer, nullable=False, comment="Usable candidate seats")

    __table_args__ = (
        UniqueConstraint("date", "hour", name="uq_hourly_capacity_date_hour"),
        CheckConstraint("hour >= 0 AND hour <= 23", name="ck_hourly_capacity_hour_range"),
        CheckConstraint("total_proctors >= 0", name="ck_hourly_capacity_total_non_negative"),
        CheckConstraint("effective_capacity >= 0", name="ck_hourly_capacity_non_negative"),
        Index("ix_hourly_capacity_date", "date"),
        {"comment": "Per-hour proctor rosters"},
    )
