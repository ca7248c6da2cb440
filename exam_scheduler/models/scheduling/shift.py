"""
Exam shift model.

Shifts are configuration: created once, toggled active/inactive by an
admin, never deleted.
"""

from sqlalchemy import Boolean, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from exam_scheduler.models.base.base_model import TimestampModel, str_enum
from exam_scheduler.models.base.enums import ShiftName

__all__ = ["Shift", "parse_hour"]


def parse_hour(value: str) -> int:
    """Hour component of an ``HH:MM`` string."""
    return int(value.split(":", 1)[0])


class Shift(TimestampModel):
    """
    A daily exam session window.

    Attributes:
        name: Shift identifier (morning / midday / afternoon)
        start_time: Start of the window, ``HH:MM``
        end_time: End of the window (exclusive), ``HH:MM``
        max_candidates: Default capacity when no roster is configured
        is_active: Inactive shifts are skipped by slot search
    """

    __tablename__ = "shifts"

    name: Mapped[ShiftName] = mapped_column(
        str_enum(ShiftName, "shift_name"),
        nullable=False,
        unique=True,
        comment="Shift identifier",
    )
    start_time: Mapped[str] = mapped_column(String(5), nullable=False, comment="Start time HH:MM")
    end_time: Mapped[str] = mapped_column(String(5), nullable=False, comment="End time HH:MM")
    max_candidates: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=30,
        comment="Default capacity when no roster exists",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, comment="Active flag")

    __table_args__ = (
        CheckConstraint("max_candidates >= 0", name="ck_shift_capacity_non_negative"),
        {"comment": "Daily exam shifts"},
    )

    @property
    def start_hour(self) -> int:
        return parse_hour(self.start_time)

    @property
    def end_hour(self) -> int:
        return parse_hour(self.end_time)

    def __repr__(self) -> str:
        return f"<Shift({self.name.value} {self.start_time}-{self.end_time}, max={self.max_candidates})>"
