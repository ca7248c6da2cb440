"""Calendar exclusions (holidays, closures)."""

from datetime import date as Date
from typing import Optional

from sqlalchemy import Date as SQLDate, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from exam_scheduler.models.base.base_model import TimestampModel

__all__ = ["ClosedDate"]


class ClosedDate(TimestampModel):
    """A date on which no exams can be scheduled."""

    __tablename__ = "closed_dates"

    date: Mapped[Date] = mapped_column(SQLDate, nullable=False, unique=True, index=True, comment="Closed date")
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Reason for closure")
    created_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, comment="Admin who closed the date")

    def __repr__(self) -> str:
        return f"<ClosedDate({self.date.isoformat()})>"
