"""
Booking models for exam session reservations.

This module defines the booking entity and its append-only history.
Status changes are never made through attribute assignment on a loaded
instance: the booking repository issues compare-and-set updates so that
concurrent requests and background jobs cannot both win a transition.
"""

from datetime import date as Date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date as SQLDate,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from exam_scheduler.models.base.base_model import TimestampModel, str_enum
from exam_scheduler.models.base.enums import (
    TERMINAL_STATUSES,
    BookingEventType,
    BookingStatus,
    ExternalActionStatus,
    ShiftName,
)
from exam_scheduler.models.scheduling.shift import Shift

__all__ = [
    "Booking",
    "BookingHistoryEntry",
]

_TERMINAL_SQL = ", ".join(f"'{s.value}'" for s in sorted(TERMINAL_STATUSES, key=lambda s: s.value))
_ACTIVE_WHERE = text(f"status NOT IN ({_TERMINAL_SQL})")


class Booking(TimestampModel):
    """
    Exam session booking for one department.

    Attributes:
        user_id: Requesting user
        department_id: Department natural key (one active booking each)
        candidate_count: Number of examinees
        course_end_date: Last teaching day of the course
        preferred_shift: Shift the department asked for
        shift_id: Resolved shift
        exam_start_hour: Resolved start hour within the shift
        booking_date: Exam date
        status: Lifecycle status
        hold_expires_at: Hold deadline (UTC), set only while holding
        confirmation_number: Human-facing reference assigned at creation
        external_action_status: Post-approval action sub-state
        warning_sent_at: When the T-minus reminder went out
        capacity_override_*: Audit of a forced over-capacity approval
    """

    __tablename__ = "bookings"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True, comment="Requesting user")
    department_id: Mapped[str] = mapped_column(String(100), nullable=False, comment="Department identifier")
    candidate_count: Mapped[int] = mapped_column(Integer, nullable=False, comment="Number of candidates")
    course_end_date: Mapped[Date] = mapped_column(SQLDate, nullable=False, comment="Course end date")
    preferred_shift: Mapped[ShiftName] = mapped_column(
        str_enum(ShiftName, "preferred_shift"),
        nullable=False,
        comment="Preferred shift",
    )
    shift_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("shifts.id"),
        nullable=True,
        comment="Resolved shift",
    )
    exam_start_hour: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="Exam start hour")
    booking_date: Mapped[Date] = mapped_column(SQLDate, nullable=False, comment="Exam date")

    status: Mapped[BookingStatus] = mapped_column(
        str_enum(BookingStatus, "booking_status"),
        nullable=False,
        default=BookingStatus.HOLDING,
        comment="Lifecycle status",
    )
    hold_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, comment="Hold deadline (UTC)")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Requester notes")
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Admin notes / rejection reason")
    confirmation_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, comment="Confirmation number")

    # External action sub-state
    external_action_status: Mapped[ExternalActionStatus] = mapped_column(
        str_enum(ExternalActionStatus, "external_action_status"),
        nullable=False,
        default=ExternalActionStatus.PENDING,
        comment="External action status",
    )
    external_action_completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    external_action_verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    external_action_verified_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    external_action_rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    warning_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, comment="Reminder sent marker")

    # Capacity override audit
    capacity_override_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    capacity_override_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    capacity_override_details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    shift: Mapped[Optional[Shift]] = relationship(Shift, lazy="joined")
    history: Mapped[List["BookingHistoryEntry"]] = relationship(
        "BookingHistoryEntry",
        back_populates="booking",
        order_by="BookingHistoryEntry.created_at",
        lazy="select",
    )

    __table_args__ = (
        Index("ix_booking_department_status", "department_id", "status"),
        Index("ix_booking_date_shift_status", "booking_date", "shift_id", "status"),
        Index("ix_booking_date_hour_status", "booking_date", "exam_start_hour", "status"),
        Index("ix_booking_status_hold", "status", "hold_expires_at"),
        Index(
            "uq_booking_active_department",
            "department_id",
            unique=True,
            sqlite_where=_ACTIVE_WHERE,
            postgresql_where=_ACTIVE_WHERE,
        ),
        CheckConstraint("candidate_count > 0", name="ck_booking_candidates_positive"),
        CheckConstraint(
            "(status = 'holding' AND hold_expires_at IS NOT NULL) OR "
            "(status <> 'holding' AND hold_expires_at IS NULL)",
            name="ck_booking_hold_expiry_iff_holding",
        ),
        {"comment": "Exam session bookings"},
    )

    @validates("candidate_count")
    def validate_candidate_count(self, key: str, value: int) -> int:
        if value is None or value <= 0:
            raise ValueError("candidate_count must be positive")
        return value

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def hold_expired(self, now: datetime) -> bool:
        """True once ``now`` has reached the hold deadline (inclusive)."""
        return self.hold_expires_at is not None and now >= self.hold_expires_at

    def days_until_exam(self, today: Date) -> int:
        return (self.booking_date - today).days

    def summary(self) -> Dict[str, Any]:
        """Compact representation for event observers."""
        return {
            "id": self.id,
            "department_id": self.department_id,
            "candidate_count": self.candidate_count,
            "booking_date": self.booking_date.isoformat(),
            "status": self.status.value,
            "user_id": self.user_id,
        }

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, department={self.department_id}, "
            f"date={self.booking_date}, status={self.status.value})>"
        )


class BookingHistoryEntry(TimestampModel):
    """
    Append-only audit trail entry.

    Entries are inserted by the lifecycle services and never updated or
    deleted. ``performed_by`` is NULL for system-initiated events.
    """

    __tablename__ = "booking_history"

    booking_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        comment="Booking reference",
    )
    event_type: Mapped[BookingEventType] = mapped_column(
        str_enum(BookingEventType, "booking_event_type"),
        nullable=False,
        comment="Event type",
    )
    description: Mapped[str] = mapped_column(Text, nullable=False, comment="Human-readable description")
    performed_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, comment="Actor, NULL for system")
    event_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata",
        JSON,
        nullable=True,
        comment="Structured event details",
    )

    booking: Mapped[Booking] = relationship(Booking, back_populates="history")

    __table_args__ = (
        Index("ix_booking_history_booking_created", "booking_id", "created_at"),
        {"comment": "Booking audit trail"},
    )

    def __repr__(self) -> str:
        return f"<BookingHistoryEntry(booking_id={self.booking_id}, {self.event_type.value})>"
