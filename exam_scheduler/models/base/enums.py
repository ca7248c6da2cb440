"""
Database enums and state machine tables.

Closed enumerations for booking status, the external-action sub-state,
history event types and shift identifiers, together with the explicit
transition tables the lifecycle services consult.
"""

import enum
from typing import Dict, FrozenSet


class ShiftName(str, enum.Enum):
    """Fixed exam shift identifiers."""
    MORNING = "morning"
    MIDDAY = "midday"
    AFTERNOON = "afternoon"


class BookingStatus(str, enum.Enum):
    """Booking lifecycle status."""
    HOLDING = "holding"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class ExternalActionStatus(str, enum.Enum):
    """Post-approval external action (venue/voucher arrangement) status."""
    PENDING = "pending"
    USER_COMPLETED = "user_completed"
    VERIFIED = "verified"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class BookingEventType(str, enum.Enum):
    """Booking history event types."""
    CREATED = "created"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    HOLD_EXPIRED = "hold_expired"
    VOUCHER_USER_COMPLETED = "voucher_user_completed"
    VOUCHER_VERIFIED = "voucher_verified"
    VOUCHER_REJECTED = "voucher_rejected"
    VOUCHER_ADMIN_COMPLETED = "voucher_admin_completed"
    VOUCHER_REMINDER_SENT = "voucher_reminder_sent"
    VOUCHER_AUTO_CANCELLED = "voucher_auto_cancelled"
    STATUS_CHANGED = "status_changed"
    ADMIN_NOTE_ADDED = "admin_note_added"


TERMINAL_STATUSES: FrozenSet[BookingStatus] = frozenset({
    BookingStatus.REJECTED,
    BookingStatus.EXPIRED,
    BookingStatus.CANCELLED,
})

ACTIVE_STATUSES: FrozenSet[BookingStatus] = frozenset(set(BookingStatus) - TERMINAL_STATUSES)

# target status -> legal source statuses
BOOKING_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.HOLDING}),
    BookingStatus.EXPIRED: frozenset({BookingStatus.HOLDING}),
    BookingStatus.CANCELLED: frozenset({BookingStatus.HOLDING, BookingStatus.APPROVED}),
    BookingStatus.APPROVED: frozenset({BookingStatus.PENDING}),
    BookingStatus.REJECTED: frozenset({BookingStatus.PENDING}),
}

# target external-action status -> legal source statuses
EXTERNAL_ACTION_TRANSITIONS: Dict[ExternalActionStatus, FrozenSet[ExternalActionStatus]] = {
    ExternalActionStatus.USER_COMPLETED: frozenset({
        ExternalActionStatus.PENDING,
        ExternalActionStatus.REJECTED,
    }),
    ExternalActionStatus.VERIFIED: frozenset({
        ExternalActionStatus.PENDING,
        ExternalActionStatus.USER_COMPLETED,
        ExternalActionStatus.REJECTED,
    }),
    ExternalActionStatus.REJECTED: frozenset({ExternalActionStatus.USER_COMPLETED}),
    ExternalActionStatus.PENDING: frozenset({ExternalActionStatus.REJECTED}),
    ExternalActionStatus.CANCELLED: frozenset({
        ExternalActionStatus.PENDING,
        ExternalActionStatus.USER_COMPLETED,
        ExternalActionStatus.REJECTED,
    }),
}


def legal_sources(target: BookingStatus) -> FrozenSet[BookingStatus]:
    """Statuses from which ``target`` may be entered."""
    return BOOKING_TRANSITIONS.get(target, frozenset())


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return current in legal_sources(target)


def can_transition_action(current: ExternalActionStatus, target: ExternalActionStatus) -> bool:
    return current in EXTERNAL_ACTION_TRANSITIONS.get(target, frozenset())
