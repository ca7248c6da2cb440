"""
Hold-expiry reaper.

Periodic sweep that moves holds past their deadline to ``expired``.

Each candidate is expired with its own conditional write, so a booking that
was submitted or cancelled between the select and the update is simply
skipped. Re-running a pass, or two passes overlapping across processes, is
harmless.
"""

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from exam_scheduler.models.base.enums import BookingEventType, BookingStatus
from exam_scheduler.models.booking.booking import Booking
from exam_scheduler.repositories.booking.booking_history_repository import BookingHistoryRepository
from exam_scheduler.repositories.booking.booking_repository import BookingRepository
from exam_scheduler.services.base.base_service import BaseService
from exam_scheduler.services.base.event_dispatcher import BookingEventName

# One pass at a time per process
_run_guard = threading.Lock()


@dataclass
class ReaperReport:
    """Outcome of one reaper pass."""
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0.0
    candidates: int = 0
    expired: int = 0
    skipped: int = 0
    failed: int = 0
    overlapped: bool = False
    expired_ids: List[str] = field(default_factory=list)


class HoldExpiryReaper(BaseService):
    """
    Expire holding bookings whose ``hold_expires_at`` is at or before now.
    """

    def __init__(self, db, **kwargs):
        super().__init__(db, **kwargs)
        self.booking_repo = BookingRepository(db)
        self.history_repo = BookingHistoryRepository(db)

    def run_once(self, now: Optional[datetime] = None) -> ReaperReport:
        now = now or self.clock.utcnow()
        report = ReaperReport(started_at=now)

        if not _run_guard.acquire(blocking=False):
            self._logger.info("Reaper pass already running, skipping")
            report.overlapped = True
            report.completed_at = now
            return report

        started = time.monotonic()
        try:
            candidate_ids = [b.id for b in self.booking_repo.find_expired_holds(now)]
            # release the read transaction before writing
            self._rollback()
            report.candidates = len(candidate_ids)

            for booking_id in candidate_ids:
                try:
                    if self._expire(booking_id, now):
                        report.expired += 1
                        report.expired_ids.append(booking_id)
                    else:
                        report.skipped += 1
                except Exception as e:
                    report.failed += 1
                    self._logger.error(
                        f"Failed to expire hold {booking_id}: {e}",
                        exc_info=True,
                        extra={"booking_id": booking_id},
                    )
        finally:
            _run_guard.release()

        report.completed_at = self.clock.utcnow()
        report.duration_seconds = round(time.monotonic() - started, 3)
        if report.candidates:
            self._logger.info(
                f"Reaper expired {report.expired} holds "
                f"({report.skipped} skipped, {report.failed} failed)",
                extra={"expired": report.expired, "skipped": report.skipped, "failed": report.failed},
            )
        return report

    def _expire(self, booking_id: str, now: datetime) -> bool:
        with self.transaction():
            won = self.booking_repo.transition_status(
                booking_id,
                [BookingStatus.HOLDING],
                BookingStatus.EXPIRED,
                extra_conditions=[Booking.hold_expires_at <= now],
            )
            if won:
                self.history_repo.append(
                    booking_id,
                    BookingEventType.HOLD_EXPIRED,
                    "Hold expired without submission",
                    at=now,
                )
        if won:
            booking = self.booking_repo.get_by_id(booking_id)
            self.broadcaster.emit(BookingEventName.EXPIRED, booking.summary())
        return won
