"""Append-only booking history repository."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from exam_scheduler.models.base.enums import BookingEventType
from exam_scheduler.models.booking.booking import BookingHistoryEntry
from exam_scheduler.repositories.base.base_repository import BaseRepository


class BookingHistoryRepository(BaseRepository[BookingHistoryEntry]):

    def __init__(self, db: Session):
        super().__init__(BookingHistoryEntry, db)

    def append(
        self,
        booking_id: str,
        event_type: BookingEventType,
        description: str,
        performed_by: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        at: Optional[datetime] = None,
    ) -> BookingHistoryEntry:
        entry = BookingHistoryEntry(
            booking_id=booking_id,
            event_type=event_type,
            description=description,
            performed_by=performed_by,
            event_metadata=metadata,
        )
        if at is not None:
            entry.created_at = at
            entry.updated_at = at
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_for_booking(self, booking_id: str) -> List[BookingHistoryEntry]:
        stmt = (
            select(BookingHistoryEntry)
            .where(BookingHistoryEntry.booking_id == booking_id)
            .order_by(BookingHistoryEntry.created_at, BookingHistoryEntry.id)
        )
        return list(self.db.scalars(stmt).all())

