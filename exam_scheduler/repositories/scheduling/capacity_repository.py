"""
Capacity roster repository.

Both roster tables are replaced wholesale per date range; there are no
partial updates.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from exam_scheduler.models.scheduling.capacity import HourlyCapacity, ShiftCapacityRoster
from exam_scheduler.repositories.base.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CapacityRepository(BaseRepository[ShiftCapacityRoster]):

    def __init__(self, db: Session):
        super().__init__(ShiftCapacityRoster, db)

    # ==================== Per-shift rosters ====================

    def find_shift_roster(self, day: date, shift_id: str) -> Optional[ShiftCapacityRoster]:
        stmt = select(ShiftCapacityRoster).where(
            ShiftCapacityRoster.date == day,
            ShiftCapacityRoster.shift_id == shift_id,
        )
        return self.db.scalars(stmt).first()

    def list_shift_rosters(self, start: date, end: date) -> List[ShiftCapacityRoster]:
        stmt = (
            select(ShiftCapacityRoster)
            .where(ShiftCapacityRoster.date >= start, ShiftCapacityRoster.date <= end)
            .order_by(ShiftCapacityRoster.date)
        )
        return list(self.db.scalars(stmt).unique().all())

    def replace_shift_rosters(self, start: date, end: date, rows: Iterable[ShiftCapacityRoster]) -> int:
        """Delete every shift roster in [start, end] and insert ``rows``."""
        removed = self.db.execute(
            delete(ShiftCapacityRoster)
            .where(ShiftCapacityRoster.date >= start, ShiftCapacityRoster.date <= end)
            .execution_options(synchronize_session=False)
        ).rowcount
        rows = list(rows)
        self.db.add_all(rows)
        self.db.flush()
        logger.info(
            f"Replaced shift rosters {start} - {end}",
            extra={"removed": removed, "inserted": len(rows)},
        )
        return len(rows)

    # ==================== Per-hour capacity ====================

    def find_hourly(self, day: date, hour: int) -> Optional[HourlyCapacity]:
        stmt = select(HourlyCapacity).where(HourlyCapacity.date == day, HourlyCapacity.hour == hour)
        return self.db.scalars(stmt).first()

    def list_hourly(self, start: date, end: date) -> List[HourlyCapacity]:
        stmt = (
            select(HourlyCapacity)
            .where(HourlyCapacity.date >= start, HourlyCapacity.date <= end)
            .order_by(HourlyCapacity.date, HourlyCapacity.hour)
        )
        return list(self.db.scalars(stmt).all())

    def replace_hourly(self, start: date, end: date, rows: Iterable[HourlyCapacity]) -> int:
        """Delete every hourly record in [start, end] and insert ``rows``."""
        removed = self.db.execute(
            delete(HourlyCapacity)
            .where(HourlyCapacity.date >= start, HourlyCapacity.date <= end)
            .execution_options(synchronize_session=False)
        ).rowcount
        rows = list(rows)
        self.db.add_all(rows)
        self.db.flush()
        logger.info(
            f"Replaced hourly capacity {start} - {end}",
            extra={"removed": removed, "inserted": len(rows)},
        )
        return len(rows)
