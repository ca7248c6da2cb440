"""Closed date repository."""

from datetime import date
from typing import List, Optional, Set

from sqlalchemy import select
from sqlalchemy.orm import Session

from exam_scheduler.models.scheduling.closed_date import ClosedDate
from exam_scheduler.repositories.base.base_repository import BaseRepository


class ClosedDateRepository(BaseRepository[ClosedDate]):

    def __init__(self, db: Session):
        super().__init__(ClosedDate, db)

    def list_all(self) -> List[ClosedDate]:
        return list(self.db.scalars(select(ClosedDate).order_by(ClosedDate.date)).all())

    def list_between(self, start: date, end: date) -> List[ClosedDate]:
        stmt = (
            select(ClosedDate)
            .where(ClosedDate.date >= start, ClosedDate.date <= end)
            .order_by(ClosedDate.date)
        )
        return list(self.db.scalars(stmt).all())

    def date_set(self) -> Set[date]:
        return set(self.db.scalars(select(ClosedDate.date)).all())

    def find_by_date(self, day: date) -> Optional[ClosedDate]:
        return self.db.scalars(select(ClosedDate).where(ClosedDate.date == day)).first()
