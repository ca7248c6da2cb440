"""Shift repository."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from exam_scheduler.models.base.enums import ShiftName
from exam_scheduler.models.scheduling.shift import Shift
from exam_scheduler.repositories.base.base_repository import BaseRepository


class ShiftRepository(BaseRepository[Shift]):

    def __init__(self, db: Session):
        super().__init__(Shift, db)

    def list_all(self) -> List[Shift]:
        return list(self.db.scalars(select(Shift).order_by(Shift.start_time)).all())

    def list_active(self) -> List[Shift]:
        """Active shifts in chronological order."""
        stmt = select(Shift).where(Shift.is_active.is_(True)).order_by(Shift.start_time)
        return list(self.db.scalars(stmt).all())

    def find_by_name(self, name: ShiftName) -> Optional[Shift]:
        return self.db.scalars(select(Shift).where(Shift.name == name)).first()
