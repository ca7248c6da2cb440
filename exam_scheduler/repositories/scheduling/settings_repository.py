"""Scheduling settings repository (singleton row)."""

from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from exam_scheduler.config.settings import Settings, get_settings
from exam_scheduler.models.scheduling.scheduling_settings import SchedulingSettings
from exam_scheduler.repositories.base.base_repository import BaseRepository


class SchedulingSettingsRepository(BaseRepository[SchedulingSettings]):

    def __init__(self, db: Session, config: Optional[Settings] = None):
        super().__init__(SchedulingSettings, db)
        self.config = config or get_settings()

    def find_current(self) -> Optional[SchedulingSettings]:
        return self.db.scalars(select(SchedulingSettings).limit(1)).first()

    def get_or_create(self) -> SchedulingSettings:
        """Return the settings row, seeding it from the environment if absent."""
        row = self.find_current()
        if row is None:
            row = SchedulingSettings(
                working_days_rule=self.config.WORKING_DAYS_RULE,
                hold_duration_minutes=self.config.HOLD_DURATION_MINUTES,
                max_candidates_per_day=self.config.MAX_CANDIDATES_PER_DAY,
                candidates_per_proctor=self.config.CANDIDATES_PER_PROCTOR,
                reserve_percentage=self.config.RESERVE_PERCENTAGE,
            )
            self.create(row)
        return row

    def update(self, values: Dict[str, Any], updated_by: Optional[str] = None) -> SchedulingSettings:
        row = self.get_or_create()
        for key, value in values.items():
            setattr(row, key, value)
        row.updated_by = updated_by
        self.db.flush()
        return row
