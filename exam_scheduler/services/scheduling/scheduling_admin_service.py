"""
Reference data administration: shifts, closed dates and scheduling rules.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from exam_scheduler.core.exceptions import EntityAlreadyExistsError, NotFoundError, ValidationError
from exam_scheduler.models.base.enums import ShiftName
from exam_scheduler.models.scheduling.closed_date import ClosedDate
from exam_scheduler.models.scheduling.scheduling_settings import SchedulingSettings
from exam_scheduler.models.scheduling.shift import Shift
from exam_scheduler.repositories.scheduling.closed_date_repository import ClosedDateRepository
from exam_scheduler.repositories.scheduling.shift_repository import ShiftRepository
from exam_scheduler.schemas.scheduling.capacity import SettingsUpdate
from exam_scheduler.services.base.base_service import BaseService
from exam_scheduler.services.base.event_dispatcher import BookingEventName
from exam_scheduler.services.base.service_result import ServiceResult

DEFAULT_SHIFTS = (
    (ShiftName.MORNING, "08:00", "12:00"),
    (ShiftName.MIDDAY, "12:00", "16:00"),
    (ShiftName.AFTERNOON, "16:00", "19:00"),
)
DEFAULT_SHIFT_CAPACITY = 30

_SHIFT_FIELDS = {"start_time", "end_time", "max_candidates", "is_active"}


class SchedulingAdminService(BaseService):
    """Admin-side maintenance of the calendar and capacity configuration."""

    def __init__(self, db, **kwargs):
        super().__init__(db, **kwargs)
        self.shift_repo = ShiftRepository(db)
        self.closed_date_repo = ClosedDateRepository(db)

    # -------------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------------

    def seed_defaults(self) -> ServiceResult[List[Shift]]:
        """Create the default shifts and settings row if they are missing."""
        try:
            with self.transaction():
                for name, start, end in DEFAULT_SHIFTS:
                    if self.shift_repo.find_by_name(name) is None:
                        self.shift_repo.create(
                            Shift(
                                name=name,
                                start_time=start,
                                end_time=end,
                                max_candidates=DEFAULT_SHIFT_CAPACITY,
                                is_active=True,
                            )
                        )
                self.settings_repo.get_or_create()
            return ServiceResult.success(self.shift_repo.list_all())
        except Exception as e:
            return self._handle_exception(e, "seed default configuration")

    # -------------------------------------------------------------------------
    # Shifts
    # -------------------------------------------------------------------------

    def list_shifts(self) -> List[Shift]:
        return self.shift_repo.list_all()

    def update_shift(self, shift_id: str, values: Dict[str, Any]) -> ServiceResult[Shift]:
        try:
            unknown = set(values) - _SHIFT_FIELDS
            if unknown:
                raise ValidationError(f"Unknown shift fields: {', '.join(sorted(unknown))}")
            if "max_candidates" in values and values["max_candidates"] < 0:
                raise ValidationError("max_candidates must not be negative")

            with self.transaction():
                shift = self.shift_repo.find_by_id(shift_id)
                if shift is None:
                    raise NotFoundError("Shift", shift_id)
                for key, value in values.items():
                    setattr(shift, key, value)
                if shift.end_hour <= shift.start_hour:
                    raise ValidationError("end_time must be after start_time")
            return ServiceResult.success(shift)
        except Exception as e:
            return self._handle_exception(e, "update shift", shift_id)

    def set_shift_active(self, shift_id: str, active: bool) -> ServiceResult[Shift]:
        return self.update_shift(shift_id, {"is_active": active})

    # -------------------------------------------------------------------------
    # Closed dates
    # -------------------------------------------------------------------------

    def list_closed_dates(self) -> List[ClosedDate]:
        return self.closed_date_repo.list_all()

    def add_closed_date(
        self,
        day: date,
        reason: Optional[str] = None,
        admin_id: Optional[str] = None,
    ) -> ServiceResult[ClosedDate]:
        try:
            with self.transaction():
                if self.closed_date_repo.find_by_date(day) is not None:
                    raise EntityAlreadyExistsError(f"{day.isoformat()} is already closed")
                closed = self.closed_date_repo.create(ClosedDate(date=day, reason=reason, created_by=admin_id))
            self._logger.info(f"Closed date {day.isoformat()}", extra={"admin_id": admin_id, "reason": reason})
            return ServiceResult.success(closed)
        except Exception as e:
            return self._handle_exception(e, "add closed date", day)

    def remove_closed_date(self, closed_date_id: str) -> ServiceResult[bool]:
        """Re-open a date."""
        try:
            with self.transaction():
                closed = self.closed_date_repo.find_by_id(closed_date_id)
                if closed is None:
                    raise NotFoundError("ClosedDate", closed_date_id)
                self.closed_date_repo.delete(closed)
            return ServiceResult.success(True)
        except Exception as e:
            return self._handle_exception(e, "remove closed date", closed_date_id)

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    def get_settings(self) -> SchedulingSettings:
        with self.transaction():
            return self._scheduling_settings()

    def update_settings(self, update, admin_id: Optional[str] = None) -> ServiceResult[SchedulingSettings]:
        try:
            update = self._parse(SettingsUpdate, update)
            values = update.model_dump(exclude_none=True)
            with self.transaction():
                settings_row = self.settings_repo.update(values, updated_by=admin_id)

            self.broadcaster.emit(
                BookingEventName.SETTINGS_UPDATED,
                {
                    "settings": settings_row.to_dict(exclude=["id", "created_at", "updated_at", "updated_by"]),
                    "updated_by": admin_id,
                },
            )
            return ServiceResult.success(settings_row)
        except Exception as e:
            return self._handle_exception(e, "update scheduling settings")
