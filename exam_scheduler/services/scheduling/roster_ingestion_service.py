"""
Roster ingestion.

Consumes rows an external importer produced from proctor spreadsheets and
bulk-replaces the rosters for a date range. Invalid rows are reported and
skipped; the valid ones replace the range in one transaction.
"""

from datetime import date
from typing import Any, Dict, Iterable, List, Tuple

from pydantic import ValidationError as PydanticValidationError

from exam_scheduler.core.exceptions import ValidationError
from exam_scheduler.models.scheduling.capacity import (
    HourlyCapacity,
    ShiftCapacityRoster,
    compute_effective_capacity,
    compute_reserve,
)
from exam_scheduler.repositories.scheduling.capacity_repository import CapacityRepository
from exam_scheduler.repositories.scheduling.shift_repository import ShiftRepository
from exam_scheduler.schemas.scheduling.capacity import HourlyRosterRow, IngestionReport, RowError, ShiftRosterRow
from exam_scheduler.services.base.base_service import BaseService
from exam_scheduler.services.base.service_result import ServiceResult


def _row_error(index: int, exc: PydanticValidationError) -> RowError:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "row"
        messages.append(f"{loc}: {err['msg']}")
    return RowError(row=index, message="; ".join(messages))


class RosterIngestionService(BaseService):
    """Replaces shift and hourly rosters for a date range."""

    def __init__(self, db, **kwargs):
        super().__init__(db, **kwargs)
        self.capacity_repo = CapacityRepository(db)
        self.shift_repo = ShiftRepository(db)

    # -------------------------------------------------------------------------
    # Per-shift rosters
    # -------------------------------------------------------------------------

    def ingest_shift_rosters(
        self,
        start: date,
        end: date,
        rows: Iterable[Dict[str, Any]],
    ) -> ServiceResult[IngestionReport]:
        """
        Replace per-shift rosters in [start, end].

        Each row needs ``date``, ``shift`` (name) and ``proctor_count``.
        """
        try:
            self._validate_range(start, end)
            rules = self._scheduling_settings()
            shifts = {s.name: s for s in self.shift_repo.list_all()}
            report = IngestionReport(start_date=start, end_date=end)
            records: Dict[Tuple[date, str], ShiftCapacityRoster] = {}

            for index, raw in enumerate(rows, start=1):
                try:
                    row = ShiftRosterRow.model_validate(raw)
                except PydanticValidationError as e:
                    report.errors.append(_row_error(index, e))
                    continue
                if not start <= row.date <= end:
                    report.errors.append(RowError(row=index, message=f"date {row.date} outside {start} - {end}"))
                    continue
                shift = shifts.get(row.shift)
                if shift is None:
                    report.errors.append(RowError(row=index, message=f"unknown shift {row.shift.value}"))
                    continue

                reserve = compute_reserve(row.proctor_count, rules.reserve_percentage)
                # Later rows for the same (date, shift) win
                records[(row.date, shift.id)] = ShiftCapacityRoster(
                    date=row.date,
                    shift_id=shift.id,
                    total_proctors=row.proctor_count,
                    reserve_proctors=reserve,
                    effective_capacity=compute_effective_capacity(
                        row.proctor_count, reserve, rules.candidates_per_proctor
                    ),
                )

            with self.transaction():
                report.inserted = self.capacity_repo.replace_shift_rosters(start, end, records.values())

            self._log_report("shift", report)
            return ServiceResult.success(report)
        except Exception as e:
            return self._handle_exception(e, "ingest shift rosters", f"{start}..{end}")

    # -------------------------------------------------------------------------
    # Per-hour capacity
    # -------------------------------------------------------------------------

    def ingest_hourly_capacity(
        self,
        start: date,
        end: date,
        rows: Iterable[Dict[str, Any]],
    ) -> ServiceResult[IngestionReport]:
        """
        Replace hourly capacity in [start, end].

        Each row needs ``date``, ``hour`` (0-23) and ``proctor_count``.
        """
        try:
            self._validate_range(start, end)
            rules = self._scheduling_settings()
            report = IngestionReport(start_date=start, end_date=end)
            records: Dict[Tuple[date, int], HourlyCapacity] = {}

            for index, raw in enumerate(rows, start=1):
                try:
                    row = HourlyRosterRow.model_validate(raw)
                except PydanticValidationError as e:
                    report.errors.append(_row_error(index, e))
                    continue
                if not start <= row.date <= end:
                    report.errors.append(RowError(row=index, message=f"date {row.date} outside {start} - {end}"))
                    continue

                reserve = compute_reserve(row.proctor_count, rules.reserve_percentage)
                records[(row.date, row.hour)] = HourlyCapacity(
                    date=row.date,
                    hour=row.hour,
                    total_proctors=row.proctor_count,
                    reserve_proctors=reserve,
                    effective_capacity=compute_effective_capacity(
                        row.proctor_count, reserve, rules.candidates_per_proctor
                    ),
                )

            with self.transaction():
                report.inserted = self.capacity_repo.replace_hourly(start, end, records.values())

            self._log_report("hourly", report)
            return ServiceResult.success(report)
        except Exception as e:
            return self._handle_exception(e, "ingest hourly capacity", f"{start}..{end}")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _validate_range(start: date, end: date) -> None:
        if end < start:
            raise ValidationError("end date must not be before start date")

    def _log_report(self, kind: str, report: IngestionReport) -> None:
        self._logger.info(
            f"Ingested {kind} rosters",
            extra={
                "start": report.start_date.isoformat(),
                "end": report.end_date.isoformat(),
                "inserted": report.inserted,
                "errors": len(report.errors),
            },
        )
