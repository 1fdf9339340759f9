"""
DailyRolloverService -- closing one operating day and opening the next.

Responsibility:
    On the first run of a new calendar day, archives the previous day's
    assignment maps and attendance flag under date-suffixed keys, clears the
    live keys, applies the day-advance to every worker, and records the new
    day as processed.

Architecture position:
    Kernel > Services -- imperative shell.  The per-worker state table is
    ``fieldsales_kernel.domain.transitions.advance_day``.

Invariants enforced:
    - Idempotent: a second run for the same day changes nothing.
    - First run (no processed day recorded) only records today.
    - Sink workers are never touched.
    - Every worker's day-close outcome is reported, so a booking that
      lapsed without attendance is distinguishable from a worked day.

Failure modes:
    - ClockRegressionError: today is before the last processed day.
      Nothing is changed.
    - Store write failures are reported as MEMORY_ONLY in the result.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date

from fieldsales_kernel.domain.dates import day_key, parse_day
from fieldsales_kernel.domain.transitions import DayCloseOutcome, advance_day
from fieldsales_kernel.exceptions import ClockRegressionError
from fieldsales_kernel.logging_config import LogContext, get_logger
from fieldsales_kernel.services.base import BaseService
from fieldsales_kernel.services.repository import PERSISTED, WriteOutcome
from fieldsales_kernel.storage.keys import StorageKeys

logger = get_logger("services.rollover")

ARCHIVED_FLAG = "true"


@dataclass(frozen=True)
class RolloverResult:
    """What one rollover call did."""

    previous_day: date | None
    new_last_processed: date
    ran: bool
    archived_keys: tuple[str, ...] = ()
    outcomes: dict[DayCloseOutcome, tuple[str, ...]] = field(default_factory=dict)
    prior_day_finalized: bool = False
    persistence: WriteOutcome = PERSISTED

    def worker_ids(self, outcome: DayCloseOutcome) -> tuple[str, ...]:
        return self.outcomes.get(outcome, ())

    @property
    def lapsed_worker_ids(self) -> tuple[str, ...]:
        return self.worker_ids(DayCloseOutcome.LAPSED_UNSHOWN)


class DailyRolloverService(BaseService):
    """Explicit, idempotent day rollover."""

    def last_processed_day(self) -> date | None:
        return parse_day(self.repository.get_value(StorageKeys.LAST_APP_DATE))

    def run_if_needed(self) -> RolloverResult:
        """Roll over from the stored last day to the clock's today."""
        with self.repository.critical_section():
            return self.rollover(self.last_processed_day(), self.today())

    def rollover(self, last_processed: date | None, today: date) -> RolloverResult:
        """
        Close ``last_processed`` and open ``today``.

        ``last_processed=None`` means the stored last processed day; only when
        nothing is stored either is this a first run, which records ``today``.

        Raises:
            ClockRegressionError: if ``today`` is before ``last_processed``.
        """
        with self.repository.critical_section(), LogContext.bind(operating_day=day_key(today)):
            stored = self.last_processed_day()
            for reference in (last_processed, stored):
                if reference is not None and today < reference:
                    logger.error(
                        "rollover_clock_regression",
                        extra={"last_processed": day_key(reference), "today": day_key(today)},
                    )
                    raise ClockRegressionError(day_key(reference), day_key(today))

            if last_processed is None:
                last_processed = stored

            # Already processed today: the live keys belong to today.
            if last_processed is None or last_processed == today or stored == today:
                persistence = (
                    PERSISTED if stored == today
                    else self.repository.set_value(StorageKeys.LAST_APP_DATE, day_key(today))
                )
                logger.debug("rollover_not_needed", extra={"first_run": last_processed is None})
                return RolloverResult(last_processed, today, ran=False, persistence=persistence)

            outcomes_list: list[WriteOutcome] = []
            archived: list[str] = []

            for key in StorageKeys.ARCHIVED_ASSIGNMENTS:
                assignments = self.repository.get_value(key)
                if assignments:
                    archive = f"{key}_{day_key(last_processed)}"
                    outcomes_list.append(self.repository.set_value(archive, assignments))
                    archived.append(archive)
                outcomes_list.append(self.repository.remove_value(key))

            prior_finalized = bool(self.repository.get_value(StorageKeys.ATTENDANCE_FINALIZED))
            if prior_finalized:
                archive = StorageKeys.attendance_for(last_processed)
                outcomes_list.append(self.repository.set_value(archive, ARCHIVED_FLAG))
                archived.append(archive)
            outcomes_list.append(self.repository.remove_value(StorageKeys.ATTENDANCE_FINALIZED))

            by_outcome: dict[DayCloseOutcome, list[str]] = defaultdict(list)
            changed = []
            for worker in self.repository.load_workers():
                advanced, outcome = advance_day(worker, today)
                by_outcome[outcome].append(worker.worker_id)
                if advanced is not worker:
                    changed.append(advanced)
            if changed:
                outcomes_list.append(self.repository.save_workers(changed))

            outcomes_list.append(self.repository.set_value(StorageKeys.LAST_APP_DATE, day_key(today)))
            persistence = WriteOutcome.combine(outcomes_list)

            report = {k: tuple(v) for k, v in by_outcome.items()}
            lapsed = report.get(DayCloseOutcome.LAPSED_UNSHOWN, ())
            if lapsed:
                logger.warning(
                    "rollover_lapsed_bookings",
                    extra={
                        "closed_day": day_key(last_processed),
                        "worker_ids": list(lapsed),
                        "prior_day_finalized": prior_finalized,
                    },
                )
            logger.info(
                "rollover_completed",
                extra={
                    "closed_day": day_key(last_processed),
                    "archived_keys": archived,
                    "changed_workers": len(changed),
                    "outcome_counts": {k.value: len(v) for k, v in report.items()},
                    "persistence": persistence.status.value,
                },
            )
            return RolloverResult(
                previous_day=last_processed,
                new_last_processed=today,
                ran=True,
                archived_keys=tuple(archived),
                outcomes=report,
                prior_day_finalized=prior_finalized,
                persistence=persistence,
            )
