"""
AttendanceFinalizer -- the daily attendance lock.

Responsibility:
    Locks the day's attendance once every worker who showed is assigned to
    a sales unit, converting workers who were booked for the day but never
    showed into no-shows.  ``modify_attendance`` lifts the lock again.

Architecture position:
    Kernel > Services -- imperative shell.  Pure conversion logic lives in
    ``fieldsales_kernel.domain.transitions``; this service sequences it
    under the repository's critical section.

Invariants enforced:
    - Precondition checked before any change: every worker showed today
      has a route manager or a cart.
    - Finalization is a two-state toggle per day, stored both as the live
      ``attendanceFinalized`` day and as ``attendanceFinalized_<day>``.
    - Re-finalizing an already finalized day re-checks the precondition
      and converts nobody twice: converted workers are no longer due today.
    - ``modify_attendance`` never reverts earlier conversions.

Failure modes:
    - UnassignedWorkersError: showed workers without an assignment.  No
      state is changed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from fieldsales_kernel.domain.dates import day_key
from fieldsales_kernel.domain.transitions import convert_to_no_show, is_pending_no_show
from fieldsales_kernel.exceptions import UnassignedWorkersError
from fieldsales_kernel.logging_config import LogContext, get_logger
from fieldsales_kernel.services.base import BaseService
from fieldsales_kernel.services.repository import WorkforceRepository, WriteOutcome
from fieldsales_kernel.storage.keys import StorageKeys

logger = get_logger("services.attendance")

FLAG_TRUE = "true"
FLAG_FALSE = "false"


@dataclass(frozen=True)
class FinalizeResult:
    """Outcome of one finalize call."""

    day: date
    converted_worker_ids: tuple[str, ...]
    persistence: WriteOutcome
    was_already_finalized: bool = False

    @property
    def converted_count(self) -> int:
        return len(self.converted_worker_ids)


def is_attendance_finalized(repository: WorkforceRepository, day: date) -> bool:
    """True when attendance for ``day`` is locked."""
    flag = repository.get_value(StorageKeys.attendance_for(day))
    if flag is not None:
        return flag == FLAG_TRUE
    return repository.get_value(StorageKeys.ATTENDANCE_FINALIZED) == day_key(day)


class AttendanceFinalizer(BaseService):
    """Finalize and un-finalize the day's attendance."""

    def is_finalized(self, day: date | None = None) -> bool:
        return is_attendance_finalized(self.repository, day or self.today())

    def unassigned_showed_workers(self, day: date | None = None) -> list[str]:
        day = day or self.today()
        return [
            w.worker_id for w in self.repository.load_workers()
            if w.showed_on(day) and not w.is_assigned
        ]

    def finalize(self) -> FinalizeResult:
        """
        Lock today's attendance.

        Postconditions:
            - Every worker due today who did not show is a no-show with
              ``no_shows`` incremented and no assignment.
            - ``is_finalized(today)`` is True.

        Raises:
            UnassignedWorkersError: if a showed worker is unassigned.
        """
        with self.repository.critical_section():
            today = self.today()
            with LogContext.bind(operating_day=day_key(today)):
                unassigned = self.unassigned_showed_workers(today)
                if unassigned:
                    logger.warning(
                        "attendance_finalize_rejected",
                        extra={"unassigned_count": len(unassigned), "worker_ids": unassigned},
                    )
                    raise UnassignedWorkersError(unassigned)

                was_finalized = self.is_finalized(today)
                converted = [
                    convert_to_no_show(w, today)
                    for w in self.repository.load_workers()
                    if is_pending_no_show(w, today)
                ]

                outcomes = []
                if converted:
                    outcomes.append(self.repository.save_workers(converted))
                outcomes.append(
                    self.repository.set_value(StorageKeys.ATTENDANCE_FINALIZED, day_key(today))
                )
                outcomes.append(
                    self.repository.set_value(StorageKeys.attendance_for(today), FLAG_TRUE)
                )
                persistence = WriteOutcome.combine(outcomes)

                converted_ids = tuple(w.worker_id for w in converted)
                logger.info(
                    "attendance_finalized",
                    extra={
                        "converted_count": len(converted_ids),
                        "converted_worker_ids": list(converted_ids),
                        "was_already_finalized": was_finalized,
                        "persistence": persistence.status.value,
                    },
                )
                return FinalizeResult(today, converted_ids, persistence, was_finalized)

    def modify_attendance(self) -> WriteOutcome:
        """Unlock today's attendance.  No-show conversions stay in place."""
        with self.repository.critical_section():
            today = self.today()
            outcome = WriteOutcome.combine([
                self.repository.set_value(StorageKeys.ATTENDANCE_FINALIZED, None),
                self.repository.set_value(StorageKeys.attendance_for(today), FLAG_FALSE),
            ])
            logger.info(
                "attendance_unlocked",
                extra={"operating_day": day_key(today), "persistence": outcome.status.value},
            )
            return outcome
