"""
WorkerStateMachine -- operator actions on the worker pipeline.

Responsibility:
    Applies the operator transitions of ``fieldsales_kernel.domain.
    transitions`` to stored workers: load, validate, transition, save, log.
    Each call reads today from the clock and runs inside the repository's
    critical section.

Architecture position:
    Kernel > Services -- imperative shell around the pure transition
    functions.

Invariants enforced:
    - Validation happens before any write; a rejected action changes
      nothing.
    - Bulk actions resolve every worker id first, so a missing id aborts
      the whole batch.
    - Attendance changes are refused while today's attendance is
      finalized.
    - Optional ``expected_version`` arguments give optimistic concurrency
      between two operators.

Failure modes:
    - InvalidTransitionError / RebookDateError from the domain layer.
    - AttendanceLockedError: attendance change after finalization.
    - WorkerNotFoundError: unknown worker id.
    - StaleWorkerError: worker changed since the caller read it.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date

from fieldsales_kernel.domain import transitions
from fieldsales_kernel.domain.dates import day_key
from fieldsales_kernel.domain.transitions import ConfirmationAction, NextStepPrompt
from fieldsales_kernel.domain.worker import BookingStatus, SubStatus, Worker
from fieldsales_kernel.exceptions import AttendanceLockedError
from fieldsales_kernel.logging_config import LogContext, get_logger
from fieldsales_kernel.services.attendance_finalizer import is_attendance_finalized
from fieldsales_kernel.services.base import BaseService
from fieldsales_kernel.services.repository import PERSISTED, WriteOutcome

logger = get_logger("services.worker_state_machine")


@dataclass(frozen=True)
class WorkerUpdate:
    """Result of a single-worker action."""

    worker: Worker
    persistence: WriteOutcome
    prompt: NextStepPrompt | None = None


@dataclass(frozen=True)
class BulkUpdate:
    """Result of a bulk action."""

    workers: tuple[Worker, ...]
    persistence: WriteOutcome

    @property
    def worker_ids(self) -> tuple[str, ...]:
        return tuple(w.worker_id for w in self.workers)


class WorkerStateMachine(BaseService):
    """Operator transitions on stored workers."""

    # -- helpers -----------------------------------------------------------

    def _require_unlocked(self, today: date, action: str) -> None:
        if is_attendance_finalized(self.repository, today):
            logger.warning(
                "attendance_locked_rejected",
                extra={"action": action, "operating_day": day_key(today)},
            )
            raise AttendanceLockedError(day_key(today), action)

    def _apply(
        self,
        worker_id: str,
        action: str,
        change: Callable[[Worker, date], Worker],
        expected_version: int | None = None,
    ) -> WorkerUpdate:
        with self.repository.critical_section(), LogContext.bind(worker_id=worker_id):
            today = self.today()
            before = self.repository.get_worker(worker_id)
            after = change(before, today)
            if after is before:
                return WorkerUpdate(after, PERSISTED)
            expected = {worker_id: expected_version} if expected_version is not None else None
            persistence = self.repository.save_workers([after], expected)
            logger.info(
                "worker_transition",
                extra={
                    "action": action,
                    "from_status": before.booking_status.value,
                    "to_status": after.booking_status.value,
                    "version": after.version,
                    "persistence": persistence.status.value,
                },
            )
            return WorkerUpdate(after, persistence)

    def _apply_bulk(
        self,
        worker_ids: Iterable[str],
        action: str,
        change: Callable[[Worker, date], Worker],
    ) -> BulkUpdate:
        ids = list(dict.fromkeys(worker_ids))
        with self.repository.critical_section():
            today = self.today()
            workers = self.repository.get_workers(ids)
            updated = [change(w, today) for w in workers]
            persistence = self.repository.save_workers(updated) if updated else PERSISTED
            logger.info(
                "workers_bulk_transition",
                extra={
                    "action": action,
                    "count": len(updated),
                    "worker_ids": ids,
                    "persistence": persistence.status.value,
                },
            )
            return BulkUpdate(tuple(updated), persistence)

    # -- attendance --------------------------------------------------------

    def mark_showed(self, worker_id: str, expected_version: int | None = None) -> WorkerUpdate:
        """
        Mark a worker as showed today.

        Returns the updated worker and the follow-up prompt (rebook to a
        future date, or mark Will-Call).  Re-marking a worker who already
        showed today is a no-op, even once attendance is finalized.
        """
        prompt: list[NextStepPrompt] = []

        def change(worker: Worker, today: date) -> Worker:
            if not worker.showed_on(today):
                self._require_unlocked(today, transitions.ACTION_MARK_SHOWED)
            updated, next_step = transitions.mark_showed(worker, today)
            prompt.append(next_step)
            return updated

        result = self._apply(worker_id, transitions.ACTION_MARK_SHOWED, change, expected_version)
        return WorkerUpdate(result.worker, result.persistence, prompt[0])

    def unmark_showed(self, worker_id: str, expected_version: int | None = None) -> WorkerUpdate:
        def change(worker: Worker, today: date) -> Worker:
            self._require_unlocked(today, transitions.ACTION_UNMARK_SHOWED)
            return transitions.unmark_showed(worker, today)

        return self._apply(worker_id, transitions.ACTION_UNMARK_SHOWED, change, expected_version)

    def restore_no_show(self, worker_id: str, expected_version: int | None = None) -> WorkerUpdate:
        """Move a no-show back to today; only while attendance is unlocked."""
        def change(worker: Worker, today: date) -> Worker:
            self._require_unlocked(today, transitions.ACTION_RESTORE_NO_SHOW)
            return transitions.restore_no_show(worker, today)

        return self._apply(worker_id, transitions.ACTION_RESTORE_NO_SHOW, change, expected_version)

    # -- pipeline ----------------------------------------------------------

    def rebook(self, worker_id: str, target: date, expected_version: int | None = None) -> WorkerUpdate:
        return self._apply(
            worker_id,
            transitions.ACTION_REBOOK,
            lambda w, today: transitions.rebook(w, target, today),
            expected_version,
        )

    def book_next_day(self, worker_id: str, expected_version: int | None = None) -> WorkerUpdate:
        return self._apply(
            worker_id, transitions.ACTION_BOOK_NEXT_DAY, transitions.book_next_day, expected_version
        )

    def mark_will_call(self, worker_id: str, expected_version: int | None = None) -> WorkerUpdate:
        return self._apply(
            worker_id,
            transitions.ACTION_MARK_WILL_CALL,
            lambda w, _today: transitions.mark_will_call(w),
            expected_version,
        )

    def bulk_move_to_date(self, worker_ids: Iterable[str], target: date) -> BulkUpdate:
        return self._apply_bulk(
            worker_ids,
            transitions.ACTION_REBOOK,
            lambda w, today: transitions.rebook(w, target, today),
        )

    def bulk_move_to_status(
        self,
        worker_ids: Iterable[str],
        status: BookingStatus,
        sub_status: SubStatus,
    ) -> BulkUpdate:
        return self._apply_bulk(
            worker_ids,
            transitions.ACTION_MOVE_TO_SINK,
            lambda w, _today: transitions.move_to_sink(w, status, sub_status),
        )

    # -- confirmation ------------------------------------------------------

    def record_confirmation(
        self,
        worker_id: str,
        action: ConfirmationAction,
        expected_version: int | None = None,
    ) -> WorkerUpdate:
        return self._apply(
            worker_id,
            transitions.ACTION_RECORD_CONFIRMATION,
            lambda w, today: transitions.record_confirmation(w, action, today),
            expected_version,
        )

    def is_confirmed(self, worker_id: str) -> bool:
        return transitions.is_confirmed(self.repository.get_worker(worker_id), self.today())

    # -- views -------------------------------------------------------------

    def workers_due_today(self) -> list[Worker]:
        today = self.today()
        return [w for w in self.repository.load_workers() if w.pipeline.is_due_on(today)]

    def workers_booked_for_tomorrow(self) -> list[Worker]:
        today = self.today()
        return [
            w for w in self.repository.load_workers()
            if transitions.is_booked_for_tomorrow(w, today)
        ]

    def showed_workers(self) -> list[Worker]:
        today = self.today()
        return [w for w in self.repository.load_workers() if w.showed_on(today)]
