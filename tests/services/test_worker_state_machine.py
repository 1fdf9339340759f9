"""
Tests for WorkerStateMachine.

Verifies:
- Operator actions persist the transitioned worker and log it
- Attendance changes are refused while attendance is finalized
- Bulk actions are all-or-nothing on unknown ids
- Optimistic expected_version checks
- Rejected actions change nothing
"""

from datetime import timedelta

import pytest

from conftest import JANE, TODAY, TOMORROW
from fieldsales_kernel.domain.transitions import ConfirmationAction
from fieldsales_kernel.domain.worker import BookingStatus, PipelineState, SubStatus
from fieldsales_kernel.exceptions import (
    AttendanceLockedError,
    InvalidTransitionError,
    RebookDateError,
    StaleWorkerError,
    WorkerNotFoundError,
)
from fieldsales_kernel.storage import StorageKeys


class TestAttendanceActions:

    def test_mark_showed(self, state_machine, repository, seed_workers, make_worker, captured_logs):
        seed_workers(make_worker("w1", PipelineState.booked_today(TODAY)))

        result = state_machine.mark_showed("w1")

        assert result.worker.showed_on(TODAY)
        assert result.persistence.persisted
        assert result.prompt.actions == ("rebook", "mark_will_call")
        assert repository.get_worker("w1").days_worked == 1

        logs = [r for r in captured_logs() if r["message"] == "worker_transition"]
        assert logs[0]["action"] == "mark_showed"
        assert logs[0]["worker_id"] == "w1"

    def test_mark_showed_twice_counts_once(self, state_machine, repository, seed_workers, make_worker):
        seed_workers(make_worker("w1", PipelineState.booked_today(TODAY)))
        state_machine.mark_showed("w1")
        state_machine.mark_showed("w1")
        assert repository.get_worker("w1").days_worked == 1

    def test_locked_attendance_rejects_changes(self, state_machine, repository, seed_workers, make_worker):
        seed_workers(
            make_worker("w1", PipelineState.booked_today(TODAY)),
            make_worker("w2", PipelineState.booked_today(TODAY), showed_on=TODAY, route_manager=JANE),
            make_worker("w3", PipelineState.no_show(TODAY), no_shows=1),
        )
        repository.set_value(StorageKeys.attendance_for(TODAY), "true")

        with pytest.raises(AttendanceLockedError):
            state_machine.mark_showed("w1")
        with pytest.raises(AttendanceLockedError):
            state_machine.unmark_showed("w2")
        with pytest.raises(AttendanceLockedError):
            state_machine.restore_no_show("w3")

        assert not repository.get_worker("w1").showed_on(TODAY)
        assert repository.get_worker("w2").showed_on(TODAY)
        assert repository.get_worker("w3").booking_status == BookingStatus.NO_SHOW

    def test_remark_showed_after_finalize_is_noop(self, state_machine, repository, seed_workers, make_worker):
        seed_workers(
            make_worker("w2", PipelineState.booked_today(TODAY), showed_on=TODAY, route_manager=JANE, days_worked=3)
        )
        repository.set_value(StorageKeys.attendance_for(TODAY), "true")
        before = repository.get_worker("w2")

        result = state_machine.mark_showed("w2")

        assert result.worker == before
        assert result.persistence.persisted
        assert result.prompt.actions == ("rebook", "mark_will_call")
        assert repository.get_worker("w2").days_worked == 3

    def test_unmark_after_will_call(self, state_machine, repository, seed_workers, make_worker):
        seed_workers(make_worker("w1", PipelineState.booked_today(TODAY)))
        state_machine.mark_showed("w1")
        state_machine.mark_will_call("w1")

        result = state_machine.unmark_showed("w1")

        assert not result.worker.showed_on(TODAY)
        assert result.worker.booking_status == BookingStatus.WDR_TNB
        assert repository.get_worker("w1").days_worked == 0

    def test_restore_no_show_when_unlocked(self, state_machine, repository, seed_workers, make_worker):
        seed_workers(make_worker("w3", PipelineState.no_show(TODAY), no_shows=1))
        result = state_machine.restore_no_show("w3")
        assert result.worker.pipeline == PipelineState.booked_today(TODAY)
        assert result.worker.no_shows == 1

    def test_unknown_worker(self, state_machine):
        with pytest.raises(WorkerNotFoundError):
            state_machine.mark_showed("ghost")


class TestPipelineActions:

    def test_rebook(self, state_machine, seed_workers, make_worker):
        seed_workers(make_worker("w1", PipelineState.booked_today(TODAY), showed_on=TODAY))
        target = TODAY + timedelta(days=3)
        result = state_machine.rebook("w1", target)
        assert result.worker.pipeline == PipelineState.booked_calendar(target)
        assert result.worker.showed_on(TODAY)

    def test_rebook_today_rejected_and_unchanged(self, state_machine, repository, seed_workers, make_worker):
        seed_workers(make_worker("w1", PipelineState.booked_today(TODAY)))
        with pytest.raises(RebookDateError):
            state_machine.rebook("w1", TODAY)
        worker = repository.get_worker("w1")
        assert worker.booking_status == BookingStatus.TODAY
        assert worker.version == 0

    def test_book_next_day_and_will_call(self, state_machine, seed_workers, make_worker):
        seed_workers(make_worker("w1"), make_worker("w2"))
        assert state_machine.book_next_day("w1").worker.pipeline == PipelineState.booked_next_day(TOMORROW)
        will_call = state_machine.mark_will_call("w2").worker
        assert will_call.booking_status == BookingStatus.WDR_TNB
        assert will_call.sub_status == SubStatus.WDR

    def test_stale_expected_version(self, state_machine, repository, seed_workers, make_worker):
        seed_workers(make_worker("w1"))
        state_machine.book_next_day("w1")
        with pytest.raises(StaleWorkerError):
            state_machine.mark_will_call("w1", expected_version=0)
        assert repository.get_worker("w1").booking_status == BookingStatus.NEXT_DAY

    def test_current_expected_version(self, state_machine, seed_workers, make_worker):
        seed_workers(make_worker("w1"))
        first = state_machine.book_next_day("w1", expected_version=0)
        second = state_machine.mark_will_call("w1", expected_version=first.worker.version)
        assert second.worker.version == 2


class TestBulkActions:

    def test_bulk_move_to_date(self, state_machine, repository, seed_workers, make_worker):
        seed_workers(make_worker("w1"), make_worker("w2", PipelineState.booked_today(TODAY)))
        target = TODAY + timedelta(days=5)
        result = state_machine.bulk_move_to_date(["w1", "w2", "w1"], target)
        assert result.worker_ids == ("w1", "w2")
        for worker in repository.load_workers():
            assert worker.pipeline == PipelineState.booked_calendar(target)

    def test_bulk_move_to_status(self, state_machine, repository, seed_workers, make_worker):
        seed_workers(make_worker("w1"), make_worker("w2", PipelineState.booked_next_day(TOMORROW)))
        state_machine.bulk_move_to_status(["w1", "w2"], BookingStatus.QUIT_FIRED, SubStatus.FIRED)
        assert {w.sub_status for w in repository.load_workers()} == {SubStatus.FIRED}

    def test_bulk_unknown_id_changes_nothing(self, state_machine, repository, seed_workers, make_worker):
        seed_workers(make_worker("w1"), make_worker("w2"))
        with pytest.raises(WorkerNotFoundError):
            state_machine.bulk_move_to_status(
                ["w1", "ghost", "w2"], BookingStatus.WDR_TNB, SubStatus.TNB
            )
        assert all(w.booking_status == BookingStatus.UNBOOKED for w in repository.load_workers())

    def test_bulk_invalid_reason_changes_nothing(self, state_machine, repository, seed_workers, make_worker):
        seed_workers(make_worker("w1"), make_worker("w2"))
        with pytest.raises(InvalidTransitionError):
            state_machine.bulk_move_to_status(["w1", "w2"], BookingStatus.WDR_TNB, SubStatus.QUIT)
        assert all(w.version == 0 for w in repository.load_workers())

    def test_bulk_rebook_past_date_changes_nothing(self, state_machine, repository, seed_workers, make_worker):
        seed_workers(make_worker("w1"), make_worker("w2"))
        with pytest.raises(RebookDateError):
            state_machine.bulk_move_to_date(["w1", "w2"], TODAY - timedelta(days=1))
        assert all(w.version == 0 for w in repository.load_workers())


class TestConfirmationAndViews:

    def test_record_confirmation(self, state_machine, seed_workers, make_worker):
        seed_workers(make_worker("w1", PipelineState.booked_next_day(TOMORROW)))
        result = state_machine.record_confirmation("w1", ConfirmationAction.LEFT_MESSAGE)
        assert result.worker.confirmation.left_message == 1
        assert not state_machine.is_confirmed("w1")
        state_machine.record_confirmation("w1", ConfirmationAction.TOGGLE_CONFIRMED)
        assert state_machine.is_confirmed("w1")

    def test_views(self, state_machine, seed_workers, make_worker):
        seed_workers(
            make_worker("due", PipelineState.booked_today(TODAY)),
            make_worker("cal_today", PipelineState.booked_calendar(TODAY), showed_on=TODAY),
            make_worker("next", PipelineState.booked_next_day(TOMORROW)),
            make_worker("cal_tomorrow", PipelineState.booked_calendar(TOMORROW)),
            make_worker("idle"),
        )
        assert {w.worker_id for w in state_machine.workers_due_today()} == {"due", "cal_today"}
        assert {w.worker_id for w in state_machine.workers_booked_for_tomorrow()} == {"next", "cal_tomorrow"}
        assert [w.worker_id for w in state_machine.showed_workers()] == ["cal_today"]

    def test_day_is_read_per_call(self, state_machine, deterministic_clock, seed_workers, make_worker):
        seed_workers(make_worker("w1", PipelineState.booked_calendar(TOMORROW)))
        assert state_machine.workers_due_today() == []
        deterministic_clock.advance_days()
        assert [w.worker_id for w in state_machine.workers_due_today()] == ["w1"]
