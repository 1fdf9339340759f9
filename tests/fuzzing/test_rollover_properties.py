"""
Hypothesis-based properties of the day advance and daily rollover.

Boundaries fuzzed here:
- Every reachable pipeline state, with or without attendance and an
  assignment, advanced across 1-10 calendar days
- Runs of consecutive rollovers with gaps of 1-5 days

Properties:
- Sink workers are returned unchanged (same object)
- No-show and days-worked counters never change on a day advance
- After a rollover nobody is booked for the next day, nobody is booked
  for today on a stale date, and no non-sink worker keeps attendance or an
  assignment from a closed day
- A second rollover for the same day changes nothing
"""

from datetime import timedelta

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from conftest import JANE, TODAY, build_worker
from fieldsales_kernel.domain.clock import DeterministicClock
from fieldsales_kernel.domain.transitions import DayCloseOutcome, advance_day
from fieldsales_kernel.domain.worker import (
    SINK_SUB_STATUSES,
    AttendanceToday,
    BookingStatus,
    PipelineState,
)
from fieldsales_kernel.services import DailyRolloverService, WorkforceRepository
from fieldsales_kernel.storage import InMemoryKeyValueStore, StorageKeys

pytestmark = pytest.mark.slow

SINK_STATES = [
    PipelineState.sink(status, sub_status)
    for status, sub_statuses in SINK_SUB_STATUSES.items()
    for sub_status in sorted(sub_statuses, key=lambda s: s.value)
]


@composite
def pipelines(draw):
    offset = draw(st.integers(min_value=-3, max_value=10))
    return draw(st.sampled_from([
        PipelineState.unbooked(),
        PipelineState.booked_today(TODAY),
        PipelineState.booked_next_day(TODAY + timedelta(days=1)),
        PipelineState.booked_calendar(TODAY + timedelta(days=offset)),
        PipelineState.no_show(TODAY),
        *SINK_STATES,
    ]))


@composite
def workers(draw, worker_id="w1"):
    pipeline = draw(pipelines())
    showed = pipeline.is_due_on(TODAY) and draw(st.booleans())
    return build_worker(
        worker_id,
        pipeline,
        showed_on=TODAY if showed else None,
        route_manager=JANE if showed and draw(st.booleans()) else None,
        days_worked=draw(st.integers(min_value=0, max_value=60)),
        no_shows=draw(st.integers(min_value=0, max_value=5)),
    )


@composite
def rosters(draw):
    count = draw(st.integers(min_value=1, max_value=12))
    return [draw(workers(f"w{i}")) for i in range(count)]


class TestAdvanceDayProperties:

    @given(worker=workers(), gap=st.integers(min_value=1, max_value=10))
    @settings(max_examples=300)
    def test_sinks_returned_unchanged(self, worker, gap):
        advanced, outcome = advance_day(worker, TODAY + timedelta(days=gap))
        if worker.pipeline.is_sink:
            assert advanced is worker
            assert outcome == DayCloseOutcome.SINK_HELD
        else:
            assert outcome != DayCloseOutcome.SINK_HELD

    @given(worker=workers(), gap=st.integers(min_value=1, max_value=10))
    @settings(max_examples=300)
    def test_counters_preserved(self, worker, gap):
        advanced, _ = advance_day(worker, TODAY + timedelta(days=gap))
        assert advanced.no_shows == worker.no_shows
        assert advanced.days_worked == worker.days_worked
        assert advanced.confirmation == worker.confirmation

    @given(worker=workers(), gap=st.integers(min_value=1, max_value=10))
    @settings(max_examples=300)
    def test_closed_day_cleared(self, worker, gap):
        new_day = TODAY + timedelta(days=gap)
        advanced, outcome = advance_day(worker, new_day)
        if worker.pipeline.is_sink:
            return
        assert advanced.attendance == AttendanceToday()
        assert advanced.route_manager is None
        assert advanced.booking_status != BookingStatus.NEXT_DAY
        if advanced.booking_status == BookingStatus.TODAY:
            assert advanced.booked_date == new_day
        if outcome == DayCloseOutcome.LAPSED_UNSHOWN:
            assert not worker.showed_on(TODAY)


def _service(roster):
    store = InMemoryKeyValueStore()
    repository = WorkforceRepository(store, console_id=1, season_id="fuzz")
    repository.save_workers(roster)
    repository.set_value(StorageKeys.LAST_APP_DATE, "2024-05-01")
    clock = DeterministicClock(TODAY)
    return repository, clock, DailyRolloverService(repository, clock)


class TestRolloverProperties:

    @given(roster=rosters(), gaps=st.lists(st.integers(min_value=1, max_value=5), min_size=1, max_size=6))
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_sinks_survive_consecutive_rollovers(self, roster, gaps):
        repository, clock, service = _service(roster)
        sinks = {w.worker_id: w for w in roster if w.pipeline.is_sink}

        for gap in gaps:
            clock.advance_days(gap)
            service.run_if_needed()

        for worker_id, before in sinks.items():
            assert repository.get_worker(worker_id) == before

    @given(roster=rosters(), gaps=st.lists(st.integers(min_value=1, max_value=5), min_size=1, max_size=6))
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_no_stale_bookings_after_rollover(self, roster, gaps):
        repository, clock, service = _service(roster)

        for gap in gaps:
            clock.advance_days(gap)
            service.run_if_needed()
            today = clock.today()
            for worker in repository.load_workers():
                assert worker.booking_status != BookingStatus.NEXT_DAY
                if worker.booking_status == BookingStatus.TODAY:
                    assert worker.booked_date == today
                if not worker.pipeline.is_sink:
                    assert not worker.attendance.showed
                    assert not worker.is_assigned

        assert repository.get_value(StorageKeys.LAST_APP_DATE) == clock.today().isoformat()

    @given(roster=rosters(), gap=st.integers(min_value=1, max_value=5))
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_second_run_is_noop(self, roster, gap):
        repository, clock, service = _service(roster)
        clock.advance_days(gap)
        first = service.run_if_needed()
        snapshot = repository.load_workers()

        second = service.run_if_needed()

        assert first.ran
        assert not second.ran
        assert repository.load_workers() == snapshot
