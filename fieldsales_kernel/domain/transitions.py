"""
Worker Pipeline Transitions (``fieldsales_kernel.domain.transitions``).

Responsibility
--------------
Pure functions that move a ``Worker`` through the booking pipeline: operator
actions (mark showed, rebook, will-call, bulk sink moves, confirmation
tracking, no-show restore) and the automatic day-advance applied by the
daily rollover.  The legal moves are declared once as ``WORKER_PIPELINE``,
a ``Workflow`` table; every operator function checks it before acting.

Architecture position
---------------------
**Kernel domain layer** -- pure functions over frozen dataclasses.  ZERO I/O.
The day is always passed in; nothing here reads a clock.  Services in
``fieldsales_kernel.services`` load workers, call these functions, and
persist the returned copies.

Invariants enforced
-------------------
* Every returned worker that differs from its input carries ``version + 1``.
* Showing up never changes the booking status.
* ``days_worked`` increments at most once per calendar day.
* Sink workers (``wdr_tnb``, ``quit_fired``) are untouched by the
  day-advance, including their transient fields.
* Rebooking targets a day strictly after the current day.

Failure modes
-------------
* ``InvalidTransitionError`` -- action not allowed from the current state.
* ``RebookDateError`` -- rebook target is today or earlier.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from enum import Enum

from fieldsales_kernel.domain.dates import day_key, next_day
from fieldsales_kernel.domain.worker import (
    SINK_SUB_STATUSES,
    AttendanceToday,
    BookingStatus,
    PipelineState,
    SubStatus,
    Worker,
)
from fieldsales_kernel.domain.workflow import Guard, Transition, Workflow
from fieldsales_kernel.exceptions import InvalidTransitionError, RebookDateError

# ---------------------------------------------------------------------------
# Pipeline table
# ---------------------------------------------------------------------------

_S = BookingStatus

GUARD_DUE_TODAY = Guard(
    name="due_today",
    description="Worker is booked for today (status today, or calendar for today)",
)
GUARD_NOT_SHOWED = Guard(
    name="not_showed_today",
    description="Worker did not show today and attendance is being finalized",
)
GUARD_BOOKED_FOR_DAY = Guard(
    name="booked_for_new_day",
    description="Calendar booking date equals the new day",
)
GUARD_FUTURE_DATE = Guard(
    name="future_date",
    description="Target date is strictly after today",
)

ACTION_MARK_SHOWED = "mark_showed"
ACTION_UNMARK_SHOWED = "unmark_showed"
ACTION_REBOOK = "rebook"
ACTION_BOOK_NEXT_DAY = "book_next_day"
ACTION_MARK_WILL_CALL = "mark_will_call"
ACTION_MOVE_TO_SINK = "move_to_sink"
ACTION_RECORD_CONFIRMATION = "record_confirmation"
ACTION_RESTORE_NO_SHOW = "restore_no_show"
ACTION_CONVERT_NO_SHOW = "convert_no_show"
ACTION_ADVANCE_DAY = "advance_day"

_ALL = tuple(s.value for s in BookingStatus)
_SINKS = (_S.WDR_TNB.value, _S.QUIT_FIRED.value)


def _from_all(action: str, to_state: str, guard: Guard | None = None) -> tuple[Transition, ...]:
    return tuple(Transition(s, to_state, action, guard) for s in _ALL)


WORKER_PIPELINE = Workflow(
    name="worker_pipeline",
    description="Daily booking pipeline of a field-sales worker",
    initial_state=_S.UNBOOKED.value,
    states=_ALL,
    transitions=(
        # Attendance only; the status is unchanged.
        Transition(_S.TODAY.value, _S.TODAY.value, ACTION_MARK_SHOWED, GUARD_DUE_TODAY),
        Transition(_S.CALENDAR.value, _S.CALENDAR.value, ACTION_MARK_SHOWED, GUARD_DUE_TODAY),
        *(Transition(s, s, ACTION_UNMARK_SHOWED) for s in _ALL),
        *_from_all(ACTION_REBOOK, _S.CALENDAR.value, GUARD_FUTURE_DATE),
        *_from_all(ACTION_BOOK_NEXT_DAY, _S.NEXT_DAY.value),
        *_from_all(ACTION_MARK_WILL_CALL, _S.WDR_TNB.value),
        *_from_all(ACTION_MOVE_TO_SINK, _S.WDR_TNB.value),
        *_from_all(ACTION_MOVE_TO_SINK, _S.QUIT_FIRED.value),
        Transition(_S.NEXT_DAY.value, _S.NEXT_DAY.value, ACTION_RECORD_CONFIRMATION),
        Transition(_S.CALENDAR.value, _S.CALENDAR.value, ACTION_RECORD_CONFIRMATION),
        Transition(_S.NO_SHOW.value, _S.TODAY.value, ACTION_RESTORE_NO_SHOW),
        Transition(_S.TODAY.value, _S.NO_SHOW.value, ACTION_CONVERT_NO_SHOW, GUARD_NOT_SHOWED),
        Transition(_S.CALENDAR.value, _S.NO_SHOW.value, ACTION_CONVERT_NO_SHOW, GUARD_NOT_SHOWED),
        Transition(_S.NEXT_DAY.value, _S.TODAY.value, ACTION_ADVANCE_DAY, automatic=True),
        Transition(
            _S.CALENDAR.value, _S.TODAY.value, ACTION_ADVANCE_DAY,
            GUARD_BOOKED_FOR_DAY, automatic=True,
        ),
        Transition(_S.CALENDAR.value, _S.CALENDAR.value, ACTION_ADVANCE_DAY, automatic=True),
        Transition(_S.TODAY.value, _S.UNBOOKED.value, ACTION_ADVANCE_DAY, automatic=True),
        Transition(_S.NO_SHOW.value, _S.UNBOOKED.value, ACTION_ADVANCE_DAY, automatic=True),
        Transition(_S.UNBOOKED.value, _S.UNBOOKED.value, ACTION_ADVANCE_DAY, automatic=True),
    ),
    terminal_states=_SINKS,
    exit_actions=(
        ACTION_REBOOK, ACTION_BOOK_NEXT_DAY, ACTION_MARK_WILL_CALL, ACTION_MOVE_TO_SINK,
    ),
)


def _require(worker: Worker, action: str, reason: str = "", to_state: BookingStatus | None = None) -> None:
    status = worker.booking_status.value
    target = to_state.value if to_state is not None else None
    if not WORKER_PIPELINE.allows(status, action, target):
        raise InvalidTransitionError(worker.worker_id, action, status, reason)


# ---------------------------------------------------------------------------
# Operator actions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NextStepPrompt:
    """Follow-up actions offered after a worker is marked showed."""

    worker_id: str
    actions: tuple[str, ...] = (ACTION_REBOOK, ACTION_MARK_WILL_CALL)


def mark_showed(worker: Worker, today: date) -> tuple[Worker, NextStepPrompt]:
    """
    Record that ``worker`` showed up today.

    Valid for a worker due today, or one already marked showed today (the
    repeat is a no-op for ``days_worked``).
    """
    prompt = NextStepPrompt(worker.worker_id)
    if worker.showed_on(today):
        return worker, prompt
    if not worker.pipeline.is_due_on(today):
        raise InvalidTransitionError(
            worker.worker_id, ACTION_MARK_SHOWED, worker.booking_status.value,
            f"not booked for {day_key(today)}",
        )
    _require(worker, ACTION_MARK_SHOWED)
    updated = worker.bumped(
        attendance=AttendanceToday(showed=True, showed_date=today),
        days_worked=worker.days_worked + 1,
    )
    return updated, prompt


def unmark_showed(worker: Worker, today: date) -> Worker:
    """
    Revert today's attendance, giving back the day counted for it.

    Valid whatever the worker was booked to after showing (next day,
    calendar, Will-Call); the booking status is left as it is.
    """
    if not worker.showed_on(today):
        raise InvalidTransitionError(
            worker.worker_id, ACTION_UNMARK_SHOWED, worker.booking_status.value,
            "worker is not marked showed today",
        )
    _require(worker, ACTION_UNMARK_SHOWED)
    return worker.bumped(
        attendance=AttendanceToday(),
        days_worked=max(worker.days_worked - 1, 0),
    )


def rebook(worker: Worker, target: date, today: date) -> Worker:
    """Book ``worker`` for a future calendar day; also how a sink is left."""
    if target <= today:
        raise RebookDateError(worker.worker_id, day_key(target), day_key(today))
    _require(worker, ACTION_REBOOK, to_state=BookingStatus.CALENDAR)
    return worker.bumped(pipeline=PipelineState.booked_calendar(target))


def book_next_day(worker: Worker, today: date) -> Worker:
    _require(worker, ACTION_BOOK_NEXT_DAY)
    return worker.bumped(pipeline=PipelineState.booked_next_day(next_day(today)))


def mark_will_call(worker: Worker) -> Worker:
    _require(worker, ACTION_MARK_WILL_CALL)
    return worker.bumped(pipeline=PipelineState.sink(BookingStatus.WDR_TNB, SubStatus.WDR))


def move_to_sink(worker: Worker, status: BookingStatus, sub_status: SubStatus) -> Worker:
    """Bulk-move target: ``wdr_tnb`` with WDR|TNB or ``quit_fired`` with Quit|Fired."""
    if status not in SINK_SUB_STATUSES or sub_status not in SINK_SUB_STATUSES[status]:
        raise InvalidTransitionError(
            worker.worker_id, ACTION_MOVE_TO_SINK, worker.booking_status.value,
            f"'{sub_status.value}' is not a valid reason for '{status.value}'",
        )
    _require(worker, ACTION_MOVE_TO_SINK, to_state=status)
    return worker.bumped(pipeline=PipelineState.sink(status, sub_status))


class ConfirmationAction(str, Enum):
    TOGGLE_CONFIRMED = "toggle_confirmed"
    LEFT_MESSAGE = "left_message"
    NOT_AVAILABLE = "not_available"


def is_booked_for_tomorrow(worker: Worker, today: date) -> bool:
    status = worker.booking_status
    if status == BookingStatus.NEXT_DAY:
        return True
    return status == BookingStatus.CALENDAR and worker.booked_date == next_day(today)


def record_confirmation(worker: Worker, action: ConfirmationAction, today: date) -> Worker:
    """Track a confirmation call for tomorrow's booking; the pipeline is unchanged."""
    if not is_booked_for_tomorrow(worker, today):
        raise InvalidTransitionError(
            worker.worker_id, ACTION_RECORD_CONFIRMATION, worker.booking_status.value,
            "worker is not booked for the next operating day",
        )
    _require(worker, ACTION_RECORD_CONFIRMATION)
    c = worker.confirmation
    if action == ConfirmationAction.TOGGLE_CONFIRMED:
        updated = replace(c, confirmed=not c.confirmed)
    elif action == ConfirmationAction.LEFT_MESSAGE:
        updated = replace(c, left_message=c.left_message + 1)
    else:
        updated = replace(c, not_available=c.not_available + 1)
    return worker.bumped(confirmation=updated)


def is_confirmed(worker: Worker, today: date) -> bool:
    """Explicitly confirmed, or a next-day booking made by a worker who showed today."""
    if worker.confirmation.confirmed:
        return True
    return worker.booking_status == BookingStatus.NEXT_DAY and worker.showed_on(today)


def restore_no_show(worker: Worker, today: date) -> Worker:
    """Move a no-show back to today.  The no-show count is kept."""
    _require(worker, ACTION_RESTORE_NO_SHOW, "only no-show workers can be restored")
    return worker.bumped(pipeline=PipelineState.booked_today(today))


def convert_to_no_show(worker: Worker, today: date) -> Worker:
    """Finalization pass: a worker due today who did not show becomes a no-show."""
    if worker.showed_on(today) or not worker.pipeline.is_due_on(today):
        raise InvalidTransitionError(
            worker.worker_id, ACTION_CONVERT_NO_SHOW, worker.booking_status.value,
            "worker showed or is not due today",
        )
    _require(worker, ACTION_CONVERT_NO_SHOW)
    return worker.bumped(
        pipeline=PipelineState.no_show(worker.booked_date),
        no_shows=worker.no_shows + 1,
        route_manager=None,
        cart_id=None,
    )


def is_pending_no_show(worker: Worker, today: date) -> bool:
    return worker.pipeline.is_due_on(today) and not worker.showed_on(today)


# ---------------------------------------------------------------------------
# Day advance
# ---------------------------------------------------------------------------


class DayCloseOutcome(str, Enum):
    """How the day-advance treated one worker."""

    SINK_HELD = "sink_held"
    PROMOTED_FROM_NEXT_DAY = "promoted_from_next_day"
    PROMOTED_FROM_CALENDAR = "promoted_from_calendar"
    CALENDAR_HELD = "calendar_held"
    WORKED_DAY_CLOSED = "worked_day_closed"
    LAPSED_UNSHOWN = "lapsed_unshown"
    NO_SHOW_CLEARED = "no_show_cleared"
    UNCHANGED = "unchanged"


def advance_day(worker: Worker, new_day: date) -> tuple[Worker, DayCloseOutcome]:
    """
    Apply the calendar-day change to one worker.

    Non-sink workers also lose their attendance and assignment for the
    closed day; confirmation tracking is kept.  A worker who was booked for
    the closed day and never showed is reported as ``LAPSED_UNSHOWN`` so the
    caller can tell it apart from a worked day.
    """
    pipeline = worker.pipeline
    status = pipeline.status

    if pipeline.is_sink:
        return worker, DayCloseOutcome.SINK_HELD

    if status == BookingStatus.NEXT_DAY:
        new_pipeline, outcome = PipelineState.booked_today(new_day), DayCloseOutcome.PROMOTED_FROM_NEXT_DAY
    elif status == BookingStatus.CALENDAR:
        if pipeline.booked_date == new_day:
            new_pipeline, outcome = PipelineState.booked_today(new_day), DayCloseOutcome.PROMOTED_FROM_CALENDAR
        else:
            new_pipeline, outcome = pipeline, DayCloseOutcome.CALENDAR_HELD
    elif status == BookingStatus.TODAY:
        new_pipeline = PipelineState.unbooked()
        outcome = (
            DayCloseOutcome.WORKED_DAY_CLOSED
            if worker.attendance.showed
            else DayCloseOutcome.LAPSED_UNSHOWN
        )
    elif status == BookingStatus.NO_SHOW:
        new_pipeline, outcome = PipelineState.unbooked(), DayCloseOutcome.NO_SHOW_CLEARED
    else:
        new_pipeline, outcome = pipeline, DayCloseOutcome.UNCHANGED

    cleared = (
        new_pipeline == pipeline
        and worker.attendance == AttendanceToday()
        and worker.route_manager is None
        and worker.cart_id is None
    )
    if cleared:
        return worker, outcome
    return (
        worker.bumped(
            pipeline=new_pipeline,
            attendance=AttendanceToday(),
            route_manager=None,
            cart_id=None,
        ),
        outcome,
    )


__all__ = [
    "WORKER_PIPELINE",
    "ConfirmationAction",
    "DayCloseOutcome",
    "NextStepPrompt",
    "advance_day",
    "book_next_day",
    "convert_to_no_show",
    "is_booked_for_tomorrow",
    "is_confirmed",
    "is_pending_no_show",
    "mark_showed",
    "mark_will_call",
    "move_to_sink",
    "rebook",
    "record_confirmation",
    "restore_no_show",
    "unmark_showed",
]
