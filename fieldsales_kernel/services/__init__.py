"""Imperative shell: repository and the services that mutate workforce state."""

from fieldsales_kernel.services.assignment_manager import AssignmentManager
from fieldsales_kernel.services.attendance_finalizer import (
    AttendanceFinalizer,
    FinalizeResult,
    is_attendance_finalized,
)
from fieldsales_kernel.services.collaborators import (
    BookingRepository,
    InMemoryBookingRepository,
    RosterService,
    StaticRosterService,
)
from fieldsales_kernel.services.payout_service import (
    DaySummary,
    MemberAdjustments,
    PayoutPreview,
    PayoutResult,
    PayoutService,
)
from fieldsales_kernel.services.repository import (
    PersistenceStatus,
    WorkforceRepository,
    WriteOutcome,
)
from fieldsales_kernel.services.rollover_service import DailyRolloverService, RolloverResult
from fieldsales_kernel.services.worker_state_machine import (
    BulkUpdate,
    WorkerStateMachine,
    WorkerUpdate,
)

__all__ = [
    "AssignmentManager",
    "AttendanceFinalizer",
    "BookingRepository",
    "BulkUpdate",
    "DailyRolloverService",
    "DaySummary",
    "FinalizeResult",
    "InMemoryBookingRepository",
    "MemberAdjustments",
    "PayoutPreview",
    "PayoutResult",
    "PayoutService",
    "PersistenceStatus",
    "RolloverResult",
    "RosterService",
    "StaticRosterService",
    "WorkerStateMachine",
    "WorkerUpdate",
    "WorkforceRepository",
    "WriteOutcome",
    "is_attendance_finalized",
]
