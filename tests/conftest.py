"""
Pytest fixtures for the field-sales kernel test suite.

Provides:
- Structured log capture
- A deterministic clock fixed on TODAY
- In-memory store, repository and service fixtures per operating mode
- Worker / booking builders
"""

import json
import logging
from datetime import date, timedelta
from io import StringIO

import pytest

from fieldsales_kernel.domain.clock import DeterministicClock
from fieldsales_kernel.domain.booking import FLAG_SET, BookingRecord
from fieldsales_kernel.domain.payout_settings import (
    PayoutLogicSettings,
    SeasonConfig,
    SeasonType,
)
from fieldsales_kernel.domain.route_managers import (
    ConsoleProfileLink,
    ManagementUser,
    UserPermissions,
)
from fieldsales_kernel.domain.worker import (
    AttendanceToday,
    PipelineState,
    RouteManager,
    Worker,
)
from fieldsales_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from fieldsales_kernel.services import (
    AssignmentManager,
    AttendanceFinalizer,
    DailyRolloverService,
    InMemoryBookingRepository,
    PayoutService,
    StaticRosterService,
    WorkerStateMachine,
    WorkforceRepository,
)
from fieldsales_kernel.storage import InMemoryKeyValueStore

# Importing the domain package registers the commission strategies.
import fieldsales_kernel.domain  # noqa: F401

TODAY = date(2024, 5, 1)
TOMORROW = TODAY + timedelta(days=1)
YESTERDAY = TODAY - timedelta(days=1)

CONSOLE_ID = 101
JANE = RouteManager.from_full_name("Jane Doe")


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture fieldsales_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, finalizer):
            finalizer.finalize()
            logs = captured_logs()
            assert any(r["message"] == "attendance_finalized" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("fieldsales_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


def messages(records: list[dict]) -> list[str]:
    return [r["message"] for r in records]


# =============================================================================
# Repository isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_scope_locks():
    """Scope locks are class-level; drop them so tests never share one."""
    WorkforceRepository._scope_locks.clear()
    yield
    WorkforceRepository._scope_locks.clear()


# =============================================================================
# Builders
# =============================================================================


def build_worker(
    worker_id: str = "w1",
    pipeline: PipelineState | None = None,
    showed_on: date | None = None,
    **fields,
) -> Worker:
    """A worker with sensible defaults; ``showed_on`` marks attendance."""
    attendance = AttendanceToday(True, showed_on) if showed_on else AttendanceToday()
    fields.setdefault("first_name", "Pat")
    fields.setdefault("last_name", f"Rep-{worker_id}")
    return Worker(
        worker_id=worker_id,
        pipeline=pipeline or PipelineState.unbooked(),
        attendance=attendance,
        **fields,
    )


def build_booking(
    booking_id: str,
    contractor: str | None,
    price: str,
    method: str = "Cash",
    day: date = TODAY,
    prepaid: bool = False,
    completed: bool = True,
    route: str | None = None,
) -> BookingRecord:
    """A booking parsed from its spreadsheet row, completed at 14:30 on ``day``."""
    return BookingRecord.from_row({
        "Booking ID": booking_id,
        "Contractor Number": contractor,
        "Price": price,
        "Payment Method": method,
        "Prepaid": FLAG_SET if prepaid else "",
        "Completed": FLAG_SET if completed else "",
        "Date Completed": f"{day.isoformat()}T14:30:00" if completed else "",
        "Route Number": route,
    })


@pytest.fixture
def make_worker():
    return build_worker


@pytest.fixture
def make_booking():
    return build_booking


# =============================================================================
# Clock, store, repository
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Clock fixed at 09:00 UTC on TODAY."""
    return DeterministicClock(TODAY)


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def repository(store):
    return WorkforceRepository(store, console_id=CONSOLE_ID, season_id="2025-aeration")


@pytest.fixture
def seed_workers(repository):
    """Save workers into the repository and return them by id."""

    def _seed(*workers: Worker) -> dict[str, Worker]:
        repository.save_workers(workers)
        return {w.worker_id: w for w in workers}

    return _seed


# =============================================================================
# Seasons and collaborators
# =============================================================================


@pytest.fixture
def payout_settings():
    return PayoutLogicSettings()


@pytest.fixture
def individual_season(payout_settings):
    return SeasonConfig("2025-aeration", "Aeration 2025", SeasonType.INDIVIDUAL, payout=payout_settings)


@pytest.fixture
def team_season():
    return SeasonConfig(
        "2025-sealing",
        "Sealing 2025",
        SeasonType.TEAM,
        payout=PayoutLogicSettings(product_cost=10),
    )


@pytest.fixture
def bookings():
    return InMemoryBookingRepository()


@pytest.fixture
def roster():
    users = [
        ManagementUser(1, "Jane Doe"),
        ManagementUser(2, "Sam Quill"),
        ManagementUser(3, "Office Admin"),
    ]
    permissions = [
        UserPermissions(1, (ConsoleProfileLink(CONSOLE_ID, True),)),
        UserPermissions(2, (ConsoleProfileLink(CONSOLE_ID, True), ConsoleProfileLink(202, False))),
        UserPermissions(3, (ConsoleProfileLink(CONSOLE_ID, False),)),
    ]
    return StaticRosterService(users, permissions)


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def state_machine(repository, deterministic_clock):
    return WorkerStateMachine(repository, deterministic_clock)


@pytest.fixture
def finalizer(repository, deterministic_clock):
    return AttendanceFinalizer(repository, deterministic_clock)


@pytest.fixture
def rollover_service(repository, deterministic_clock):
    return DailyRolloverService(repository, deterministic_clock)


@pytest.fixture
def individual_assignments(repository, individual_season, deterministic_clock, roster, bookings):
    return AssignmentManager(repository, individual_season, deterministic_clock, roster, bookings)


@pytest.fixture
def team_assignments(repository, team_season, deterministic_clock, roster, bookings):
    return AssignmentManager(repository, team_season, deterministic_clock, roster, bookings)


@pytest.fixture
def individual_payouts(repository, individual_season, bookings, deterministic_clock):
    return PayoutService(repository, individual_season, bookings, deterministic_clock)


@pytest.fixture
def team_payouts(repository, team_season, bookings, deterministic_clock):
    return PayoutService(repository, team_season, bookings, deterministic_clock)
