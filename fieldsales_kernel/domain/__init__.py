"""
Pure domain layer.

This module contains value objects and domain logic with NO dependencies on:
- ORM (SQLAlchemy)
- Key-value store
- Time/clock (except the injectable SystemClock)
- I/O

All domain objects are immutable and deterministic.
"""

from fieldsales_kernel.domain.booking import BookingRecord
from fieldsales_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from fieldsales_kernel.domain.commission import (
    CommissionInput,
    CommissionStrategy,
    CommissionStrategyRegistry,
)
from fieldsales_kernel.domain.payout import PayoutComputation, calculate_payout
from fieldsales_kernel.domain.payout_settings import (
    DEFAULT_PAYOUT_SETTINGS,
    OperatingMode,
    PaymentMethodRule,
    PayoutLogicSettings,
    SeasonConfig,
    SeasonType,
)
from fieldsales_kernel.domain.transitions import (
    WORKER_PIPELINE,
    ConfirmationAction,
    DayCloseOutcome,
    NextStepPrompt,
)
from fieldsales_kernel.domain.worker import (
    UNASSIGNED,
    AttendanceToday,
    BookingStatus,
    Bonus,
    Cart,
    ConfirmationStatus,
    Deduction,
    PayoutRecord,
    PipelineState,
    RouteManager,
    SubStatus,
    Tenure,
    Worker,
)

# Importing the package registers the shipped commission strategies.
import fieldsales_kernel.domain.strategies  # noqa: E402,F401  isort: skip

__all__ = [
    # Clock
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # Worker model
    "AttendanceToday",
    "BookingStatus",
    "Bonus",
    "Cart",
    "ConfirmationStatus",
    "Deduction",
    "PayoutRecord",
    "PipelineState",
    "RouteManager",
    "SubStatus",
    "Tenure",
    "UNASSIGNED",
    "Worker",
    # Pipeline
    "WORKER_PIPELINE",
    "ConfirmationAction",
    "DayCloseOutcome",
    "NextStepPrompt",
    # Bookings and payout
    "BookingRecord",
    "CommissionInput",
    "CommissionStrategy",
    "CommissionStrategyRegistry",
    "DEFAULT_PAYOUT_SETTINGS",
    "OperatingMode",
    "PaymentMethodRule",
    "PayoutComputation",
    "PayoutLogicSettings",
    "SeasonConfig",
    "SeasonType",
    "calculate_payout",
]
