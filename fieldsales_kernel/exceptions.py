"""
Typed Exception Hierarchy for the Field-Sales Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Operator screens must react to failures precisely: "3 workers still need a
cart" is a different screen state from "the store is full".  Callers catch by
type and read structured attributes, never by parsing message strings.

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        finalizer.finalize()
    except UnassignedWorkersError as e:
        show_banner(f"{e.count} worker(s) still need to be assigned")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    FieldSalesKernelError (base)
    |
    +-- ValidationError
    |   +-- UnassignedWorkersError
    |   +-- RebookDateError
    |   +-- InvalidTransitionError
    |   +-- InvalidPipelineStateError
    |   +-- AttendanceLockedError
    |   +-- AttendanceNotFinalizedError
    |   +-- OperatingModeError
    |   +-- ClockRegressionError
    |   +-- InvalidBookingPriceError
    |
    +-- NotFoundError
    |   +-- WorkerNotFoundError
    |   +-- CartNotFoundError
    |   +-- SeasonConfigNotFoundError
    |   +-- CommissionStrategyNotFoundError
    |
    +-- StorageFailure
    |   +-- InvalidStorageKeyError
    |   +-- StorageSerializationError
    |   +-- StorageCapacityError
    |
    +-- ConcurrencyError
    |   +-- StaleWorkerError
    |
    +-- ConfigurationError
        +-- PaymentMethodNotConfiguredError
        +-- SeasonSettingsMissingError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|-------------------------------------
Validation      | UNASSIGNED_WORKERS            | Finalize with showed, unassigned workers
                | REBOOK_DATE_INVALID           | Rebook date is today or in the past
                | INVALID_TRANSITION            | Operator action not valid from state
                | INVALID_PIPELINE_STATE        | Status/date/sub-status combination illegal
                | ATTENDANCE_LOCKED             | Attendance change after finalize
                | ATTENDANCE_NOT_FINALIZED      | Payout before finalize
                | OPERATING_MODE_MISMATCH       | Cart op in Individual mode (or reverse)
                | CLOCK_REGRESSION              | Rollover to a day before the last one
                | BOOKING_PRICE_INVALID         | Booking price not a finite number (degrades)
----------------|-------------------------------|-------------------------------------
Not found       | WORKER_NOT_FOUND              | Unknown worker number
                | CART_NOT_FOUND                | Unknown cart id
                | SEASON_CONFIG_NOT_FOUND       | Unknown console / season
                | COMMISSION_STRATEGY_NOT_FOUND | No strategy registered under name
----------------|-------------------------------|-------------------------------------
Storage         | INVALID_STORAGE_KEY           | Key outside the recognized key set
                | STORAGE_SERIALIZATION_FAILED  | Value is not JSON-serializable
                | STORAGE_CAPACITY_EXCEEDED     | Store refused the write (full)
----------------|-------------------------------|-------------------------------------
Concurrency     | STALE_WORKER                  | Worker changed since it was read
----------------|-------------------------------|-------------------------------------
Configuration   | PAYMENT_METHOD_NOT_CONFIGURED | Payment-method key missing (degrades)
                | SEASON_SETTINGS_MISSING       | Season has no payout settings

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Nothing here is fatal to the process.  Every exception is scoped to the
   single operation that raised it; other workers and other state are
   untouched.

2. ConfigurationError subclasses are usually NOT raised to callers: the
   payout calculator degrades to the documented tax-only calculation and
   reports the fallback.  They exist so the fallback can be described with
   the same structured vocabulary.

3. StorageFailure on a write after validation is converted by the
   repository into a MEMORY_ONLY persistence status rather than propagated,
   because the in-memory state has already advanced.
"""


class FieldSalesKernelError(Exception):
    """
    Base exception for all field-sales kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "FIELDSALES_KERNEL_ERROR"


# Validation errors


class ValidationError(FieldSalesKernelError):
    """Input was rejected; no state was changed."""

    code: str = "VALIDATION_ERROR"


class UnassignedWorkersError(ValidationError):
    """Attendance cannot be finalized while showed workers are unassigned."""

    code: str = "UNASSIGNED_WORKERS"

    def __init__(self, worker_ids: list[str]):
        self.worker_ids = list(worker_ids)
        self.count = len(self.worker_ids)
        super().__init__(
            f"{self.count} worker(s) still need to be assigned to a Cart or RM"
        )


class RebookDateError(ValidationError):
    """Rebook target is not strictly after the current day."""

    code: str = "REBOOK_DATE_INVALID"

    def __init__(self, worker_id: str, target_date: str, today: str):
        self.worker_id = worker_id
        self.target_date = target_date
        self.today = today
        super().__init__(
            f"Cannot rebook worker {worker_id} to {target_date}: "
            f"date must be after {today}"
        )


class InvalidTransitionError(ValidationError):
    """Operator action is not valid from the worker's current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, worker_id: str, action: str, current_status: str, reason: str = ""):
        self.worker_id = worker_id
        self.action = action
        self.current_status = current_status
        self.reason = reason
        msg = f"Cannot {action} worker {worker_id} from status '{current_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class InvalidPipelineStateError(ValidationError):
    """Booking status, booked date and sub-status do not form a legal state."""

    code: str = "INVALID_PIPELINE_STATE"

    def __init__(self, status: str, reason: str):
        self.status = status
        self.reason = reason
        super().__init__(f"Invalid pipeline state '{status}': {reason}")


class AttendanceLockedError(ValidationError):
    """Attendance for the day is finalized; modify attendance first."""

    code: str = "ATTENDANCE_LOCKED"

    def __init__(self, day: str, action: str):
        self.day = day
        self.action = action
        super().__init__(
            f"Attendance for {day} is finalized; cannot {action}"
        )


class AttendanceNotFinalizedError(ValidationError):
    """Payout requires the day's attendance to be finalized."""

    code: str = "ATTENDANCE_NOT_FINALIZED"

    def __init__(self, day: str):
        self.day = day
        super().__init__(f"Attendance for {day} has not been finalized")


class OperatingModeError(ValidationError):
    """Operation belongs to the other operating mode (Individual vs Team)."""

    code: str = "OPERATING_MODE_MISMATCH"

    def __init__(self, operation: str, mode: str):
        self.operation = operation
        self.mode = mode
        super().__init__(f"{operation} is not available in {mode} mode")


class ClockRegressionError(ValidationError):
    """Rollover was asked to move to a day before the last processed day."""

    code: str = "CLOCK_REGRESSION"

    def __init__(self, last_processed: str, today: str):
        self.last_processed = last_processed
        self.today = today
        super().__init__(
            f"Clock regression: today {today} is before last processed day "
            f"{last_processed}"
        )


class InvalidBookingPriceError(ValidationError):
    """Booking price is not a finite number; the booking counts as zero."""

    code: str = "BOOKING_PRICE_INVALID"

    def __init__(self, booking_id: str, raw_price: str):
        self.booking_id = booking_id
        self.raw_price = raw_price
        super().__init__(
            f"Booking {booking_id} has an invalid price {raw_price!r}; "
            "counting it as zero"
        )


# Not-found errors


class NotFoundError(FieldSalesKernelError):
    """A referenced entity does not exist."""

    code: str = "NOT_FOUND"


class WorkerNotFoundError(NotFoundError):
    """Worker with given number was not found."""

    code: str = "WORKER_NOT_FOUND"

    def __init__(self, worker_id: str):
        self.worker_id = worker_id
        super().__init__(f"Worker not found: {worker_id}")


class CartNotFoundError(NotFoundError):
    """Cart with given id was not found."""

    code: str = "CART_NOT_FOUND"

    def __init__(self, cart_id: int):
        self.cart_id = cart_id
        super().__init__(f"Cart not found: {cart_id}")


class SeasonConfigNotFoundError(NotFoundError):
    """No configuration for the console / season pair."""

    code: str = "SEASON_CONFIG_NOT_FOUND"

    def __init__(self, console_id: int | str, season_id: str | None = None):
        self.console_id = console_id
        self.season_id = season_id
        if season_id is None:
            msg = f"Console profile not found: {console_id}"
        else:
            msg = f"Season {season_id} not configured for console {console_id}"
        super().__init__(msg)


class CommissionStrategyNotFoundError(NotFoundError):
    """No commission strategy registered under the given name."""

    code: str = "COMMISSION_STRATEGY_NOT_FOUND"

    def __init__(self, name: str, available: list[str]):
        self.name = name
        self.available = available
        super().__init__(
            f"No commission strategy named '{name}'. Available: {available}"
        )


# Storage errors


class StorageFailure(FieldSalesKernelError):
    """The key-value store rejected an operation."""

    code: str = "STORAGE_FAILURE"


class InvalidStorageKeyError(StorageFailure):
    """Key is not one of the recognized storage keys or prefixes."""

    code: str = "INVALID_STORAGE_KEY"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Unrecognized storage key: '{key}'")


class StorageSerializationError(StorageFailure):
    """Value could not be serialized for storage."""

    code: str = "STORAGE_SERIALIZATION_FAILED"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Cannot serialize value for '{key}': {reason}")


class StorageCapacityError(StorageFailure):
    """Store is full."""

    code: str = "STORAGE_CAPACITY_EXCEEDED"

    def __init__(self, key: str, required_bytes: int, capacity_bytes: int):
        self.key = key
        self.required_bytes = required_bytes
        self.capacity_bytes = capacity_bytes
        super().__init__(
            f"Storage is full: writing '{key}' needs {required_bytes} bytes, "
            f"capacity is {capacity_bytes}"
        )


# Concurrency errors


class ConcurrencyError(FieldSalesKernelError):
    """Base for concurrent-modification errors."""

    code: str = "CONCURRENCY_ERROR"


class StaleWorkerError(ConcurrencyError):
    """Worker record changed since the caller read it."""

    code: str = "STALE_WORKER"

    def __init__(self, worker_id: str, expected_version: int, actual_version: int):
        self.worker_id = worker_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Worker {worker_id} was modified concurrently: "
            f"expected version {expected_version}, found {actual_version}"
        )


# Configuration errors


class ConfigurationError(FieldSalesKernelError):
    """Configuration is incomplete; callers usually degrade instead of failing."""

    code: str = "CONFIGURATION_ERROR"


class PaymentMethodNotConfiguredError(ConfigurationError):
    """Payment-method key is missing from payout settings."""

    code: str = "PAYMENT_METHOD_NOT_CONFIGURED"

    def __init__(self, method_key: str):
        self.method_key = method_key
        super().__init__(
            f"Payment method '{method_key}' is not configured; "
            "falling back to tax-only net calculation"
        )


class SeasonSettingsMissingError(ConfigurationError):
    """Season has no payout settings; defaults apply."""

    code: str = "SEASON_SETTINGS_MISSING"

    def __init__(self, season_id: str):
        self.season_id = season_id
        super().__init__(
            f"Season {season_id} has no payout settings; using defaults"
        )
