"""
Clock -- Injectable calendar-day source.

Responsibility:
    Provides an injectable clock so that domain and service code never call
    ``datetime.now()`` or ``date.today()`` directly.  Every day-boundary
    decision (rollover, "showed today", rebook validity, finalization) reads
    the day from a Clock.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O (except SystemClock,
    which is the one sanctioned I/O boundary for time).

Invariants enforced:
    - ``today()`` is sampled on every call.  Nothing in the kernel caches the
      operating day across operations, so a session left open past midnight
      sees the new day on its next action.

Failure modes:
    - None.  DeterministicClock never raises.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        All services that need the current day receive a Clock via
        constructor injection.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
        - ``today()`` returns the local calendar day of ``now()``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...

    def today(self) -> date:
        """Get the current calendar day."""
        return self.now().date()


class SystemClock(Clock):
    """
    Production clock that returns actual system time.

    Contract:
        The sole sanctioned I/O boundary for time in the kernel.

    Guarantees:
        Returns timezone-aware ``datetime`` instances in the host's local
        zone; ``today()`` is therefore the operator's wall-calendar day.
    """

    def now(self) -> datetime:
        """Get current system time with local timezone."""
        return datetime.now(timezone.utc).astimezone()


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Guarantees:
        - ``now()`` returns the same value on repeated calls until
          ``advance_days()``, ``advance()`` or ``set_time()`` is called.
    """

    def __init__(self, fixed_time: datetime | date | None = None):
        """
        Initialize with optional fixed time.

        Args:
            fixed_time: A datetime, or a date (taken at 09:00 UTC).
                        Defaults to 2024-05-01 09:00 UTC.
        """
        self._fixed_time = self._coerce(
            fixed_time or datetime(2024, 5, 1, 9, 0, 0, tzinfo=timezone.utc)
        )

    @staticmethod
    def _coerce(value: datetime | date) -> datetime:
        if isinstance(value, datetime):
            return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return datetime(value.year, value.month, value.day, 9, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        """Get the fixed/controlled time."""
        return self._fixed_time

    def set_time(self, time: datetime | date) -> None:
        """Set the clock to a specific time or day."""
        self._fixed_time = self._coerce(time)

    def advance(self, seconds: int = 1) -> None:
        """Advance the clock by the specified seconds."""
        self._fixed_time += timedelta(seconds=seconds)

    def advance_days(self, days: int = 1) -> date:
        """Advance by whole days and return the new day."""
        self._fixed_time += timedelta(days=days)
        return self.today()
