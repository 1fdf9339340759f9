"""
Commission strategy protocol and registry.

A CommissionStrategy is a pure function from a worker's (or cart member's)
day totals to a commission amount.  It has NO side effects and NO access to:
- Store
- Clock/time
- I/O

Everything it may depend on is passed in through ``CommissionInput``.  The
season's ``PayoutLogicSettings.commission_strategy`` names which registered
strategy applies.  Raise tiers are left to future strategies; the input
carries the raise flags and tenure so such a strategy needs no new plumbing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar

from fieldsales_kernel.domain.payout_settings import OperatingMode, PayoutLogicSettings
from fieldsales_kernel.domain.worker import Tenure
from fieldsales_kernel.exceptions import CommissionStrategyNotFoundError


@dataclass(frozen=True)
class CommissionInput:
    """Everything a commission strategy may read."""

    equivalent: Decimal
    adjusted_net: Decimal
    mode: OperatingMode
    tenure: Tenure
    settings: PayoutLogicSettings
    solo: bool = False
    total_days_worked: int = 0
    manual_amount: Decimal | None = None


class CommissionStrategy(ABC):
    """Base class for commission strategies."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key, as named in season settings."""
        ...

    @property
    def version(self) -> int:
        return 1

    @abstractmethod
    def compute(self, data: CommissionInput) -> Decimal:
        """
        Commission for one worker for one day, unrounded.

        Must be pure: same input, same output.
        """
        ...


class CommissionStrategyRegistry:
    """Registry for commission strategies, keyed by name."""

    _strategies: ClassVar[dict[str, CommissionStrategy]] = {}

    @classmethod
    def register(cls, strategy: CommissionStrategy) -> None:
        name = strategy.name
        if name in cls._strategies:
            existing = cls._strategies[name]
            raise ValueError(
                f"Commission strategy already registered for {name}: "
                f"{existing.__class__.__name__}"
            )
        cls._strategies[name] = strategy

    @classmethod
    def get(cls, name: str) -> CommissionStrategy:
        if name not in cls._strategies:
            raise CommissionStrategyNotFoundError(name, cls.list_names())
        return cls._strategies[name]

    @classmethod
    def has_strategy(cls, name: str) -> bool:
        return name in cls._strategies

    @classmethod
    def list_names(cls) -> list[str]:
        return sorted(cls._strategies.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registered strategies. For testing only."""
        cls._strategies.clear()

    @classmethod
    def unregister(cls, name: str) -> None:
        cls._strategies.pop(name, None)
