"""
Commission strategies.

Each module in this package defines one strategy.  Strategies are
automatically registered when imported.
"""

from fieldsales_kernel.domain.strategies.base_rate_strategy import BaseRateCommissionStrategy
from fieldsales_kernel.domain.strategies.manual_strategy import ManualCommissionStrategy

__all__ = [
    "BaseRateCommissionStrategy",
    "ManualCommissionStrategy",
]
