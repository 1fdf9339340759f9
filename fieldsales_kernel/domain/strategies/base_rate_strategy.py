"""
Base-rate commission: equivalents times the applicable base rate.

Rate selection:
- Team mode -> ``team_base_commission_rate``
- Individual mode, working solo -> ``solo_base_commission_rate``
- Individual mode otherwise -> ``base_commission_rate``

No silver or alumni raise tiers are applied, whatever the raise flags say.
"""

from decimal import Decimal

from fieldsales_kernel.domain.commission import (
    CommissionInput,
    CommissionStrategy,
    CommissionStrategyRegistry,
)
from fieldsales_kernel.domain.payout_settings import OperatingMode
from fieldsales_kernel.domain.values import ZERO


class BaseRateCommissionStrategy(CommissionStrategy):
    """Commission = equivalent x base rate."""

    @property
    def name(self) -> str:
        return "base_rate"

    def applicable_rate(self, data: CommissionInput) -> Decimal:
        settings = data.settings
        if data.mode == OperatingMode.TEAM:
            return settings.team_base_commission_rate
        if data.solo:
            return settings.solo_base_commission_rate
        return settings.base_commission_rate

    def compute(self, data: CommissionInput) -> Decimal:
        if data.equivalent <= ZERO:
            return ZERO
        return data.equivalent * self.applicable_rate(data)


CommissionStrategyRegistry.register(BaseRateCommissionStrategy())
