"""Manual commission: the operator enters the amount on the payout form."""

from decimal import Decimal

from fieldsales_kernel.domain.commission import (
    CommissionInput,
    CommissionStrategy,
    CommissionStrategyRegistry,
)
from fieldsales_kernel.domain.values import ZERO


class ManualCommissionStrategy(CommissionStrategy):
    """Returns ``manual_amount`` unchanged; no amount means zero."""

    @property
    def name(self) -> str:
        return "manual"

    def compute(self, data: CommissionInput) -> Decimal:
        return data.manual_amount if data.manual_amount is not None else ZERO


CommissionStrategyRegistry.register(ManualCommissionStrategy())
