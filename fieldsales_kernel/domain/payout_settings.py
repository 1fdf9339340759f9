"""
Payout logic settings and season types.

Defines the structure and defaults for per-season payout configuration.
Actual values are loaded by ``fieldsales_config`` at runtime; the kernel
never reads configuration files itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from fieldsales_kernel.domain.values import to_decimal

# Payment-method keys in lookup order.  ``Prepaid`` is resolved from the
# booking's flag, ``Custom`` is the fallback.
PREPAID = "Prepaid"
CUSTOM = "Custom"


class SeasonType(str, Enum):
    INDIVIDUAL = "Individual"
    TEAM = "Team"
    SERVICE = "Service"


class OperatingMode(str, Enum):
    """How showed workers are grouped for the day."""

    INDIVIDUAL = "individual"
    TEAM = "team"

    @classmethod
    def for_season(cls, season_type: SeasonType) -> OperatingMode:
        return cls.TEAM if season_type == SeasonType.TEAM else cls.INDIVIDUAL


@dataclass(frozen=True)
class PaymentMethodRule:
    """Share of a sale counted toward net, and whether tax is divided out."""

    percentage: Decimal
    apply_taxes: bool = True

    def __post_init__(self):
        if self.percentage < 0:
            raise ValueError("percentage cannot be negative")


def _default_payment_methods() -> dict[str, PaymentMethodRule]:
    full = Decimal("100")
    half = Decimal("50")
    return {
        "Cash": PaymentMethodRule(full),
        "Cheque": PaymentMethodRule(full),
        "E-Transfer": PaymentMethodRule(full),
        "Credit Card": PaymentMethodRule(full),
        PREPAID: PaymentMethodRule(half),
        "Billed": PaymentMethodRule(half),
        "IOS": PaymentMethodRule(half),
        CUSTOM: PaymentMethodRule(full),
    }


@dataclass(frozen=True)
class PayoutLogicSettings:
    """
    Season payout configuration.

    Rates are percentages (``tax_rate=13`` means 13%).  Commission rates are
    consumed only by commission strategies.
    """

    tax_rate: Decimal = Decimal("13")
    product_cost: Decimal = Decimal("0")
    base_commission_rate: Decimal = Decimal("8.0")
    solo_base_commission_rate: Decimal = Decimal("6.0")
    team_base_commission_rate: Decimal = Decimal("8.0")
    apply_silver_raises: bool = True
    apply_alumni_raises: bool = True
    payment_methods: dict[str, PaymentMethodRule] = field(
        default_factory=_default_payment_methods
    )
    commission_strategy: str = "base_rate"

    def __post_init__(self):
        if self.tax_rate < 0:
            raise ValueError("tax_rate cannot be negative")
        if not Decimal("0") <= self.product_cost <= Decimal("100"):
            raise ValueError("product_cost must be between 0 and 100")

    def rule_for(self, method_key: str) -> PaymentMethodRule | None:
        return self.payment_methods.get(method_key)

    def to_dict(self) -> dict[str, Any]:
        return {
            "taxRate": str(self.tax_rate),
            "productCost": str(self.product_cost),
            "baseCommissionRate": str(self.base_commission_rate),
            "soloBaseCommissionRate": str(self.solo_base_commission_rate),
            "teamBaseCommissionRate": str(self.team_base_commission_rate),
            "applySilverRaises": self.apply_silver_raises,
            "applyAlumniRaises": self.apply_alumni_raises,
            "paymentMethodPercentages": {
                k: {"percentage": str(v.percentage), "applyTaxes": v.apply_taxes}
                for k, v in self.payment_methods.items()
            },
            "commissionStrategy": self.commission_strategy,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PayoutLogicSettings:
        """Parse camelCase settings; absent fields keep their defaults."""
        defaults = cls()
        methods_raw = data.get("paymentMethodPercentages")
        methods = (
            {
                name: PaymentMethodRule(
                    percentage=to_decimal(rule.get("percentage")),
                    apply_taxes=bool(rule.get("applyTaxes", True)),
                )
                for name, rule in methods_raw.items()
            }
            if methods_raw is not None
            else defaults.payment_methods
        )

        def dec(key: str, default: Decimal) -> Decimal:
            return to_decimal(data[key]) if data.get(key) is not None else default

        return cls(
            tax_rate=dec("taxRate", defaults.tax_rate),
            product_cost=dec("productCost", defaults.product_cost),
            base_commission_rate=dec("baseCommissionRate", defaults.base_commission_rate),
            solo_base_commission_rate=dec("soloBaseCommissionRate", defaults.solo_base_commission_rate),
            team_base_commission_rate=dec("teamBaseCommissionRate", defaults.team_base_commission_rate),
            apply_silver_raises=bool(data.get("applySilverRaises", defaults.apply_silver_raises)),
            apply_alumni_raises=bool(data.get("applyAlumniRaises", defaults.apply_alumni_raises)),
            payment_methods=methods,
            commission_strategy=data.get("commissionStrategy", defaults.commission_strategy),
        )


DEFAULT_PAYOUT_SETTINGS = PayoutLogicSettings()


@dataclass(frozen=True)
class SeasonConfig:
    """A season as configured for one console."""

    season_id: str
    name: str
    season_type: SeasonType
    has_payout_logic: bool = True
    payout: PayoutLogicSettings = field(default_factory=PayoutLogicSettings)
    enabled: bool = True

    @property
    def operating_mode(self) -> OperatingMode:
        return OperatingMode.for_season(self.season_type)
