"""
Payout Calculator (``fieldsales_kernel.domain.payout``).

Responsibility
--------------
Pure calculation functions converting a worker's (or a cart's) completed
booking records into gross sales, net sales and equivalents.  Commission is
delegated to a ``CommissionStrategy`` (``fieldsales_kernel.domain.commission``).

Architecture position
---------------------
**Kernel domain layer** -- pure helper functions.  No I/O, no clock, no
store access.  Called by ``PayoutService`` and from tests.

Invariants enforced
-------------------
* All numeric inputs and outputs use ``Decimal``.
* Intermediate sums are not rounded; callers round when snapshotting.
* Team product cost is applied once, to the aggregate, never per record.
* Equivalent divisor is the fixed ``EQUIVALENT_DIVISOR`` ($25).

Failure modes
-------------
* Payment-method key missing from settings -> the record is counted as
  price with tax divided out, and the key is reported in
  ``PayoutComputation.fallbacks``.  A payout run never fails on
  configuration gaps.
* No completed records -> every total is ``Decimal("0")``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from fieldsales_kernel.domain.booking import BookingRecord
from fieldsales_kernel.domain.payout_settings import (
    CUSTOM,
    PREPAID,
    OperatingMode,
    PayoutLogicSettings,
)
from fieldsales_kernel.domain.values import (
    EQUIVALENT_DIVISOR,
    HUNDRED,
    ZERO,
    percent,
)
from fieldsales_kernel.exceptions import PaymentMethodNotConfiguredError
from fieldsales_kernel.logging_config import get_logger

logger = get_logger("domain.payout")

# (substring, key) pairs checked in order against the lower-cased method.
_METHOD_MATCHERS: tuple[tuple[str, str], ...] = (
    ("cash", "Cash"),
    ("cheque", "Cheque"),
    ("transfer", "E-Transfer"),
    ("credit", "Credit Card"),
    ("billed", "Billed"),
    ("ios", "IOS"),
)


@dataclass(frozen=True)
class NetSale:
    """Net contribution of one booking record."""

    booking_id: str
    method_key: str
    price: Decimal
    net: Decimal
    fallback: bool = False


@dataclass(frozen=True)
class PayoutComputation:
    """Result of aggregating a worker's or cart's completed records for a day."""

    day: date
    mode: OperatingMode
    gross_sales: Decimal
    total_net: Decimal
    adjusted_net: Decimal
    equivalent: Decimal
    lines: tuple[NetSale, ...] = ()
    fallbacks: tuple[str, ...] = ()

    @property
    def record_count(self) -> int:
        return len(self.lines)


def resolve_payment_method_key(record: BookingRecord) -> str:
    """
    Effective payment-method key for a record.

    The Prepaid flag wins; otherwise the first case-insensitive substring
    match; otherwise ``Custom``.
    """
    if record.prepaid:
        return PREPAID
    method = record.payment_method.lower()
    for needle, key in _METHOD_MATCHERS:
        if needle in method:
            return key
    return CUSTOM


def calculate_net_sale(record: BookingRecord, settings: PayoutLogicSettings) -> NetSale:
    """
    Net sales for one record.

    ``net = price * pct/100``, then ``/ (1 + tax/100)`` when the method
    applies taxes.  A method missing from settings divides out tax only.
    """
    key = resolve_payment_method_key(record)
    rule = settings.rule_for(key)
    tax_divisor = 1 + percent(settings.tax_rate)
    if rule is None:
        return NetSale(
            booking_id=record.booking_id,
            method_key=key,
            price=record.price,
            net=record.price / tax_divisor,
            fallback=True,
        )
    net = record.price * rule.percentage / HUNDRED
    if rule.apply_taxes:
        net = net / tax_divisor
    return NetSale(record.booking_id, key, record.price, net)


def select_completed_records(
    records: Iterable[BookingRecord],
    day: date,
    contractor_numbers: Iterable[str] | None = None,
) -> list[BookingRecord]:
    """Records completed on ``day``, optionally limited to contractor numbers."""
    wanted = set(contractor_numbers) if contractor_numbers is not None else None
    return [
        r for r in records
        if r.completed_on(day)
        and (wanted is None or r.contractor_number in wanted)
    ]


def calculate_gross_sales(records: Iterable[BookingRecord]) -> Decimal:
    return sum((r.price for r in records), ZERO)


def apply_product_cost(total_net: Decimal, settings: PayoutLogicSettings) -> Decimal:
    """Team-mode adjustment: ``total_net * (1 - product_cost/100)``."""
    return total_net * (1 - percent(settings.product_cost))


def calculate_equivalent(adjusted_net: Decimal) -> Decimal:
    """Equivalents for adjusted net sales; zero for non-positive net."""
    if adjusted_net <= ZERO:
        return ZERO
    return adjusted_net / EQUIVALENT_DIVISOR


def calculate_payout(
    records: Iterable[BookingRecord],
    settings: PayoutLogicSettings,
    day: date,
    mode: OperatingMode,
    contractor_numbers: Iterable[str] | None = None,
) -> PayoutComputation:
    """
    Aggregate completed records for one worker (or one cart in Team mode).

    Preconditions:
        - ``contractor_numbers`` names the worker (or every cart member);
          ``None`` means the records are already filtered.
    Postconditions:
        - ``gross_sales`` sums price over the selected records.
        - ``adjusted_net`` equals ``total_net`` in Individual mode and has
          the product cost removed once in Team mode.
        - ``fallbacks`` lists the distinct method keys that were missing
          from settings.
    """
    selected = select_completed_records(records, day, contractor_numbers)
    lines = tuple(calculate_net_sale(r, settings) for r in selected)
    total_net = sum((line.net for line in lines), ZERO)
    adjusted = apply_product_cost(total_net, settings) if mode == OperatingMode.TEAM else total_net

    fallbacks = tuple(sorted({line.method_key for line in lines if line.fallback}))
    for key in fallbacks:
        err = PaymentMethodNotConfiguredError(key)
        logger.warning(
            "payout_method_fallback",
            extra={"method_key": key, "error_code": err.code, "day": day},
        )

    return PayoutComputation(
        day=day,
        mode=mode,
        gross_sales=calculate_gross_sales(selected),
        total_net=total_net,
        adjusted_net=adjusted,
        equivalent=calculate_equivalent(adjusted),
        lines=lines,
        fallbacks=fallbacks,
    )
