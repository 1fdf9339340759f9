"""
Monetary value helpers.

Invariants enforced:
    - All money in the kernel is ``Decimal``.  Prices arrive from bookings as
      strings ("59.99"); floats are converted through ``str`` so binary
      representation error never enters a total.
    - ``round_money`` (cents, half-up) is the only rounding applied to stored
      payout snapshots.  Intermediate sums are never rounded.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENTS = Decimal("0.01")

# One equivalent unit is $25 of adjusted net sales.  Fixed normalization
# constant, not a season setting.
EQUIVALENT_DIVISOR = Decimal("25")


def parse_amount(value: Decimal | int | float | str | None) -> Decimal | None:
    """
    Parse a stored amount, or ``None`` when it is not a finite number.

    ``None`` and blank strings are zero.  "$1,250.00" parses; "12O.00",
    "NaN" and "Infinity" do not.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise TypeError("bool is not a monetary amount")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(str(value))
    else:
        text = str(value).strip().replace("$", "").replace(",", "")
        if not text:
            return ZERO
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return None
    return amount if amount.is_finite() else None


def to_decimal(value: Decimal | int | float | str | None) -> Decimal:
    """Convert a stored amount to Decimal; anything unparseable is zero."""
    amount = parse_amount(value)
    return ZERO if amount is None else amount


def round_money(amount: Decimal) -> Decimal:
    """Round to cents, half-up."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def percent(rate: Decimal) -> Decimal:
    """Convert a percentage (13) to a fraction (0.13)."""
    return rate / HUNDRED
