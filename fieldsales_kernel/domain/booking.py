"""
Booking records (``fieldsales_kernel.domain.booking``).

Bookings are owned by the external booking repository.  The kernel reads
them for payout aggregation and only ever writes completion / assignment
fields back through ``BookingRepository.update_booking_fields``.

Stored bookings use spreadsheet-style keys ("Contractor Number", "Price")
and ``"x"`` for set flags; ``BookingRecord.from_row`` is the single place
that parses that shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from fieldsales_kernel.domain.dates import falls_on
from fieldsales_kernel.domain.values import ZERO, parse_amount
from fieldsales_kernel.exceptions import InvalidBookingPriceError
from fieldsales_kernel.logging_config import get_logger

logger = get_logger("domain.booking")

FLAG_SET = "x"


@dataclass(frozen=True)
class BookingRecord:
    """One sale."""

    booking_id: str
    contractor_number: str | None
    price: Decimal
    payment_method: str = ""
    prepaid: bool = False
    completed: bool = False
    status: str = ""
    date_completed: str | None = None
    route_number: str | None = None

    def completed_on(self, day: date) -> bool:
        """Completed, with a completion timestamp on ``day``."""
        return self.completed and falls_on(self.date_completed, day)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> BookingRecord:
        """
        Parse a stored booking.

        A price that is not a finite number is logged as
        ``booking_price_invalid`` and counts as zero, so one bad row never
        fails a payout run.
        """
        booking_id = str(row.get("Booking ID", ""))
        contractor = row.get("Contractor Number")
        price = parse_amount(row.get("Price"))
        if price is None:
            err = InvalidBookingPriceError(booking_id, str(row.get("Price")))
            logger.warning(
                "booking_price_invalid",
                extra={
                    "booking_id": booking_id,
                    "raw_price": err.raw_price,
                    "error_code": err.code,
                },
            )
            price = ZERO
        return cls(
            booking_id=booking_id,
            contractor_number=str(contractor).strip() if contractor else None,
            price=price,
            payment_method=row.get("Payment Method") or "",
            prepaid=row.get("Prepaid") == FLAG_SET,
            completed=row.get("Completed") == FLAG_SET,
            status=row.get("Status") or "",
            date_completed=row.get("Date Completed") or None,
            route_number=row.get("Route Number") or None,
        )
