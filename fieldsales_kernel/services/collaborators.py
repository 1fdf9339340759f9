"""
External collaborators.

The booking repository and the roster (management users and permissions)
are owned outside the kernel.  Services depend only on the protocols below;
the in-memory implementations back tests and single-process embedding.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import replace
from datetime import date
from typing import Any, Protocol, runtime_checkable

from fieldsales_kernel.domain.booking import BookingRecord
from fieldsales_kernel.domain.route_managers import ManagementUser, UserPermissions
from fieldsales_kernel.logging_config import get_logger

logger = get_logger("services.collaborators")

# Spreadsheet keys ``update_booking_fields`` accepts; flags use "x".
_PATCHABLE_FIELDS = frozenset({
    "Contractor Number",
    "Completed",
    "Date Completed",
    "Status",
    "Payment Method",
    "Price",
})


@runtime_checkable
class BookingRepository(Protocol):
    """Read/patch access to the season's master bookings."""

    def get_completed_bookings_for_worker(
        self, worker_id: str, day: date
    ) -> list[BookingRecord]:
        ...

    def find_bookings_by_route(self, route_number: str) -> list[BookingRecord]:
        ...

    def update_booking_fields(self, booking_id: str, patch: dict[str, Any]) -> bool:
        ...


@runtime_checkable
class RosterService(Protocol):
    """Management users and their per-console permission links."""

    def management_users(self) -> list[ManagementUser]:
        ...

    def permission_links(self) -> list[UserPermissions]:
        ...


class InMemoryBookingRepository:
    """Bookings held in a list, patched in place."""

    def __init__(self, bookings: Iterable[BookingRecord] = ()) -> None:
        self._bookings: dict[str, BookingRecord] = {b.booking_id: b for b in bookings}
        self._lock = threading.Lock()

    @classmethod
    def from_rows(cls, rows: Iterable[dict[str, Any]]) -> InMemoryBookingRepository:
        return cls(BookingRecord.from_row(row) for row in rows)

    def add(self, booking: BookingRecord) -> None:
        with self._lock:
            self._bookings[booking.booking_id] = booking

    def all(self) -> list[BookingRecord]:
        with self._lock:
            return list(self._bookings.values())

    def get_completed_bookings_for_worker(
        self, worker_id: str, day: date
    ) -> list[BookingRecord]:
        with self._lock:
            return [
                b for b in self._bookings.values()
                if b.contractor_number == worker_id and b.completed_on(day)
            ]

    def find_bookings_by_route(self, route_number: str) -> list[BookingRecord]:
        with self._lock:
            return [b for b in self._bookings.values() if b.route_number == route_number]

    def update_booking_fields(self, booking_id: str, patch: dict[str, Any]) -> bool:
        """
        Apply a spreadsheet-style patch.  Returns False for unknown bookings.

        Raises:
            KeyError: if the patch names a field that cannot be updated.
        """
        unknown = set(patch) - _PATCHABLE_FIELDS
        if unknown:
            raise KeyError(f"Unsupported booking fields: {sorted(unknown)}")
        with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                logger.warning("booking_not_found", extra={"booking_id": booking_id})
                return False
            row = {"Booking ID": booking.booking_id, **_to_row(booking), **patch}
            self._bookings[booking_id] = replace(
                BookingRecord.from_row(row), booking_id=booking.booking_id
            )
        return True


def _to_row(booking: BookingRecord) -> dict[str, Any]:
    return {
        "Contractor Number": booking.contractor_number,
        "Price": str(booking.price),
        "Payment Method": booking.payment_method,
        "Prepaid": "x" if booking.prepaid else "",
        "Completed": "x" if booking.completed else "",
        "Status": booking.status,
        "Date Completed": booking.date_completed,
        "Route Number": booking.route_number,
    }


class StaticRosterService:
    """Roster fixed at construction."""

    def __init__(
        self,
        users: Iterable[ManagementUser] = (),
        permissions: Iterable[UserPermissions] = (),
    ) -> None:
        self._users = list(users)
        self._permissions = list(permissions)

    def management_users(self) -> list[ManagementUser]:
        return list(self._users)

    def permission_links(self) -> list[UserPermissions]:
        return list(self._permissions)
