"""
Storage key registry.

Every key written to a ``KeyValueStore`` must be one of the fixed keys below
or start with one of the recognized prefixes.  Anything else is rejected
with ``InvalidStorageKeyError`` before the store is touched.
"""

from __future__ import annotations

from datetime import date

from fieldsales_kernel.domain.dates import archive_key
from fieldsales_kernel.exceptions import InvalidStorageKeyError


class StorageKeys:
    """Fixed keys of the operational state."""

    CONSOLE_WORKERS = "console_workers"
    CONSOLE_CARTS = "console_carts"
    ROUTE_ASSIGNMENTS = "routeAssignments"
    MAP_ASSIGNMENTS = "mapAssignments"
    ATTENDANCE_FINALIZED = "attendanceFinalized"
    LAST_APP_DATE = "lastAppDate"

    FIXED: frozenset[str] = frozenset({
        CONSOLE_WORKERS,
        CONSOLE_CARTS,
        ROUTE_ASSIGNMENTS,
        MAP_ASSIGNMENTS,
        ATTENDANCE_FINALIZED,
        LAST_APP_DATE,
    })

    PREFIXES: tuple[str, ...] = (
        "bookings_",
        "routeAssignments_",
        "mapAssignments_",
        "attendanceFinalized_",
        "payout_logic_settings",
    )

    # Live keys archived under ``<key>_<day>`` by the daily rollover.
    ARCHIVED_ASSIGNMENTS: tuple[str, ...] = (ROUTE_ASSIGNMENTS, MAP_ASSIGNMENTS)

    @staticmethod
    def attendance_for(day: date) -> str:
        return archive_key(StorageKeys.ATTENDANCE_FINALIZED, day)

    @staticmethod
    def bookings_for(region: str, season: str) -> str:
        return f"bookings_{region}_{season}".lower()

    @staticmethod
    def payout_settings_for(season_id: str) -> str:
        return f"payout_logic_settings_{season_id}"


def is_valid_key(key: str) -> bool:
    if not isinstance(key, str) or not key:
        return False
    return key in StorageKeys.FIXED or key.startswith(StorageKeys.PREFIXES)


def validate_key(key: str) -> str:
    """Return ``key`` unchanged, or raise ``InvalidStorageKeyError``."""
    if not is_valid_key(key):
        raise InvalidStorageKeyError(str(key))
    return key
