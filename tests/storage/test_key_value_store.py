"""
Tests for the key-value store contract and the in-memory backend.

Verifies:
- Only recognized keys are written
- Setting None removes a key
- Non-serializable values are rejected before the backend is touched
- Capacity limits raise StorageCapacityError
- Change notifications: one per mutation, subscriber failures isolated
"""

from datetime import date

import pytest

from fieldsales_kernel.exceptions import (
    InvalidStorageKeyError,
    StorageCapacityError,
    StorageSerializationError,
)
from fieldsales_kernel.storage import (
    ChangeKind,
    ChangeNotifier,
    InMemoryKeyValueStore,
    StorageKeys,
    StoreChange,
    is_valid_key,
    validate_key,
)


class TestStorageKeys:

    @pytest.mark.parametrize(
        "key",
        [
            "console_workers",
            "console_carts",
            "routeAssignments",
            "mapAssignments",
            "attendanceFinalized",
            "lastAppDate",
            "bookings_east_2025",
            "routeAssignments_2024-05-01",
            "mapAssignments_2024-05-01",
            "attendanceFinalized_2024-05-01",
            "payout_logic_settings_2025-aeration",
        ],
    )
    def test_recognized(self, key):
        assert is_valid_key(key)
        assert validate_key(key) == key

    @pytest.mark.parametrize("key", ["", "workers", "Bookings_east", "lastAppDate2", None])
    def test_rejected(self, key):
        assert not is_valid_key(key)
        with pytest.raises(InvalidStorageKeyError):
            validate_key(key)

    def test_helpers(self):
        assert StorageKeys.attendance_for(date(2024, 5, 1)) == "attendanceFinalized_2024-05-01"
        assert StorageKeys.bookings_for("East", "Aeration") == "bookings_east_aeration"
        assert StorageKeys.payout_settings_for("s1") == "payout_logic_settings_s1"


class TestInMemoryStore:

    def test_set_and_get(self):
        store = InMemoryKeyValueStore()
        store.set(StorageKeys.LAST_APP_DATE, "2024-05-01")
        assert store.get(StorageKeys.LAST_APP_DATE) == "2024-05-01"
        assert store.contains(StorageKeys.LAST_APP_DATE)

    def test_missing_key_returns_default(self):
        assert InMemoryKeyValueStore().get(StorageKeys.CONSOLE_WORKERS, []) == []

    def test_invalid_key_not_written(self):
        store = InMemoryKeyValueStore()
        with pytest.raises(InvalidStorageKeyError):
            store.set("scratch", 1)
        assert store.keys() == []

    def test_none_removes(self):
        store = InMemoryKeyValueStore()
        store.set(StorageKeys.ROUTE_ASSIGNMENTS, {"R1": "w1"})
        store.set(StorageKeys.ROUTE_ASSIGNMENTS, None)
        assert not store.contains(StorageKeys.ROUTE_ASSIGNMENTS)

    def test_unserializable_value_rejected(self):
        store = InMemoryKeyValueStore()
        with pytest.raises(StorageSerializationError):
            store.set(StorageKeys.MAP_ASSIGNMENTS, {"when": object()})
        assert not store.contains(StorageKeys.MAP_ASSIGNMENTS)

    def test_capacity(self):
        store = InMemoryKeyValueStore(capacity_bytes=20)
        store.set(StorageKeys.LAST_APP_DATE, "2024-05-01")
        with pytest.raises(StorageCapacityError) as exc_info:
            store.set(StorageKeys.CONSOLE_WORKERS, [{"contractorId": "1"}])
        assert exc_info.value.capacity_bytes == 20
        assert not store.contains(StorageKeys.CONSOLE_WORKERS)

    def test_overwrite_does_not_count_old_value(self):
        store = InMemoryKeyValueStore(capacity_bytes=14)
        store.set(StorageKeys.LAST_APP_DATE, "2024-05-01")
        store.set(StorageKeys.LAST_APP_DATE, "2024-05-02")
        assert store.used_bytes == len('"2024-05-02"')

    def test_keys_by_prefix(self):
        store = InMemoryKeyValueStore()
        store.set("routeAssignments_2024-05-01", {"R1": "w1"})
        store.set("routeAssignments_2024-04-30", {"R2": "w2"})
        store.set(StorageKeys.LAST_APP_DATE, "2024-05-01")
        assert store.keys("routeAssignments_") == [
            "routeAssignments_2024-04-30",
            "routeAssignments_2024-05-01",
        ]

    def test_unparseable_value_reads_as_default(self, captured_logs):
        store = InMemoryKeyValueStore()
        store._write(StorageKeys.LAST_APP_DATE, "{not json")
        assert store.get(StorageKeys.LAST_APP_DATE, "fallback") == "fallback"
        assert "store_value_unparseable" in [r["message"] for r in captured_logs()]


class TestNotifications:

    def test_one_event_per_mutation(self):
        store = InMemoryKeyValueStore()
        seen: list[StoreChange] = []
        store.notifier.subscribe(seen.append)

        store.set(StorageKeys.LAST_APP_DATE, "2024-05-01")
        store.remove(StorageKeys.LAST_APP_DATE)

        assert seen == [
            StoreChange(StorageKeys.LAST_APP_DATE, ChangeKind.SET, "2024-05-01"),
            StoreChange(StorageKeys.LAST_APP_DATE, ChangeKind.REMOVED),
        ]

    def test_key_subscription(self):
        store = InMemoryKeyValueStore()
        seen: list[str] = []
        store.notifier.subscribe(lambda change: seen.append(change.key), key=StorageKeys.CONSOLE_WORKERS)

        store.set(StorageKeys.LAST_APP_DATE, "2024-05-01")
        store.set(StorageKeys.CONSOLE_WORKERS, [])

        assert seen == [StorageKeys.CONSOLE_WORKERS]

    def test_rejected_write_publishes_nothing(self):
        store = InMemoryKeyValueStore()
        seen: list[StoreChange] = []
        store.notifier.subscribe(seen.append)
        with pytest.raises(InvalidStorageKeyError):
            store.set("scratch", 1)
        assert seen == []

    def test_failing_subscriber_isolated(self, captured_logs):
        notifier = ChangeNotifier()
        store = InMemoryKeyValueStore(notifier=notifier)
        seen: list[StoreChange] = []

        def broken(change):
            raise RuntimeError("subscriber bug")

        notifier.subscribe(broken)
        notifier.subscribe(seen.append)

        store.set(StorageKeys.LAST_APP_DATE, "2024-05-01")

        assert store.get(StorageKeys.LAST_APP_DATE) == "2024-05-01"
        assert len(seen) == 1
        failures = [r for r in captured_logs() if r["message"] == "store_change_subscriber_failed"]
        assert failures[0]["exc_type"] == "RuntimeError"

    def test_unsubscribe(self):
        notifier = ChangeNotifier()
        seen: list[StoreChange] = []
        unsubscribe = notifier.subscribe(seen.append)
        keyed = notifier.subscribe(seen.append, key="lastAppDate")
        assert notifier.subscriber_count == 2

        unsubscribe()
        keyed()

        assert notifier.subscriber_count == 0
        notifier.publish(StoreChange("lastAppDate", ChangeKind.SET, "x"))
        assert seen == []
