"""
Tests for WorkforceRepository.

Verifies:
- Read-after-write from memory whether or not the store accepted the write
- Store failures reported as MEMORY_ONLY and logged
- Optimistic version checks reject the whole batch
- Repositories of the same scope share one lock
"""

import threading

import pytest

from fieldsales_kernel.domain.worker import Cart
from fieldsales_kernel.exceptions import (
    InvalidStorageKeyError,
    StaleWorkerError,
    StorageCapacityError,
    WorkerNotFoundError,
)
from fieldsales_kernel.services import PersistenceStatus, WorkforceRepository, WriteOutcome
from fieldsales_kernel.storage import InMemoryKeyValueStore, StorageKeys


class TestWorkers:

    def test_save_and_reload(self, repository, store, make_worker):
        repository.save_workers([make_worker("w1"), make_worker("w2")])
        fresh = WorkforceRepository(store, console_id=101, season_id="2025-aeration")
        assert [w.worker_id for w in fresh.load_workers()] == ["w1", "w2"]

    def test_get_unknown_worker(self, repository):
        with pytest.raises(WorkerNotFoundError):
            repository.get_worker("ghost")

    def test_get_workers_fails_on_first_missing(self, repository, seed_workers, make_worker):
        seed_workers(make_worker("w1"))
        with pytest.raises(WorkerNotFoundError) as exc_info:
            repository.get_workers(["w1", "ghost", "other"])
        assert exc_info.value.worker_id == "ghost"

    def test_stale_version_rejects_batch(self, repository, seed_workers, make_worker):
        seed_workers(make_worker("w1"), make_worker("w2"))
        w1 = repository.get_worker("w1").bumped(days_worked=1)
        w2 = repository.get_worker("w2").bumped(days_worked=1)
        with pytest.raises(StaleWorkerError) as exc_info:
            repository.save_workers([w1, w2], expected_versions={"w1": 0, "w2": 3})
        assert exc_info.value.actual_version == 0
        assert repository.get_worker("w1").days_worked == 0

    def test_matching_version_accepted(self, repository, seed_workers, make_worker):
        seed_workers(make_worker("w1"))
        updated = repository.get_worker("w1").bumped(days_worked=1)
        outcome = repository.save_workers([updated], expected_versions={"w1": 0})
        assert outcome.persisted
        assert repository.get_worker("w1").version == 1

    def test_replace_roster(self, repository, seed_workers, make_worker):
        seed_workers(make_worker("w1"))
        repository.replace_roster([make_worker("w9")])
        assert [w.worker_id for w in repository.load_workers()] == ["w9"]


class TestPersistenceFailures:

    def test_capacity_failure_is_memory_only(self, make_worker, captured_logs):
        repository = WorkforceRepository(InMemoryKeyValueStore(capacity_bytes=10), console_id=1)
        outcome = repository.save_workers([make_worker("w1")])

        assert outcome.status == PersistenceStatus.MEMORY_ONLY
        assert isinstance(outcome.error, StorageCapacityError)
        assert repository.get_worker("w1").worker_id == "w1"

        warnings = [r for r in captured_logs() if r["message"] == "saved_to_memory_not_persisted"]
        assert warnings[0]["key"] == StorageKeys.CONSOLE_WORKERS
        assert warnings[0]["error_code"] == "STORAGE_CAPACITY_EXCEEDED"

    def test_invalidate_drops_unpersisted_state(self, make_worker):
        repository = WorkforceRepository(InMemoryKeyValueStore(capacity_bytes=10), console_id=1)
        repository.save_workers([make_worker("w1")])
        repository.invalidate()
        assert repository.load_workers() == []

    def test_combine_first_failure_wins(self):
        failure = WriteOutcome(PersistenceStatus.MEMORY_ONLY, RuntimeError("x"))
        assert WriteOutcome.combine([WriteOutcome(), failure, WriteOutcome()]) is failure
        assert WriteOutcome.combine([]).persisted


class TestValues:

    def test_set_get_remove(self, repository, store):
        repository.set_value(StorageKeys.LAST_APP_DATE, "2024-05-01")
        assert repository.get_value(StorageKeys.LAST_APP_DATE) == "2024-05-01"
        assert store.get(StorageKeys.LAST_APP_DATE) == "2024-05-01"

        repository.remove_value(StorageKeys.LAST_APP_DATE)
        assert repository.get_value(StorageKeys.LAST_APP_DATE, "gone") == "gone"
        assert not store.contains(StorageKeys.LAST_APP_DATE)

    def test_invalid_key_changes_nothing(self, repository):
        with pytest.raises(InvalidStorageKeyError):
            repository.set_value("scratch", 1)
        assert repository.get_value("scratch") is None

    def test_keys_include_memory_only_values(self):
        repository = WorkforceRepository(InMemoryKeyValueStore(capacity_bytes=5))
        repository.set_value("routeAssignments_2024-05-01", {"R1": "w1"})
        assert repository.keys("routeAssignments_") == ["routeAssignments_2024-05-01"]

    def test_carts_sorted(self, repository, store):
        repository.save_carts([Cart(3), Cart(1), Cart(2)])
        assert [c.cart_id for c in repository.load_carts()] == [1, 2, 3]
        assert store.get(StorageKeys.CONSOLE_CARTS) == [{"id": 1}, {"id": 2}, {"id": 3}]


class TestScopeLocks:

    def test_same_scope_shares_lock(self, store):
        a = WorkforceRepository(store, console_id=1, season_id="s")
        b = WorkforceRepository(store, console_id=1, season_id="s")
        c = WorkforceRepository(store, console_id=2, season_id="s")
        assert a._lock() is b._lock()
        assert a._lock() is not c._lock()

    def test_critical_section_serializes_writers(self, store, make_worker):
        repository = WorkforceRepository(store, console_id=1, season_id="s")
        repository.save_workers([make_worker("w1")])

        def bump():
            for _ in range(50):
                with repository.critical_section():
                    current = repository.get_worker("w1")
                    repository.save_workers([current.bumped(days_worked=current.days_worked + 1)])

        threads = [threading.Thread(target=bump) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert repository.get_worker("w1").days_worked == 200

    def test_critical_section_is_reentrant(self, repository):
        with repository.critical_section():
            with repository.critical_section():
                repository.set_value(StorageKeys.LAST_APP_DATE, "2024-05-01")
        assert repository.get_value(StorageKeys.LAST_APP_DATE) == "2024-05-01"
