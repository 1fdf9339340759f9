"""
WorkforceRepository -- the single read/write path to operational state.

Responsibility:
    Owns the authoritative in-memory copy of workers, carts and the
    operational keys (attendance flags, assignment maps, last processed
    day) for one (console, season) scope, and mirrors every change to the
    injected ``KeyValueStore``.

Architecture position:
    Kernel > Services -- imperative shell.  Injected into every service;
    services never touch the store directly.

Invariants enforced:
    - Read-after-write: a value written through the repository is what the
      next read returns, whether or not the store accepted it.
    - Each read-modify-write runs inside ``critical_section()``, a
      re-entrant lock shared by every repository of the same scope.
    - ``save_workers`` with ``expected_versions`` rejects the whole batch on
      any version mismatch before anything is written.

Failure modes:
    - WorkerNotFoundError: unknown worker id.
    - StaleWorkerError: optimistic version check failed.
    - InvalidStorageKeyError: raised before any state change.
    - Store write failures (capacity, serialization, backend errors) keep
      the in-memory change and are reported as
      ``PersistenceStatus.MEMORY_ONLY`` with the error, logged at WARNING.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

from sqlalchemy.exc import SQLAlchemyError

from fieldsales_kernel.domain.worker import Cart, Worker
from fieldsales_kernel.exceptions import (
    StaleWorkerError,
    StorageFailure,
    WorkerNotFoundError,
)
from fieldsales_kernel.logging_config import get_logger
from fieldsales_kernel.storage.base import KeyValueStore
from fieldsales_kernel.storage.keys import StorageKeys, validate_key

logger = get_logger("services.repository")

_MISSING = object()


class PersistenceStatus(str, Enum):
    PERSISTED = "persisted"
    MEMORY_ONLY = "memory_only"


@dataclass(frozen=True)
class WriteOutcome:
    """Whether a mutation reached the store."""

    status: PersistenceStatus = PersistenceStatus.PERSISTED
    error: Exception | None = None

    @property
    def persisted(self) -> bool:
        return self.status == PersistenceStatus.PERSISTED

    @classmethod
    def combine(cls, outcomes: Iterable[WriteOutcome]) -> WriteOutcome:
        """First failure wins; all persisted means persisted."""
        for outcome in outcomes:
            if not outcome.persisted:
                return outcome
        return cls()


PERSISTED = WriteOutcome()


class WorkforceRepository:
    """
    Workers, carts and operational keys for one console/season scope.

    Contract:
        Load once from the store, then serve reads from memory.  Every
        mutation updates memory first and then writes through to the store.
    """

    _scope_locks: ClassVar[dict[tuple[Any, Any], threading.RLock]] = {}
    _scope_locks_guard: ClassVar[threading.Lock] = threading.Lock()

    def __init__(
        self,
        store: KeyValueStore,
        console_id: int | str | None = None,
        season_id: str | None = None,
    ) -> None:
        self.store = store
        self.console_id = console_id
        self.season_id = season_id
        self._workers: dict[str, Worker] | None = None
        self._carts: list[Cart] | None = None
        self._values: dict[str, Any] = {}

    # -- locking -----------------------------------------------------------

    @property
    def scope(self) -> tuple[Any, Any]:
        return (self.console_id, self.season_id)

    def _lock(self) -> threading.RLock:
        with self._scope_locks_guard:
            lock = self._scope_locks.get(self.scope)
            if lock is None:
                lock = threading.RLock()
                self._scope_locks[self.scope] = lock
            return lock

    @contextmanager
    def critical_section(self) -> Iterator[None]:
        """Serialize a read-modify-write against other writers of this scope."""
        with self._lock():
            yield

    # -- workers -----------------------------------------------------------

    def _worker_map(self) -> dict[str, Worker]:
        if self._workers is None:
            raw = self.store.get(StorageKeys.CONSOLE_WORKERS, []) or []
            workers: dict[str, Worker] = {}
            for data in raw:
                worker = Worker.from_dict(data)
                workers[worker.worker_id] = worker
            self._workers = workers
            logger.debug("workers_loaded", extra={"count": len(workers)})
        return self._workers

    def load_workers(self) -> list[Worker]:
        with self.critical_section():
            return list(self._worker_map().values())

    def get_worker(self, worker_id: str) -> Worker:
        with self.critical_section():
            worker = self._worker_map().get(worker_id)
        if worker is None:
            raise WorkerNotFoundError(worker_id)
        return worker

    def get_workers(self, worker_ids: Iterable[str]) -> list[Worker]:
        """All requested workers, or WorkerNotFoundError for the first missing id."""
        with self.critical_section():
            workers = self._worker_map()
            found = []
            for worker_id in worker_ids:
                worker = workers.get(worker_id)
                if worker is None:
                    raise WorkerNotFoundError(worker_id)
                found.append(worker)
            return found

    def save_workers(
        self,
        workers: Iterable[Worker],
        expected_versions: dict[str, int] | None = None,
    ) -> WriteOutcome:
        """
        Upsert ``workers`` and write the roster to the store.

        ``expected_versions`` maps worker id to the version the caller read;
        any mismatch with the current copy raises StaleWorkerError and
        nothing is saved.
        """
        updates = list(workers)
        with self.critical_section():
            current = self._worker_map()
            for worker_id, expected in (expected_versions or {}).items():
                existing = current.get(worker_id)
                actual = existing.version if existing is not None else 0
                if actual != expected:
                    logger.warning(
                        "stale_worker_rejected",
                        extra={
                            "worker_id": worker_id,
                            "expected_version": expected,
                            "actual_version": actual,
                        },
                    )
                    raise StaleWorkerError(worker_id, expected, actual)
            for worker in updates:
                current[worker.worker_id] = worker
            return self._write(
                StorageKeys.CONSOLE_WORKERS,
                [w.to_dict() for w in current.values()],
            )

    def replace_roster(self, workers: Iterable[Worker]) -> WriteOutcome:
        """Replace every worker, e.g. after a roster import."""
        with self.critical_section():
            self._workers = {w.worker_id: w for w in workers}
            return self._write(
                StorageKeys.CONSOLE_WORKERS,
                [w.to_dict() for w in self._workers.values()],
            )

    # -- carts -------------------------------------------------------------

    def load_carts(self) -> list[Cart]:
        with self.critical_section():
            if self._carts is None:
                raw = self.store.get(StorageKeys.CONSOLE_CARTS, []) or []
                self._carts = sorted(
                    (Cart.from_dict(c) for c in raw), key=lambda c: c.cart_id
                )
            return list(self._carts)

    def save_carts(self, carts: Iterable[Cart]) -> WriteOutcome:
        with self.critical_section():
            self._carts = sorted(carts, key=lambda c: c.cart_id)
            return self._write(
                StorageKeys.CONSOLE_CARTS, [c.to_dict() for c in self._carts]
            )

    # -- operational keys --------------------------------------------------

    def get_value(self, key: str, default: Any = None) -> Any:
        with self.critical_section():
            value = self._values.get(key, _MISSING)
            if value is _MISSING:
                value = self.store.get(key, None)
                self._values[key] = value
            return default if value is None else value

    def set_value(self, key: str, value: Any) -> WriteOutcome:
        """Set ``key``; ``None`` removes it."""
        validate_key(key)
        with self.critical_section():
            self._values[key] = value
            return self._write(key, value)

    def remove_value(self, key: str) -> WriteOutcome:
        return self.set_value(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        """Store keys with ``prefix``, including keys only held in memory."""
        with self.critical_section():
            stored = set(self.store.keys(prefix))
            for key, value in self._values.items():
                if not key.startswith(prefix):
                    continue
                if value is None:
                    stored.discard(key)
                else:
                    stored.add(key)
            return sorted(stored)

    def invalidate(self) -> None:
        """Drop the in-memory copy; the next read reloads from the store."""
        with self.critical_section():
            self._workers = None
            self._carts = None
            self._values.clear()

    # -- write-through -----------------------------------------------------

    def _write(self, key: str, value: Any) -> WriteOutcome:
        try:
            self.store.set(key, value)
        except (StorageFailure, SQLAlchemyError, OSError) as exc:
            logger.warning(
                "saved_to_memory_not_persisted",
                extra={
                    "key": key,
                    "error_type": type(exc).__name__,
                    "error_code": getattr(exc, "code", None),
                },
            )
            return WriteOutcome(PersistenceStatus.MEMORY_ONLY, exc)
        return PERSISTED
