"""
Module: fieldsales_kernel.storage.base
Responsibility: The key-value store contract every persistence backend
    implements, plus the in-memory reference backend.
Architecture position: Kernel > Storage.  May import from domain/ (dates),
    exceptions and logging_config.  MUST NOT import from services/.

Invariants enforced:
    - Writes and removals are accepted only for recognized keys
      (``storage.keys``); reads of any key are allowed.
    - Values are stored as JSON text.  A value that does not serialize is
      rejected before the backend is touched.
    - Setting ``None`` removes the key.
    - Each successful mutation publishes exactly one ``StoreChange``.

Failure modes:
    - InvalidStorageKeyError for unrecognized keys.
    - StorageSerializationError for values json cannot encode.
    - StorageCapacityError when a backend's capacity would be exceeded.
    - Unparseable stored text is logged and read as the caller's default.
"""

from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from typing import Any

from fieldsales_kernel.exceptions import StorageCapacityError, StorageSerializationError
from fieldsales_kernel.logging_config import get_logger
from fieldsales_kernel.storage.keys import validate_key
from fieldsales_kernel.storage.notifications import ChangeKind, ChangeNotifier, StoreChange

logger = get_logger("storage.base")


class KeyValueStore(ABC):
    """
    JSON key-value store.

    Subclasses implement the raw text operations; key validation,
    serialization and change notification live here.
    """

    def __init__(self, notifier: ChangeNotifier | None = None) -> None:
        self.notifier = notifier or ChangeNotifier()

    # -- backend hooks -----------------------------------------------------

    @abstractmethod
    def _read(self, key: str) -> str | None:
        ...

    @abstractmethod
    def _write(self, key: str, text: str) -> None:
        ...

    @abstractmethod
    def _delete(self, key: str) -> bool:
        """Delete ``key``; return whether it existed."""
        ...

    @abstractmethod
    def _keys(self) -> list[str]:
        ...

    # -- public contract ---------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Stored value for ``key``, or ``default`` when absent or unreadable."""
        text = self._read(key)
        if text is None:
            return default
        try:
            value = json.loads(text)
        except ValueError:
            logger.error("store_value_unparseable", extra={"key": key})
            return default
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        """
        Store ``value`` under ``key``.

        Raises:
            InvalidStorageKeyError: if the key is not recognized.
            StorageSerializationError: if the value is not JSON-serializable.
            StorageCapacityError: if the backend is full.
        """
        validate_key(key)
        if value is None:
            self.remove(key)
            return
        try:
            text = json.dumps(value, sort_keys=True)
        except (TypeError, ValueError) as exc:
            raise StorageSerializationError(key, str(exc)) from exc
        self._write(key, text)
        logger.debug("store_key_set", extra={"key": key, "bytes": len(text)})
        self.notifier.publish(StoreChange(key, ChangeKind.SET, json.loads(text)))

    def remove(self, key: str) -> None:
        validate_key(key)
        existed = self._delete(key)
        logger.debug("store_key_removed", extra={"key": key, "existed": existed})
        self.notifier.publish(StoreChange(key, ChangeKind.REMOVED))

    def contains(self, key: str) -> bool:
        return self._read(key) is not None

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._keys() if k.startswith(prefix))


class InMemoryKeyValueStore(KeyValueStore):
    """
    Process-local store.

    ``capacity_bytes`` bounds the total size of stored JSON text, the way a
    browser-local quota would.
    """

    def __init__(
        self,
        capacity_bytes: int | None = None,
        notifier: ChangeNotifier | None = None,
    ) -> None:
        super().__init__(notifier)
        self.capacity_bytes = capacity_bytes
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def _read(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def _write(self, key: str, text: str) -> None:
        with self._lock:
            if self.capacity_bytes is not None:
                used = sum(len(v) for k, v in self._data.items() if k != key)
                required = used + len(text)
                if required > self.capacity_bytes:
                    raise StorageCapacityError(key, required, self.capacity_bytes)
            self._data[key] = text

    def _delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def _keys(self) -> list[str]:
        with self._lock:
            return list(self._data)

    @property
    def used_bytes(self) -> int:
        with self._lock:
            return sum(len(v) for v in self._data.values())
