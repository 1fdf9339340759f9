"""Key-value store contract, key registry and backends."""

from fieldsales_kernel.storage.base import InMemoryKeyValueStore, KeyValueStore
from fieldsales_kernel.storage.keys import StorageKeys, is_valid_key, validate_key
from fieldsales_kernel.storage.notifications import (
    ChangeKind,
    ChangeNotifier,
    StoreChange,
)
from fieldsales_kernel.storage.sql_store import SqlKeyValueStore

__all__ = [
    "ChangeKind",
    "ChangeNotifier",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "SqlKeyValueStore",
    "StorageKeys",
    "StoreChange",
    "is_valid_key",
    "validate_key",
]
