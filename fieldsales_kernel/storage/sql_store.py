"""
SQLAlchemy-backed key-value store.

Each key is one ``store_entries`` row.  Every operation runs in its own
``session_scope`` so a write is committed before ``set`` returns and
``get`` from any process observes it.
"""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from fieldsales_kernel.db.engine import session_scope
from fieldsales_kernel.db.models import StoreEntry
from fieldsales_kernel.storage.base import KeyValueStore
from fieldsales_kernel.storage.notifications import ChangeNotifier


class SqlKeyValueStore(KeyValueStore):
    """
    Key-value store on the ``store_entries`` table.

    Args:
        session_factory: Factory to open sessions from.  ``None`` uses the
            module-level engine configured by ``init_engine_from_url``.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        notifier: ChangeNotifier | None = None,
    ) -> None:
        super().__init__(notifier)
        self._session_factory = session_factory

    def _read(self, key: str) -> str | None:
        with session_scope(self._session_factory) as session:
            return session.scalar(select(StoreEntry.value).where(StoreEntry.key == key))

    def _write(self, key: str, text: str) -> None:
        with session_scope(self._session_factory) as session:
            entry = session.scalar(select(StoreEntry).where(StoreEntry.key == key))
            if entry is None:
                session.add(StoreEntry(key=key, value=text))
            else:
                entry.value = text

    def _delete(self, key: str) -> bool:
        with session_scope(self._session_factory) as session:
            result = session.execute(delete(StoreEntry).where(StoreEntry.key == key))
            return bool(result.rowcount)

    def _keys(self) -> list[str]:
        with session_scope(self._session_factory) as session:
            return list(session.scalars(select(StoreEntry.key)))
