"""
Module: fieldsales_kernel.db.models
Responsibility: ORM persistence for the key-value store -- one row per
    storage key, holding the value's JSON text.
Architecture position: Kernel > DB.  May import from db/base.py only.

Invariants enforced:
    - ``key`` is unique (uq_store_entry_key); the store upserts by key.
"""

from sqlalchemy import String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fieldsales_kernel.db.base import TrackedBase


class StoreEntry(TrackedBase):
    """A stored key and its JSON-encoded value."""

    __tablename__ = "store_entries"

    __table_args__ = (
        UniqueConstraint("key", name="uq_store_entry_key"),
    )

    key: Mapped[str] = mapped_column(String(255), nullable=False)

    value: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<StoreEntry {self.key} ({len(self.value)} bytes)>"
