"""
Store change notifications.

Every store mutation publishes one ``StoreChange`` to the subscribers of
its ``ChangeNotifier``.  Delivery is synchronous and fire-and-forget: a
subscriber that raises is logged and skipped, and the mutation that
triggered the event is never affected.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fieldsales_kernel.logging_config import get_logger

logger = get_logger("storage.notifications")


class ChangeKind(str, Enum):
    SET = "set"
    REMOVED = "removed"


@dataclass(frozen=True)
class StoreChange:
    """A key changed; ``value`` is ``None`` for removals."""

    key: str
    kind: ChangeKind
    value: Any = None


ChangeHandler = Callable[[StoreChange], Any]


class ChangeNotifier:
    """Publish/subscribe channel for store changes."""

    def __init__(self) -> None:
        self._handlers: list[ChangeHandler] = []
        self._key_handlers: dict[str, list[ChangeHandler]] = {}

    def subscribe(self, handler: ChangeHandler, key: str | None = None) -> Callable[[], None]:
        """
        Register ``handler`` for every change, or only for ``key``.

        Returns a callable that unsubscribes the handler.
        """
        if key is None:
            self._handlers.append(handler)
        else:
            self._key_handlers.setdefault(key, []).append(handler)

        def unsubscribe() -> None:
            self.unsubscribe(handler, key)

        return unsubscribe

    def unsubscribe(self, handler: ChangeHandler, key: str | None = None) -> None:
        if key is None:
            self._handlers = [h for h in self._handlers if h is not handler]
        elif key in self._key_handlers:
            self._key_handlers[key] = [h for h in self._key_handlers[key] if h is not handler]

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers) + sum(len(hs) for hs in self._key_handlers.values())

    def publish(self, change: StoreChange) -> None:
        """Deliver ``change`` once to each matching subscriber."""
        handlers = [*self._key_handlers.get(change.key, ()), *self._handlers]
        for handler in handlers:
            try:
                handler(change)
            except Exception:
                logger.warning(
                    "store_change_subscriber_failed",
                    extra={"key": change.key, "kind": change.kind.value},
                    exc_info=True,
                )
