"""Ordered callback lists with identity-based removal."""

from __future__ import annotations

from collections.abc import Callable, Iterator
import logging
from typing import Generic, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class CallbackList(Generic[T]):
    """Ordered collection of callbacks invoked synchronously with one value.

    Callbacks run in registration order. Registering the same callable twice
    keeps two entries; removal drops the first entry that *is* the callable
    and ignores callables that were never registered.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._callbacks: list[Callable[[T], object]] = []

    def add(self, callback: Callable[[T], object]) -> Callable[[T], object]:
        self._callbacks.append(callback)
        return callback

    def remove(self, callback: Callable[[T], object]) -> bool:
        """Remove ``callback`` by identity.

        Returns:
            True if an entry was removed, False if it was not registered
        """
        for index, registered in enumerate(self._callbacks):
            if registered is callback:
                del self._callbacks[index]
                return True
        return False

    def emit(self, value: T) -> None:
        """Invoke every callback with ``value``.

        A failing callback is logged and does not stop the remaining ones.
        """
        for callback in list(self._callbacks):
            try:
                callback(value)
            except Exception as exc:  # noqa: BLE001 - isolate subscriber failures.
                LOGGER.warning(
                    "callbacks.emit.failed",
                    extra={
                        "event": "callbacks.emit.failed",
                        "callbacks": self.name,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                )

    def clear(self) -> None:
        self._callbacks.clear()

    def __len__(self) -> int:
        return len(self._callbacks)

    def __iter__(self) -> Iterator[Callable[[T], object]]:
        return iter(list(self._callbacks))
