# =============================================================================
# Signals and Subscriptions
# =============================================================================
# A tiny observer primitive. Registering a callback returns a Subscription
# handle; whoever registered is responsible for calling unsubscribe() during
# its own teardown. There are no module-level listener lists.
# =============================================================================

import logging
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Subscription:
    """Handle returned by Signal.connect(). Unsubscribing twice is harmless."""

    def __init__(self, signal: "Signal", callback: Callable) -> None:
        self._signal = signal
        self._callback = callback

    @property
    def active(self) -> bool:
        return self._signal is not None

    def unsubscribe(self) -> None:
        if self._signal is not None:
            self._signal._disconnect(self._callback)
            self._signal = None


class Signal(Generic[T]):
    """
    A named event that passes one value to every connected callback.

    Usage:
        >>> changed = Signal("changed")
        >>> handle = changed.connect(lambda key: print(key))
        >>> changed.emit("check_interval_seconds")
        check_interval_seconds
        >>> handle.unsubscribe()
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._callbacks: list[Callable[[T], None]] = []

    def connect(self, callback: Callable[[T], None]) -> Subscription:
        self._callbacks.append(callback)
        return Subscription(self, callback)

    def emit(self, value: T) -> None:
        # Copy so a callback may unsubscribe itself
        for callback in list(self._callbacks):
            try:
                callback(value)
            except Exception as e:
                logger.error(f"Error in {self.name} handler: {e}")

    def _disconnect(self, callback: Callable[[T], None]) -> None:
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass

    def __len__(self) -> int:
        return len(self._callbacks)
