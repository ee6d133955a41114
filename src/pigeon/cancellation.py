# =============================================================================
# Cancellation Signal
# =============================================================================
# A "stop now" signal, raised at teardown.
#
# Every network suspension point (connect, write, read, HTTP request) is
# awaited through Cancellable.guard(), which races the operation against the
# signal. When the signal fires first, the operation is cancelled and
# CancellationError is raised in the caller. The poll driver recognises that
# error and neither counts it as a failure nor notifies anybody.
#
# Signals form a tree: the poll driver owns the root, each account gets a
# child. Firing the root stops every account; firing a child stops only that
# account's work.
# =============================================================================

import asyncio
import logging
import weakref
from typing import Awaitable, TypeVar

from pigeon.errors import CancellationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Cancellable:
    """
    Cancellation signal for in-flight network operations.

    Usage:
        >>> cancellable = Cancellable()
        >>> data = await cancellable.guard(reader.read(4096))
        >>> # ... at teardown, from anywhere:
        >>> cancellable.cancel()

        >>> per_account = cancellable.child()   # fires with its parent
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._children: weakref.WeakSet["Cancellable"] = weakref.WeakSet()

    @property
    def is_cancelled(self) -> bool:
        """True once cancel() has been called on this signal or an ancestor."""
        return self._event.is_set()

    def child(self) -> "Cancellable":
        """
        Create a signal that fires when this one does, but can also be fired
        on its own without affecting this one.
        """
        child = Cancellable()
        if self.is_cancelled:
            child.cancel()
        else:
            self._children.add(child)
        return child

    def cancel(self) -> None:
        """Fire the signal and all of its children. Idempotent."""
        if not self._event.is_set():
            logger.debug("Cancellation requested")
            self._event.set()
            for child in list(self._children):
                child.cancel()

    def raise_if_cancelled(self) -> None:
        """Raise CancellationError if the signal has fired."""
        if self._event.is_set():
            raise CancellationError("Operation cancelled")

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """
        Await an operation unless the signal fires first.

        Args:
            awaitable: The coroutine or future to run.

        Returns:
            Whatever the awaitable returns.

        Raises:
            CancellationError: If the signal fired before the operation
                               completed. The operation itself is cancelled.
        """
        operation = asyncio.ensure_future(awaitable)

        if self._event.is_set():
            operation.cancel()
            await asyncio.gather(operation, return_exceptions=True)
            raise CancellationError("Operation cancelled")

        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait(
                {operation, waiter},
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            # Our own task was cancelled; take the operation down with it
            operation.cancel()
            waiter.cancel()
            raise

        if operation.done():
            waiter.cancel()
            return operation.result()

        operation.cancel()
        await asyncio.gather(operation, return_exceptions=True)
        raise CancellationError("Operation cancelled")


def is_cancellation(error: BaseException) -> bool:
    """Check whether an error means "we were told to stop" rather than "it broke"."""
    return isinstance(error, (CancellationError, asyncio.CancelledError))
