# =============================================================================
# Per-Account State
# =============================================================================
# Everything the poll driver tracks for one account lives in one record,
# created when the account is added and destroyed when it is removed or the
# driver stops.
# =============================================================================

import asyncio
import logging
from dataclasses import dataclass, field

from pigeon.cancellation import Cancellable
from pigeon.core import Account
from pigeon.providers import MailProvider

logger = logging.getLogger(__name__)


@dataclass
class AccountState:
    """
    Mutable per-account polling state.

    Attributes:
        account: The account configuration.
        provider: The provider instance serving this account.
        failure_count: Consecutive failed polls (reset on success).
        task: The poll currently in flight, if any.
        cancellable: This account's cancellation signal, a child of the
                     poll driver's. Every network call of the provider
                     is guarded by it.
    """
    account: Account
    provider: MailProvider
    cancellable: Cancellable = field(default_factory=Cancellable)
    failure_count: int = 0
    task: asyncio.Task | None = None

    @property
    def mailbox(self) -> str:
        return self.account.mailbox

    @property
    def is_polling(self) -> bool:
        return self.task is not None and not self.task.done()

    async def destroy(self) -> None:
        """Stop any in-flight poll and release the provider."""
        # Must fire before task.cancel(): only this signal interrupts the
        # LOGOUT the poll sends while unwinding
        self.cancellable.cancel()
        if self.task is not None and not self.task.done():
            self.task.cancel()
            await asyncio.gather(self.task, return_exceptions=True)
        self.task = None
        await self.provider.aclose()
        logger.debug(f"Destroyed state for {self.account.name}")
