# =============================================================================
# Provider Capability
# =============================================================================
# The one interface the poll driver talks to. IMAP and both REST providers
# implement it; the driver never knows which one backs an account.
# =============================================================================

from abc import ABC, abstractmethod

from pigeon.config import NotifyOptions
from pigeon.core import Account, Message


class MailProvider(ABC):
    """
    Fetches the current unread messages of one account.

    Attributes:
        account: The account this provider instance serves.
    """

    def __init__(self, account: Account) -> None:
        self.account = account

    @abstractmethod
    async def fetch(self, options: NotifyOptions) -> list[Message]:
        """
        Return the account's current unread messages, newest first.

        Raises:
            PigeonError: Any transport, protocol, provider or credential
                         failure. Errors propagate unchanged.
        """

    @abstractmethod
    def fallback_url(self) -> str | None:
        """Where to send the user when a message has no link of its own."""

    async def aclose(self) -> None:
        """Release provider-held resources. Most providers hold none."""
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.account.name!r})"
