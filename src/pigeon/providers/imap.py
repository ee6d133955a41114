# =============================================================================
# IMAP Provider
# =============================================================================
# Adapts IMAPClient to the provider capability. Every fetch is one complete
# session on a fresh connection:
#
#   connect -> SELECT INBOX -> SEARCH UNSEEN -> FETCH (last 10) -> LOGOUT
#
# LOGOUT and close happen on success and on failure alike.
# =============================================================================

import logging

from pigeon.cancellation import Cancellable
from pigeon.config import NotifyOptions
from pigeon.core import Account, Message
from pigeon.credentials import CredentialSource
from pigeon.imap.client import IMAPClient, TransportFactory
from pigeon.providers.base import MailProvider

logger = logging.getLogger(__name__)


class ImapProvider(MailProvider):
    """Any IMAP server, password authentication."""

    # Newest unread messages looked at per poll
    FETCH_LIMIT = 10

    def __init__(
        self,
        account: Account,
        *,
        credentials: CredentialSource,
        cancellable: Cancellable,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        super().__init__(account)
        self._credentials = credentials
        self.cancellable = cancellable
        self._transport_factory = transport_factory

    def create_client(self, password: str) -> IMAPClient:
        return IMAPClient(
            self.account.imap_host,
            self.account.imap_port,
            self.account.login,
            password,
            use_tls=self.account.imap_tls,
            cancellable=self.cancellable,
            transport_factory=self._transport_factory,
        )

    async def fetch(self, options: NotifyOptions) -> list[Message]:
        """
        Fetch the newest unread messages.

        `options.priority_only` has no IMAP equivalent and is ignored.

        Returns:
            Messages newest first. The server answers in ascending sequence
            order, so the list is reversed here.
        """
        self.cancellable.raise_if_cancelled()
        password = self._credentials.get_secret(self.account)
        client = self.create_client(password)

        async with client.session():
            await client.select_mailbox("INBOX")
            unread = await client.search_unread()
            messages = await client.fetch_messages(unread, limit=self.FETCH_LIMIT)

        return list(reversed(messages))

    def fallback_url(self) -> str | None:
        # IMAP has no web interface to point at
        return None
