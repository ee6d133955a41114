# =============================================================================
# Providers Module
# =============================================================================
# One class per supported mail service, all implementing MailProvider:
#   - GoogleProvider:    Gmail Atom feed (OAuth)
#   - MicrosoftProvider: Microsoft Graph (OAuth)
#   - ImapProvider:      any IMAP server (password)
#
# create_provider() picks the class from the account's ProviderKind.
# =============================================================================

import httpx

from pigeon.cancellation import Cancellable
from pigeon.core import Account, ProviderKind
from pigeon.credentials import CredentialSource
from pigeon.providers.base import MailProvider
from pigeon.providers.google import GoogleProvider
from pigeon.providers.imap import ImapProvider
from pigeon.providers.microsoft import MicrosoftProvider
from pigeon.providers.rest import create_http_client


def create_provider(
    account: Account,
    *,
    credentials: CredentialSource,
    http_client: httpx.AsyncClient,
    cancellable: Cancellable,
) -> MailProvider:
    """
    Build the provider for an account.

    Raises:
        ValueError: If the account's provider kind is not supported.
    """
    if account.provider is ProviderKind.IMAP:
        return ImapProvider(account, credentials=credentials, cancellable=cancellable)
    elif account.provider is ProviderKind.GOOGLE:
        return GoogleProvider(
            account,
            credentials=credentials,
            http_client=http_client,
            cancellable=cancellable,
        )
    elif account.provider is ProviderKind.MICROSOFT:
        return MicrosoftProvider(
            account,
            credentials=credentials,
            http_client=http_client,
            cancellable=cancellable,
        )
    raise ValueError(f"Unsupported provider: {account.provider}")


__all__ = [
    "MailProvider",
    "GoogleProvider",
    "MicrosoftProvider",
    "ImapProvider",
    "create_provider",
    "create_http_client",
]
