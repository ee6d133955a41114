# =============================================================================
# Credentials
# =============================================================================
# Looks up the secret an account needs at poll time:
#   - GOOGLE / MICROSOFT: an OAuth access token (sent as a Bearer token)
#   - IMAP: the account password
#
# Secrets live in the system keyring, never in config.toml:
#
#   keyring set pigeon:<account name> <login>
#
# Refreshing OAuth tokens is the job of whatever put them there.
# =============================================================================

import logging
from typing import Protocol

import keyring
from keyring.errors import KeyringError

from pigeon.core import Account
from pigeon.errors import CredentialError

logger = logging.getLogger(__name__)


class CredentialSource(Protocol):
    """Anything that can hand out the secret for an account."""

    def get_secret(self, account: Account) -> str:
        ...


class KeyringCredentials:
    """
    Credential source backed by the system keyring.

    Usage:
        >>> credentials = KeyringCredentials()
        >>> password = credentials.get_secret(account)
    """

    def get_secret(self, account: Account) -> str:
        """
        Retrieve the token or password for an account.

        Raises:
            CredentialError: If nothing is stored or the keyring is unusable.
        """
        try:
            secret = keyring.get_password(account.keyring_service, account.login)
        except KeyringError as e:
            raise CredentialError(f"Keyring unavailable for {account.mailbox}: {e}") from e

        if not secret:
            raise CredentialError(
                f"No secret found in keyring for {account.mailbox}. "
                f"Set it with: keyring set {account.keyring_service} {account.login}"
            )

        logger.debug(f"Retrieved secret for {account.name}")
        return secret
