# =============================================================================
# Account Model
# =============================================================================
# Represents one watched mailbox and how to reach it.
#
# Every account is backed by exactly one provider kind, chosen when the config
# is parsed:
#   - GOOGLE:    Gmail Atom feed, OAuth bearer token
#   - MICROSOFT: Microsoft Graph REST API, OAuth bearer token
#   - IMAP:      any IMAP server, username + password
#
# IMPORTANT: Secrets are NOT stored here. Tokens and passwords are retrieved
# from the system keyring at poll time (see pigeon.credentials).
# =============================================================================

from dataclasses import dataclass
from enum import Enum


class ProviderKind(Enum):
    """The closed set of mail providers an account can use."""
    GOOGLE = "google"
    MICROSOFT = "microsoft"
    IMAP = "imap"


@dataclass
class Account:
    """
    A watched mailbox.

    Attributes:
        name: Unique identifier for this account (e.g., "personal", "work").
              Used as the key in config files and for keyring lookups.
        mailbox: The address shown to the user; also the key under which
                 notification history is stored.
        provider: Which provider backs this account.

        imap_host: Hostname of the IMAP server (IMAP accounts only).
        imap_port: Port for the IMAP connection (993 for TLS, 143 plain).
        imap_tls: Whether to wrap the connection in TLS.
        username: IMAP login name. Defaults to the mailbox address.

        enabled: Disabled accounts are never polled.

    Example:
        >>> account = Account(
        ...     name="personal",
        ...     mailbox="user@example.com",
        ...     provider=ProviderKind.IMAP,
        ...     imap_host="imap.example.com",
        ... )
    """

    name: str
    mailbox: str
    provider: ProviderKind = ProviderKind.IMAP

    # IMAP connection details
    imap_host: str = ""
    imap_port: int = 993                # Default to the TLS port
    imap_tls: bool = True
    username: str = ""

    enabled: bool = True

    @property
    def login(self) -> str:
        """The name used to log in and to look up the secret in the keyring."""
        return self.username or self.mailbox

    @property
    def keyring_service(self) -> str:
        """
        Returns the service name used for keyring secret storage.

        Secrets can be managed with the keyring CLI:
            keyring set pigeon:personal user@example.com
        """
        return f"pigeon:{self.name}"

    def __str__(self) -> str:
        return f"{self.name} <{self.mailbox}>"
