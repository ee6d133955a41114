# =============================================================================
# Exceptions
# =============================================================================
# Error taxonomy shared by the transport, the IMAP client, the REST providers
# and the poll driver.
#
#   PigeonError
#     ├── TransportError     connect/TLS failure, socket errors
#     ├── ProtocolError      non-OK tagged response, malformed reply
#     ├── ProviderError      REST provider answered with a non-200 status
#     ├── CredentialError    no usable token/password for the account
#     └── CancellationError  aborted via the shared cancellation signal
#
# Provider errors bubble unchanged up to the poll driver, where the
# FailurePolicy decides whether the user gets to see them.
# =============================================================================


class PigeonError(Exception):
    """Base exception for all Pigeon errors."""
    pass


class TransportError(PigeonError):
    """Raised when a connection cannot be opened or breaks underneath us."""
    pass


class ProtocolError(PigeonError):
    """Raised when the server rejects a command or replies with garbage."""
    pass


class ProviderError(PigeonError):
    """Raised when a REST provider returns an unexpected HTTP status."""
    pass


class CredentialError(PigeonError):
    """Raised when no password or token is available for an account."""
    pass


class CancellationError(PigeonError):
    """
    Raised when an operation is aborted by the shared cancellation signal.

    Never counted as a poll failure and never shown to the user.
    """
    pass

