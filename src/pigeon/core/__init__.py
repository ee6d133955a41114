# =============================================================================
# Pigeon Core Module
# =============================================================================
# Core domain models. These are plain dataclasses with no external
# dependencies, so they can be imported anywhere without causing circular
# imports.
#
#   - Account: A watched mailbox and the provider behind it
#   - ProviderKind: The closed set of supported providers
#   - Message: A message a notification may be raised for
# =============================================================================

from pigeon.core.account import Account, ProviderKind
from pigeon.core.message import Message, NO_SUBJECT, UNKNOWN_SENDER

__all__ = [
    "Account",
    "ProviderKind",
    "Message",
    "NO_SUBJECT",
    "UNKNOWN_SENDER",
]
