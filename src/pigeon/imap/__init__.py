# =============================================================================
# IMAP Module
# =============================================================================
# A minimal IMAP client for new-mail checks:
#   - Transport: TCP/TLS byte stream with connect timeout and cancellation
#   - CommandChannel: tagged command framing and response accumulation
#   - headers: unfolding, header lookup, RFC 2047 word decoding
#   - IMAPClient: connect -> login -> select -> search -> fetch -> logout
#
# The protocol is spoken directly over asyncio streams, one command at a
# time, so the UI-less poller never blocks the event loop.
# =============================================================================

from pigeon.imap.transport import Transport
from pigeon.imap.channel import CommandChannel, Response
from pigeon.imap.headers import decode_words, header_value, unfold
from pigeon.imap.client import (
    IMAPClient,
    SessionState,
    parse_fetch_response,
    quote,
)

__all__ = [
    # Transport
    "Transport",
    # Channel
    "CommandChannel",
    "Response",
    # Headers
    "decode_words",
    "header_value",
    "unfold",
    # Client
    "IMAPClient",
    "SessionState",
    "parse_fetch_response",
    "quote",
]
