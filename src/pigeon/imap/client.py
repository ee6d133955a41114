# =============================================================================
# IMAP Client
# =============================================================================
# A small, hand-rolled async IMAP client that does exactly what a new-mail
# check needs and nothing more.
#
# One poll is one session:
#
#   DISCONNECTED -> CONNECTING -> AWAITING_GREETING -> AUTHENTICATING
#     -> SELECTED -> SEARCHING -> FETCHING -> LOGGING_OUT -> DISCONNECTED
#
# Key responsibilities:
#   - Connect, read the greeting, LOGIN
#   - SELECT the inbox, SEARCH UNSEEN
#   - FETCH From/Subject/Message-ID headers for the newest unread messages
#   - Always LOGOUT and close, even after an error
#
# Design notes:
#   - Connections are never pooled; every poll opens a fresh one
#   - Commands are strictly sequential (see CommandChannel)
#   - Header parsing degrades gracefully: placeholders and synthesized ids
#     instead of exceptions
# =============================================================================

import logging
import re
from contextlib import asynccontextmanager
from enum import Enum, auto
from typing import AsyncIterator, Callable

from pigeon.cancellation import Cancellable
from pigeon.core import Message, NO_SUBJECT, UNKNOWN_SENDER
from pigeon.errors import ProtocolError
from pigeon.imap.channel import CommandChannel, Response
from pigeon.imap.headers import decode_words, header_value, unfold
from pigeon.imap.transport import Transport

logger = logging.getLogger(__name__)

# Header fields requested for every unread message
FETCH_ITEMS = "(UID BODY.PEEK[HEADER.FIELDS (FROM SUBJECT MESSAGE-ID)])"

_SEARCH_LINE = re.compile(r"^\* SEARCH\b(.*)$", re.IGNORECASE | re.MULTILINE)
_FETCH_LINE = re.compile(r"^\* (\d+) FETCH\b", re.IGNORECASE)
_UID = re.compile(r"UID (\d+)", re.IGNORECASE)
_ANGLE_ID = re.compile(r"<([^>]+)>")


def quote(value: str) -> str:
    """
    Render a value as an IMAP quoted string.

    Backslashes and double quotes are escaped so the server sees exactly the
    original value and no extra token boundary is introduced.

    Examples:
        >>> quote('pa"ss')
        '"pa\\\\"ss"'
    """
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class SessionState(Enum):
    """Where an IMAPClient session currently is."""
    DISCONNECTED = auto()
    CONNECTING = auto()
    AWAITING_GREETING = auto()
    AUTHENTICATING = auto()
    SELECTED = auto()
    SEARCHING = auto()
    FETCHING = auto()
    LOGGING_OUT = auto()


TransportFactory = Callable[[], Transport]


class IMAPClient:
    """
    Async IMAP client for one polling session.

    Usage:
        >>> client = IMAPClient("imap.example.com", 993, "me", "secret")
        >>> async with client.session():
        ...     await client.select_mailbox()
        ...     ids = await client.search_unread()
        ...     messages = await client.fetch_messages(ids)

    Attributes:
        host: IMAP server hostname.
        port: IMAP server port.
        state: Current SessionState.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        *,
        use_tls: bool = True,
        cancellable: Cancellable | None = None,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        """
        Initialize the client. Nothing touches the network until connect().

        Args:
            host: IMAP server hostname.
            port: IMAP server port.
            username: Login name.
            password: Login password.
            use_tls: Wrap the connection in TLS.
            cancellable: Shared cancellation signal.
            transport_factory: Builds the Transport; tests substitute a fake.
        """
        self.host = host
        self.port = port
        self._username = username
        self._password = password
        self.cancellable = cancellable or Cancellable()
        self._transport_factory = transport_factory or (
            lambda: Transport(host, port, use_tls=use_tls, cancellable=self.cancellable)
        )
        self._transport: Transport | None = None
        self._channel: CommandChannel | None = None
        self.state = SessionState.DISCONNECTED

    # =========================================================================
    # Connection Management
    # =========================================================================

    async def connect(self) -> None:
        """
        Open the connection, consume the greeting and log in.

        Raises:
            TransportError: If the server cannot be reached.
            ProtocolError: If the server says BYE or rejects the login.
        """
        logger.info(f"Connecting to {self.host}:{self.port}")

        self.state = SessionState.CONNECTING
        self._transport = self._transport_factory()
        await self._transport.open()
        self._channel = CommandChannel(self._transport)

        self.state = SessionState.AWAITING_GREETING
        greeting = await self._channel.read_response()
        if greeting.text.upper().startswith("* BYE"):
            raise ProtocolError(f"Server refused connection: {greeting.text.strip()}")
        logger.debug(f"Greeting: {greeting.text.strip()}")

        self.state = SessionState.AUTHENTICATING
        response = await self._channel.send_command(
            "LOGIN",
            f"{quote(self._username)} {quote(self._password)}",
            redacted=f"{quote(self._username)} \"***\"",
        )
        if not response.ok:
            raise ProtocolError("login failed")

        logger.debug(f"Logged in as {self._username}")

    async def logout(self) -> None:
        """
        Say goodbye and close the connection.

        Best-effort: a failing LOGOUT is logged, never raised, so it cannot
        mask an error that is already on its way up. The transport is always
        closed.
        """
        self.state = SessionState.LOGGING_OUT
        try:
            if self._channel and self._transport and self._transport.is_open:
                await self._channel.send_command("LOGOUT")
        except Exception as e:
            logger.warning(f"IMAP logout error on {self.host}: {e}")
        finally:
            if self._transport:
                await self._transport.close()
            self._transport = None
            self._channel = None
            self.state = SessionState.DISCONNECTED

    @asynccontextmanager
    async def session(self) -> AsyncIterator["IMAPClient"]:
        """Connect on entry, always log out on exit."""
        try:
            await self.connect()
            yield self
        finally:
            await self.logout()

    # =========================================================================
    # Mailbox Operations
    # =========================================================================

    async def select_mailbox(self, name: str = "INBOX") -> None:
        """
        Select a mailbox for the following SEARCH/FETCH.

        Raises:
            ProtocolError: If the server refuses the mailbox.
        """
        response = await self._command("SELECT", quote(name))
        if not response.ok:
            raise ProtocolError(f"Failed to select mailbox: {name}")
        self.state = SessionState.SELECTED

    async def search_unread(self) -> list[str]:
        """
        Find the sequence numbers of all unread messages.

        Returns:
            Sequence numbers as strings, in server order. Empty if there are
            none or the server omitted the SEARCH line.
        """
        self.state = SessionState.SEARCHING
        response = await self._command("SEARCH", "UNSEEN")
        if not response.ok:
            raise ProtocolError(f"SEARCH failed: {response.result}")

        match = _SEARCH_LINE.search(response.text)
        if not match:
            return []
        ids = match.group(1).split()
        logger.debug(f"{len(ids)} unread messages on {self.host}")
        return ids

    async def fetch_messages(self, ids: list[str], limit: int = 10) -> list[Message]:
        """
        Fetch header summaries for unread messages.

        Only the last `limit` ids are requested, which bounds the cost of an
        inbox with thousands of unread messages.

        Args:
            ids: Sequence numbers from search_unread().
            limit: Maximum number of messages to fetch.

        Returns:
            One Message per FETCH block, in server order.
        """
        if not ids:
            return []

        self.state = SessionState.FETCHING
        wanted = ids[-limit:] if limit > 0 else []
        if not wanted:
            return []

        response = await self._command("FETCH", f"{','.join(wanted)} {FETCH_ITEMS}")
        if not response.ok:
            raise ProtocolError(f"FETCH failed: {response.result}")

        messages = parse_fetch_response(response.text)
        logger.debug(f"Fetched {len(messages)} messages from {self.host}")
        return messages

    async def _command(self, verb: str, args: str = "") -> Response:
        if self._channel is None:
            raise ProtocolError(f"{verb} issued while not connected")
        return await self._channel.send_command(verb, args)


# =============================================================================
# Response Parsing
# =============================================================================

def parse_fetch_response(text: str) -> list[Message]:
    """
    Split a FETCH response into per-message header blocks and parse them.

    Each "* <seq> FETCH" line starts a new block; the UID on that line (if
    any) belongs to it, as do all following lines up to the next FETCH line
    or the end of the response.
    """
    blocks: list[tuple[str, str | None, list[str]]] = []

    for line in text.splitlines():
        fetch_match = _FETCH_LINE.match(line)
        if fetch_match:
            uid_match = _UID.search(line)
            blocks.append((
                fetch_match.group(1),
                uid_match.group(1) if uid_match else None,
                [],
            ))
        elif blocks:
            blocks[-1][2].append(line)

    return [build_message(seq, uid, "\n".join(lines)) for seq, uid, lines in blocks]


def build_message(seq: str, uid: str | None, headers: str) -> Message:
    """
    Build a Message from one block of raw header text.

    Missing headers never fail the poll: the id falls back to the UID (or
    the sequence number), Subject and From fall back to placeholders.
    """
    block = unfold(headers)

    message_id = header_value(block, "Message-ID")
    if message_id:
        angle = _ANGLE_ID.search(message_id)
        message_id = angle.group(1) if angle else message_id
    if not message_id:
        message_id = f"uid_{uid}" if uid else f"msg_{seq}"

    subject = header_value(block, "Subject")
    sender = header_value(block, "From")

    return Message(
        id=message_id,
        subject=decode_words(subject) if subject else NO_SUBJECT,
        sender=decode_words(sender) if sender else UNKNOWN_SENDER,
    )
