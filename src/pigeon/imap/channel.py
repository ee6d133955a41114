# =============================================================================
# IMAP Command Channel
# =============================================================================
# Frames tagged commands over a Transport and collects their responses.
#
#   C: A0003 SEARCH UNSEEN
#   S: * SEARCH 4 7 9
#   S: A0003 OK SEARCH completed
#
# Key responsibilities:
#   - Generate tags "A0001", "A0002", ... (never reused within a session)
#   - Keep at most one command outstanding (no pipelining)
#   - Accumulate partial reads until the tag's terminal line shows up
#
# Known limitation:
#   Completion is detected by searching the whole accumulated text for
#   "<tag> OK" / "<tag> NO" / "<tag> BAD". If a payload (e.g. a Subject header)
#   literally contains that token, the response is considered complete early.
#   Tests pin this behaviour down; fix it on purpose, not by accident.
# =============================================================================

import asyncio
import codecs
import logging
from dataclasses import dataclass

from pigeon.errors import ProtocolError
from pigeon.imap.transport import Transport

logger = logging.getLogger(__name__)

# Terminal statuses a tagged response can carry
STATUSES = ("OK", "NO", "BAD")


@dataclass
class Response:
    """
    A complete server response.

    Attributes:
        tag: The command tag, or None for the untagged greeting.
        result: "OK", "NO" or "BAD" for tagged responses, None for the greeting.
        text: Everything received for this command, untouched.
    """
    tag: str | None
    result: str | None
    text: str

    @property
    def lines(self) -> list[str]:
        """The response split into lines, without line terminators."""
        return self.text.splitlines()

    @property
    def ok(self) -> bool:
        return self.result == "OK"


class CommandChannel:
    """
    Serializes IMAP commands on a single connection.

    Usage:
        >>> channel = CommandChannel(transport)
        >>> greeting = await channel.read_response()
        >>> response = await channel.send_command("SELECT", '"INBOX"')
        >>> response.result
        'OK'
    """

    # Bytes requested per read
    CHUNK_SIZE = 4096

    def __init__(self, transport: Transport) -> None:
        self.transport = transport
        self._sequence = 0
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._lock = asyncio.Lock()

    def next_tag(self) -> str:
        """Allocate the next command tag."""
        self._sequence += 1
        return f"A{self._sequence:04d}"

    async def send_command(
        self,
        verb: str,
        args: str = "",
        *,
        redacted: str | None = None,
    ) -> Response:
        """
        Send one command and wait for its terminal response.

        Args:
            verb: IMAP command name (e.g., "SELECT").
            args: Argument text, already quoted as needed.
            redacted: Argument text to log instead of args (for LOGIN).

        Returns:
            The complete Response for this command.
        """
        async with self._lock:
            tag = self.next_tag()
            line = f"{tag} {verb} {args}" if args else f"{tag} {verb}"
            logged = f"{tag} {verb} {redacted}" if redacted is not None else line
            logger.debug(f"C: {logged}")

            await self.transport.write(f"{line}\r\n".encode("utf-8"))
            return await self._read_until(tag)

    async def read_response(self, tag: str | None = None) -> Response:
        """
        Read a response without sending anything.

        With no tag this waits for the first complete line, which is how the
        server greeting is consumed.
        """
        async with self._lock:
            return await self._read_until(tag)

    async def _read_until(self, tag: str | None) -> Response:
        while True:
            result = self._completion(tag)
            if result is not None or (tag is None and "\r\n" in self._buffer):
                text = self._buffer
                self._buffer = ""
                logger.debug(f"S: {len(text)} chars for {tag or 'greeting'} ({result or '-'})")
                return Response(tag=tag, result=result, text=text)

            chunk = await self.transport.read(self.CHUNK_SIZE)
            if not chunk:
                raise ProtocolError(
                    f"Connection closed before response to {tag or 'greeting'} completed"
                )
            self._buffer += self._decoder.decode(chunk)

    def _completion(self, tag: str | None) -> str | None:
        """
        Find the terminal status for tag in the buffer.

        When more than one status token appears (only possible through the
        false-positive case above), the one seen last wins.
        """
        if tag is None:
            return None

        best: str | None = None
        best_pos = -1
        for status in STATUSES:
            pos = self._buffer.rfind(f"{tag} {status}")
            if pos > best_pos:
                best, best_pos = status, pos
        return best
