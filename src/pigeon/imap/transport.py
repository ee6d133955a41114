# =============================================================================
# Transport
# =============================================================================
# A plain or TLS-wrapped TCP byte stream to host:port.
#
# Key responsibilities:
#   - Open the connection with an explicit establishment timeout
#   - Raw write/read of bytes, both routed through the shared cancellation
#     signal so teardown can interrupt any of them
#   - Idempotent, best-effort close
#
# Design notes:
#   - TLS uses the platform default context (certificate + hostname checks)
#   - No per-read timeout: an unresponsive peer stalls the account's poll
#     until the shared cancellation fires (known hardening gap)
# =============================================================================

import asyncio
import logging
import ssl

from pigeon.cancellation import Cancellable
from pigeon.errors import TransportError

logger = logging.getLogger(__name__)


class Transport:
    """
    Async byte-stream connection used by the IMAP command channel.

    Usage:
        >>> transport = Transport("imap.example.com", 993, cancellable=cancellable)
        >>> await transport.open()
        >>> await transport.write(b"A0001 LOGOUT\\r\\n")
        >>> data = await transport.read(4096)
        >>> await transport.close()
    """

    # Ceiling for TCP connect + TLS handshake (seconds)
    CONNECT_TIMEOUT = 10.0

    def __init__(
        self,
        host: str,
        port: int,
        *,
        use_tls: bool = True,
        cancellable: Cancellable | None = None,
        connect_timeout: float | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.use_tls = use_tls
        self.cancellable = cancellable or Cancellable()
        self.connect_timeout = connect_timeout or self.CONNECT_TIMEOUT
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None

    @property
    def is_open(self) -> bool:
        """True between a successful open() and close()."""
        return self._writer is not None

    async def open(self) -> None:
        """
        Establish the connection.

        Raises:
            TransportError: On timeout, refused connection, DNS or TLS failure.
            CancellationError: If the shared signal fires while connecting.
        """
        logger.debug(
            f"Connecting to {self.host}:{self.port} ({'TLS' if self.use_tls else 'plain'})"
        )

        ssl_context = ssl.create_default_context() if self.use_tls else None

        try:
            self._reader, self._writer = await self.cancellable.guard(
                asyncio.wait_for(
                    asyncio.open_connection(
                        self.host,
                        self.port,
                        ssl=ssl_context,
                        server_hostname=self.host if ssl_context else None,
                    ),
                    timeout=self.connect_timeout,
                )
            )
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Connection timed out to {self.host}:{self.port}"
            ) from e
        except ssl.SSLError as e:
            raise TransportError(
                f"TLS handshake failed with {self.host}:{self.port}: {e}"
            ) from e
        except OSError as e:
            raise TransportError(
                f"Failed to connect to {self.host}:{self.port}: {e}"
            ) from e

        logger.debug(f"Connected to {self.host}:{self.port}")

    async def write(self, data: bytes) -> None:
        """Send raw bytes and wait until they are flushed to the socket."""
        writer = self._require_writer()
        writer.write(data)
        try:
            await self.cancellable.guard(writer.drain())
        except OSError as e:
            raise TransportError(f"Write to {self.host} failed: {e}") from e

    async def read(self, max_bytes: int) -> bytes:
        """
        Read up to max_bytes.

        Returns:
            The bytes received, or b"" once the peer has closed the stream.
        """
        if self._reader is None:
            raise TransportError("Transport is not open")
        try:
            return await self.cancellable.guard(self._reader.read(max_bytes))
        except OSError as e:
            raise TransportError(f"Read from {self.host} failed: {e}") from e

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        writer = self._writer
        self._reader = None
        self._writer = None
        if writer is None:
            return

        writer.close()
        try:
            await writer.wait_closed()
        except (OSError, ssl.SSLError) as e:
            logger.debug(f"Ignoring error while closing {self.host}: {e}")

    def _require_writer(self) -> asyncio.StreamWriter:
        if self._writer is None:
            raise TransportError("Transport is not open")
        return self._writer
