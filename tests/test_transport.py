# =============================================================================
# Transport Tests
# =============================================================================
# Runs against a real loopback server (plain TCP, no TLS).
# =============================================================================

import asyncio
import socket

import pytest

from pigeon.cancellation import Cancellable
from pigeon.errors import CancellationError, TransportError
from pigeon.imap.client import IMAPClient
from pigeon.imap.transport import Transport


async def start_imap_server(unseen="1"):
    """Minimal line-based IMAP server on 127.0.0.1; returns (server, port)."""

    async def handle(reader, writer):
        writer.write(b"* OK loopback ready\r\n")
        await writer.drain()
        while line := await reader.readline():
            tag, verb = line.decode().split(" ", 2)[:2]
            verb = verb.strip()
            if verb == "SEARCH":
                writer.write(f"* SEARCH {unseen}\r\n".encode())
            elif verb == "FETCH":
                writer.write(
                    b"* 1 FETCH (UID 9 BODY[HEADER.FIELDS (FROM SUBJECT MESSAGE-ID)] {27}\r\n"
                    b"Subject: over the wire\r\n\r\n)\r\n"
                )
            writer.write(f"{tag} OK {verb} completed\r\n".encode())
            await writer.drain()
            if verb == "LOGOUT":
                break
        writer.close()

    server = await asyncio.start_server(handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    return server, port


def unused_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.mark.asyncio
async def test_session_over_loopback():
    server, port = await start_imap_server()
    try:
        client = IMAPClient("127.0.0.1", port, "me", "secret", use_tls=False)
        async with client.session():
            await client.select_mailbox()
            messages = await client.fetch_messages(await client.search_unread())
    finally:
        server.close()
        await server.wait_closed()

    assert [(m.id, m.subject) for m in messages] == [("uid_9", "over the wire")]


@pytest.mark.asyncio
async def test_connection_refused():
    transport = Transport("127.0.0.1", unused_port(), use_tls=False)

    with pytest.raises(TransportError, match="Failed to connect"):
        await transport.open()

    assert not transport.is_open


@pytest.mark.asyncio
async def test_connect_timeout(monkeypatch):
    async def never_connects(*args, **kwargs):
        await asyncio.sleep(3600)

    monkeypatch.setattr(asyncio, "open_connection", never_connects)
    transport = Transport("imap.example.com", 993, connect_timeout=0.05)

    with pytest.raises(TransportError, match="timed out"):
        await transport.open()


@pytest.mark.asyncio
async def test_cancel_interrupts_pending_read():
    async def silent(reader, writer):
        await reader.read()
        writer.close()

    server = await asyncio.start_server(silent, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    cancellable = Cancellable()
    transport = Transport("127.0.0.1", port, use_tls=False, cancellable=cancellable)
    try:
        await transport.open()
        read = asyncio.create_task(transport.read(4096))
        await asyncio.sleep(0.01)
        cancellable.cancel()

        with pytest.raises(CancellationError):
            await read
    finally:
        await transport.close()
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_already_cancelled_never_connects():
    cancellable = Cancellable()
    cancellable.cancel()
    transport = Transport("127.0.0.1", unused_port(), use_tls=False, cancellable=cancellable)

    with pytest.raises(CancellationError):
        await transport.open()


@pytest.mark.asyncio
async def test_close_is_idempotent():
    transport = Transport("127.0.0.1", 1, use_tls=False)

    await transport.close()
    await transport.close()

    assert not transport.is_open


@pytest.mark.asyncio
async def test_read_before_open():
    with pytest.raises(TransportError, match="not open"):
        await Transport("127.0.0.1", 1).read(10)
