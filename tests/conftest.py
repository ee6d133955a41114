# =============================================================================
# Pytest Configuration and Fixtures
# =============================================================================
# Shared fixtures for the Pigeon test suite.
#
# Most IMAP tests run against ScriptedTransport: an in-memory stand-in for
# Transport whose replies come from FakeImapServer, a tiny IMAP server that
# understands exactly the commands the client sends.
# =============================================================================

import re

import pytest

from pigeon.core import Account, Message, ProviderKind
from pigeon.errors import CredentialError


# =============================================================================
# IMAP Test Doubles
# =============================================================================

def parse_quoted_args(args: str) -> list[str]:
    """Split IMAP command arguments the way a server would, unescaping strings."""
    tokens: list[str] = []
    i = 0
    while i < len(args):
        char = args[i]
        if char == " ":
            i += 1
        elif char == '"':
            value = []
            i += 1
            while args[i] != '"':
                if args[i] == "\\":
                    i += 1
                value.append(args[i])
                i += 1
            tokens.append("".join(value))
            i += 1
        else:
            end = args.find(" ", i)
            end = len(args) if end == -1 else end
            tokens.append(args[i:end])
            i = end
    return tokens


def header_block(subject=None, sender=None, message_id=None) -> str:
    """Raw header text as a server returns it for HEADER.FIELDS."""
    lines = []
    if sender is not None:
        lines.append(f"From: {sender}")
    if subject is not None:
        lines.append(f"Subject: {subject}")
    if message_id is not None:
        lines.append(f"Message-ID: {message_id}")
    return "\r\n".join(lines) + "\r\n\r\n"


class FakeImapServer:
    """
    Scripted IMAP server logic.

    Attributes:
        commands: Every (tag, verb, args) received, in order.
        messages: seq -> (uid, raw header text).
    """

    def __init__(
        self,
        *,
        unseen: list[str] | None = None,
        messages: dict[str, tuple[int | None, str]] | None = None,
        login_ok: bool = True,
        select_ok: bool = True,
        logout_error: Exception | None = None,
        fetch_error: Exception | None = None,
    ) -> None:
        self.unseen = unseen or []
        self.messages = messages or {}
        self.login_ok = login_ok
        self.select_ok = select_ok
        self.logout_error = logout_error
        self.fetch_error = fetch_error
        self.commands: list[tuple[str, str, str]] = []

    def verbs(self) -> list[str]:
        return [verb for _, verb, _ in self.commands]

    def __call__(self, tag: str, verb: str, args: str) -> list[str]:
        self.commands.append((tag, verb, args))

        if verb == "LOGIN":
            if self.login_ok:
                return [f"{tag} OK LOGIN completed\r\n"]
            return [f"{tag} NO [AUTHENTICATIONFAILED] Invalid credentials\r\n"]

        if verb == "SELECT":
            if not self.select_ok:
                return [f"{tag} NO Mailbox does not exist\r\n"]
            return [
                f"* {len(self.messages)} EXISTS\r\n* 0 RECENT\r\n",
                f"{tag} OK [READ-WRITE] SELECT completed\r\n",
            ]

        if verb == "SEARCH":
            return [f"* SEARCH {' '.join(self.unseen)}\r\n".replace("SEARCH \r", "SEARCH\r"),
                    f"{tag} OK SEARCH completed\r\n"]

        if verb == "FETCH":
            if self.fetch_error is not None:
                raise self.fetch_error
            chunks = []
            for seq in args.split(" ", 1)[0].split(","):
                uid, headers = self.messages[seq]
                uid_part = f"UID {uid} " if uid is not None else ""
                size = len(headers.encode("utf-8"))
                chunks.append(
                    f"* {seq} FETCH ({uid_part}BODY[HEADER.FIELDS (FROM SUBJECT MESSAGE-ID)] "
                    f"{{{size}}}\r\n{headers})\r\n"
                )
            chunks.append(f"{tag} OK FETCH completed\r\n")
            return chunks

        if verb == "LOGOUT":
            if self.logout_error is not None:
                raise self.logout_error
            return ["* BYE Logging out\r\n", f"{tag} OK LOGOUT completed\r\n"]

        return [f"{tag} BAD Unknown command\r\n"]


class ScriptedTransport:
    """
    In-memory Transport. Each write() is answered by `respond`, whose reply
    chunks are handed out one read() at a time.
    """

    def __init__(
        self,
        respond=None,
        *,
        greeting: str = "* OK IMAP4rev1 Service Ready\r\n",
        open_error: Exception | None = None,
    ) -> None:
        self.respond = respond or FakeImapServer()
        self.greeting = greeting
        self.open_error = open_error
        self.written: list[str] = []
        self.is_open = False
        self.close_calls = 0
        self._pending: list[bytes] = []

    def feed(self, *chunks: str | bytes) -> None:
        for chunk in chunks:
            self._pending.append(chunk.encode("utf-8") if isinstance(chunk, str) else chunk)

    async def open(self) -> None:
        if self.open_error is not None:
            raise self.open_error
        self.is_open = True
        if self.greeting:
            self.feed(self.greeting)

    async def write(self, data: bytes) -> None:
        line = data.decode("utf-8")
        self.written.append(line)
        match = re.match(r"(\S+) (\S+) ?(.*)\r\n$", line, re.DOTALL)
        tag, verb, args = match.groups()
        self.feed(*self.respond(tag, verb, args))

    async def read(self, max_bytes: int) -> bytes:
        if not self._pending:
            return b""
        chunk = self._pending.pop(0)
        if len(chunk) > max_bytes:
            self._pending.insert(0, chunk[max_bytes:])
            chunk = chunk[:max_bytes]
        return chunk

    async def close(self) -> None:
        self.is_open = False
        self.close_calls += 1


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def imap_server():
    """A FakeImapServer with three unread messages."""
    return FakeImapServer(
        unseen=["1", "2", "3"],
        messages={
            "1": (101, header_block("First", "Alice <alice@example.com>", "<one@example.com>")),
            "2": (102, header_block("Second", "Bob <bob@example.com>", "<two@example.com>")),
            "3": (103, header_block("Third", "Carol <carol@example.com>", "<three@example.com>")),
        },
    )


@pytest.fixture
def imap_transport(imap_server):
    return ScriptedTransport(imap_server)


@pytest.fixture
def imap_account():
    return Account(
        name="work",
        mailbox="me@example.com",
        provider=ProviderKind.IMAP,
        imap_host="imap.example.com",
        imap_port=993,
    )


@pytest.fixture
def google_account():
    return Account(name="personal", mailbox="me@gmail.com", provider=ProviderKind.GOOGLE)


@pytest.fixture
def microsoft_account():
    return Account(name="office", mailbox="me@outlook.com", provider=ProviderKind.MICROSOFT)


class StaticCredentials:
    """CredentialSource returning the same secret for every account."""

    def __init__(self, secret: str | None = "secret") -> None:
        self.secret = secret
        self.requests: list[str] = []

    def get_secret(self, account: Account) -> str:
        self.requests.append(account.name)
        if self.secret is None:
            raise CredentialError(f"No secret for {account.mailbox}")
        return self.secret


@pytest.fixture
def credentials():
    return StaticCredentials()


def make_messages(*ids: str) -> list[Message]:
    """Messages with the given ids, in the order given."""
    return [Message(id=i, subject=f"Subject {i}", sender=f"{i}@example.com") for i in ids]
