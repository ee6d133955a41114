# =============================================================================
# Notifiers
# =============================================================================
# The outbound edge of the poller. The core produces exactly two events:
#   - notify(mailbox, message): a genuinely new message, in emission order
#   - notify_error(mailbox, reason): an account failed three times in a row
#
# Desktop rendering is somebody else's job; ConsoleNotifier prints to the
# terminal, which is what the `pigeon` command uses.
# =============================================================================

import logging
import sys
from typing import Protocol, TextIO

from pigeon.config import Settings
from pigeon.core import Message

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """What the poll driver needs from a notification surface."""

    def notify(self, mailbox: str, message: Message) -> None:
        ...

    def notify_error(self, mailbox: str, reason: str) -> None:
        ...


class ConsoleNotifier:
    """
    Prints notifications to a text stream.

    Output looks like:
        [me@example.com] Quarterly report - Alice <alice@example.com>
            https://mail.google.com/mail/?...
    """

    def __init__(
        self,
        settings: Settings,
        stream: TextIO | None = None,
        error_stream: TextIO | None = None,
    ) -> None:
        self._settings = settings
        self._stream = stream or sys.stdout
        self._error_stream = error_stream or sys.stderr

    def notify(self, mailbox: str, message: Message) -> None:
        bell = "\a" if self._settings.options.play_sound else ""
        print(f"{bell}[{mailbox}] {message}", file=self._stream)
        # With a mail client configured the web link is of no use
        if message.link and not self._settings.options.use_mail_client:
            print(f"    {message.link}", file=self._stream)
        self._stream.flush()

    def notify_error(self, mailbox: str, reason: str) -> None:
        print(f"[{mailbox}] {reason}", file=self._error_stream)
        self._error_stream.flush()
