# =============================================================================
# Deduplication Engine
# =============================================================================
# Decides which of a mailbox's current messages are genuinely new.
#
# Polls are idempotent: the provider returns the whole unread list every
# time. The engine keeps, per mailbox, the ids it has already notified about
# and announces only the rest.
#
#   history  = ids notified earlier that are STILL in the inbox
#   new      = current messages (oldest first) whose id is not in history
#   history += ids of new
#
# Ids that left the inbox (read, deleted, moved) are dropped from history, so
# it never grows beyond the inbox size, and a message that reappears later is
# announced again.
#
# New messages are emitted oldest first: notification stacks put the most
# recent item on top, which leaves the newest message topmost.
# =============================================================================

import logging
from typing import Callable, MutableMapping

from pigeon.core import Message

logger = logging.getLogger(__name__)

# Mailbox identifier -> ordered, duplicate-free list of notified ids
NotificationHistory = MutableMapping[str, list[str]]

NotifyCallback = Callable[[Message], None]


class DedupEngine:
    """
    Turns repeated polls into a stream of new-message events.

    Usage:
        >>> engine = DedupEngine()
        >>> new = engine.process("me@example.com", messages, history, notify=show)
    """

    def process(
        self,
        mailbox_id: str,
        current_messages: list[Message],
        history: NotificationHistory,
        notify: NotifyCallback | None = None,
    ) -> list[Message]:
        """
        Announce the genuinely new messages of one mailbox.

        Args:
            mailbox_id: Key of the mailbox in history.
            current_messages: Provider's current list, newest first.
            history: Notification history; history[mailbox_id] is replaced.
            notify: Called once per new message, oldest first.

        Returns:
            The new messages, in the order they were emitted.
        """
        current_ids = {message.id for message in current_messages}

        # dict keeps insertion order and doubles as an ordered set
        carried = dict.fromkeys(
            message_id
            for message_id in history.get(mailbox_id, [])
            if message_id in current_ids
        )

        dropped = len(history.get(mailbox_id, [])) - len(carried)
        if dropped:
            logger.debug(f"{mailbox_id}: pruned {dropped} ids no longer in the inbox")

        emitted: list[Message] = []
        for message in reversed(current_messages):
            if message.id in carried:
                continue
            carried[message.id] = None
            emitted.append(message)
            if notify is not None:
                notify(message)

        history[mailbox_id] = list(carried)

        if emitted:
            logger.info(f"{mailbox_id}: {len(emitted)} new message(s)")
        return emitted

    def forget(self, mailbox_id: str, history: NotificationHistory) -> None:
        """Drop everything remembered about a mailbox."""
        history.pop(mailbox_id, None)
