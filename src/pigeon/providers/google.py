# =============================================================================
# Google Provider
# =============================================================================
# Reads unread mail from the Gmail Atom feed:
#
#   https://mail.google.com/mail/feed/atom/^i     (inbox)
#   https://mail.google.com/mail/feed/atom/^iim   (important, priority-only)
#
# Each <entry> becomes one Message. The feed is parsed with feedparser, which
# copes with the feed's Atom 0.3 namespace.
# =============================================================================

import logging

import feedparser

from pigeon.config import NotifyOptions
from pigeon.core import Message
from pigeon.errors import ProtocolError
from pigeon.providers.rest import RestProvider

logger = logging.getLogger(__name__)

FEED_URL = "https://mail.google.com/mail/feed/atom/"
FALLBACK_URL = "https://mail.google.com"


class GoogleProvider(RestProvider):
    """Gmail via the Atom feed and an OAuth bearer token."""

    @staticmethod
    def api_url(priority_only: bool) -> str:
        label = "%5Eiim" if priority_only else "%5Ei"
        return f"{FEED_URL}{label}"

    async def fetch(self, options: NotifyOptions) -> list[Message]:
        response = await self._get(self.api_url(options.priority_only))
        return parse_feed(response.text, self.account.mailbox)

    def fallback_url(self) -> str | None:
        return FALLBACK_URL


def parse_feed(body: str, mailbox: str) -> list[Message]:
    """
    Turn a Gmail Atom feed into Messages, in feed order (newest first).

    Links get an authuser parameter so the right Google account opens when
    several are signed in.
    """
    feed = feedparser.parse(body)
    if feed.bozo and not feed.entries:
        raise ProtocolError(f"Unreadable Gmail feed: {feed.get('bozo_exception')}")

    messages = []
    for entry in feed.entries:
        entry_id = entry.get("id")
        if not entry_id:
            logger.debug("Skipping feed entry without id")
            continue

        author = entry.get("author_detail", {})
        href = entry.get("link")

        messages.append(Message(
            id=entry_id,
            subject=entry.get("title", ""),
            sender=f"{author.get('name', '')} <{author.get('email', '')}>",
            link=f"{href}&authuser={mailbox}" if href else None,
        ))

    return messages
