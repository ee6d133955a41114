# =============================================================================
# Notification History Store
# =============================================================================
# Persists the dedup engine's history so a restart does not re-announce
# mail that was already notified.
#
# The whole history is loaded into memory at startup (it is bounded by the
# unread counts of the watched inboxes) and written back one mailbox at a
# time after each poll.
# =============================================================================

import logging
from typing import TYPE_CHECKING

import aiosqlite

if TYPE_CHECKING:
    from pigeon.storage.database import Database

logger = logging.getLogger(__name__)


class HistoryStore:
    """
    Load/save access to notification history.

    Usage:
        >>> store = HistoryStore(database)
        >>> history = await store.load()
        >>> await store.save("me@example.com", history["me@example.com"])
    """

    def __init__(self, db: "Database") -> None:
        self.db = db

    async def load(self) -> dict[str, list[str]]:
        """
        Read the full history.

        A corrupt table is not fatal: it is emptied and an empty history is
        returned, at the cost of possibly re-announcing current mail once.
        """
        history: dict[str, list[str]] = {}
        try:
            async with self.db.conn.execute(
                "SELECT mailbox, message_id FROM notified_ids ORDER BY mailbox, position"
            ) as cursor:
                async for mailbox, message_id in cursor:
                    history.setdefault(mailbox, []).append(message_id)
        except aiosqlite.DatabaseError as e:
            logger.warning(f"Notification history unreadable, resetting: {e}")
            await self.reset()
            return {}

        logger.debug(f"Loaded history for {len(history)} mailbox(es)")
        return history

    async def save(self, mailbox: str, ids: list[str]) -> None:
        """Replace the stored ids of one mailbox."""
        conn = self.db.conn
        await conn.execute("DELETE FROM notified_ids WHERE mailbox = ?", (mailbox,))
        await conn.executemany(
            "INSERT INTO notified_ids (mailbox, message_id, position) VALUES (?, ?, ?)",
            [(mailbox, message_id, position) for position, message_id in enumerate(ids)],
        )
        await conn.commit()

    async def clear(self, mailbox: str) -> None:
        """Forget a mailbox entirely (e.g., its account was removed)."""
        await self.db.conn.execute("DELETE FROM notified_ids WHERE mailbox = ?", (mailbox,))
        await self.db.conn.commit()
        logger.debug(f"Cleared history for {mailbox}")

    async def reset(self) -> None:
        await self.db.reset_history()
