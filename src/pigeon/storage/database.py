# =============================================================================
# Database Connection and Schema Management
# =============================================================================
# Manages the SQLite database that keeps notification history across
# restarts.
#
# Schema overview:
#   - schema_version: single-row version marker
#   - notified_ids: (mailbox, message_id, position) for every id already
#                   announced and still present in that mailbox
#
# Uses aiosqlite for async operations, with WAL mode so a reader never
# blocks the poller.
# =============================================================================

import logging
from pathlib import Path

import aiosqlite

from pigeon.config import Config

logger = logging.getLogger(__name__)

# Current schema version - increment when making schema changes
SCHEMA_VERSION = 1


class Database:
    """
    Manages the SQLite database connection and schema.

    Usage:
        >>> db = Database()
        >>> await db.connect()
        >>> await db.conn.execute("SELECT ...")
        >>> await db.close()

    Attributes:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: Path | str | None = None) -> None:
        """
        Initialize the database manager.

        Args:
            db_path: Path to database file (or ":memory:"). Defaults to the
                     XDG data location.
        """
        self.db_path = db_path or Config.database_path()
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open the connection and make sure the schema exists."""
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(self.db_path)
        await self._connection.execute("PRAGMA journal_mode = WAL")
        await self._init_schema()
        logger.debug(f"Opened history database at {self.db_path}")

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    @property
    def conn(self) -> aiosqlite.Connection:
        """
        Get the active database connection.

        Raises:
            RuntimeError: If not connected.
        """
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    async def _init_schema(self) -> None:
        """Create tables if they don't exist yet."""
        try:
            async with self.conn.execute("SELECT version FROM schema_version") as cursor:
                row = await cursor.fetchone()
                current_version = row[0] if row else 0
        except aiosqlite.OperationalError:
            # Table doesn't exist, this is a fresh database
            current_version = 0

        if current_version < SCHEMA_VERSION:
            await self._create_schema()

    async def reset_history(self) -> None:
        """Drop and recreate the notified_ids table."""
        await self.conn.execute("DROP TABLE IF EXISTS notified_ids")
        await self._create_schema()

    async def _create_schema(self) -> None:
        schema = """
        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER PRIMARY KEY
        );

        -- Ids already notified, per mailbox, in notification order
        CREATE TABLE IF NOT EXISTS notified_ids (
            mailbox TEXT NOT NULL,
            message_id TEXT NOT NULL,
            position INTEGER NOT NULL,
            PRIMARY KEY (mailbox, message_id)
        );

        CREATE INDEX IF NOT EXISTS idx_notified_mailbox ON notified_ids(mailbox, position);
        """
        await self.conn.executescript(schema)
        await self.conn.execute("DELETE FROM schema_version")
        await self.conn.execute(
            "INSERT INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,)
        )
        await self.conn.commit()
