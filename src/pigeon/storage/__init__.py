# =============================================================================
# Storage Module
# =============================================================================
# Persists notification history in SQLite (aiosqlite) so a restart does not
# re-announce mail. The database lives in the XDG data directory
# (~/.local/share/pigeon/pigeon.db).
# =============================================================================

from pigeon.storage.database import Database
from pigeon.storage.history import HistoryStore

__all__ = ["Database", "HistoryStore"]
