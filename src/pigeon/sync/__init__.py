# =============================================================================
# Sync Module
# =============================================================================
# Turns periodic polls into notifications:
#   - DedupEngine: which of the current messages are genuinely new
#   - FailurePolicy: when repeated failures deserve the user's attention
#   - AccountState: per-account polling state
#   - PollManager: the periodic driver tying it all together
# =============================================================================

from pigeon.sync.dedup import DedupEngine, NotificationHistory
from pigeon.sync.failures import FailurePolicy
from pigeon.sync.state import AccountState
from pigeon.sync.manager import PollManager

__all__ = [
    "DedupEngine",
    "NotificationHistory",
    "FailurePolicy",
    "AccountState",
    "PollManager",
]
