# =============================================================================
# Failure Policy
# =============================================================================
# Decides when a failing account deserves the user's attention.
#
# A single failed poll is usually noise (flaky Wi-Fi, a suspended laptop), so
# failures are counted per account and surfaced once, on the third
# consecutive one. Further failures are only logged until a successful poll
# resets the count (edge-triggered).
#
# Cancellations are not failures: they happen at shutdown and are ignored.
# =============================================================================

import logging
from typing import Callable

from pigeon.cancellation import is_cancellation
from pigeon.sync.state import AccountState

logger = logging.getLogger(__name__)

# Callback invoked as notify_error(mailbox, reason)
ErrorCallback = Callable[[str, str], None]

ERROR_REASON = "Unable to check emails"


class FailurePolicy:
    """
    Three-strike escalation of poll failures.

    Usage:
        >>> policy = FailurePolicy(notifier.notify_error)
        >>> policy.on_failure(state, error)   # 1st, 2nd: logged only
        >>> policy.on_failure(state, error)
        >>> policy.on_failure(state, error)   # 3rd: notify_error() called
        >>> policy.on_success(state)          # count back to 0
    """

    # Consecutive failures before the user is told
    THRESHOLD = 3

    def __init__(self, notify_error: ErrorCallback, threshold: int | None = None) -> None:
        self._notify_error = notify_error
        self.threshold = threshold or self.THRESHOLD

    def on_success(self, state: AccountState) -> None:
        if state.failure_count:
            logger.info(f"{state.mailbox}: recovered after {state.failure_count} failure(s)")
        state.failure_count = 0

    def on_failure(self, state: AccountState, error: BaseException) -> bool:
        """
        Record a failed poll.

        Returns:
            True if this failure was surfaced to the user.
        """
        if is_cancellation(error):
            logger.debug(f"{state.mailbox}: poll cancelled")
            return False

        state.failure_count += 1
        logger.error(
            f"{state.mailbox}: poll failed ({state.failure_count} in a row): "
            f"{type(error).__name__}: {error}"
        )

        if state.failure_count == self.threshold:
            self._notify_error(state.mailbox, ERROR_REASON)
            return True
        return False
