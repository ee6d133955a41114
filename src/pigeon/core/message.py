# =============================================================================
# Message Model
# =============================================================================
# The slimmed-down view of an email that a notification needs: who sent it,
# what it is about, and where to open it.
#
# The id is the deduplication key. Depending on the provider it is the
# Message-ID header, the provider's native id, or a synthesized fallback
# derived from the UID / sequence number. It is never empty.
# =============================================================================

from dataclasses import dataclass

# Placeholders used when a header is missing or blank
NO_SUBJECT = "(No subject)"
UNKNOWN_SENDER = "(Unknown sender)"


@dataclass(frozen=True)
class Message:
    """
    A message worth (potentially) notifying about.

    Attributes:
        id: Stable deduplication key within one inbox state.
        subject: Decoded subject line.
        sender: Decoded From header, or "name <address>" for REST providers.
        link: URL that opens the message, if the provider has one.
    """
    id: str
    subject: str
    sender: str
    link: str | None = None

    def __str__(self) -> str:
        return f"{self.subject} - {self.sender}"
