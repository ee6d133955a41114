# =============================================================================
# Pigeon: New-Mail Notifier
# =============================================================================
#
#   "Started pecking."
#
# Pigeon checks your mailboxes every few minutes and tells you about mail
# you haven't been told about yet: once per message, oldest first, and
# never again unless the message leaves the inbox and comes back.
#
# Features:
#   - Gmail (Atom feed), Microsoft Graph, and plain IMAP accounts
#   - Hand-rolled async IMAP client (no message bodies are ever downloaded)
#   - Notification history persisted in SQLite across restarts
#   - Three-strike error escalation for flaky accounts
#   - Secrets kept in the system keyring
#   - XDG Base Directory compliant
#
# =============================================================================

__version__ = "0.1.0"
__app_name__ = "pigeon"

# Main entry point - this is what gets called by the 'pigeon' command
from pigeon.app import main

__all__ = ["main", "__version__", "__app_name__"]
