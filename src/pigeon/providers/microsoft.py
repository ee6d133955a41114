# =============================================================================
# Microsoft Provider
# =============================================================================
# Reads unread inbox messages through Microsoft Graph:
#
#   GET /v1.0/me/mailFolders/inbox/messages
#       ?$filter=isRead eq false [and inferenceClassification eq 'focused']
#       &$select=from,subject,webLink,id
#
# Graph returns messages newest first, which is the order the dedup engine
# expects.
# =============================================================================

import logging
from typing import Any

from pigeon.config import NotifyOptions
from pigeon.core import Message
from pigeon.errors import ProtocolError
from pigeon.providers.rest import RestProvider

logger = logging.getLogger(__name__)

API_URL = "https://graph.microsoft.com/v1.0/me/mailFolders/inbox/messages"
FALLBACK_URL = "https://outlook.live.com"


class MicrosoftProvider(RestProvider):
    """Outlook / Microsoft 365 via Graph and an OAuth bearer token."""

    @staticmethod
    def query(priority_only: bool) -> dict[str, str]:
        """Query parameters for the unread-messages request."""
        message_filter = "isRead eq false"
        if priority_only:
            message_filter += " and inferenceClassification eq 'focused'"
        return {
            "$filter": message_filter,
            "$select": "from,subject,webLink,id",
        }

    async def fetch(self, options: NotifyOptions) -> list[Message]:
        response = await self._get(API_URL, params=self.query(options.priority_only))
        try:
            data = response.json()
        except ValueError as e:
            raise ProtocolError(f"Graph returned invalid JSON: {e}") from e
        return parse_messages(data)

    def fallback_url(self) -> str | None:
        return FALLBACK_URL


def parse_messages(data: dict[str, Any]) -> list[Message]:
    """Convert a Graph message collection into Messages."""
    if not isinstance(data, dict):
        raise ProtocolError("Graph response is not a JSON object")

    messages = []
    for item in data.get("value") or []:
        message_id = item.get("id")
        if not message_id:
            logger.debug("Skipping Graph message without id")
            continue

        address = (item.get("from") or {}).get("emailAddress")
        sender = f"{address.get('name', '')} <{address.get('address', '')}>" if address else ""

        messages.append(Message(
            id=message_id,
            subject=item.get("subject") or "",
            sender=sender,
            link=item.get("webLink"),
        ))

    return messages
