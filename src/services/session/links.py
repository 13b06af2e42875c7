"""Links from bot replies back to the content they answer.

Used to resolve reply-chains: when a user replies to the bot's transcript
message, the original voice/video message is found here. Links are kept
for the process lifetime.
"""

import logging
from typing import Optional

from src.models.cache import MessageLink
from src.models.content import ContentKind

logger = logging.getLogger(__name__)


class MessageLinkTable:
    """Mapping of (chat id, bot message id) → original content."""

    def __init__(self):
        self._links: dict[tuple[int, int], MessageLink] = {}

    def link(
        self,
        channel: int,
        assistant_message_id: int,
        origin_message_id: int,
        media_ref: Optional[str] = None,
        kind: ContentKind = ContentKind.VOICE,
    ) -> None:
        """Record that a bot message answers an original message."""
        self._links[(channel, assistant_message_id)] = MessageLink(
            origin_message_id=origin_message_id,
            media_ref=media_ref,
            kind=kind,
        )
        logger.debug(
            f"Linked bot message {assistant_message_id} → {origin_message_id} in chat {channel}"
        )

    def resolve(self, channel: int, assistant_message_id: int) -> Optional[MessageLink]:
        """Return the original content behind a bot message, or None."""
        return self._links.get((channel, assistant_message_id))

    def clear(self) -> None:
        self._links.clear()

    def __len__(self) -> int:
        return len(self._links)
