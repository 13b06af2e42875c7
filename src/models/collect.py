"""Collect session model.

A collect session accumulates several chat messages of one owner into a
single pending note export.

State transitions:
    (no session) → COLLECTING on /collect or auto-start on reply
    COLLECTING → FINALIZED on /done (items exported)
    COLLECTING → CANCELLED on /cancel (items discarded)

FINALIZED and CANCELLED are terminal; the session is removed from the
live table at the same moment.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from src.lib.timestamps import generate_timestamp
from src.models.content import ContentItem, ContentKind, MessageRole, TrackedMessage


class CollectState(str, Enum):
    """Collect session lifecycle states."""

    COLLECTING = "COLLECTING"
    FINALIZED = "FINALIZED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (CollectState.FINALIZED, CollectState.CANCELLED)


@dataclass
class CollectSession:
    """
    Pending multi-message export for one owner.

    Attributes:
        owner: Platform user id
        channel: Chat id the session lives in
        items: Content in the order messages were sent
        tracked_messages: Every chat message touched, for bulk cleanup
        state: Lifecycle state
        created_at: When the session started
        auto_started: Whether a reply (not /collect) created it
    """

    owner: int
    channel: int
    items: list[ContentItem] = field(default_factory=list)
    tracked_messages: list[TrackedMessage] = field(default_factory=list)
    state: CollectState = CollectState.COLLECTING
    created_at: datetime = field(default_factory=generate_timestamp)
    auto_started: bool = False

    @property
    def is_collecting(self) -> bool:
        return self.state == CollectState.COLLECTING

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def counts_by_kind(self) -> dict[ContentKind, int]:
        """Tally of items per kind, recomputed from items."""
        return dict(Counter(item.kind for item in self.items))

    @property
    def pending_count(self) -> int:
        return sum(1 for item in self.items if item.is_pending)

    def find_item(self, source_message_id: int) -> Optional[int]:
        """Index of the item that came from a message, or None."""
        for index, item in enumerate(self.items):
            if item.source_message_id == source_message_id:
                return index
        return None

    def contains_source(self, source_message_id: int) -> bool:
        return self.find_item(source_message_id) is not None

    def tracked_ids(self, exclude: tuple[MessageRole, ...] = ()) -> list[int]:
        """Tracked message ids in order, de-duplicated, minus excluded roles."""
        seen: set[int] = set()
        ids = []
        for tracked in self.tracked_messages:
            if tracked.role in exclude or tracked.message_id in seen:
                continue
            seen.add(tracked.message_id)
            ids.append(tracked.message_id)
        return ids


@dataclass
class CleanupOffer:
    """
    Messages the user may bulk-delete after a session ended.

    Attributes:
        owner: User the offer was made to
        channel: Chat holding the messages
        message_ids: Messages to delete, oldest first
        prompt_message_id: The bot message carrying the delete/keep buttons
    """

    owner: int
    channel: int
    message_ids: list[int]
    prompt_message_id: Optional[int] = None
