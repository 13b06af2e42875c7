"""Reply-chain resolution into collect sessions.

When the user replies to something, the replied-to content joins the
owner's collect session. The target may be a bot reply (followed back to
the original voice/video/text through the link table), a user message
still being transcribed (bridged through its pending entry), or a plain
user message (classified from its own content).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from src.models.collect import CollectSession
from src.models.content import ContentItem, ContentKind, ReplyTarget
from src.services.session.store import SessionStore

logger = logging.getLogger(__name__)


def should_auto_start_collect(has_active_session: bool, enabled: bool = True) -> bool:
    """
    Policy: replying to content starts a collect session when none runs.

    Returns:
        True if the reply should create a session
    """
    return enabled and not has_active_session


class ReplyOutcome(str, Enum):
    """How the replied-to content entered the session."""

    TRANSCRIPT = "transcript"  # Bot reply followed to a cached transcript
    MISSING_TRANSCRIPT = "missing_transcript"  # Link found, transcript expired
    PENDING = "pending"  # Still processing; placeholder added
    DIRECT = "direct"  # Classified from the replied-to message itself
    ALREADY_COLLECTED = "already_collected"
    IGNORED = "ignored"  # Unknown bot message or unsupported content


@dataclass
class ReplyResolution:
    """
    Result of resolving one reply.

    Attributes:
        session: The owner's collect session after resolution
        outcome: How the replied-to content was handled
        item: Item added to the session, if any
        auto_started: Whether the session was created by this reply
    """

    session: CollectSession
    outcome: ReplyOutcome
    item: Optional[ContentItem] = None
    auto_started: bool = False


class ReplyResolver:
    """
    Pull replied-to content into the owner's collect session.

    Runs synchronously: nothing here awaits, so the session looked up (or
    created) at the start is still live when the item is added.
    """

    def __init__(self, store: SessionStore, auto_collect: bool = True):
        self._store = store
        self._auto_collect = auto_collect

    def resolve(self, owner: int, channel: int, target: ReplyTarget) -> Optional[ReplyResolution]:
        """
        Resolve a reply.

        Returns:
            Resolution, or None when there is no session and auto-start is off
        """
        session = self._store.collect.get(owner)
        auto_started = False
        if should_auto_start_collect(session is not None, self._auto_collect):
            session = self._store.collect.start(owner, channel, auto_started=True)
            auto_started = True
        elif session is None:
            return None

        if target.from_bot:
            outcome, item = self._from_assistant_message(session, channel, target)
        else:
            outcome, item = self._from_user_message(session, channel, target)

        logger.info(
            f"Reply from {owner} to message {target.message_id} resolved: {outcome.value}"
        )
        return ReplyResolution(
            session=session, outcome=outcome, item=item, auto_started=auto_started
        )

    def _from_assistant_message(
        self, session: CollectSession, channel: int, target: ReplyTarget
    ) -> tuple[ReplyOutcome, Optional[ContentItem]]:
        link = self._store.links.resolve(channel, target.message_id)
        if link is None:
            return ReplyOutcome.IGNORED, None

        if session.contains_source(link.origin_message_id):
            return ReplyOutcome.ALREADY_COLLECTED, None

        entry = self._store.transcripts.get((channel, link.origin_message_id))
        if entry is None:
            logger.warning(
                f"Transcript for message {link.origin_message_id} expired; "
                f"collecting media reference only"
            )

        item = ContentItem(
            kind=link.kind,
            payload=entry.content if entry else None,
            source_message_id=link.origin_message_id,
            media_ref=link.media_ref,
        )
        self._store.collect.add_item(session, item)
        outcome = ReplyOutcome.TRANSCRIPT if entry else ReplyOutcome.MISSING_TRANSCRIPT
        return outcome, item

    def _from_user_message(
        self, session: CollectSession, channel: int, target: ReplyTarget
    ) -> tuple[ReplyOutcome, Optional[ContentItem]]:
        if session.contains_source(target.message_id):
            return ReplyOutcome.ALREADY_COLLECTED, None

        key = (channel, target.message_id)
        pending = self._store.pending.get(key)
        if pending is not None:
            # The in-flight transcription resolves this placeholder when it ends
            pending.collect_session = session
            item = ContentItem.pending(target.message_id, media_ref=pending.media_ref)
            self._store.collect.add_item(session, item)
            return ReplyOutcome.PENDING, item

        content = target.content
        if content is None:
            return ReplyOutcome.IGNORED, None

        if content.kind == ContentKind.TEXT:
            payload = content.text
        elif content.kind.needs_transcription:
            entry = self._store.transcripts.get(key)
            payload = entry.content if entry else None
        else:
            # Photos and non-video documents are outside reply collection
            return ReplyOutcome.IGNORED, None

        item = ContentItem(
            kind=content.kind,
            payload=payload,
            source_message_id=target.message_id,
            media_ref=content.media_ref,
            file_name=content.file_name,
        )
        self._store.collect.add_item(session, item)
        return ReplyOutcome.DIRECT, item
