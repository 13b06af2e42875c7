"""Collect session manager.

Owns the live table of collect sessions (one per owner) and enforces the
state machine from src/models/collect.py. Every method is synchronous:
callers that await between reading a session and mutating it must pass
the session object back in, and the manager re-validates that it is
still the live, collecting session for its owner.
"""

import dataclasses
import logging
from typing import Optional

from src.lib.exceptions import (
    AlreadyActiveError,
    EmptySessionError,
    InvalidStateError,
    StaleReferenceError,
)
from src.models.collect import CollectSession, CollectState
from src.models.content import ContentItem, ContentKind, MessageRole, TrackedMessage

logger = logging.getLogger(__name__)


class CollectSessionManager:
    """
    Manage collect session lifecycle for all owners.

    Example:
        session = manager.start(owner=42, channel=42)
        manager.add_item(session, ContentItem(ContentKind.TEXT, "buy milk", 10))
        items = manager.finalize(session)
    """

    def __init__(self):
        self._sessions: dict[int, CollectSession] = {}

    def get(self, owner: int) -> Optional[CollectSession]:
        """Return the live session for owner, or None."""
        return self._sessions.get(owner)

    def is_active(self, owner: int) -> bool:
        return owner in self._sessions

    def start(self, owner: int, channel: int, auto_started: bool = False) -> CollectSession:
        """
        Create a new session in COLLECTING.

        Raises:
            AlreadyActiveError: If owner already has a session
        """
        existing = self._sessions.get(owner)
        if existing is not None:
            raise AlreadyActiveError(
                f"Collect session already active with {existing.item_count} item(s)",
                owner=owner,
            )

        session = CollectSession(owner=owner, channel=channel, auto_started=auto_started)
        self._sessions[owner] = session
        logger.info(
            f"Collect session started for {owner} in chat {channel}"
            f"{' (auto)' if auto_started else ''}"
        )
        return session

    def add_item(self, session: CollectSession, item: ContentItem) -> ContentItem:
        """
        Append an item.

        PENDING items must later be resolved with resolve_item().

        Raises:
            InvalidStateError: If the session is no longer collecting
            StaleReferenceError: If the session was replaced
        """
        self._require_live(session)
        session.items.append(item)
        logger.debug(
            f"Collect {session.owner}: added {item.kind.value} from message "
            f"{item.source_message_id} ({session.item_count} total)"
        )
        return item

    def resolve_item(
        self,
        session: CollectSession,
        source_message_id: int,
        final_kind: ContentKind,
        final_payload: Optional[str],
    ) -> ContentItem:
        """
        Replace a PENDING placeholder in place.

        The item keeps its position, so exported notes follow the order
        messages were sent, not the order processing finished.

        Raises:
            ValueError: If final_kind is PENDING
            InvalidStateError: If the session is no longer collecting
            StaleReferenceError: If no placeholder exists for the message
        """
        if final_kind == ContentKind.PENDING:
            raise ValueError("Cannot resolve an item to PENDING")

        self._require_live(session)

        index = session.find_item(source_message_id)
        if index is None or not session.items[index].is_pending:
            raise StaleReferenceError(
                f"No pending item for message {source_message_id}",
                key=source_message_id,
                owner=session.owner,
            )

        resolved = dataclasses.replace(
            session.items[index], kind=final_kind, payload=final_payload
        )
        session.items[index] = resolved
        logger.debug(
            f"Collect {session.owner}: resolved message {source_message_id} "
            f"as {final_kind.value} at position {index + 1}"
        )
        return resolved

    def track_message(
        self, session: CollectSession, message_id: Optional[int], role: MessageRole
    ) -> None:
        """
        Record a chat message for later bulk deletion.

        Allowed whenever the session object exists, including after
        finalize/cancel while the final messages are being sent.
        """
        if message_id is None:
            return
        session.tracked_messages.append(TrackedMessage(message_id=message_id, role=role))

    def finalize(self, session: CollectSession) -> list[ContentItem]:
        """
        Finish collecting and hand the items over for export.

        Returns:
            Items in the order they were added

        Raises:
            EmptySessionError: If nothing was collected (session stays open)
            InvalidStateError: If the session is no longer collecting
            StaleReferenceError: If the session was replaced
        """
        self._require_live(session)

        if not session.items:
            raise EmptySessionError("Nothing collected yet", owner=session.owner)

        session.state = CollectState.FINALIZED
        del self._sessions[session.owner]
        logger.info(
            f"Collect session finalized for {session.owner}: {session.item_count} item(s), "
            f"{session.pending_count} still pending"
        )
        return list(session.items)

    def cancel(self, session: CollectSession) -> list[TrackedMessage]:
        """
        Discard the session.

        Returns:
            Tracked messages, for bulk deletion

        Raises:
            InvalidStateError: If the session is no longer collecting
            StaleReferenceError: If the session was replaced
        """
        self._require_live(session)

        session.state = CollectState.CANCELLED
        del self._sessions[session.owner]
        logger.info(
            f"Collect session cancelled for {session.owner}: "
            f"{session.item_count} item(s) discarded"
        )
        return list(session.tracked_messages)

    def restore(self, session: CollectSession) -> bool:
        """
        Reopen a finalized session after its export failed.

        Only possible while the owner has not started another session.

        Returns:
            True if the session is live again
        """
        if session.state != CollectState.FINALIZED or session.owner in self._sessions:
            return False

        session.state = CollectState.COLLECTING
        self._sessions[session.owner] = session
        logger.info(f"Collect session restored for {session.owner} after failed export")
        return True

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)

    def _require_live(self, session: CollectSession) -> None:
        if session.state.is_terminal:
            raise InvalidStateError(
                f"Collect session is {session.state.value}",
                owner=session.owner,
                expected=CollectState.COLLECTING,
                actual=session.state,
            )
        if self._sessions.get(session.owner) is not session:
            raise StaleReferenceError(
                "Collect session is no longer active",
                key=session.owner,
                owner=session.owner,
            )
