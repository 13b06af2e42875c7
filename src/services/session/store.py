"""Process-wide session state container."""

import logging
from typing import Optional

from src.lib.config import SessionConfig, get_session_config
from src.models.cache import PendingEntry, TranscriptEntry, TranscriptKey
from src.models.collect import CleanupOffer
from src.services.session.cache import ExpiringCache
from src.services.session.collect import CollectSessionManager
from src.services.session.dedup import CallbackDeduplicator
from src.services.session.links import MessageLinkTable
from src.services.session.tags import TagWorkflow

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Every per-owner table the orchestrator works with.

    Created once at process start and handed to the orchestrator; tests
    build a fresh one (or call clear()) instead of touching module state.

    Attributes:
        collect: Live collect sessions
        tags: Tag workflows
        transcripts: (chat, message) → TranscriptEntry, expiring
        pending: (chat, message) → PendingEntry while processing runs
        links: Bot reply → original content
        callbacks: Handled callback ids
        cleanups: (chat, prompt message) → CleanupOffer, expiring
        saved: (chat, message) → vault path of notes already exported
    """

    def __init__(
        self,
        transcript_ttl: float = 1800,
        pending_ttl: float = 600,
        callback_history_size: Optional[int] = 10000,
    ):
        self.collect = CollectSessionManager()
        self.tags = TagWorkflow()
        self.transcripts: ExpiringCache[TranscriptKey, TranscriptEntry] = ExpiringCache(
            default_ttl=transcript_ttl, name="transcripts"
        )
        self.pending: ExpiringCache[TranscriptKey, PendingEntry] = ExpiringCache(
            default_ttl=pending_ttl, name="pending"
        )
        self.links = MessageLinkTable()
        self.callbacks = CallbackDeduplicator(max_entries=callback_history_size)
        self.cleanups: ExpiringCache[tuple[int, int], CleanupOffer] = ExpiringCache(
            default_ttl=transcript_ttl, name="cleanups"
        )
        self.saved: ExpiringCache[TranscriptKey, str] = ExpiringCache(
            default_ttl=transcript_ttl, name="saved"
        )

    @classmethod
    def from_config(cls, config: Optional[SessionConfig] = None) -> "SessionStore":
        config = config or get_session_config()
        return cls(
            transcript_ttl=config.transcript_ttl_seconds,
            pending_ttl=config.pending_ttl_seconds,
            callback_history_size=config.callback_history_size,
        )

    def clear(self) -> None:
        """Drop all state and cancel scheduled expirations."""
        self.collect.clear()
        self.tags.clear()
        self.transcripts.clear()
        self.pending.clear()
        self.links.clear()
        self.callbacks.clear()
        self.cleanups.clear()
        self.saved.clear()
        logger.info("Session store cleared")
