"""Domain models for the note-capture bot."""

from src.models.content import (
    ContentItem,
    ContentKind,
    IncomingContent,
    MessageRole,
    ReplyTarget,
    TrackedMessage,
)
from src.models.collect import CleanupOffer, CollectSession, CollectState
from src.models.cache import MessageLink, PendingEntry, TranscriptEntry, TranscriptKey
from src.models.tags import ConfirmedTags, TagPhase, TagSelection, TagSplit
from src.models.note import VaultNote

__all__ = [
    "ContentItem",
    "ContentKind",
    "IncomingContent",
    "MessageRole",
    "ReplyTarget",
    "TrackedMessage",
    "CleanupOffer",
    "CollectSession",
    "CollectState",
    "MessageLink",
    "PendingEntry",
    "TranscriptEntry",
    "TranscriptKey",
    "ConfirmedTags",
    "TagPhase",
    "TagSelection",
    "TagSplit",
    "VaultNote",
]
