"""Entries held by the time-bounded caches and the message link table."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from src.lib.timestamps import generate_timestamp
from src.models.content import ContentKind

if TYPE_CHECKING:
    from src.models.collect import CollectSession


# (chat id, source message id)
TranscriptKey = tuple[int, int]


@dataclass(frozen=True)
class TranscriptEntry:
    """
    Transcribed (or typed) content awaiting export.

    Attributes:
        title: Note title
        content: Full text
        owner: User who produced the content
        mode: Source of the content: voice, video or text
        captured_at: When the entry was created
    """

    title: str
    content: str
    owner: int
    mode: str
    captured_at: datetime = field(default_factory=generate_timestamp)


@dataclass
class PendingEntry:
    """
    A message whose processing has not finished yet.

    collect_session is set when a reply pulls the message into a collect
    session before its transcription completes.
    """

    media_ref: Optional[str]
    collect_session: Optional["CollectSession"] = None


@dataclass(frozen=True)
class MessageLink:
    """Original content behind a bot reply."""

    origin_message_id: int
    media_ref: Optional[str] = None
    kind: ContentKind = ContentKind.VOICE
