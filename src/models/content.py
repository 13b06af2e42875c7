"""Content models shared by inbound parsing and collect sessions.

Inbound chat messages come in many shapes; they are normalized once, at
the transport boundary, into IncomingContent with a ContentKind
discriminant. Everything downstream matches on that closed set.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import PurePosixPath
from typing import Optional

from src.lib.timestamps import generate_timestamp


# Containers accepted as playable video when sent as a plain document
VIDEO_EXTENSIONS = frozenset({".mp4", ".mov", ".mkv", ".webm", ".avi", ".m4v"})


class ContentKind(str, Enum):
    """Kinds of content a collect session can hold."""

    TEXT = "text"
    VOICE = "voice"
    PHOTO = "photo"
    VIDEO = "video"
    DOCUMENT = "document"
    PENDING = "pending"  # Placeholder while async processing runs

    @property
    def needs_transcription(self) -> bool:
        """Whether content of this kind goes through speech-to-text."""
        return self in (ContentKind.VOICE, ContentKind.VIDEO)


class MessageRole(str, Enum):
    """Role of a chat message touched by a collect session."""

    USER_CONTENT = "user_content"
    BOT_NOTIFICATION = "bot_notification"
    BOT_RESPONSE = "bot_response"
    FINAL_RESULT = "final_result"


def is_video_filename(file_name: Optional[str]) -> bool:
    """Check if a document filename has a recognized video extension."""
    if not file_name:
        return False
    return PurePosixPath(file_name.lower()).suffix in VIDEO_EXTENSIONS


@dataclass(frozen=True)
class IncomingContent:
    """
    Normalized content of one inbound chat message.

    Attributes:
        kind: Content discriminant (never PENDING)
        text: Message text or caption
        media_ref: Transport file id for media kinds
        file_name: Original filename (documents, audio files)
    """

    kind: ContentKind
    text: Optional[str] = None
    media_ref: Optional[str] = None
    file_name: Optional[str] = None

    @classmethod
    def from_text(cls, text: str) -> "IncomingContent":
        return cls(kind=ContentKind.TEXT, text=text)

    @classmethod
    def from_document(
        cls,
        media_ref: str,
        file_name: Optional[str],
        caption: Optional[str] = None,
    ) -> "IncomingContent":
        """Documents with a video extension are promoted to VIDEO."""
        kind = ContentKind.VIDEO if is_video_filename(file_name) else ContentKind.DOCUMENT
        return cls(kind=kind, text=caption, media_ref=media_ref, file_name=file_name)


@dataclass
class ContentItem:
    """
    One entry of a collect session.

    Attributes:
        kind: Content kind (PENDING until async processing resolves it)
        payload: Text or transcript; None when only the media exists
        source_message_id: Chat message the item came from
        media_ref: Transport file id for media items
        file_name: Original filename, if any
        captured_at: When the item entered the session
    """

    kind: ContentKind
    payload: Optional[str]
    source_message_id: int
    media_ref: Optional[str] = None
    file_name: Optional[str] = None
    captured_at: datetime = field(default_factory=generate_timestamp)

    @property
    def is_pending(self) -> bool:
        return self.kind == ContentKind.PENDING

    @classmethod
    def from_incoming(cls, content: IncomingContent, source_message_id: int) -> "ContentItem":
        """Build a resolved item from content that needs no processing."""
        return cls(
            kind=content.kind,
            payload=content.text,
            source_message_id=source_message_id,
            media_ref=content.media_ref,
            file_name=content.file_name,
        )

    @classmethod
    def pending(
        cls,
        source_message_id: int,
        media_ref: Optional[str] = None,
        file_name: Optional[str] = None,
    ) -> "ContentItem":
        """Placeholder for content whose processing has not finished."""
        return cls(
            kind=ContentKind.PENDING,
            payload=None,
            source_message_id=source_message_id,
            media_ref=media_ref,
            file_name=file_name,
        )


@dataclass(frozen=True)
class TrackedMessage:
    """A chat message produced during a collect session."""

    message_id: int
    role: MessageRole


@dataclass(frozen=True)
class ReplyTarget:
    """
    The message an inbound message replies to.

    Attributes:
        message_id: Id of the replied-to message
        from_bot: Whether the bot sent it
        content: Its own normalized content, if recognizable
    """

    message_id: int
    from_bot: bool
    content: Optional[IncomingContent] = None
