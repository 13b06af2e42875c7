"""Tag workflow models.

State transitions:
    (none) → SELECTING on "Tags" button (overwrites any previous workflow)
    SELECTING → CONFIRMING after a successful tag extraction
    CONFIRMING → APPLIED on confirm (vault export)
    SELECTING | CONFIRMING → ABANDONED on cancel or interruption
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from src.models.cache import TranscriptKey


class TagPhase(str, Enum):
    """Tag workflow phases."""

    SELECTING = "SELECTING"
    CONFIRMING = "CONFIRMING"
    APPLIED = "APPLIED"
    ABANDONED = "ABANDONED"


@dataclass(frozen=True)
class TagSplit:
    """Tags split into ones already in the vault and new ones."""

    existing: tuple[str, ...] = ()
    new: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.existing and not self.new

    @property
    def flat(self) -> list[str]:
        return [*self.existing, *self.new]


@dataclass
class TagSelection:
    """
    Per-owner tag workflow state.

    SELECTING fields are always set; the CONFIRMING fields are filled by
    tag extraction.

    Attributes:
        owner: Platform user id
        voice_message_id: Message holding the original content
        transcription_ref: Transcript cache key of the note being tagged
        available_tags: Tags known to the vault
        recommended: AI-suggested split shown in the listing
        list_message_id: Bot message listing the tags
        bot_message_id: Bot reply whose button started the workflow
        selected: Extracted split (CONFIRMING only)
        confirm_message_id: Bot message asking for confirmation
    """

    owner: int
    voice_message_id: int
    transcription_ref: TranscriptKey
    available_tags: list[str] = field(default_factory=list)
    recommended: TagSplit = field(default_factory=TagSplit)
    list_message_id: Optional[int] = None
    bot_message_id: Optional[int] = None
    phase: TagPhase = TagPhase.SELECTING
    selected: Optional[TagSplit] = None
    confirm_message_id: Optional[int] = None

    @property
    def selected_tags_flat(self) -> list[str]:
        return self.selected.flat if self.selected else []


@dataclass(frozen=True)
class ConfirmedTags:
    """Result of confirming a tag workflow."""

    all_tags: list[str]
    transcription_ref: TranscriptKey
