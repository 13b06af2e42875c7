"""Two-phase tag workflow: select tags, then confirm the export.

One workflow per owner; starting a new selection replaces whatever was
there before. Tag parsing is delegated to a classifier (the LLM), but the
merge policy and the phase transitions live here.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional

from src.lib.exceptions import (
    ExternalServiceError,
    InvalidStateError,
    MalformedResponseError,
    StaleReferenceError,
)
from src.lib.tag_format import merge_tags, normalize_tags
from src.models.cache import TranscriptKey
from src.models.tags import ConfirmedTags, TagPhase, TagSelection, TagSplit

logger = logging.getLogger(__name__)

# classifier(utterance, available_tags) -> raw {"existing": [...], "new": [...]}
TagClassifier = Callable[[str, list[str]], Awaitable[Any]]
TagExporter = Callable[[ConfirmedTags], Awaitable[Any]]

_OPEN_PHASES = (TagPhase.SELECTING, TagPhase.CONFIRMING)


def parse_tag_split(raw: Any) -> dict:
    """
    Decode classifier output into a mapping.

    Raises:
        MalformedResponseError: If raw is neither a mapping nor JSON for one
    """
    data = raw
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise MalformedResponseError(f"Classifier output is not JSON: {e}", raw=raw) from e

    if not isinstance(data, dict):
        raise MalformedResponseError(
            f"Classifier output is {type(data).__name__}, expected an object", raw=raw
        )
    return data


def _tag_list(data: dict, field: str) -> list[str]:
    value = data.get(field, [])
    if not isinstance(value, list):
        logger.warning(f"Classifier field '{field}' is {type(value).__name__}, using []")
        return []
    return normalize_tags(tag for tag in value if isinstance(tag, str))


def coerce_tag_split(raw: Any, available_tags: Iterable[str] = ()) -> TagSplit:
    """
    Turn classifier output into a TagSplit, never failing.

    Malformed output yields empty lists. Tags are re-sorted against the
    vault: a "new" tag that already exists moves to existing (with the
    vault's spelling), an "existing" tag the vault does not know moves
    to new.
    """
    try:
        data = parse_tag_split(raw)
    except MalformedResponseError as e:
        logger.warning(f"Malformed tag classification ignored: {e}")
        return TagSplit()

    known = {tag.lower(): tag for tag in normalize_tags(available_tags)}
    existing: list[str] = []
    new: list[str] = []
    for tag in [*_tag_list(data, "existing"), *_tag_list(data, "new")]:
        canonical = known.get(tag.lower())
        if canonical is not None:
            if canonical not in existing:
                existing.append(canonical)
        elif tag not in new:
            new.append(tag)

    return TagSplit(existing=tuple(existing), new=tuple(new))


class TagWorkflow:
    """Per-owner tag selection state machine."""

    def __init__(self):
        self._workflows: dict[int, TagSelection] = {}

    def get(self, owner: int) -> Optional[TagSelection]:
        return self._workflows.get(owner)

    def begin_selection(
        self,
        owner: int,
        voice_message_id: int,
        transcription_ref: TranscriptKey,
        available_tags: list[str],
        recommended: Optional[TagSplit] = None,
        list_message_id: Optional[int] = None,
        bot_message_id: Optional[int] = None,
    ) -> TagSelection:
        """Start SELECTING, replacing any unfinished workflow of the owner."""
        previous = self._workflows.pop(owner, None)
        if previous is not None:
            previous.phase = TagPhase.ABANDONED
            logger.info(
                f"Tag workflow for {owner} replaced (was {previous.voice_message_id})"
            )

        selection = TagSelection(
            owner=owner,
            voice_message_id=voice_message_id,
            transcription_ref=transcription_ref,
            available_tags=list(available_tags),
            recommended=recommended or TagSplit(),
            list_message_id=list_message_id,
            bot_message_id=bot_message_id,
        )
        self._workflows[owner] = selection
        logger.info(f"Tag selection started for {owner} on message {voice_message_id}")
        return selection

    async def extract_tags(
        self, owner: int, utterance: str, classifier: TagClassifier
    ) -> TagSplit:
        """
        Parse a free-form tag choice and move to CONFIRMING.

        A second utterance while CONFIRMING replaces the selection.

        Raises:
            InvalidStateError: If no open workflow exists
            StaleReferenceError: If the workflow changed while classifying
            ExternalServiceError: If the classifier call failed (state unchanged)
        """
        selection = self._require(owner, *_OPEN_PHASES)

        raw = await classifier(utterance, selection.available_tags)

        if self._workflows.get(owner) is not selection or selection.phase not in _OPEN_PHASES:
            raise StaleReferenceError(
                "Tag workflow changed during classification", key=owner, owner=owner
            )

        split = coerce_tag_split(raw, selection.available_tags)
        self._enter_confirming(selection, split)
        return split

    def apply_split(self, owner: int, split: TagSplit) -> TagSelection:
        """Move to CONFIRMING with an already structured split (e.g. the suggestion)."""
        selection = self._require(owner, *_OPEN_PHASES)
        self._enter_confirming(selection, split)
        return selection

    def set_confirm_message(self, selection: TagSelection, message_id: int) -> bool:
        """Remember the confirmation message if the workflow is still current."""
        if self._workflows.get(selection.owner) is not selection:
            return False
        selection.confirm_message_id = message_id
        return True

    async def confirm(
        self,
        owner: int,
        marker_tag: str,
        export: Optional[TagExporter] = None,
    ) -> ConfirmedTags:
        """
        Apply the selection.

        The workflow leaves the table before export runs, so a second
        confirm cannot export twice. If export fails with an external
        service error the workflow is put back in CONFIRMING (unless a new
        one was started meanwhile) so the user can retry.

        Raises:
            InvalidStateError: If not CONFIRMING
            ExternalServiceError: If export failed
        """
        selection = self._require(owner, TagPhase.CONFIRMING)
        del self._workflows[owner]

        selected = selection.selected or TagSplit()
        confirmed = ConfirmedTags(
            all_tags=merge_tags(marker_tag, selected.existing, selected.new),
            transcription_ref=selection.transcription_ref,
        )

        if export is not None:
            try:
                await export(confirmed)
            except ExternalServiceError:
                if owner not in self._workflows:
                    self._workflows[owner] = selection
                    logger.info(f"Tag workflow for {owner} kept open after failed export")
                else:
                    selection.phase = TagPhase.ABANDONED
                raise
            except Exception:
                selection.phase = TagPhase.ABANDONED
                raise

        selection.phase = TagPhase.APPLIED
        logger.info(f"Tags applied for {owner}: {confirmed.all_tags}")
        return confirmed

    def abandon(self, owner: int) -> Optional[TagSelection]:
        """Drop an open workflow. Returns it, or None if there was none."""
        selection = self._workflows.pop(owner, None)
        if selection is None:
            return None
        selection.phase = TagPhase.ABANDONED
        logger.info(f"Tag workflow abandoned for {owner}")
        return selection

    def clear(self) -> None:
        self._workflows.clear()

    def __len__(self) -> int:
        return len(self._workflows)

    def _require(self, owner: int, *phases: TagPhase) -> TagSelection:
        selection = self._workflows.get(owner)
        if selection is None or selection.phase not in phases:
            raise InvalidStateError(
                "No tag selection in the expected phase",
                owner=owner,
                expected=phases,
                actual=selection.phase if selection else None,
            )
        return selection

    @staticmethod
    def _enter_confirming(selection: TagSelection, split: TagSplit) -> None:
        selection.selected = split
        selection.phase = TagPhase.CONFIRMING
        logger.info(
            f"Tag selection for {selection.owner} confirming: "
            f"{len(split.existing)} existing, {len(split.new)} new"
        )
