"""Turning cached and collected content into note text."""

from typing import Iterable

from src.models.content import ContentItem, ContentKind

TEXT_TITLE_LIMIT = 50
NO_TRANSCRIPT = "_(no transcript available)_"
DEFAULT_TEXT_TITLE = "Text note"


def title_from_text(text: str, limit: int = TEXT_TITLE_LIMIT) -> str:
    """
    Title for a typed note: its first non-empty line.

    Lines longer than limit are cut to limit - 3 characters plus '...'.
    """
    for line in text.splitlines():
        line = line.strip()
        if line:
            return line if len(line) <= limit else f"{line[: limit - 3]}..."
    return DEFAULT_TEXT_TITLE


def transcript_preview(text: str, length: int = 200) -> str:
    """First length characters, with '...' when something was cut."""
    return text if len(text) <= length else f"{text[:length]}..."


def render_item(item: ContentItem) -> str:
    """Markdown for one collected item."""
    payload = (item.payload or "").strip()

    if item.kind == ContentKind.TEXT:
        return payload

    if item.kind in (ContentKind.VOICE, ContentKind.VIDEO, ContentKind.PENDING):
        return payload or NO_TRANSCRIPT

    if item.kind == ContentKind.PHOTO:
        return f"📷 Photo\n{payload}".rstrip()

    name = item.file_name or "file"
    return f"📎 Document: {name}\n{payload}".rstrip()


def render_collected_items(items: Iterable[ContentItem]) -> str:
    """Note body: every item in collection order, blank line between."""
    return "\n\n".join(block for block in (render_item(item) for item in items) if block)


def combined_text(items: Iterable[ContentItem]) -> str:
    """Plain text of all items that have any, for title generation."""
    return "\n".join(item.payload.strip() for item in items if item.payload and item.payload.strip())
