"""Unit tests for note rendering helpers."""

from src.models.content import ContentItem, ContentKind
from src.services.vault.render import (
    NO_TRANSCRIPT,
    combined_text,
    render_collected_items,
    render_item,
    title_from_text,
    transcript_preview,
)


class TestTitleFromText:
    def test_first_line_is_title(self):
        assert title_from_text("Shopping list\nmilk\neggs") == "Shopping list"

    def test_leading_blank_lines_skipped(self):
        assert title_from_text("\n\n  Hello  \nworld") == "Hello"

    def test_long_line_is_cut(self):
        title = title_from_text("x" * 80)

        assert title == "x" * 47 + "..."
        assert len(title) == 50

    def test_exactly_fifty_is_kept(self):
        assert title_from_text("y" * 50) == "y" * 50

    def test_empty_text_falls_back(self):
        assert title_from_text("   ") == "Text note"


class TestTranscriptPreview:
    def test_short_text_unchanged(self):
        assert transcript_preview("short") == "short"

    def test_long_text_cut_with_ellipsis(self):
        preview = transcript_preview("a" * 250)

        assert preview == "a" * 200 + "..."


class TestRenderItems:
    def test_voice_without_transcript_renders_placeholder(self):
        item = ContentItem(ContentKind.VOICE, None, 10)

        assert render_item(item) == NO_TRANSCRIPT

    def test_unresolved_pending_renders_placeholder(self):
        assert render_item(ContentItem.pending(10)) == NO_TRANSCRIPT

    def test_photo_with_caption(self):
        item = ContentItem(ContentKind.PHOTO, "sunset", 10)

        assert render_item(item) == "📷 Photo\nsunset"

    def test_document_uses_file_name(self):
        item = ContentItem(ContentKind.DOCUMENT, None, 10, file_name="report.pdf")

        assert render_item(item) == "📎 Document: report.pdf"

    def test_items_rendered_in_order(self):
        items = [
            ContentItem(ContentKind.TEXT, "buy milk", 1),
            ContentItem(ContentKind.VOICE, "call mom", 2),
            ContentItem(ContentKind.VIDEO, None, 3),
        ]

        assert render_collected_items(items) == f"buy milk\n\ncall mom\n\n{NO_TRANSCRIPT}"

    def test_combined_text_skips_empty_payloads(self):
        items = [
            ContentItem(ContentKind.TEXT, "buy milk", 1),
            ContentItem(ContentKind.VOICE, None, 2),
            ContentItem(ContentKind.VOICE, "  call mom ", 3),
        ]

        assert combined_text(items) == "buy milk\ncall mom"
