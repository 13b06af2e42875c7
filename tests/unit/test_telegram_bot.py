"""Unit tests for TelegramBotAdapter message parsing and dispatch."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.lib.config import TelegramConfig
from src.models.content import ContentKind
from src.services.telegram.adapter import TelegramEvent
from src.services.telegram.bot import (
    TelegramBotAdapter,
    parse_message_content,
    parse_reply_target,
)

BOT_ID = 999


def _message(**fields) -> MagicMock:
    """A Telegram Message double with every content field empty."""
    message = MagicMock()
    defaults = {
        "message_id": 10,
        "text": None,
        "caption": None,
        "voice": None,
        "audio": None,
        "video": None,
        "video_note": None,
        "photo": None,
        "document": None,
        "reply_to_message": None,
        "from_user": None,
    }
    defaults.update(fields)
    for name, value in defaults.items():
        setattr(message, name, value)
    return message


def _file(file_id: str, file_name=None) -> MagicMock:
    media = MagicMock()
    media.file_id = file_id
    media.file_name = file_name
    return media


class TestParseMessageContent:
    """Tests for parse_message_content."""

    def test_text(self):
        content = parse_message_content(_message(text="buy milk"))

        assert content.kind == ContentKind.TEXT
        assert content.text == "buy milk"

    def test_voice(self):
        content = parse_message_content(_message(voice=_file("v-1")))

        assert content.kind == ContentKind.VOICE
        assert content.media_ref == "v-1"

    def test_audio_file_counts_as_voice(self):
        content = parse_message_content(_message(audio=_file("a-1", "memo.m4a")))

        assert content.kind == ContentKind.VOICE
        assert content.file_name == "memo.m4a"

    def test_video_note(self):
        content = parse_message_content(_message(video_note=_file("vn-1")))

        assert content.kind == ContentKind.VIDEO

    def test_photo_uses_largest_size(self):
        sizes = [_file("small"), _file("large")]

        content = parse_message_content(_message(photo=sizes, caption="sunset"))

        assert content.kind == ContentKind.PHOTO
        assert content.media_ref == "large"
        assert content.text == "sunset"

    def test_video_document_promoted(self):
        content = parse_message_content(_message(document=_file("d-1", "clip.mov")))

        assert content.kind == ContentKind.VIDEO

    def test_other_document(self):
        content = parse_message_content(_message(document=_file("d-1", "notes.pdf")))

        assert content.kind == ContentKind.DOCUMENT

    def test_unsupported_message(self):
        assert parse_message_content(_message()) is None


class TestParseReplyTarget:
    """Tests for parse_reply_target."""

    def test_no_reply(self):
        assert parse_reply_target(_message(), BOT_ID) is None

    def test_reply_to_bot(self):
        author = MagicMock()
        author.id = BOT_ID
        replied = _message(message_id=5, text="transcript", from_user=author)

        target = parse_reply_target(_message(reply_to_message=replied), BOT_ID)

        assert target.message_id == 5
        assert target.from_bot is True
        assert target.content is None

    def test_reply_to_user_message_carries_content(self):
        author = MagicMock()
        author.id = 42
        replied = _message(message_id=6, voice=_file("v-1"), from_user=author)

        target = parse_reply_target(_message(reply_to_message=replied), BOT_ID)

        assert target.from_bot is False
        assert target.content.kind == ContentKind.VOICE
        assert target.content.media_ref == "v-1"


class TestDispatch:
    """Events reach the registered handler; handler errors stay contained."""

    @pytest.fixture
    def adapter(self) -> TelegramBotAdapter:
        return TelegramBotAdapter(TelegramConfig(bot_token="123:abc"))

    @pytest.mark.asyncio
    async def test_dispatch_calls_handler(self, adapter):
        handler = AsyncMock()
        adapter.on_event(handler)
        event = TelegramEvent.command(1, 2, "help")

        await adapter._dispatch_event(event)

        handler.assert_awaited_once_with(event)

    @pytest.mark.asyncio
    async def test_dispatch_swallows_handler_errors(self, adapter):
        adapter.on_event(AsyncMock(side_effect=RuntimeError("boom")))

        await adapter._dispatch_event(TelegramEvent.command(1, 2, "help"))

    @pytest.mark.asyncio
    async def test_callback_is_answered_and_dispatched(self, adapter):
        handler = AsyncMock()
        adapter.on_event(handler)

        query = MagicMock()
        query.id = "q-1"
        query.data = "collect:done"
        query.answer = AsyncMock()
        query.message.chat_id = 100
        query.message.message_id = 55
        query.from_user.id = 42
        update = MagicMock()
        update.callback_query = query

        await adapter._handle_callback(update, MagicMock())

        query.answer.assert_awaited_once()
        event = handler.await_args.args[0]
        assert event.callback_id == "q-1"
        assert event.chat_id == 100
        assert event.user_id == 42
        assert event.message_id == 55

    @pytest.mark.asyncio
    async def test_outbound_requires_started_bot(self, adapter):
        with pytest.raises(RuntimeError):
            await adapter.send_message(1, "hello")
