"""Shared pytest fixtures for all test types."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.lib.config import SessionConfig, reset_all_configs
from src.models.tags import TagSplit
from src.services.llm.assistant import NoteAssistant
from src.services.presentation.error_handler import (
    ErrorPresentationLayer,
    reset_error_presentation_layer,
)
from src.services.session.store import SessionStore


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingTransport:
    """
    In-memory ChatTransport.

    Sent messages get increasing ids starting at 1000 so they never
    collide with the user message ids used in tests.
    """

    def __init__(self):
        self.sent: list[dict] = []
        self.edited: list[dict] = []
        self.deleted: list[tuple[int, int]] = []
        self.downloads: list[str] = []
        self.edit_result = True
        # Sends whose text contains one of these fragments raise
        self.fail_on: tuple[str, ...] = ()
        self._next_id = 1000

    async def send_message(
        self, chat_id, text, reply_to_message_id=None, reply_markup=None, parse_mode="HTML"
    ) -> int:
        if any(fragment in text for fragment in self.fail_on):
            raise RuntimeError("Telegram unavailable")
        self._next_id += 1
        self.sent.append({
            "chat_id": chat_id,
            "text": text,
            "reply_to": reply_to_message_id,
            "reply_markup": reply_markup,
            "message_id": self._next_id,
        })
        return self._next_id

    async def edit_message(
        self, chat_id, message_id, text, reply_markup=None, parse_mode="HTML"
    ) -> bool:
        self.edited.append({
            "chat_id": chat_id,
            "message_id": message_id,
            "text": text,
            "reply_markup": reply_markup,
        })
        return self.edit_result

    async def delete_message(self, chat_id, message_id) -> bool:
        self.deleted.append((chat_id, message_id))
        return True

    async def download_file(self, file_id, destination) -> int:
        self.downloads.append(file_id)
        destination.write_bytes(b"fake audio")
        return 10

    @property
    def texts(self) -> list[str]:
        return [message["text"] for message in self.sent]

    def last_sent(self) -> dict:
        return self.sent[-1]


@pytest.fixture(autouse=True)
def reset_globals():
    """Config and error layer singletons are rebuilt for every test."""
    reset_all_configs()
    reset_error_presentation_layer()
    yield
    reset_all_configs()
    reset_error_presentation_layer()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_config() -> SessionConfig:
    return SessionConfig(
        transcript_ttl_seconds=1800,
        pending_ttl_seconds=600,
        transcription_timeout_seconds=5,
        auto_collect_on_reply=True,
        improve_readability=False,
        preview_length=200,
        callback_history_size=100,
    )


@pytest.fixture
def store(session_config) -> SessionStore:
    store = SessionStore.from_config(session_config)
    yield store
    store.clear()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def assistant() -> AsyncMock:
    assistant = AsyncMock(spec=NoteAssistant)
    assistant.generate_title.return_value = "Generated title"
    assistant.improve_readability.side_effect = lambda text: text
    assistant.recommend_tags.return_value = TagSplit(existing=("ideas",), new=("garden",))
    assistant.extract_tags.return_value = {"existing": ["ideas"], "new": []}
    return assistant


@pytest.fixture
def vault() -> MagicMock:
    vault = MagicMock()
    vault.marker_tag = "tg-transcript"
    vault.export_note = AsyncMock(return_value="Telegram/Generated title 2025-01-01 10-00.md")
    vault.list_tags = AsyncMock(return_value=["ideas", "work"])
    return vault


@pytest.fixture
def transcriber() -> AsyncMock:
    transcriber = AsyncMock()
    transcriber.transcribe.return_value = "call mom"
    return transcriber


@pytest.fixture
def error_layer() -> ErrorPresentationLayer:
    return ErrorPresentationLayer()
