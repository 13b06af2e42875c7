"""Integration tests for SessionOrchestrator.

The orchestrator runs against the real session store with a recording
chat transport and mocked transcription, LLM and vault collaborators.
"""

import asyncio
import itertools

import pytest

from src.lib.error_catalog import DEFAULT_ERROR, ERROR_CATALOG
from src.lib.exceptions import TranscriptionError, VaultError
from src.lib.messages import (
    ACTION_EXPIRED,
    CLEANUP_KEPT,
    COLLECT_AUTO_STARTED,
    COLLECT_CANCELLED,
    COLLECT_EMPTY,
    COLLECT_EXPORT_FAILED,
    COLLECT_NOT_ACTIVE,
    TAGS_CANCELLED,
    UNKNOWN_COMMAND,
    UNSUPPORTED_CONTENT,
)
from src.models.content import ContentKind, IncomingContent, ReplyTarget
from src.models.tags import TagPhase
from src.services.orchestrator import SessionOrchestrator
from src.services.telegram.adapter import TelegramEvent
from src.services.vault.render import NO_TRANSCRIPT

OWNER = 42
CHAT = 100

_callback_ids = itertools.count(1)


def text_event(message_id: int, text: str, reply_to: ReplyTarget = None) -> TelegramEvent:
    return TelegramEvent.message(
        CHAT, OWNER, message_id, IncomingContent.from_text(text), reply_to=reply_to
    )


def voice_event(message_id: int, reply_to: ReplyTarget = None) -> TelegramEvent:
    content = IncomingContent(ContentKind.VOICE, media_ref=f"v-{message_id}")
    return TelegramEvent.message(CHAT, OWNER, message_id, content, reply_to=reply_to)


def command(name: str, message_id: int = None) -> TelegramEvent:
    return TelegramEvent.command(CHAT, OWNER, name, message_id=message_id)


def callback(data: str, message_id: int, callback_id: str = None) -> TelegramEvent:
    return TelegramEvent.callback(
        CHAT,
        OWNER,
        callback_id or f"cb-{next(_callback_ids)}",
        data,
        message_id=message_id,
    )


async def settle() -> None:
    """Let started tasks run up to their next real suspension."""
    for _ in range(10):
        await asyncio.sleep(0)


def gated_transcriber(transcriber, texts: dict[str, str]) -> dict[str, asyncio.Event]:
    """Make each media_ref block until its gate is set."""
    gates = {media_ref: asyncio.Event() for media_ref in texts}

    async def transcribe(media_ref, kind, file_name=None):
        await gates[media_ref].wait()
        return texts[media_ref]

    transcriber.transcribe.side_effect = transcribe
    return gates


@pytest.fixture
def orchestrator(transport, store, transcriber, assistant, vault, session_config, error_layer):
    return SessionOrchestrator(
        transport=transport,
        store=store,
        transcriber=transcriber,
        assistant=assistant,
        vault=vault,
        config=session_config,
        error_layer=error_layer,
    )


def exported_note(vault, index: int = -1):
    return vault.export_note.await_args_list[index].args[0]


class TestSingleNote:
    """Voice, video and text messages outside a collect session."""

    @pytest.mark.asyncio
    async def test_voice_note_flow(self, orchestrator, transport, store, assistant):
        await orchestrator.handle_event(voice_event(10))

        processing, reply = transport.sent
        assert processing["reply_to"] == 10
        assert transport.deleted == [(CHAT, processing["message_id"])]
        assert "Generated title" in reply["text"]
        assert "call mom" in reply["text"]
        assert reply["reply_to"] == 10
        assert reply["reply_markup"] is not None
        assistant.generate_title.assert_awaited_once_with("call mom")

        entry = store.transcripts.get((CHAT, 10))
        assert entry.content == "call mom"
        assert entry.mode == "voice"
        assert store.links.resolve(CHAT, reply["message_id"]).origin_message_id == 10
        assert store.pending.get((CHAT, 10)) is None

    @pytest.mark.asyncio
    async def test_text_note_uses_first_line(self, orchestrator, transport, store, assistant):
        await orchestrator.handle_event(text_event(10, "Groceries\nmilk, eggs"))

        assert "<b>Groceries</b>" in transport.last_sent()["text"]
        assistant.generate_title.assert_not_awaited()
        assert store.transcripts.get((CHAT, 10)).mode == "text"
        link = store.links.resolve(CHAT, transport.last_sent()["message_id"])
        assert link.kind == ContentKind.TEXT

    @pytest.mark.asyncio
    async def test_user_text_is_escaped(self, orchestrator, transport):
        await orchestrator.handle_event(text_event(10, "<b>bold</b> & more"))

        assert "&lt;b&gt;bold&lt;/b&gt; &amp; more" in transport.last_sent()["text"]

    @pytest.mark.asyncio
    async def test_speech_not_recognized(self, orchestrator, transport, store, transcriber):
        transcriber.transcribe.return_value = ""

        await orchestrator.handle_event(voice_event(10))

        assert "Could not recognize" in transport.last_sent()["text"]
        assert store.transcripts.get((CHAT, 10)) is None

    @pytest.mark.asyncio
    async def test_transcription_failure_reported(self, orchestrator, transport, store, transcriber):
        transcriber.transcribe.side_effect = TranscriptionError("whisper crashed")

        await orchestrator.handle_event(voice_event(10))

        assert ERROR_CATALOG["ERR_TRANSCRIPTION_001"].message in transport.last_sent()["text"]
        assert len(transport.deleted) == 1
        assert store.pending.get((CHAT, 10)) is None

    @pytest.mark.asyncio
    async def test_readability_pass_when_enabled(
        self, transport, store, transcriber, assistant, vault, session_config, error_layer
    ):
        config = session_config.model_copy(update={"improve_readability": True})
        assistant.improve_readability.side_effect = lambda text: text.capitalize()
        orchestrator = SessionOrchestrator(
            transport, store, transcriber, assistant, vault, config, error_layer
        )

        await orchestrator.handle_event(voice_event(10))

        assert store.transcripts.get((CHAT, 10)).content == "Call mom"

    @pytest.mark.asyncio
    async def test_lost_processing_notice(self, orchestrator, transport, store):
        transport.fail_on = ("⏳",)

        await orchestrator.handle_event(voice_event(10))

        assert "call mom" in transport.last_sent()["text"]
        assert transport.deleted == []
        assert store.pending.get((CHAT, 10)) is None
        assert store.transcripts.get((CHAT, 10)).content == "call mom"

    @pytest.mark.asyncio
    async def test_lost_processing_notice_resolves_reply(
        self, orchestrator, transport, store, transcriber, vault
    ):
        """A reply made during transcription still gets the transcript."""
        transport.fail_on = ("⏳",)
        gates = gated_transcriber(transcriber, {"v-10": "call mom"})
        voice = asyncio.create_task(orchestrator.handle_event(voice_event(10)))
        await settle()

        original = IncomingContent(ContentKind.VOICE, media_ref="v-10")
        await orchestrator.handle_event(
            text_event(11, "see above", reply_to=ReplyTarget(10, from_bot=False, content=original))
        )
        gates["v-10"].set()
        await voice
        await orchestrator.handle_event(command("done", 12))

        assert exported_note(vault).body == "call mom\n\nsee above"
        assert store.pending.get((CHAT, 10)) is None

    @pytest.mark.asyncio
    async def test_photo_is_unsupported(self, orchestrator, transport):
        content = IncomingContent(ContentKind.PHOTO, media_ref="p-1")

        await orchestrator.handle_event(TelegramEvent.message(CHAT, OWNER, 10, content))

        assert transport.texts == [UNSUPPORTED_CONTENT]


class TestSaveNote:
    """The Save button exports with the marker tag only."""

    @pytest.mark.asyncio
    async def test_save_exports_once(self, orchestrator, transport, vault):
        await orchestrator.handle_event(voice_event(10))
        reply_id = transport.last_sent()["message_id"]

        await orchestrator.handle_event(callback("note:save:10", reply_id))

        note = exported_note(vault)
        assert note.tags == ["tg-transcript"]
        assert note.body == "call mom"
        assert note.title == "Generated title"
        assert "Saved to the vault" in transport.last_sent()["text"]

    @pytest.mark.asyncio
    async def test_duplicate_callback_id_has_one_effect(self, orchestrator, transport, vault):
        await orchestrator.handle_event(voice_event(10))
        reply_id = transport.last_sent()["message_id"]

        first = callback("note:save:10", reply_id, callback_id="same-id")
        second = callback("note:save:10", reply_id, callback_id="same-id")
        await asyncio.gather(orchestrator.handle_event(first), orchestrator.handle_event(second))

        assert vault.export_note.await_count == 1

    @pytest.mark.asyncio
    async def test_double_tap_during_export(self, orchestrator, transport, vault):
        """Two taps have distinct ids; the second one finds the export running."""
        await orchestrator.handle_event(voice_event(10))
        reply_id = transport.last_sent()["message_id"]
        release = asyncio.Event()

        async def slow_export(note):
            await release.wait()
            return "Telegram/x.md"

        vault.export_note.side_effect = slow_export

        first = asyncio.create_task(orchestrator.handle_event(callback("note:save:10", reply_id)))
        await settle()
        await orchestrator.handle_event(callback("note:save:10", reply_id))
        release.set()
        await first

        assert vault.export_note.await_count == 1

    @pytest.mark.asyncio
    async def test_second_save_points_at_existing_note(self, orchestrator, transport, vault):
        await orchestrator.handle_event(voice_event(10))
        reply_id = transport.last_sent()["message_id"]

        await orchestrator.handle_event(callback("note:save:10", reply_id))
        await orchestrator.handle_event(callback("note:save:10", reply_id))

        assert vault.export_note.await_count == 1
        assert "Already in the vault" in transport.last_sent()["text"]
        assert "Generated title 2025-01-01 10-00.md" in transport.last_sent()["text"]

    @pytest.mark.asyncio
    async def test_lost_confirmation_after_export(self, orchestrator, transport, vault):
        await orchestrator.handle_event(voice_event(10))
        reply_id = transport.last_sent()["message_id"]
        transport.fail_on = ("Saved to the vault",)

        await orchestrator.handle_event(callback("note:save:10", reply_id))

        assert vault.export_note.await_count == 1
        assert not any(DEFAULT_ERROR.message in text for text in transport.texts)

        transport.fail_on = ()
        await orchestrator.handle_event(callback("note:save:10", reply_id))

        assert vault.export_note.await_count == 1
        assert "Already in the vault" in transport.last_sent()["text"]

    @pytest.mark.asyncio
    async def test_expired_transcript(self, orchestrator, transport, vault):
        await orchestrator.handle_event(callback("note:save:77", 500))

        vault.export_note.assert_not_awaited()
        assert "30 minutes" in transport.last_sent()["text"]

    @pytest.mark.asyncio
    async def test_vault_failure_reported(self, orchestrator, transport, vault):
        await orchestrator.handle_event(text_event(10, "note"))
        reply_id = transport.last_sent()["message_id"]
        vault.export_note.side_effect = VaultError("connection refused")

        await orchestrator.handle_event(callback("note:save:10", reply_id))

        assert ERROR_CATALOG["ERR_VAULT_001"].message in transport.last_sent()["text"]

    @pytest.mark.asyncio
    async def test_malformed_note_callback_ignored(self, orchestrator, transport, vault):
        await orchestrator.handle_event(callback("note:save:abc", 500))

        vault.export_note.assert_not_awaited()
        assert transport.sent == []


class TestCollectSession:
    """/collect, content, /done."""

    @pytest.mark.asyncio
    async def test_items_exported_in_send_order(self, orchestrator, transport, store, vault):
        await orchestrator.handle_event(command("collect", 1))
        await orchestrator.handle_event(text_event(2, "buy milk"))
        await orchestrator.handle_event(voice_event(3))
        await orchestrator.handle_event(command("done", 4))

        note = exported_note(vault)
        assert note.body == "buy milk\n\ncall mom"
        assert note.tags == ["tg-transcript"]
        assert store.collect.get(OWNER) is None

        exported = [text for text in transport.texts if "Saved to" in text]
        assert len(exported) == 1
        assert "1 × text, 1 × voice message" in exported[0]

    @pytest.mark.asyncio
    async def test_second_collect_is_rejected(self, orchestrator, transport, store):
        await orchestrator.handle_event(command("collect", 1))
        await orchestrator.handle_event(text_event(2, "keep me"))
        session = store.collect.get(OWNER)

        await orchestrator.handle_event(command("collect", 3))

        assert store.collect.get(OWNER) is session
        assert session.item_count == 1
        assert "Already collecting (1 item(s))" in transport.last_sent()["text"]
        assert transport.last_sent()["reply_markup"] is not None

    @pytest.mark.asyncio
    async def test_done_without_items(self, orchestrator, transport, store, vault):
        await orchestrator.handle_event(command("collect", 1))
        await orchestrator.handle_event(command("done", 2))

        assert transport.last_sent()["text"] == COLLECT_EMPTY
        assert store.collect.is_active(OWNER)
        vault.export_note.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_done_without_session(self, orchestrator, transport):
        await orchestrator.handle_event(command("done", 1))

        assert transport.texts == [COLLECT_NOT_ACTIVE]

    @pytest.mark.asyncio
    async def test_failed_export_restores_session(self, orchestrator, transport, store, vault):
        await orchestrator.handle_event(command("collect", 1))
        await orchestrator.handle_event(text_event(2, "buy milk"))
        vault.export_note.side_effect = VaultError("down")

        await orchestrator.handle_event(command("done", 3))

        assert transport.last_sent()["text"] == COLLECT_EXPORT_FAILED
        session = store.collect.get(OWNER)
        assert session is not None
        assert [item.payload for item in session.items] == ["buy milk"]

        vault.export_note.side_effect = None
        await orchestrator.handle_event(command("done", 4))

        assert exported_note(vault).body == "buy milk"
        assert store.collect.get(OWNER) is None

    @pytest.mark.asyncio
    async def test_lost_exporting_notice_still_exports(
        self, orchestrator, transport, store, vault
    ):
        await orchestrator.handle_event(command("collect", 1))
        await orchestrator.handle_event(text_event(2, "buy milk"))
        transport.fail_on = ("⏳ Exporting",)

        await orchestrator.handle_event(command("done", 3))

        assert exported_note(vault).body == "buy milk"
        assert store.collect.get(OWNER) is None
        assert any("Saved to" in text for text in transport.texts)

    @pytest.mark.asyncio
    async def test_unexpected_failure_before_export_restores_session(
        self, orchestrator, transport, store, assistant, vault
    ):
        await orchestrator.handle_event(command("collect", 1))
        await orchestrator.handle_event(text_event(2, "buy milk"))
        assistant.generate_title.side_effect = RuntimeError("boom")

        await orchestrator.handle_event(command("done", 3))

        vault.export_note.assert_not_awaited()
        assert DEFAULT_ERROR.message in transport.last_sent()["text"]
        session = store.collect.get(OWNER)
        assert [item.payload for item in session.items] == ["buy milk"]

        assistant.generate_title.side_effect = None
        await orchestrator.handle_event(command("done", 4))

        assert exported_note(vault).body == "buy milk"

    @pytest.mark.asyncio
    async def test_lost_item_notice_keeps_transcribing(
        self, orchestrator, transport, store, vault
    ):
        await orchestrator.handle_event(command("collect", 1))
        transport.fail_on = ("➕",)

        await orchestrator.handle_event(voice_event(2))

        item = store.collect.get(OWNER).items[0]
        assert not item.is_pending
        assert store.pending.get((CHAT, 2)) is None
        assert not any(DEFAULT_ERROR.message in text for text in transport.texts)

        await orchestrator.handle_event(command("done", 3))

        assert exported_note(vault).body == "call mom"

    @pytest.mark.asyncio
    async def test_lost_result_after_export(self, orchestrator, transport, store, vault):
        await orchestrator.handle_event(command("collect", 1))
        await orchestrator.handle_event(text_event(2, "buy milk"))
        transport.fail_on = ("Saved to",)

        await orchestrator.handle_event(command("done", 3))

        assert vault.export_note.await_count == 1
        assert store.collect.get(OWNER) is None
        assert COLLECT_EXPORT_FAILED not in transport.texts
        assert not any(DEFAULT_ERROR.message in text for text in transport.texts)
        assert "🧹" in transport.last_sent()["text"]

    @pytest.mark.asyncio
    async def test_lost_cleanup_prompt_after_export(self, orchestrator, transport, store, vault):
        await orchestrator.handle_event(command("collect", 1))
        await orchestrator.handle_event(text_event(2, "buy milk"))
        transport.fail_on = ("🧹",)

        await orchestrator.handle_event(command("done", 3))

        assert vault.export_note.await_count == 1
        assert store.collect.get(OWNER) is None
        assert len(store.cleanups) == 0
        assert "Saved to" in transport.last_sent()["text"]
        assert not any(DEFAULT_ERROR.message in text for text in transport.texts)

    @pytest.mark.asyncio
    async def test_done_button(self, orchestrator, store, vault):
        await orchestrator.handle_event(command("collect", 1))
        await orchestrator.handle_event(text_event(2, "x"))

        await orchestrator.handle_event(callback("collect:done", 1001))

        assert vault.export_note.await_count == 1

    @pytest.mark.asyncio
    async def test_out_of_order_transcriptions(self, orchestrator, transcriber, vault):
        gates = gated_transcriber(transcriber, {"v-2": "first", "v-3": "second"})
        await orchestrator.handle_event(command("collect", 1))

        first = asyncio.create_task(orchestrator.handle_event(voice_event(2)))
        second = asyncio.create_task(orchestrator.handle_event(voice_event(3)))
        await settle()
        await orchestrator.handle_event(text_event(4, "third"))

        gates["v-3"].set()
        await second
        gates["v-2"].set()
        await first
        await orchestrator.handle_event(command("done", 5))

        assert exported_note(vault).body == "first\n\nsecond\n\nthird"

    @pytest.mark.asyncio
    async def test_transcription_finishing_after_done(
        self, orchestrator, transport, store, transcriber, vault
    ):
        """/done while a voice is still transcribing exports the placeholder."""
        gates = gated_transcriber(transcriber, {"v-2": "too late"})
        await orchestrator.handle_event(command("collect", 1))
        task = asyncio.create_task(orchestrator.handle_event(voice_event(2)))
        await settle()

        await orchestrator.handle_event(command("done", 3))
        gates["v-2"].set()
        await task

        assert exported_note(vault).body == NO_TRANSCRIPT
        assert not any(text.startswith("❌") for text in transport.texts)
        assert store.pending.get((CHAT, 2)) is None

    @pytest.mark.asyncio
    async def test_failed_transcription_keeps_item(self, orchestrator, transport, transcriber, vault):
        transcriber.transcribe.side_effect = TranscriptionError("bad audio")
        await orchestrator.handle_event(command("collect", 1))
        await orchestrator.handle_event(voice_event(2))
        await orchestrator.handle_event(command("done", 3))

        assert any("Could not transcribe" in text for text in transport.texts)
        assert exported_note(vault).body == NO_TRANSCRIPT


class TestCleanup:
    """Bulk deletion offered when a session ends."""

    @pytest.mark.asyncio
    async def test_cancel_then_delete_messages(self, orchestrator, transport, store):
        await orchestrator.handle_event(command("collect", 1))
        await orchestrator.handle_event(text_event(2, "draft"))
        await orchestrator.handle_event(command("cancel", 3))

        assert COLLECT_CANCELLED in transport.texts
        prompt_id = transport.last_sent()["message_id"]
        assert store.cleanups.get((CHAT, prompt_id)) is not None

        await orchestrator.handle_event(callback("cleanup:delete", prompt_id))

        deleted_ids = [message_id for _, message_id in transport.deleted]
        assert {1, 2, 3}.issubset(deleted_ids)
        assert prompt_id not in deleted_ids
        assert "Deleted" in transport.edited[-1]["text"]
        assert store.cleanups.get((CHAT, prompt_id)) is None

    @pytest.mark.asyncio
    async def test_final_result_survives_cleanup(self, orchestrator, transport):
        await orchestrator.handle_event(command("collect", 1))
        await orchestrator.handle_event(text_event(2, "idea"))
        await orchestrator.handle_event(command("done", 3))
        final_id = next(m["message_id"] for m in transport.sent if "Saved to" in m["text"])
        prompt_id = transport.last_sent()["message_id"]

        await orchestrator.handle_event(callback("cleanup:delete", prompt_id))

        assert (CHAT, final_id) not in transport.deleted
        assert (CHAT, 2) in transport.deleted

    @pytest.mark.asyncio
    async def test_keep_messages(self, orchestrator, transport):
        await orchestrator.handle_event(command("collect", 1))
        await orchestrator.handle_event(command("cancel", 2))
        prompt_id = transport.last_sent()["message_id"]

        await orchestrator.handle_event(callback("cleanup:keep", prompt_id))

        assert transport.deleted == []
        assert transport.edited[-1]["text"] == CLEANUP_KEPT

    @pytest.mark.asyncio
    async def test_expired_offer(self, orchestrator, transport):
        await orchestrator.handle_event(callback("cleanup:delete", 999))

        assert transport.edited[-1] == {
            "chat_id": CHAT,
            "message_id": 999,
            "text": ACTION_EXPIRED,
            "reply_markup": None,
        }


class TestReplies:
    """Replies pull content into a collect session."""

    @pytest.mark.asyncio
    async def test_reply_to_bot_note_auto_starts(self, orchestrator, transport, store):
        await orchestrator.handle_event(voice_event(10))
        note_reply = transport.last_sent()["message_id"]

        await orchestrator.handle_event(
            text_event(11, "add this", reply_to=ReplyTarget(note_reply, from_bot=True))
        )

        session = store.collect.get(OWNER)
        assert session.auto_started
        assert [item.payload for item in session.items] == ["call mom", "add this"]
        assert session.items[0].kind == ContentKind.VOICE
        assert COLLECT_AUTO_STARTED in transport.texts
        assert {10, note_reply}.issubset(session.tracked_ids())

    @pytest.mark.asyncio
    async def test_reply_to_expired_transcript(self, orchestrator, transport, store, vault):
        await orchestrator.handle_event(voice_event(10))
        note_reply = transport.last_sent()["message_id"]
        store.transcripts.delete((CHAT, 10))

        await orchestrator.handle_event(
            text_event(11, "more", reply_to=ReplyTarget(note_reply, from_bot=True))
        )
        await orchestrator.handle_event(command("done", 12))

        assert exported_note(vault).body == f"{NO_TRANSCRIPT}\n\nmore"

    @pytest.mark.asyncio
    async def test_reply_to_voice_still_transcribing(
        self, orchestrator, transport, store, transcriber, vault
    ):
        gates = gated_transcriber(transcriber, {"v-10": "call mom"})
        voice = asyncio.create_task(orchestrator.handle_event(voice_event(10)))
        await settle()

        original = IncomingContent(ContentKind.VOICE, media_ref="v-10")
        await orchestrator.handle_event(
            text_event(11, "see above", reply_to=ReplyTarget(10, from_bot=False, content=original))
        )
        assert store.collect.get(OWNER).items[0].is_pending

        gates["v-10"].set()
        await voice
        await orchestrator.handle_event(command("done", 12))

        assert exported_note(vault).body == "call mom\n\nsee above"

    @pytest.mark.asyncio
    async def test_auto_collect_disabled(
        self, transport, store, transcriber, assistant, vault, session_config, error_layer
    ):
        config = session_config.model_copy(update={"auto_collect_on_reply": False})
        orchestrator = SessionOrchestrator(
            transport, store, transcriber, assistant, vault, config, error_layer
        )
        await orchestrator.handle_event(voice_event(10))
        note_reply = transport.last_sent()["message_id"]

        await orchestrator.handle_event(
            text_event(11, "standalone", reply_to=ReplyTarget(note_reply, from_bot=True))
        )

        assert store.collect.get(OWNER) is None
        assert store.transcripts.get((CHAT, 11)).content == "standalone"


class TestTagFlow:
    """Tags button → free-form answer or suggestion → confirm."""

    async def _start_tags(self, orchestrator, transport) -> int:
        await orchestrator.handle_event(voice_event(10))
        note_reply = transport.last_sent()["message_id"]
        await orchestrator.handle_event(callback("note:tags:10", note_reply))
        return transport.last_sent()["message_id"]

    @pytest.mark.asyncio
    async def test_listing(self, orchestrator, transport, store):
        list_id = await self._start_tags(orchestrator, transport)

        listing = transport.edited[-1]
        assert listing["message_id"] == list_id
        assert "#ideas #work" in listing["text"]
        assert "#garden" in listing["text"]
        assert store.tags.get(OWNER).phase == TagPhase.SELECTING

    @pytest.mark.asyncio
    async def test_free_form_answer_then_confirm(self, orchestrator, transport, store, vault):
        await self._start_tags(orchestrator, transport)

        await orchestrator.handle_event(text_event(11, "ideas please"))

        confirm = transport.last_sent()
        assert "#tg-transcript #ideas" in confirm["text"]
        assert store.tags.get(OWNER).phase == TagPhase.CONFIRMING
        assert store.tags.get(OWNER).confirm_message_id == confirm["message_id"]
        assert store.collect.get(OWNER) is None

        await orchestrator.handle_event(callback("tags:confirm", confirm["message_id"]))

        assert exported_note(vault).tags == ["tg-transcript", "ideas"]
        assert "#tg-transcript #ideas" in transport.edited[-1]["text"]
        assert store.tags.get(OWNER) is None

    @pytest.mark.asyncio
    async def test_save_after_tagged_export(self, orchestrator, transport, vault):
        await self._start_tags(orchestrator, transport)
        note_reply = transport.sent[1]["message_id"]
        await orchestrator.handle_event(text_event(11, "ideas please"))
        await orchestrator.handle_event(callback("tags:confirm", transport.last_sent()["message_id"]))

        await orchestrator.handle_event(callback("note:save:10", note_reply))

        assert vault.export_note.await_count == 1
        assert "Already in the vault" in transport.last_sent()["text"]

    @pytest.mark.asyncio
    async def test_use_suggested(self, orchestrator, transport, vault):
        list_id = await self._start_tags(orchestrator, transport)

        await orchestrator.handle_event(callback("tags:suggested", list_id))
        confirm_id = transport.last_sent()["message_id"]
        await orchestrator.handle_event(callback("tags:confirm", confirm_id))

        assert exported_note(vault).tags == ["tg-transcript", "ideas", "garden"]

    @pytest.mark.asyncio
    async def test_malformed_classifier_output_still_confirms(
        self, orchestrator, transport, store, assistant
    ):
        assistant.extract_tags.return_value = {"existing": "not-an-array"}
        await self._start_tags(orchestrator, transport)

        await orchestrator.handle_event(text_event(11, "whatever"))

        selection = store.tags.get(OWNER)
        assert selection.phase == TagPhase.CONFIRMING
        assert selection.selected.is_empty
        assert "existing: none" in transport.last_sent()["text"]

    @pytest.mark.asyncio
    async def test_cancel_button(self, orchestrator, transport, store):
        list_id = await self._start_tags(orchestrator, transport)

        await orchestrator.handle_event(callback("tags:cancel", list_id))

        assert transport.edited[-1]["text"] == TAGS_CANCELLED
        assert store.tags.get(OWNER) is None

    @pytest.mark.asyncio
    async def test_stale_button(self, orchestrator, transport, vault):
        await self._start_tags(orchestrator, transport)

        await orchestrator.handle_event(callback("tags:confirm", 999))

        assert transport.edited[-1]["text"] == ACTION_EXPIRED
        vault.export_note.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_command_abandons_selection(self, orchestrator, transport, store):
        await self._start_tags(orchestrator, transport)

        await orchestrator.handle_event(command("help"))

        assert store.tags.get(OWNER) is None

    @pytest.mark.asyncio
    async def test_failed_export_keeps_workflow(self, orchestrator, transport, store, vault):
        list_id = await self._start_tags(orchestrator, transport)
        await orchestrator.handle_event(callback("tags:suggested", list_id))
        confirm_id = transport.last_sent()["message_id"]
        vault.export_note.side_effect = VaultError("down")

        await orchestrator.handle_event(callback("tags:confirm", confirm_id))

        assert store.tags.get(OWNER).phase == TagPhase.CONFIRMING
        assert ERROR_CATALOG["ERR_VAULT_001"].message in transport.last_sent()["text"]

    @pytest.mark.asyncio
    async def test_expired_transcript_on_confirm(self, orchestrator, transport, store, vault):
        list_id = await self._start_tags(orchestrator, transport)
        await orchestrator.handle_event(callback("tags:suggested", list_id))
        confirm_id = transport.last_sent()["message_id"]
        store.transcripts.delete((CHAT, 10))

        await orchestrator.handle_event(callback("tags:confirm", confirm_id))

        vault.export_note.assert_not_awaited()
        assert "no longer available" in transport.last_sent()["text"]
        assert store.tags.get(OWNER) is None


class TestCommandsAndErrors:
    @pytest.mark.asyncio
    async def test_unknown_command(self, orchestrator, transport):
        await orchestrator.handle_event(command("frobnicate"))

        assert transport.texts == [UNKNOWN_COMMAND]

    @pytest.mark.asyncio
    async def test_cancel_without_anything(self, orchestrator, transport):
        await orchestrator.handle_event(command("cancel"))

        assert transport.texts == [COLLECT_NOT_ACTIVE]

    @pytest.mark.asyncio
    async def test_duplicate_command_callback_ignored(self, orchestrator, transport):
        await orchestrator.handle_event(callback("collect:done", 1, callback_id="dup"))
        await orchestrator.handle_event(callback("collect:done", 1, callback_id="dup"))

        assert transport.texts == [COLLECT_NOT_ACTIVE]

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_message(self, orchestrator, transport, assistant):
        assistant.generate_title.side_effect = RuntimeError("boom")

        await orchestrator.handle_event(voice_event(10))

        text = transport.last_sent()["text"]
        assert DEFAULT_ERROR.message in text
        assert "boom" not in text
