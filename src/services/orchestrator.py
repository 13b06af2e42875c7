"""Session orchestrator: the single entry point for inbound chat events.

Every event passes through handle_event(), which
1. de-duplicates callbacks (synchronously, before any await),
2. resolves replies into collect sessions,
3. routes to the collect, tag or single-note flow,
4. turns any escaping exception into a chat message.

Handlers re-read owner state after every await: another event for the
same owner may have been handled while this one was suspended.
"""

import html
import logging
from typing import Optional

from src.lib.config import SessionConfig, get_session_config
from src.lib.exceptions import (
    AlreadyActiveError,
    EmptySessionError,
    ExternalServiceError,
    InvalidStateError,
    StaleReferenceError,
    TranscriptionError,
)
from src.lib.messages import (
    ACTION_EXPIRED,
    CLEANUP_DONE,
    CLEANUP_KEPT,
    CLEANUP_PROMPT,
    COLLECT_ALREADY_ACTIVE,
    COLLECT_AUTO_STARTED,
    COLLECT_CANCELLED,
    COLLECT_EMPTY,
    COLLECT_EXPORT_FAILED,
    COLLECT_EXPORTED,
    COLLECT_EXPORTING,
    COLLECT_ITEM_ADDED,
    COLLECT_ITEM_NOT_RECOGNIZED,
    COLLECT_NOT_ACTIVE,
    COLLECT_STARTED,
    HELP_MESSAGE,
    NONE_LABEL,
    NOTE_ALREADY_SAVED,
    NOTE_EXPIRED,
    NOTE_READY,
    NOTE_SAVED,
    PROCESSING_MEDIA,
    SPEECH_NOT_RECOGNIZED,
    TAGS_APPLIED,
    TAGS_CANCELLED,
    TAGS_CONFIRM,
    TAGS_LIST,
    TAGS_LOADING,
    TAGS_PROCESSING,
    UNKNOWN_COMMAND,
    UNSUPPORTED_CONTENT,
    WELCOME_MESSAGE,
    kind_label,
)
from src.lib.tag_format import display_tags, merge_tags
from src.models.cache import PendingEntry, TranscriptEntry, TranscriptKey
from src.models.collect import CleanupOffer, CollectSession
from src.models.content import (
    ContentItem,
    ContentKind,
    IncomingContent,
    MessageRole,
    ReplyTarget,
)
from src.models.note import VaultNote
from src.models.tags import ConfirmedTags, TagPhase, TagSelection
from src.services.llm.assistant import DEFAULT_TITLE, NoteAssistant
from src.services.presentation.error_handler import (
    ErrorPresentationLayer,
    get_error_presentation_layer,
)
from src.services.session.reply import ReplyResolver
from src.services.session.store import SessionStore
from src.services.telegram.adapter import TelegramEvent
from src.services.telegram.base import ChatTransport
from src.services.telegram.keyboards import (
    build_cleanup_keyboard,
    build_collect_keyboard,
    build_note_keyboard,
    build_tag_confirm_keyboard,
    build_tag_list_keyboard,
)
from src.services.transcription.media import MediaTranscriber
from src.services.vault.client import ObsidianVaultClient
from src.services.vault.render import (
    combined_text,
    render_collected_items,
    title_from_text,
    transcript_preview,
)

logger = logging.getLogger(__name__)


class SessionOrchestrator:
    """
    Routes inbound events to the session state machines.

    Example:
        orchestrator = SessionOrchestrator(bot, SessionStore.from_config(), ...)
        bot.on_event(orchestrator.handle_event)
    """

    def __init__(
        self,
        transport: ChatTransport,
        store: SessionStore,
        transcriber: MediaTranscriber,
        assistant: NoteAssistant,
        vault: ObsidianVaultClient,
        config: Optional[SessionConfig] = None,
        error_layer: Optional[ErrorPresentationLayer] = None,
    ):
        self.transport = transport
        self.store = store
        self.transcriber = transcriber
        self.assistant = assistant
        self.vault = vault
        self.config = config or get_session_config()
        self.error_layer = error_layer or get_error_presentation_layer()
        self.resolver = ReplyResolver(store, auto_collect=self.config.auto_collect_on_reply)
        # Single-note exports currently running, guards against double taps
        self._exports_in_flight: set[TranscriptKey] = set()

    # =========================================================================
    # Entry point
    # =========================================================================

    async def handle_event(self, event: TelegramEvent) -> None:
        """
        Handle one inbound event. Never raises.

        Callback de-duplication happens here, before the first await.
        """
        logger.debug(f"Handling event: {event.event_type} from {event.user_id} in {event.chat_id}")

        context = {
            "event_type": event.event_type,
            "chat_id": event.chat_id,
            "user_id": event.user_id,
        }

        if event.is_callback:
            if not event.callback_id or not self.store.callbacks.check_and_mark(event.callback_id):
                logger.info(f"Duplicate callback {event.callback_id} ignored")
                return
            context["callback_data"] = event.callback_data
            handler = self._handle_callback(event)
        elif event.is_command:
            context["command"] = event.command_name
            handler = self._handle_command(event)
        elif event.is_message:
            context["message_id"] = event.message_id
            handler = self._handle_message(event)
        else:
            logger.warning(f"Unknown event type: {event.event_type}")
            return

        await self._handle_with_error_presentation(handler, event, context)

    async def _handle_with_error_presentation(
        self,
        handler_coro,
        event: TelegramEvent,
        context: Optional[dict] = None,
    ) -> None:
        """Run a handler; translate anything it raises into a chat message."""
        try:
            await handler_coro
        except Exception as e:
            user_error = self.error_layer.translate_exception(e, context)
            text, keyboard = self.error_layer.format_for_telegram(user_error)
            try:
                await self.transport.send_message(event.chat_id, text, reply_markup=keyboard)
            except Exception as send_error:
                logger.error(f"Failed to send error message: {send_error}")

    # =========================================================================
    # Commands
    # =========================================================================

    async def _handle_command(self, event: TelegramEvent) -> None:
        owner, chat_id = event.user_id, event.chat_id
        command = event.command_name

        # Any command interrupts a tag selection
        abandoned = self.store.tags.abandon(owner)

        if command == "start":
            await self.transport.send_message(chat_id, WELCOME_MESSAGE)
        elif command == "help":
            await self.transport.send_message(chat_id, HELP_MESSAGE)
        elif command == "collect":
            await self._start_collect(owner, chat_id, event.message_id)
        elif command == "done":
            await self._finalize_collect(owner, chat_id, event.message_id)
        elif command == "cancel":
            if self.store.collect.is_active(owner):
                await self._cancel_collect(owner, chat_id, event.message_id)
            elif abandoned is not None:
                await self.transport.send_message(chat_id, TAGS_CANCELLED)
            else:
                await self.transport.send_message(chat_id, COLLECT_NOT_ACTIVE)
        else:
            await self.transport.send_message(chat_id, UNKNOWN_COMMAND)

    # =========================================================================
    # Messages
    # =========================================================================

    async def _handle_message(self, event: TelegramEvent) -> None:
        owner, chat_id = event.user_id, event.chat_id
        content = event.content
        reply = event.reply_to
        if content is None:
            return

        selection = self.store.tags.get(owner)
        if (
            selection is not None
            and content.kind == ContentKind.TEXT
            and self._is_tag_answer(selection, reply)
        ):
            await self._handle_tag_utterance(event, selection)
            return

        if reply is not None:
            resolution = self.resolver.resolve(owner, chat_id, reply)
            if resolution is not None:
                session = resolution.session
                if resolution.item is not None:
                    self._track_reply_target(session, reply, resolution.item)
                if resolution.auto_started:
                    await self._notify_tracked(
                        session,
                        COLLECT_AUTO_STARTED,
                        reply_markup=build_collect_keyboard(),
                    )
                await self._collect_content(session, event)
                return

        session = self.store.collect.get(owner)
        if session is not None:
            await self._collect_content(session, event)
            return

        await self._handle_single_note(event)

    @staticmethod
    def _is_tag_answer(selection: TagSelection, reply: Optional[ReplyTarget]) -> bool:
        """Plain text, or a reply to one of the workflow's own messages."""
        if reply is None:
            return True
        return reply.from_bot and reply.message_id in (
            selection.list_message_id,
            selection.confirm_message_id,
            selection.bot_message_id,
        )

    def _track_reply_target(
        self, session: CollectSession, reply: ReplyTarget, item: ContentItem
    ) -> None:
        self.store.collect.track_message(session, item.source_message_id, MessageRole.USER_CONTENT)
        if reply.from_bot:
            self.store.collect.track_message(session, reply.message_id, MessageRole.BOT_RESPONSE)

    # =========================================================================
    # Single-note flow
    # =========================================================================

    async def _handle_single_note(self, event: TelegramEvent) -> None:
        content = event.content
        if content.kind == ContentKind.TEXT:
            await self._handle_text_note(event)
        elif content.kind.needs_transcription:
            await self._handle_media_note(event)
        else:
            await self.transport.send_message(
                event.chat_id, UNSUPPORTED_CONTENT, reply_to_message_id=event.message_id
            )

    async def _handle_text_note(self, event: TelegramEvent) -> None:
        chat_id, message_id = event.chat_id, event.message_id
        text = event.content.text or ""
        title = title_from_text(text)

        self.store.transcripts.put(
            (chat_id, message_id),
            TranscriptEntry(title=title, content=text, owner=event.user_id, mode="text"),
        )
        await self._reply_with_note(chat_id, message_id, title, text, None, ContentKind.TEXT)

    async def _handle_media_note(self, event: TelegramEvent) -> None:
        chat_id, message_id = event.chat_id, event.message_id
        content = event.content
        key = (chat_id, message_id)

        self.store.pending.put(key, PendingEntry(media_ref=content.media_ref))
        processing_id: Optional[int] = None
        text: Optional[str] = None
        try:
            processing_id = await self._notify(
                chat_id,
                PROCESSING_MEDIA.format(kind=kind_label(content.kind.value)),
                reply_to=message_id,
            )
            text = await self._transcribe(content)
        finally:
            # A reply may have pulled this message into a collect session meanwhile
            self._bridge_pending(self.store.pending.pop(key), message_id, content.kind, text)
            if processing_id is not None:
                await self.transport.delete_message(chat_id, processing_id)

        if not text:
            await self.transport.send_message(
                chat_id,
                SPEECH_NOT_RECOGNIZED.format(kind=kind_label(content.kind.value)),
                reply_to_message_id=message_id,
            )
            return

        title = await self.assistant.generate_title(text)
        self.store.transcripts.put(
            key,
            TranscriptEntry(
                title=title, content=text, owner=event.user_id, mode=content.kind.value
            ),
        )
        await self._reply_with_note(
            chat_id, message_id, title, text, content.media_ref, content.kind
        )

    async def _transcribe(self, content: IncomingContent) -> str:
        """Speech-to-text plus the optional readability pass."""
        text = await self.transcriber.transcribe(
            content.media_ref, content.kind, content.file_name
        )
        if text and self.config.improve_readability:
            text = await self.assistant.improve_readability(text)
        return text

    def _bridge_pending(
        self,
        entry: Optional[PendingEntry],
        message_id: int,
        kind: ContentKind,
        text: Optional[str],
    ) -> None:
        """Resolve the placeholder a reply added while this message was processing."""
        if entry is None or entry.collect_session is None:
            return
        try:
            self.store.collect.resolve_item(entry.collect_session, message_id, kind, text or None)
        except (StaleReferenceError, InvalidStateError) as e:
            logger.info(f"Collect session ended before message {message_id} finished: {e}")

    async def _reply_with_note(
        self,
        chat_id: int,
        message_id: int,
        title: str,
        text: str,
        media_ref: Optional[str],
        kind: ContentKind,
    ) -> None:
        reply_id = await self.transport.send_message(
            chat_id,
            NOTE_READY.format(
                title=html.escape(title),
                preview=html.escape(transcript_preview(text, self.config.preview_length)),
            ),
            reply_to_message_id=message_id,
            reply_markup=build_note_keyboard(message_id),
        )
        self.store.links.link(chat_id, reply_id, message_id, media_ref, kind=kind)

    async def _send_note_expired(self, chat_id: int, reply_to: Optional[int]) -> None:
        minutes = int(self.config.transcript_ttl_seconds // 60)
        await self.transport.send_message(
            chat_id, NOTE_EXPIRED.format(minutes=minutes), reply_to_message_id=reply_to
        )

    async def _save_note(self, chat_id: int, source_id: int, button_message_id: int) -> None:
        """Export a cached note with the marker tag only."""
        key = (chat_id, source_id)
        entry = self.store.transcripts.get(key)
        if entry is None:
            logger.warning(f"Save requested for expired note {key}")
            await self._send_note_expired(chat_id, button_message_id)
            return

        if key in self._exports_in_flight:
            logger.info(f"Export of {key} already running")
            return

        saved_path = self.store.saved.get(key)
        if saved_path is not None:
            logger.info(f"Note {key} already exported to {saved_path}")
            await self.transport.send_message(
                chat_id,
                NOTE_ALREADY_SAVED.format(path=html.escape(saved_path)),
                reply_to_message_id=button_message_id,
            )
            return

        self._exports_in_flight.add(key)
        try:
            path = await self.vault.export_note(
                VaultNote(
                    title=entry.title,
                    body=entry.content,
                    tags=merge_tags(self.vault.marker_tag),
                    created_at=entry.captured_at,
                )
            )
        finally:
            self._exports_in_flight.discard(key)

        self.store.saved.put(key, path)
        await self._send_after_export(
            chat_id, NOTE_SAVED.format(path=html.escape(path)), reply_to=button_message_id
        )

    # =========================================================================
    # Collect flow
    # =========================================================================

    async def _start_collect(
        self, owner: int, chat_id: int, command_message_id: Optional[int]
    ) -> None:
        try:
            session = self.store.collect.start(owner, chat_id)
        except AlreadyActiveError:
            existing = self.store.collect.get(owner)
            count = existing.item_count if existing else 0
            await self.transport.send_message(
                chat_id,
                COLLECT_ALREADY_ACTIVE.format(count=count),
                reply_markup=build_collect_keyboard(),
            )
            return

        self.store.collect.track_message(session, command_message_id, MessageRole.USER_CONTENT)
        await self._send_tracked(
            session,
            MessageRole.BOT_RESPONSE,
            COLLECT_STARTED,
            reply_markup=build_collect_keyboard(),
        )

    async def _collect_content(self, session: CollectSession, event: TelegramEvent) -> None:
        content = event.content
        message_id = event.message_id
        self.store.collect.track_message(session, message_id, MessageRole.USER_CONTENT)

        if content.kind.needs_transcription:
            item = ContentItem.pending(message_id, content.media_ref, content.file_name)
        else:
            item = ContentItem.from_incoming(content, message_id)
        self.store.collect.add_item(session, item)

        # The item is in the session; a lost notice must not leave it pending
        await self._notify_tracked(
            session,
            COLLECT_ITEM_ADDED.format(
                kind=kind_label(content.kind.value).capitalize(), count=session.item_count
            ),
            reply_to=message_id,
        )

        if item.is_pending:
            await self._transcribe_into_session(session, event)

    async def _transcribe_into_session(self, session: CollectSession, event: TelegramEvent) -> None:
        content = event.content
        key = (event.chat_id, event.message_id)
        self.store.pending.put(key, PendingEntry(media_ref=content.media_ref, collect_session=session))

        text: Optional[str] = None
        try:
            text = await self._transcribe(content)
        except TranscriptionError as e:
            logger.warning(f"Transcription of collected message {event.message_id} failed: {e}")
        finally:
            entry = self.store.pending.pop(key)

        target = entry.collect_session if entry and entry.collect_session else session
        try:
            self.store.collect.resolve_item(target, event.message_id, content.kind, text or None)
        except (StaleReferenceError, InvalidStateError) as e:
            # Exported or discarded while transcribing; the item went out as-is
            logger.info(f"Collect session ended before message {event.message_id} finished: {e}")
            return

        if text:
            self.store.transcripts.put(
                key,
                TranscriptEntry(
                    title=title_from_text(text),
                    content=text,
                    owner=event.user_id,
                    mode=content.kind.value,
                ),
            )
        elif target.is_collecting:
            await self._send_tracked(
                target,
                MessageRole.BOT_NOTIFICATION,
                COLLECT_ITEM_NOT_RECOGNIZED.format(kind=kind_label(content.kind.value)),
                reply_to=event.message_id,
            )

    async def _finalize_collect(
        self, owner: int, chat_id: int, command_message_id: Optional[int] = None
    ) -> None:
        session = self.store.collect.get(owner)
        if session is None:
            await self.transport.send_message(chat_id, COLLECT_NOT_ACTIVE)
            return

        self.store.collect.track_message(session, command_message_id, MessageRole.USER_CONTENT)
        try:
            items = self.store.collect.finalize(session)
        except EmptySessionError:
            await self._send_tracked(session, MessageRole.BOT_RESPONSE, COLLECT_EMPTY)
            return

        # From here on the session is out of the live table; a second /done sees nothing.
        # Until the vault accepts the note, any failure puts the session back.
        try:
            await self._notify_tracked(session, COLLECT_EXPORTING.format(count=len(items)))

            text = combined_text(items)
            title = await self.assistant.generate_title(text) if text else DEFAULT_TITLE
            note = VaultNote(
                title=title,
                body=render_collected_items(items),
                tags=merge_tags(self.vault.marker_tag),
                created_at=session.created_at,
            )
            path = await self.vault.export_note(note)
        except Exception as e:
            if not self.store.collect.restore(session):
                raise
            logger.warning(f"Collect export for {owner} did not complete, session restored: {e}")
            if not isinstance(e, ExternalServiceError):
                raise
            await self._send_tracked(session, MessageRole.BOT_RESPONSE, COLLECT_EXPORT_FAILED)
            return

        summary = ", ".join(
            f"{count} × {kind_label(kind.value)}" for kind, count in session.counts_by_kind.items()
        )
        final_id = await self._send_after_export(
            chat_id,
            COLLECT_EXPORTED.format(
                title=html.escape(title), summary=summary, path=html.escape(path)
            ),
        )
        self.store.collect.track_message(session, final_id, MessageRole.FINAL_RESULT)
        await self._offer_cleanup(session, exclude=(MessageRole.FINAL_RESULT,))

    async def _cancel_collect(
        self, owner: int, chat_id: int, command_message_id: Optional[int] = None
    ) -> None:
        session = self.store.collect.get(owner)
        if session is None:
            await self.transport.send_message(chat_id, COLLECT_NOT_ACTIVE)
            return

        self.store.collect.cancel(session)
        self.store.collect.track_message(session, command_message_id, MessageRole.USER_CONTENT)
        await self._send_tracked(session, MessageRole.BOT_RESPONSE, COLLECT_CANCELLED)
        await self._offer_cleanup(session)

    # =========================================================================
    # Cleanup
    # =========================================================================

    async def _offer_cleanup(
        self, session: CollectSession, exclude: tuple[MessageRole, ...] = ()
    ) -> None:
        message_ids = session.tracked_ids(exclude=exclude)
        if not message_ids:
            return

        prompt_id = await self._send_after_export(
            session.channel,
            CLEANUP_PROMPT.format(count=len(message_ids)),
            reply_markup=build_cleanup_keyboard(),
        )
        if prompt_id is None:
            return

        self.store.cleanups.put(
            (session.channel, prompt_id),
            CleanupOffer(
                owner=session.owner,
                channel=session.channel,
                message_ids=message_ids,
                prompt_message_id=prompt_id,
            ),
        )

    async def _handle_cleanup(self, event: TelegramEvent) -> None:
        offer = self.store.cleanups.pop((event.chat_id, event.message_id))
        if offer is None:
            await self._expire_button(event)
            return

        if event.callback_value != "delete":
            await self.transport.edit_message(event.chat_id, event.message_id, CLEANUP_KEPT)
            return

        deleted = 0
        for message_id in offer.message_ids:
            try:
                if await self.transport.delete_message(offer.channel, message_id):
                    deleted += 1
            except Exception as e:
                logger.warning(f"Could not delete message {message_id}: {e}")

        logger.info(f"Cleanup for {offer.owner}: deleted {deleted}/{len(offer.message_ids)}")
        await self.transport.edit_message(
            event.chat_id,
            event.message_id,
            CLEANUP_DONE.format(deleted=deleted, total=len(offer.message_ids)),
        )

    # =========================================================================
    # Tag workflow
    # =========================================================================

    async def _begin_tags(
        self, owner: int, chat_id: int, source_id: int, button_message_id: int
    ) -> None:
        key = (chat_id, source_id)
        entry = self.store.transcripts.get(key)
        if entry is None:
            logger.warning(f"Tags requested for expired note {key}")
            await self._send_note_expired(chat_id, button_message_id)
            return

        list_id = await self.transport.send_message(
            chat_id, TAGS_LOADING, reply_to_message_id=button_message_id
        )
        available = await self.vault.list_tags()
        recommended = await self.assistant.recommend_tags(entry.content, available)

        selection = self.store.tags.begin_selection(
            owner=owner,
            voice_message_id=source_id,
            transcription_ref=key,
            available_tags=available,
            recommended=recommended,
            list_message_id=list_id,
            bot_message_id=button_message_id,
        )

        text = TAGS_LIST.format(
            available=self._tag_text(available),
            suggested_existing=self._tag_text(recommended.existing),
            suggested_new=self._tag_text(recommended.new),
        )
        keyboard = build_tag_list_keyboard(has_suggestion=not recommended.is_empty)
        if not await self.transport.edit_message(chat_id, list_id, text, reply_markup=keyboard):
            selection.list_message_id = await self.transport.send_message(
                chat_id, text, reply_markup=keyboard
            )

    async def _handle_tag_utterance(self, event: TelegramEvent, selection: TagSelection) -> None:
        owner, chat_id = event.user_id, event.chat_id
        processing_id = await self.transport.send_message(
            chat_id, TAGS_PROCESSING, reply_to_message_id=event.message_id
        )
        try:
            await self.store.tags.extract_tags(
                owner, event.content.text or "", self.assistant.extract_tags
            )
        except StaleReferenceError as e:
            logger.info(f"Tag answer from {owner} dropped: {e}")
            return
        finally:
            await self.transport.delete_message(chat_id, processing_id)

        await self._show_confirmation(owner, chat_id)

    async def _show_confirmation(self, owner: int, chat_id: int) -> None:
        selection = self.store.tags.get(owner)
        if selection is None or selection.phase != TagPhase.CONFIRMING:
            return

        split = selection.selected
        text = TAGS_CONFIRM.format(
            existing=self._tag_text(split.existing),
            new=self._tag_text(split.new),
            all_tags=html.escape(
                display_tags(merge_tags(self.vault.marker_tag, split.existing, split.new))
            ),
        )
        keyboard = build_tag_confirm_keyboard()

        if selection.confirm_message_id is not None and await self.transport.edit_message(
            chat_id, selection.confirm_message_id, text, reply_markup=keyboard
        ):
            return

        message_id = await self.transport.send_message(chat_id, text, reply_markup=keyboard)
        self.store.tags.set_confirm_message(selection, message_id)

    async def _handle_tags_callback(self, event: TelegramEvent) -> None:
        owner, chat_id = event.user_id, event.chat_id
        action = event.callback_value
        selection = self.store.tags.get(owner)

        if selection is None or event.message_id not in (
            selection.list_message_id,
            selection.confirm_message_id,
        ):
            await self._expire_button(event)
            return

        if action == "cancel":
            self.store.tags.abandon(owner)
            await self.transport.edit_message(chat_id, event.message_id, TAGS_CANCELLED)
        elif action == "suggested":
            self.store.tags.apply_split(owner, selection.recommended)
            await self._show_confirmation(owner, chat_id)
        elif action == "confirm":
            await self._confirm_tags(owner, chat_id, selection)
        else:
            logger.warning(f"Unknown tags action: {action}")

    async def _confirm_tags(self, owner: int, chat_id: int, selection: TagSelection) -> None:
        entry = self.store.transcripts.get(selection.transcription_ref)
        if entry is None:
            self.store.tags.abandon(owner)
            await self._send_note_expired(chat_id, selection.confirm_message_id)
            return

        path = ""

        async def export(confirmed: ConfirmedTags) -> None:
            nonlocal path
            path = await self.vault.export_note(
                VaultNote(
                    title=entry.title,
                    body=entry.content,
                    tags=confirmed.all_tags,
                    created_at=entry.captured_at,
                )
            )

        confirmed = await self.store.tags.confirm(owner, self.vault.marker_tag, export=export)
        self.store.saved.put(selection.transcription_ref, path)

        text = TAGS_APPLIED.format(
            tags=html.escape(display_tags(confirmed.all_tags)), path=html.escape(path)
        )
        try:
            await self.transport.edit_message(chat_id, selection.confirm_message_id, text)
        except Exception as e:
            logger.warning(f"Note exported but confirmation could not be shown: {e}")

    @staticmethod
    def _tag_text(tags) -> str:
        tags = list(tags)
        return html.escape(display_tags(tags)) if tags else NONE_LABEL

    # =========================================================================
    # Callbacks
    # =========================================================================

    async def _handle_callback(self, event: TelegramEvent) -> None:
        action = event.callback_action
        value = event.callback_value or ""

        if action == "collect":
            if value == "done":
                self.store.tags.abandon(event.user_id)
                await self._finalize_collect(event.user_id, event.chat_id)
            elif value == "cancel":
                await self._cancel_collect(event.user_id, event.chat_id)
        elif action == "note":
            operation, _, raw_id = value.partition(":")
            try:
                source_id = int(raw_id)
            except ValueError:
                logger.warning(f"Malformed note callback: {event.callback_data}")
                return
            if operation == "save":
                await self._save_note(event.chat_id, source_id, event.message_id)
            elif operation == "tags":
                await self._begin_tags(event.user_id, event.chat_id, source_id, event.message_id)
        elif action == "tags":
            await self._handle_tags_callback(event)
        elif action == "cleanup":
            await self._handle_cleanup(event)
        else:
            logger.warning(f"Unknown callback: {event.callback_data}")

    async def _expire_button(self, event: TelegramEvent) -> None:
        if event.message_id is not None:
            await self.transport.edit_message(event.chat_id, event.message_id, ACTION_EXPIRED)

    # =========================================================================
    # Sending helpers
    # =========================================================================

    async def _send_tracked(
        self,
        session: CollectSession,
        role: MessageRole,
        text: str,
        reply_to: Optional[int] = None,
        reply_markup=None,
    ) -> int:
        """Send into the session's chat and remember the message for cleanup."""
        message_id = await self.transport.send_message(
            session.channel, text, reply_to_message_id=reply_to, reply_markup=reply_markup
        )
        self.store.collect.track_message(session, message_id, role)
        return message_id

    async def _notify(
        self, chat_id: int, text: str, reply_to: Optional[int] = None, reply_markup=None
    ) -> Optional[int]:
        """Send a progress notice; if Telegram refuses, log it and carry on."""
        try:
            return await self.transport.send_message(
                chat_id, text, reply_to_message_id=reply_to, reply_markup=reply_markup
            )
        except Exception as e:
            logger.warning(f"Notice to chat {chat_id} not sent: {e}")
            return None

    async def _notify_tracked(
        self,
        session: CollectSession,
        text: str,
        reply_to: Optional[int] = None,
        reply_markup=None,
    ) -> Optional[int]:
        message_id = await self._notify(session.channel, text, reply_to, reply_markup)
        self.store.collect.track_message(session, message_id, MessageRole.BOT_NOTIFICATION)
        return message_id

    async def _send_after_export(
        self,
        chat_id: int,
        text: str,
        reply_to: Optional[int] = None,
        reply_markup=None,
    ) -> Optional[int]:
        """
        Send a message once the export already succeeded.

        A failure here is logged, not raised: the note is in the vault.
        """
        try:
            return await self.transport.send_message(
                chat_id, text, reply_to_message_id=reply_to, reply_markup=reply_markup
            )
        except Exception as e:
            logger.warning(f"Export succeeded but follow-up message failed: {e}")
            return None
