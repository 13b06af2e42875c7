"""Telegram bot adapter using python-telegram-bot.

The bot handles:
- Commands: /start, /help, /collect, /done, /cancel
- Content messages: text, voice, audio, video, video notes, photos, documents
- Callback queries: inline keyboard button presses

Every update is normalized to a TelegramEvent and handed to the
registered event handler (the SessionOrchestrator).
"""

import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from telegram import Message, Update
from telegram.error import BadRequest, TelegramError
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from src.lib.config import TelegramConfig
from src.lib.messages import UNKNOWN_COMMAND
from src.models.content import ContentKind, IncomingContent, ReplyTarget
from src.services.telegram.adapter import TelegramEvent

logger = logging.getLogger(__name__)

COMMANDS = ("start", "help", "collect", "done", "cancel")

CONTENT_FILTER = filters.UpdateType.MESSAGE & (
    (filters.TEXT & ~filters.COMMAND)
    | filters.VOICE
    | filters.AUDIO
    | filters.VIDEO
    | filters.VIDEO_NOTE
    | filters.PHOTO
    | filters.Document.ALL
)


def parse_message_content(message: Message) -> Optional[IncomingContent]:
    """
    Reduce a Telegram message to IncomingContent.

    Audio files count as voice; documents with a video extension as video.

    Returns:
        Normalized content, or None for unsupported messages (stickers, polls...)
    """
    caption = message.caption

    if message.voice:
        return IncomingContent(kind=ContentKind.VOICE, media_ref=message.voice.file_id)
    if message.audio:
        return IncomingContent(
            kind=ContentKind.VOICE,
            text=caption,
            media_ref=message.audio.file_id,
            file_name=message.audio.file_name,
        )
    if message.video:
        return IncomingContent(
            kind=ContentKind.VIDEO,
            text=caption,
            media_ref=message.video.file_id,
            file_name=message.video.file_name,
        )
    if message.video_note:
        return IncomingContent(kind=ContentKind.VIDEO, media_ref=message.video_note.file_id)
    if message.photo:
        # Sizes are ordered smallest first
        return IncomingContent(
            kind=ContentKind.PHOTO, text=caption, media_ref=message.photo[-1].file_id
        )
    if message.document:
        return IncomingContent.from_document(
            media_ref=message.document.file_id,
            file_name=message.document.file_name,
            caption=caption,
        )
    if message.text:
        return IncomingContent.from_text(message.text)
    return None


def parse_reply_target(message: Message, bot_id: Optional[int]) -> Optional[ReplyTarget]:
    """Describe the message being replied to, if any."""
    replied = message.reply_to_message
    if replied is None:
        return None

    from_bot = (
        replied.from_user is not None
        and bot_id is not None
        and replied.from_user.id == bot_id
    )
    return ReplyTarget(
        message_id=replied.message_id,
        from_bot=from_bot,
        content=None if from_bot else parse_message_content(replied),
    )


class TelegramBotAdapter:
    """
    Telegram bot adapter using python-telegram-bot library.

    Implements ChatTransport for outbound calls and normalizes every
    inbound update to a TelegramEvent.
    """

    def __init__(self, config: TelegramConfig):
        """
        Initialize the Telegram bot adapter.

        Args:
            config: Telegram configuration with bot token
        """
        self.config = config
        self._app: Optional[Application] = None
        self._event_handler: Optional[Callable[[TelegramEvent], Awaitable[None]]] = None
        self._running = False

    def on_event(self, handler: Callable[[TelegramEvent], Awaitable[None]]) -> None:
        """
        Register event handler callback.

        The handler will be called for all normalized events.
        """
        self._event_handler = handler

    async def start(self) -> None:
        """Start listening for Telegram updates."""
        if self._running:
            logger.warning("Bot already running")
            return

        logger.info("Initializing Telegram bot...")

        self._app = (
            ApplicationBuilder()
            .token(self.config.bot_token)
            .concurrent_updates(self.config.concurrent_updates)
            .build()
        )

        for command in COMMANDS:
            self._app.add_handler(CommandHandler(command, self._handle_command))

        self._app.add_handler(MessageHandler(CONTENT_FILTER, self._handle_message))
        self._app.add_handler(CallbackQueryHandler(self._handle_callback))
        self._app.add_handler(MessageHandler(filters.COMMAND, self._handle_unknown))

        await self._app.initialize()
        await self._app.start()
        await self._app.updater.start_polling(drop_pending_updates=True)

        self._running = True
        logger.info("Telegram bot started and listening for messages")

    async def stop(self) -> None:
        """Stop the bot gracefully."""
        if not self._running or not self._app:
            return

        logger.info("Stopping Telegram bot...")

        await self._app.updater.stop()
        await self._app.stop()
        await self._app.shutdown()

        self._running = False
        logger.info("Telegram bot stopped")

    async def _dispatch_event(self, event: TelegramEvent) -> None:
        """Dispatch event to registered handler."""
        if self._event_handler:
            try:
                await self._event_handler(event)
            except Exception as e:
                logger.exception(f"Error handling event: {e}")

    # Inbound handlers

    async def _handle_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        if message is None or message.text is None or update.effective_user is None:
            return

        command = message.text.split()[0].lstrip("/").split("@")[0].lower()
        args = " ".join(context.args) if context.args else None

        event = TelegramEvent.command(
            chat_id=update.effective_chat.id,
            user_id=update.effective_user.id,
            command=command,
            args=args,
            message_id=message.message_id,
        )
        await self._dispatch_event(event)

    async def _handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        if message is None or update.effective_user is None:
            return

        content = parse_message_content(message)
        if content is None:
            logger.debug(f"Ignoring unsupported message {message.message_id}")
            return

        event = TelegramEvent.message(
            chat_id=update.effective_chat.id,
            user_id=update.effective_user.id,
            message_id=message.message_id,
            content=content,
            reply_to=parse_reply_target(message, context.bot.id),
        )
        await self._dispatch_event(event)

    async def _handle_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle callback query from inline keyboard button press."""
        query = update.callback_query
        if not query or not query.data:
            return

        chat_id = query.message.chat_id if query.message else update.effective_chat.id

        # Always acknowledge the callback to remove loading state
        try:
            await query.answer()
        except TelegramError as e:
            logger.warning(f"Could not answer callback {query.id}: {e}")

        event = TelegramEvent.callback(
            chat_id=chat_id,
            user_id=query.from_user.id,
            callback_id=query.id,
            callback_data=query.data,
            message_id=query.message.message_id if query.message else None,
        )

        logger.debug(f"Callback received: {query.data}")
        await self._dispatch_event(event)

    async def _handle_unknown(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.effective_message is not None:
            await update.effective_message.reply_text(UNKNOWN_COMMAND)

    # Outbound (ChatTransport)

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_to_message_id: Optional[int] = None,
        reply_markup: Any = None,
        parse_mode: Optional[str] = "HTML",
    ) -> int:
        """
        Send text message.

        Returns:
            ID of the sent message
        """
        if not self._app:
            raise RuntimeError("Bot not started")

        message = await self._app.bot.send_message(
            chat_id=chat_id,
            text=text,
            reply_to_message_id=reply_to_message_id,
            reply_markup=reply_markup,
            parse_mode=parse_mode,
        )
        return message.message_id

    async def edit_message(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        reply_markup: Any = None,
        parse_mode: Optional[str] = "HTML",
    ) -> bool:
        """Edit a message's text. Returns False if Telegram refused."""
        if not self._app:
            raise RuntimeError("Bot not started")

        try:
            await self._app.bot.edit_message_text(
                chat_id=chat_id,
                message_id=message_id,
                text=text,
                reply_markup=reply_markup,
                parse_mode=parse_mode,
            )
            return True
        except BadRequest as e:
            logger.warning(f"Failed to edit message {message_id}: {e}")
            return False

    async def delete_message(self, chat_id: int, message_id: int) -> bool:
        """
        Delete a message.

        Returns:
            True if deleted successfully
        """
        if not self._app:
            raise RuntimeError("Bot not started")

        try:
            await self._app.bot.delete_message(chat_id=chat_id, message_id=message_id)
            return True
        except TelegramError as e:
            logger.warning(f"Failed to delete message {message_id}: {e}")
            return False

    async def download_file(self, file_id: str, destination: Path) -> int:
        """
        Download a file to a local path.

        Returns:
            File size in bytes
        """
        if not self._app:
            raise RuntimeError("Bot not started")

        timeout = self.config.download_timeout
        file = await self._app.bot.get_file(file_id, read_timeout=timeout)
        await file.download_to_drive(destination, read_timeout=timeout)

        return destination.stat().st_size
