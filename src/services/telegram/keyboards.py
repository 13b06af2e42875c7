"""Keyboard builders for Telegram inline keyboards.

All button labels come from messages.py; callback data follows the
"<action>:<value>" format parsed by TelegramEvent.
"""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from src.lib.messages import (
    BUTTON_CANCEL,
    BUTTON_CONFIRM,
    BUTTON_DELETE_MESSAGES,
    BUTTON_DONE,
    BUTTON_KEEP,
    BUTTON_SAVE,
    BUTTON_TAGS,
    BUTTON_USE_SUGGESTED,
)


def build_note_keyboard(source_message_id: int) -> InlineKeyboardMarkup:
    """Save / Tags buttons under a single note."""
    return InlineKeyboardMarkup([
        [
            InlineKeyboardButton(BUTTON_SAVE, callback_data=f"note:save:{source_message_id}"),
            InlineKeyboardButton(BUTTON_TAGS, callback_data=f"note:tags:{source_message_id}"),
        ],
    ])


def build_collect_keyboard() -> InlineKeyboardMarkup:
    """Done / Cancel for an active collect session."""
    return InlineKeyboardMarkup([
        [
            InlineKeyboardButton(BUTTON_DONE, callback_data="collect:done"),
            InlineKeyboardButton(BUTTON_CANCEL, callback_data="collect:cancel"),
        ],
    ])


def build_tag_list_keyboard(has_suggestion: bool) -> InlineKeyboardMarkup:
    """Listing keyboard; the suggestion button only when there is one."""
    row = []
    if has_suggestion:
        row.append(InlineKeyboardButton(BUTTON_USE_SUGGESTED, callback_data="tags:suggested"))
    row.append(InlineKeyboardButton(BUTTON_CANCEL, callback_data="tags:cancel"))
    return InlineKeyboardMarkup([row])


def build_tag_confirm_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [
            InlineKeyboardButton(BUTTON_CONFIRM, callback_data="tags:confirm"),
            InlineKeyboardButton(BUTTON_CANCEL, callback_data="tags:cancel"),
        ],
    ])


def build_cleanup_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [
            InlineKeyboardButton(BUTTON_DELETE_MESSAGES, callback_data="cleanup:delete"),
            InlineKeyboardButton(BUTTON_KEEP, callback_data="cleanup:keep"),
        ],
    ])
